"""
WasteWatch - Data Ingestion Module
Position sources feeding the report draft and the live map.
"""

from wastewatch.ingestion.geolocation import (
    GeolocationSource,
    Position,
    SimulatedGeolocationSource,
    WatchHandle,
)

__all__ = [
    "GeolocationSource",
    "Position",
    "SimulatedGeolocationSource",
    "WatchHandle",
]
