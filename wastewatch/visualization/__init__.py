"""
WasteWatch - Map View Module
Simulated nearby waste and the marker overlay for the live map.
"""

from wastewatch.visualization.proximity import (
    WasteItem,
    ProximitySimulator,
    NearbyWasteFeed,
    build_map_markers,
    generate_nearby,
)

__all__ = [
    "WasteItem",
    "ProximitySimulator",
    "NearbyWasteFeed",
    "build_map_markers",
    "generate_nearby",
]
