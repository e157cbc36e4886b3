"""
WasteWatch - Core Utilities
Central configuration, constants, errors, and geo helpers.
"""

from wastewatch.core.config import settings
from wastewatch.core.constants import (
    WasteType,
    MAP_WASTE_TYPES,
    MIN_ACCEPTANCE_CONFIDENCE,
)
from wastewatch.core.exceptions import (
    WasteWatchError,
    ClassificationUnavailable,
    LowConfidenceOrNoWaste,
    EmptySubmission,
    NoPendingConfirmation,
    InvalidTransition,
    InvalidToken,
    ReportNotFound,
    GeolocationUnavailable,
)
from wastewatch.core.geo_utils import (
    Point,
    haversine_distance,
    distance_meters,
    offset,
)

__all__ = [
    "settings",
    "WasteType",
    "MAP_WASTE_TYPES",
    "MIN_ACCEPTANCE_CONFIDENCE",
    # Errors
    "WasteWatchError",
    "ClassificationUnavailable",
    "LowConfidenceOrNoWaste",
    "EmptySubmission",
    "NoPendingConfirmation",
    "InvalidTransition",
    "InvalidToken",
    "ReportNotFound",
    "GeolocationUnavailable",
    # Geo
    "Point",
    "haversine_distance",
    "distance_meters",
    "offset",
]
