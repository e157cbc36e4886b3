"""
WasteWatch - Constants and Reference Data
Static values used throughout the application.
"""

from enum import Enum
from typing import List, Tuple


# =============================================================================
# WASTE TYPES
# =============================================================================

class WasteType(str, Enum):
    """Waste categories returned by the classification service."""
    PLASTIC = "Plastic"
    ORGANIC = "Organic"
    E_WASTE = "E-waste"
    METAL = "Metal"
    GLASS = "Glass"
    PAPER = "Paper"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: str) -> "WasteType":
        """Parse a label case-insensitively, falling back to OTHER."""
        normalized = value.strip().lower().replace("_", "-")
        for member in cls:
            if member.value.lower() == normalized:
                return member
        if normalized in ("ewaste", "e waste", "electronic"):
            return cls.E_WASTE
        return cls.OTHER


# Types shown on the live map
MAP_WASTE_TYPES: List[WasteType] = [
    WasteType.PLASTIC,
    WasteType.GLASS,
    WasteType.METAL,
    WasteType.ORGANIC,
    WasteType.OTHER,
]

MAP_ITEM_DESCRIPTIONS: List[str] = [
    "Bottle",
    "Bag",
    "Can",
    "Food waste",
    "Mixed debris",
]


# =============================================================================
# CLASSIFICATION THRESHOLDS
# =============================================================================

# Minimum confidence (0-100) for an automatic classification to be used
MIN_ACCEPTANCE_CONFIDENCE: float = 50.0

CONFIDENCE_RANGE: Tuple[float, float] = (0.0, 100.0)


# =============================================================================
# REWARDS (GreenUnits)
# =============================================================================

BASE_REWARD: int = 5
REDUCED_REWARD: int = 40
STANDARD_REWARD: int = 50
HIGH_REWARD: int = 70

# Confidence must be strictly greater than the breakpoint
HIGH_REWARD_CONFIDENCE: float = 90.0
STANDARD_REWARD_CONFIDENCE: float = 75.0


# =============================================================================
# GEO
# =============================================================================

METERS_PER_DEGREE_LAT: float = 111320.0

DEFAULT_NEARBY_RADIUS_METERS: float = 700.0
DEFAULT_NEARBY_COUNT: int = 10


# =============================================================================
# VERIFICATION
# =============================================================================

MARK_CLEANED_ACTION: str = "mark-cleaned"
