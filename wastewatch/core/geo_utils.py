"""
WasteWatch - Geospatial Utilities
Distance and offset math for the small-radius (<5 km) regime of the map view.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict

from wastewatch.core.constants import METERS_PER_DEGREE_LAT

# Earth's radius in kilometers
EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Point:
    """Geographic point with latitude and longitude."""
    latitude: float
    longitude: float

    def to_dict(self) -> Dict[str, float]:
        """Return as {lat, lng} for the client-facing shape."""
        return {"lat": self.latitude, "lng": self.longitude}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Point":
        """
        Build a point from {lat, lng} or {latitude, longitude}.

        Raises:
            ValueError: If a coordinate is missing or not numeric
        """
        latitude = data.get("lat", data.get("latitude"))
        longitude = data.get("lng", data.get("longitude"))
        if latitude is None or longitude is None:
            raise ValueError("Point requires lat/lng (or latitude/longitude)")

        try:
            return cls(latitude=float(latitude), longitude=float(longitude))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid coordinates: {latitude}, {longitude}") from e


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates in decimal degrees
        lat2, lon2: Second point coordinates in decimal degrees

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_meters(a: Point, b: Point) -> float:
    """
    Great-circle distance between two points in meters.

    Symmetric, and exactly zero for identical points.
    """
    if a == b:
        return 0.0
    return haversine_distance(a.latitude, a.longitude, b.latitude, b.longitude) * 1000


def offset(origin: Point, distance_m: float, bearing_radians: float) -> Point:
    """
    Move a point by a distance along a bearing using a flat-earth approximation.

    Valid for sub-kilometer ranges. Longitude is scaled by cos(latitude) so
    east-west offsets keep their length away from the equator.

    Args:
        origin: Start point
        distance_m: Distance to travel in meters
        bearing_radians: Bearing in radians (0=North, increasing clockwise)

    Returns:
        Destination point
    """
    north_m = distance_m * math.cos(bearing_radians)
    east_m = distance_m * math.sin(bearing_radians)

    return Point(
        latitude=origin.latitude + meters_to_degrees_lat(north_m),
        longitude=origin.longitude + meters_to_degrees_lon(east_m, origin.latitude),
    )


def meters_to_degrees_lat(meters: float) -> float:
    """Convert meters to degrees of latitude."""
    return meters / METERS_PER_DEGREE_LAT


def meters_to_degrees_lon(meters: float, latitude: float) -> float:
    """Convert meters to degrees of longitude at a given latitude."""
    # Pole: every longitude is the same point
    cos_lat = math.cos(math.radians(latitude))
    if abs(cos_lat) < 1e-12:
        return 0.0
    return meters / (METERS_PER_DEGREE_LAT * cos_lat)
