"""
Nearby waste simulation for the live map

Generates synthetic waste markers around the user's position. The markers
are presentation-only: they are regenerated on every location update and are
never stored as reports.
"""

import logging
import math
import random
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from wastewatch.core.config import settings
from wastewatch.core.constants import MAP_ITEM_DESCRIPTIONS, MAP_WASTE_TYPES, WasteType
from wastewatch.core.exceptions import GeolocationUnavailable
from wastewatch.core.geo_utils import Point, offset
from wastewatch.crowdsource.report_handler import Report
from wastewatch.ingestion.geolocation import (
    GeolocationSource,
    Position,
    WatchHandle,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WasteItem:
    """Simulated waste marker near the user."""
    id: str
    latitude: float
    longitude: float
    type: WasteType
    description: str
    distance_meters: int
    image_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "lat": self.latitude,
            "lng": self.longitude,
            "type": self.type.value,
            "description": self.description,
            "distance_meters": self.distance_meters,
            "image_url": self.image_url,
        }


class ProximitySimulator:
    """
    Generator of synthetic waste items around a center point.

    Bearing is uniform over [0, 2*pi) and distance is uniform in linear
    distance (not area), so items cluster toward the center.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        waste_types: Optional[Sequence[WasteType]] = None,
        descriptions: Optional[Sequence[str]] = None
    ):
        self._rng = rng or random.Random()
        self.waste_types = list(waste_types or MAP_WASTE_TYPES)
        self.descriptions = list(descriptions or MAP_ITEM_DESCRIPTIONS)

    def generate_nearby(
        self,
        center: Point,
        max_radius_meters: Optional[float] = None,
        count: Optional[int] = None
    ) -> List[WasteItem]:
        """
        Generate waste items around a center.

        Args:
            center: User position
            max_radius_meters: Maximum distance from center
            count: Number of items

        Returns:
            List of exactly `count` WasteItems
        """
        if max_radius_meters is None:
            max_radius_meters = settings.nearby_radius_meters
        if count is None:
            count = settings.nearby_count

        if max_radius_meters < 0:
            raise ValueError("max_radius_meters must be non-negative")
        if count < 0:
            raise ValueError("count must be non-negative")

        batch = uuid.uuid4().hex[:8]
        items = []

        for i in range(count):
            distance = self._rng.random() * max_radius_meters
            bearing = self._rng.random() * 2 * math.pi
            point = offset(center, distance, bearing)

            items.append(WasteItem(
                id=f"w-{batch}-{i}",
                latitude=point.latitude,
                longitude=point.longitude,
                type=self._rng.choice(self.waste_types),
                description=self._rng.choice(self.descriptions),
                distance_meters=min(int(round(distance)), int(max_radius_meters)),
            ))

        return items


class NearbyWasteFeed:
    """
    Live nearby-waste view driven by a position watch.

    Every position update replaces the item set. After stop() no further
    updates are applied. Use as a context manager to tie the watch to the
    lifetime of the consuming view.
    """

    def __init__(
        self,
        source: GeolocationSource,
        simulator: Optional[ProximitySimulator] = None,
        max_radius_meters: Optional[float] = None,
        count: Optional[int] = None,
        on_change: Optional[Callable[[List[WasteItem]], None]] = None
    ):
        self.source = source
        self.simulator = simulator or ProximitySimulator()
        self.max_radius_meters = max_radius_meters
        self.count = count
        self.on_change = on_change

        self.status = "Waiting for location..."
        self.center: Optional[Point] = None
        self.items: List[WasteItem] = []

        self._running = False
        self._handle: Optional[WatchHandle] = None

    @property
    def active(self) -> bool:
        return self._running

    def start(self) -> None:
        """Begin watching the position."""
        if self._running:
            return
        self._running = True
        self.status = "Requesting location..."
        self._handle = self.source.watch_position(self._on_position, self._on_error)
        logger.info("Nearby waste feed started")

    def stop(self) -> None:
        """Cancel the position watch."""
        if not self._running:
            return
        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        logger.info("Nearby waste feed stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()

    def _on_position(self, position: Position) -> None:
        if not self._running:
            return

        self.center = position.to_point()
        self.items = self.simulator.generate_nearby(
            self.center, self.max_radius_meters, self.count
        )
        self.status = "Location acquired"

        if self.on_change is not None:
            self.on_change(self.items)

    def _on_error(self, error: GeolocationUnavailable) -> None:
        if not self._running:
            return
        self.status = f"Unable to get location: {error.message}"
        logger.warning(self.status)


def build_map_markers(
    items: Iterable[WasteItem],
    reports: Iterable[Report] = ()
) -> List[Dict[str, Any]]:
    """
    Overlay simulated items and located reports for display.

    Reports without a location are skipped.
    """
    markers: List[Dict[str, Any]] = []

    for item in items:
        marker = item.to_dict()
        marker["kind"] = "simulated"
        markers.append(marker)

    for report in reports:
        if report.location is None:
            continue
        markers.append({
            "kind": "report",
            "id": report.id,
            "lat": report.location.latitude,
            "lng": report.location.longitude,
            "type": report.waste_type.value if report.waste_type else None,
            "description": report.description or "Report",
            "status": report.status.value,
            "image_url": report.image_url,
        })

    return markers


def generate_nearby(
    center: Point,
    max_radius_meters: Optional[float] = None,
    count: Optional[int] = None
) -> List[WasteItem]:
    """
    Convenience function to generate nearby waste items.

    Args:
        center: User position
        max_radius_meters: Maximum distance from center
        count: Number of items

    Returns:
        List of WasteItems
    """
    return ProximitySimulator().generate_nearby(center, max_radius_meters, count)
