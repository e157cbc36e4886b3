"""
Geolocation sources for WasteWatch

Contract for one-shot and continuous position fixes, plus a simulated source
that demo sessions and tests drive by pushing positions and errors.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from wastewatch.core.exceptions import GeolocationUnavailable
from wastewatch.core.geo_utils import Point

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Position:
    """A position fix."""
    latitude: float
    longitude: float
    accuracy_meters: Optional[float] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_point(self) -> Point:
        return Point(latitude=self.latitude, longitude=self.longitude)


PositionCallback = Callable[[Position], None]
ErrorCallback = Callable[[GeolocationUnavailable], None]


class WatchHandle:
    """Cancellation handle for a position watch."""

    def __init__(self, on_cancel: Optional[Callable[["WatchHandle"], None]] = None):
        self._on_cancel = on_cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Stop the watch. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        if self._on_cancel is not None:
            self._on_cancel(self)


class GeolocationSource(ABC):
    """Provider of the device position."""

    @abstractmethod
    async def get_current_position(self) -> Position:
        """
        Get a single position fix.

        Raises:
            GeolocationUnavailable: If no fix can be obtained
        """

    @abstractmethod
    def watch_position(
        self,
        on_update: PositionCallback,
        on_error: Optional[ErrorCallback] = None
    ) -> WatchHandle:
        """Subscribe to position updates until the handle is cancelled."""


@dataclass
class _Watch:
    handle: WatchHandle
    on_update: PositionCallback
    on_error: Optional[ErrorCallback]


class SimulatedGeolocationSource(GeolocationSource):
    """
    In-process position source.

    push() delivers a fix to every active watch; fail() delivers an error.
    """

    def __init__(self, initial: Optional[Position] = None):
        self._current = initial
        self._watches: List[_Watch] = []

    @property
    def active_watch_count(self) -> int:
        return len(self._watches)

    async def get_current_position(self) -> Position:
        if self._current is None:
            raise GeolocationUnavailable("No position fix available")
        return self._current

    def watch_position(
        self,
        on_update: PositionCallback,
        on_error: Optional[ErrorCallback] = None
    ) -> WatchHandle:
        handle = WatchHandle(on_cancel=self._remove_watch)
        self._watches.append(_Watch(handle, on_update, on_error))
        logger.debug(f"Position watch started ({len(self._watches)} active)")

        if self._current is not None:
            on_update(self._current)

        return handle

    def push(self, position: Position) -> None:
        """Deliver a new fix to all active watches."""
        self._current = position
        for watch in list(self._watches):
            if watch.handle.active:
                watch.on_update(position)

    def fail(self, message: str) -> None:
        """Deliver an error to all active watches."""
        error = GeolocationUnavailable(message)
        for watch in list(self._watches):
            if watch.handle.active and watch.on_error is not None:
                watch.on_error(error)

    def _remove_watch(self, handle: WatchHandle) -> None:
        self._watches = [w for w in self._watches if w.handle is not handle]
        logger.debug(f"Position watch stopped ({len(self._watches)} active)")
