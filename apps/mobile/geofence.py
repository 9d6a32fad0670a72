# apps/mobile/geofence.py
"""
Geofence membership evaluation for the child device.

Membership is the union over all fences: a point is "inside" when it lies
within any fence (distance <= radius, boundary inclusive). ``ZoneMonitor``
tracks the aggregate status and fires the entry/exit actions once per
transition; re-evaluating an unchanged state does nothing.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from apps.services.geolocation_utils import distance_in_meters
from .alerts import ALARM_VIBRATION_PATTERN

logger = logging.getLogger(__name__)

ENTRY_TITLE = "Geofence Alert"
ENTRY_MESSAGE = "You have entered a geofenced area!"
EXIT_MESSAGE = "You have exited the geofenced area."

ENTER = 'enter'
EXIT = 'exit'


class ZoneStatus(str, Enum):
    NONE = 'none'
    INSIDE = 'inside'
    OUTSIDE = 'outside'


@dataclass(frozen=True)
class GeoFence:
    id: object
    name: str
    latitude: float
    longitude: float
    radius: float

    @classmethod
    def from_api(cls, data):
        return cls(
            id=data.get('id'),
            name=data.get('name', ''),
            latitude=float(data['latitude']),
            longitude=float(data['longitude']),
            radius=float(data['radius']),
        )

    def contains(self, latitude, longitude):
        return is_inside(self, latitude, longitude)


def distance_meters(latitude, longitude, fence):
    return distance_in_meters(latitude, longitude, fence.latitude, fence.longitude)


def is_inside(fence, latitude, longitude):
    return distance_meters(latitude, longitude, fence) <= fence.radius


def inside_any(fences, latitude, longitude):
    # Vacuously false for an empty fence set
    return any(is_inside(fence, latitude, longitude) for fence in fences)


def next_zone_status(current, inside):
    """
    Pure transition function. Returns ``(new_status, action)`` where action is
    ``'enter'``, ``'exit'`` or None.
    """
    if inside and current != ZoneStatus.INSIDE:
        return ZoneStatus.INSIDE, ENTER
    if not inside and current == ZoneStatus.INSIDE:
        return ZoneStatus.OUTSIDE, EXIT
    return current, None


class ZoneMonitor:
    """
    Holds the zone status for one device and drives the presenter.

    Entry starts a repeating vibration and a modal that stays until
    ``acknowledge()``. Exit cancels the alarm, shows a toast and schedules
    the return to ``none`` after ``reset_delay`` seconds. Must be used from
    within a running event loop.
    """

    def __init__(self, presenter, reset_delay=2.0, fences=()):
        self.presenter = presenter
        self.reset_delay = reset_delay
        self.fences = list(fences)
        self.status = ZoneStatus.NONE
        self.last_point = None
        self._reset_handle = None

    def evaluate(self, latitude, longitude):
        self.last_point = (latitude, longitude)
        inside = inside_any(self.fences, latitude, longitude)
        self.status, action = next_zone_status(self.status, inside)
        if action == ENTER:
            self._on_enter()
        elif action == EXIT:
            self._on_exit()
        return self.status

    def set_fences(self, fences):
        self.fences = list(fences)
        logger.debug(f"Zone monitor now tracking {len(self.fences)} geofences")
        if self.last_point is not None:
            self.evaluate(*self.last_point)

    def acknowledge(self):
        self.presenter.cancel_vibration()

    def close(self):
        self._cancel_reset()

    def _on_enter(self):
        logger.info("Entered a geofenced area")
        self._cancel_reset()
        self.presenter.vibrate(ALARM_VIBRATION_PATTERN, repeat=True)
        self.presenter.show_modal(ENTRY_TITLE, ENTRY_MESSAGE, on_dismiss=self.acknowledge)

    def _on_exit(self):
        logger.info("Exited the geofenced area")
        self.presenter.cancel_vibration()
        self.presenter.show_toast(EXIT_MESSAGE)
        self._cancel_reset()
        self._reset_handle = asyncio.get_running_loop().call_later(self.reset_delay, self._reset)

    def _reset(self):
        self._reset_handle = None
        if self.status == ZoneStatus.OUTSIDE:
            self.status = ZoneStatus.NONE

    def _cancel_reset(self):
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None
