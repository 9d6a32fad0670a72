# apps/mobile/producer.py
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from apps.services.geolocation_utils import distance_in_meters
from apps.services.relay_protocol import LOCATION_UPDATE_EVENT, SOS_ALERT_EVENT
from .exceptions import PermissionDenied
from .storage import SAVED_FAMILY_CODE_KEY

logger = logging.getLogger(__name__)

DEFAULT_SOS_MESSAGE = "Child triggered SOS"

PERMISSION_MESSAGES = {
    False: ("Permission Denied", "Location permission is required!"),
    True: ("Background Permission Denied", "Background location permission is required for continuous tracking!"),
}


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float

    def as_dict(self):
        return {'latitude': self.latitude, 'longitude': self.longitude}


class PositionSource:
    """Platform location provider."""

    async def request_permission(self, background=False):
        """Return True when the (background) location permission is granted."""
        raise NotImplementedError

    async def current_position(self):
        """Return a Position; raise PermissionDenied if access was revoked."""
        raise NotImplementedError


def iso_timestamp():
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class LocationProducer:
    """
    Single emit path for every location sample, whatever cadence produced it.

    The family code is read from the store on each emission so a code change
    takes effect on the very next sample.
    """

    def __init__(self, relay, store, on_sample=None):
        self.relay = relay
        self.store = store
        self.on_sample = on_sample
        self.last_location = None

    async def emit_location(self, latitude, longitude, source):
        family_code = await self.store.get_item(SAVED_FAMILY_CODE_KEY)
        if family_code is None:
            logger.warning(f"Emitting {source} sample without a saved family code")
        self.last_location = Position(latitude, longitude)
        sent = await self.relay.emit(LOCATION_UPDATE_EVENT, {
            'latitude': latitude,
            'longitude': longitude,
            'familyCode': family_code,
            'timestamp': iso_timestamp(),
        })
        if self.on_sample is not None:
            self.on_sample(latitude, longitude, source)
        return sent

    async def recenter(self, position_source):
        position = await position_source.current_position()
        await self.emit_location(position.latitude, position.longitude, 'recenter')
        return position

    async def send_sos(self, message=DEFAULT_SOS_MESSAGE, position_source=None):
        """
        Broadcast an SOS carrying the last emitted location. Before the first
        sample a fresh fix is taken from ``position_source``; parents drop SOS
        alerts without coordinates.
        """
        family_code = await self.store.get_item(SAVED_FAMILY_CODE_KEY)
        if self.last_location is None and position_source is not None:
            self.last_location = await position_source.current_position()
        location = self.last_location.as_dict() if self.last_location else None
        if location is None:
            logger.warning("Sending SOS without a location fix")
        logger.info(f"Sending SOS for family code {family_code}")
        return await self.relay.emit(SOS_ALERT_EVENT, {
            'message': message,
            'location': location,
            'familyCode': family_code,
        })


class PositionWatcher:
    """
    One sampling cadence. Polls the position source every ``time_interval``
    seconds and hands a sample to the producer when the device moved at least
    ``distance_interval`` meters (the first fix is always emitted).
    """

    def __init__(self, name, source, producer, distance_interval, time_interval, presenter, background=False):
        self.name = name
        self.source = source
        self.producer = producer
        self.distance_interval = distance_interval
        self.time_interval = time_interval
        self.presenter = presenter
        self.background = background
        self._task = None

    @property
    def running(self):
        return self._task is not None and not self._task.done()

    async def start(self):
        if self.running:
            return True
        granted = await self.source.request_permission(background=self.background)
        if not granted:
            self._permission_denied()
            return False
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Started {self.name} location updates")
        return True

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"{self.name} location updates had failed: {e}")
        self._task = None
        logger.info(f"Stopped {self.name} location updates")

    def _permission_denied(self):
        title, message = PERMISSION_MESSAGES[self.background]
        logger.warning(f"{self.name} location permission denied; cadence disabled")
        self.presenter.show_alert(title, message)

    async def _run(self):
        last = None
        while True:
            try:
                position = await self.source.current_position()
            except PermissionDenied:
                self._permission_denied()
                return
            except Exception as e:
                logger.warning(f"{self.name} location fix failed: {e}", exc_info=True)
                await asyncio.sleep(self.time_interval)
                continue

            if last is None or distance_in_meters(
                last.latitude, last.longitude, position.latitude, position.longitude
            ) >= self.distance_interval:
                await self.producer.emit_location(position.latitude, position.longitude, self.name)
                last = position
            await asyncio.sleep(self.time_interval)
