# apps/mobile/sessions.py
"""
Lifecycle owners for the two device roles.

A session receives its relay connection, store, API client and presenter from
the caller, opens what it needs in ``start()`` and releases everything in
``stop()``.
"""
import logging

from .config import MobileConfig
from .exceptions import ApiError, PermissionDenied
from .geofence import ZoneMonitor
from .producer import DEFAULT_SOS_MESSAGE, PERMISSION_MESSAGES, LocationProducer, PositionWatcher
from .storage import (
    CHILD_DATA_KEY,
    HAS_CHILD_KEY,
    IS_CHILD_KEY,
    IS_PARENT_KEY,
    PARENT_DETAILS_KEY,
    SAVED_FAMILY_CODE_KEY,
)
from .subscriber import LocationSubscriber

logger = logging.getLogger(__name__)

BACKGROUND_SOURCE = 'background'


class ChildSession:
    """
    Child device: streams location on two cadences, evaluates geofences on the
    foreground samples and sends SOS alerts.
    """

    def __init__(self, relay, store, api, source, presenter, config=None):
        self.config = config or MobileConfig()
        self.relay = relay
        self.store = store
        self.api = api
        self.source = source
        self.presenter = presenter
        self.zone = ZoneMonitor(presenter, reset_delay=self.config.zone_reset_delay)
        self.producer = LocationProducer(relay, store, on_sample=self._on_sample)
        self.foreground = PositionWatcher(
            'foreground', source, self.producer,
            self.config.foreground_distance_interval, self.config.foreground_time_interval,
            presenter,
        )
        self.background = PositionWatcher(
            BACKGROUND_SOURCE, source, self.producer,
            self.config.background_distance_interval, self.config.background_time_interval,
            presenter, background=True,
        )

    async def authenticate(self, family_code):
        try:
            child = await self.api.authenticate_child(family_code)
        except ApiError as e:
            logger.warning(f"Child authentication failed: {e}")
            self.presenter.show_alert("Error", str(e))
            return None
        await self.store.set_item(SAVED_FAMILY_CODE_KEY, family_code)
        await self.store.set_json(CHILD_DATA_KEY, child)
        await self.store.set_item(IS_CHILD_KEY, 'true')
        return child

    async def start(self):
        await self.relay.open()
        await self.foreground.start()
        await self.background.start()
        await self.refresh_geofences()

    async def stop(self):
        try:
            await self.foreground.stop()
            await self.background.stop()
        finally:
            self.zone.close()
            await self.relay.close()

    async def refresh_geofences(self):
        child = await self.store.get_json(CHILD_DATA_KEY, default={}) or {}
        parent_id = child.get('parentId')
        if parent_id is None:
            logger.warning("No parent id stored for this child; skipping geofence fetch")
            return self.zone.fences
        try:
            fences = await self.api.get_geofences(parent_id)
        except ApiError as e:
            if e.status_code != 404:
                logger.warning(f"Failed to fetch geofences for parent {parent_id}: {e}")
                self.presenter.show_alert("Geofence Error", str(e))
                return self.zone.fences
            # The parent has removed every fence.
            fences = []
        self.zone.set_fences(fences)
        return fences

    async def recenter(self):
        try:
            return await self.producer.recenter(self.source)
        except PermissionDenied:
            self.presenter.show_alert(*PERMISSION_MESSAGES[False])
            return None

    async def send_sos(self, message=DEFAULT_SOS_MESSAGE):
        try:
            sent = await self.producer.send_sos(message, position_source=self.source)
        except PermissionDenied:
            self.presenter.show_alert(*PERMISSION_MESSAGES[False])
            return False
        self.presenter.show_alert("Emergency SOS", "SOS Alert sent to your parent!")
        return sent

    def acknowledge_zone_alarm(self):
        self.zone.acknowledge()

    def _on_sample(self, latitude, longitude, source):
        # Zone alarms need the foreground; background samples are only relayed.
        if source == BACKGROUND_SOURCE:
            return
        self.zone.evaluate(latitude, longitude)


class ParentSession:
    """
    Parent device: follows the children's live locations and SOS alerts and
    manages the parent's geofences.
    """

    def __init__(self, clerk_id, relay, store, api, presenter):
        self.clerk_id = clerk_id
        self.relay = relay
        self.store = store
        self.api = api
        self.presenter = presenter
        self.subscriber = LocationSubscriber(relay, store, presenter)
        self.parent = None
        self.geofences = []

    @property
    def parent_id(self):
        return self.parent.get('id') if self.parent else None

    @property
    def child_locations(self):
        return self.subscriber.locations

    async def load_parent(self):
        try:
            parent = await self.api.get_parent_by_clerk_id(self.clerk_id)
            await self.store.set_json(PARENT_DETAILS_KEY, parent)
        except ApiError as e:
            logger.warning(f"Could not refresh parent {self.clerk_id}: {e}")
            parent = await self.store.get_json(PARENT_DETAILS_KEY)
            if parent is None:
                self.presenter.show_alert("Error", str(e))
                return None

        self.parent = parent
        family_codes = parent.get('familyCodes') or []
        self.subscriber.set_family_codes(family_codes)
        await self.store.set_item(IS_PARENT_KEY, 'true')
        if family_codes:
            await self.store.set_item(HAS_CHILD_KEY, 'true')
        return parent

    async def start(self):
        await self.load_parent()
        # Cached markers first, live updates after.
        await self.subscriber.start()
        await self.relay.open()
        await self.refresh_geofences()

    async def stop(self):
        await self.subscriber.stop()
        await self.relay.close()

    async def refresh_geofences(self):
        if self.parent_id is None:
            return self.geofences
        try:
            self.geofences = await self.api.get_geofences(self.parent_id)
        except ApiError as e:
            if e.status_code == 404:
                self.geofences = []
            else:
                logger.warning(f"Failed to fetch geofences: {e}")
                self.presenter.show_alert("Geofence Error", str(e))
        return self.geofences

    async def add_geofence(self, name, latitude, longitude, radius):
        try:
            fence = await self.api.create_geofence(self.parent_id, name, latitude, longitude, radius)
        except ApiError as e:
            self.presenter.show_alert("Error", str(e))
            return None
        self.geofences.append(fence)
        return fence

    async def remove_geofence(self, geofence_id):
        try:
            await self.api.delete_geofence(geofence_id)
        except ApiError as e:
            self.presenter.show_alert("Error", str(e))
            return False
        self.geofences = [fence for fence in self.geofences if fence.id != geofence_id]
        return True
