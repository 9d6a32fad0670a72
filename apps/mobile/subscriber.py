# apps/mobile/subscriber.py
import logging

from apps.services.relay_protocol import (
    LOCATION_UPDATE_EVENT,
    SOS_ALERT_EVENT,
    cache_entry_from_update,
    is_valid_location_update,
    is_valid_sos_alert,
    matches_family_codes,
    merge_cache_entry,
)
from .alerts import ALARM_VIBRATION_PATTERN
from .storage import CHILD_LOCATIONS_KEY, sos_key

logger = logging.getLogger(__name__)

SOS_TITLE = "SOS Alert"


class LocationSubscriber:
    """
    Parent-side consumer of the relay broadcast.

    Every event is checked against the parent's family codes before it is
    used; anything malformed or for another family is discarded without
    error. Accepted location updates are merged into a cache keyed by family
    code and the whole cache is persisted after each update.
    """

    def __init__(self, relay, store, presenter, family_codes=(), merge=merge_cache_entry):
        self.relay = relay
        self.store = store
        self.presenter = presenter
        self.family_codes = set(family_codes)
        self.merge = merge
        self.locations = {}

    def set_family_codes(self, family_codes):
        self.family_codes = set(family_codes)

    async def load_snapshot(self):
        snapshot = await self.store.get_json(CHILD_LOCATIONS_KEY, default={})
        if isinstance(snapshot, dict):
            self.locations = snapshot
        logger.debug(f"Loaded {len(self.locations)} cached child locations")
        return self.locations

    async def start(self):
        await self.load_snapshot()
        self.relay.on(LOCATION_UPDATE_EVENT, self.handle_location_update)
        self.relay.on(SOS_ALERT_EVENT, self.handle_sos_alert)

    async def stop(self):
        self.relay.off(LOCATION_UPDATE_EVENT, self.handle_location_update)
        self.relay.off(SOS_ALERT_EVENT, self.handle_sos_alert)

    async def handle_location_update(self, payload):
        if not is_valid_location_update(payload) or not matches_family_codes(payload, self.family_codes):
            logger.debug("Discarding location update outside this family")
            return False

        family_code = payload['familyCode']
        incoming = cache_entry_from_update(payload)
        self.locations[family_code] = self.merge(self.locations.get(family_code), incoming)
        await self.store.set_json(CHILD_LOCATIONS_KEY, self.locations)
        return True

    async def handle_sos_alert(self, payload):
        if not is_valid_sos_alert(payload) or not matches_family_codes(payload, self.family_codes):
            logger.debug("Discarding SOS alert outside this family")
            return False

        family_code = payload['familyCode']
        message = payload['message']
        logger.warning(f"SOS alert received for {family_code}")
        # Audit record only; nothing reads it back.
        await self.store.set_json(sos_key(family_code), {
            'message': message,
            'location': payload['location'],
        })
        self.presenter.notify(
            SOS_TITLE,
            f"{message} for FamilyCode: {family_code}",
            data={'familyCode': family_code, 'location': payload['location']},
        )
        self.presenter.vibrate(ALARM_VIBRATION_PATTERN, repeat=True)
        self.presenter.show_modal(
            SOS_TITLE,
            f"{message} for FamilyCode: {family_code}",
            on_dismiss=self.presenter.cancel_vibration,
        )
        return True
