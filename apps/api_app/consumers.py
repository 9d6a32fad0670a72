import asyncio
import logging

from asgiref.sync import sync_to_async
from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.conf import settings

from apps.services.relay_protocol import (
    LOCATION_UPDATE_EVENT,
    RELAYED_EVENTS,
    MalformedFrame,
    decode_frame,
    encode_frame,
    is_valid_location_update,
    is_valid_payload,
    matches_family_codes,
)
from .models import Child
from .tasks import record_child_location

logger = logging.getLogger(__name__)


class RelayConsumer(AsyncWebsocketConsumer):
    """
    Real-time relay hub.

    Every peer joins one broadcast group. A relayed event is re-emitted to the
    whole group, the sender included; routing by family code is left to the
    subscribers. The hub keeps no entity state and buffers nothing, so peers
    that are offline while an event is broadcast never see it.
    """

    async def connect(self):
        self.group_name = settings.RELAY_GROUP_NAME
        self.presence_tasks = set()
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        logger.info(f"Relay peer connected: {self.channel_name}")

    async def disconnect(self, close_code):
        if hasattr(self, 'group_name'):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
        logger.info(f"Relay peer disconnected: {self.channel_name} (code {close_code})")

    async def receive(self, text_data=None, bytes_data=None):
        if text_data is None:
            logger.warning(f"Dropping binary frame from {self.channel_name}")
            return

        try:
            event_name, data = decode_frame(text_data)
        except MalformedFrame as e:
            logger.warning(f"Dropping malformed frame from {self.channel_name}: {e}")
            return

        if event_name not in RELAYED_EVENTS:
            logger.info(f"Dropping unsupported event '{event_name}' from {self.channel_name}")
            return

        if settings.RELAY_ENFORCE_MEMBERSHIP and not await self.is_registered_payload(event_name, data):
            logger.warning(f"Rejected '{event_name}' for an unregistered or malformed payload from {self.channel_name}")
            return

        logger.debug(f"Relaying '{event_name}': {data}")
        await self.channel_layer.group_send(
            self.group_name,
            {"type": "relay.event", "event": event_name, "data": data}
        )

        if event_name == LOCATION_UPDATE_EVENT and is_valid_location_update(data):
            # Queued beside the relay loop; the next frame must not wait on the broker.
            task = asyncio.ensure_future(self.record_presence(data))
            self.presence_tasks.add(task)
            task.add_done_callback(self.presence_tasks.discard)

    async def relay_event(self, event):
        await self.send(text_data=encode_frame(event['event'], event['data']))

    async def is_registered_payload(self, event_name, data):
        if not is_valid_payload(event_name, data):
            return False
        registered_codes = await self.registered_family_codes(data['familyCode'])
        return matches_family_codes(data, registered_codes)

    @database_sync_to_async
    def registered_family_codes(self, family_code):
        return set(Child.objects.filter(family_code=family_code).values_list('family_code', flat=True))

    async def record_presence(self, data):
        try:
            await sync_to_async(record_child_location.apply_async, thread_sensitive=False)(
                args=(data['familyCode'], data['latitude'], data['longitude'], data['timestamp']),
                retry=False,
            )
        except Exception as e:
            # Presence is bookkeeping; the broadcast has already gone out.
            logger.error(f"Could not queue presence update for {data['familyCode']}: {e}", exc_info=True)
