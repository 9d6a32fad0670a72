# apps/mobile/runner.py
"""
Headless device runs. Builds a child or parent session from a MobileConfig with
a logging presenter, so either role can be driven from a terminal against a
running server.
"""
import asyncio
import logging

import websockets

from .alerts import LoggingAlertPresenter
from .api_client import ApiClient
from .producer import Position, PositionSource
from .relay_client import RelayConnection
from .sessions import ChildSession, ParentSession
from .storage import LocalStore

logger = logging.getLogger(__name__)


class FixedPositionSource(PositionSource):
    """Always reports the same position; permission is always granted."""

    def __init__(self, latitude, longitude):
        self.position = Position(latitude, longitude)

    async def request_permission(self, background=False):
        return True

    async def current_position(self):
        return self.position


def build_device(config, connect=websockets.connect, transport=None):
    """Return ``(relay, store, api, presenter)`` configured from ``config``."""
    relay = RelayConnection(
        config.relay_url,
        connect=connect,
        initial_delay=config.reconnect_initial_delay,
        max_delay=config.reconnect_max_delay,
    )
    store = LocalStore(config.storage_path)
    api = ApiClient(config.api_base_url, timeout=config.request_timeout, transport=transport)
    return relay, store, api, LoggingAlertPresenter()


async def _hold(duration):
    if duration is None:
        await asyncio.Event().wait()
    else:
        await asyncio.sleep(duration)


async def run_child(config, source, family_code=None, duration=None, sos_message=None, **device):
    relay, store, api, presenter = build_device(config, **device)
    session = ChildSession(relay, store, api, source, presenter, config)
    try:
        if family_code is not None and await session.authenticate(family_code) is None:
            return False
        await session.start()
        if sos_message is not None:
            await relay.wait_connected(timeout=config.request_timeout)
            await session.send_sos(sos_message)
        await _hold(duration)
    finally:
        await session.stop()
        await api.aclose()
    return True


async def run_parent(config, clerk_id, duration=None, **device):
    relay, store, api, presenter = build_device(config, **device)
    session = ParentSession(clerk_id, relay, store, api, presenter)
    try:
        await session.start()
        if session.parent is None:
            return False
        logger.info(f"Following family codes {sorted(session.subscriber.family_codes)}")
        await _hold(duration)
    finally:
        await session.stop()
        await api.aclose()
    return True
