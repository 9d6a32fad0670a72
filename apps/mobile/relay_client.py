# apps/mobile/relay_client.py
import asyncio
import inspect
import logging

import websockets
from websockets.exceptions import WebSocketException

from apps.services.relay_protocol import MalformedFrame, decode_frame, encode_frame

logger = logging.getLogger(__name__)


class RelayConnection:
    """
    Persistent connection to the relay hub.

    ``open()`` starts a background task that connects, dispatches incoming
    events to registered handlers and reconnects with capped exponential
    backoff when the link drops. Events emitted while disconnected are not
    queued.
    """

    def __init__(self, url, connect=websockets.connect, initial_delay=1.0, max_delay=5.0):
        self.url = url
        self._connect = connect
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self._handlers = {}
        self._ws = None
        self._task = None
        self._closing = False
        self._connected = asyncio.Event()

    @property
    def connected(self):
        return self._ws is not None

    def on(self, event, handler):
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event, handler=None):
        if handler is None:
            self._handlers.pop(event, None)
            return
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    async def open(self):
        if self._task is not None and not self._task.done():
            return
        self._closing = False
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def wait_connected(self, timeout=None):
        await asyncio.wait_for(self._connected.wait(), timeout)

    async def close(self):
        self._closing = True
        ws = self._ws
        if ws is not None:
            try:
                await ws.close()
            except (OSError, WebSocketException) as e:
                logger.debug(f"Error while closing relay socket: {e}")
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._ws = None
        self._connected.clear()

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def emit(self, event, data):
        """Send an event; returns False when it could not be handed to the socket."""
        ws = self._ws
        if ws is None:
            logger.warning(f"Relay not connected; dropping '{event}'")
            return False
        try:
            await ws.send(encode_frame(event, data))
        except (OSError, WebSocketException) as e:
            logger.warning(f"Failed to send '{event}' to relay: {e}")
            return False
        return True

    async def _run(self):
        delay = self.initial_delay
        while not self._closing:
            try:
                ws = await self._connect(self.url)
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                logger.warning(f"Relay connection to {self.url} failed: {e}; retrying in {delay}s")
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.max_delay)
                continue

            logger.info(f"Connected to relay at {self.url}")
            self._ws = ws
            self._connected.set()
            delay = self.initial_delay
            try:
                async for message in ws:
                    await self._dispatch(message)
            except (OSError, WebSocketException) as e:
                logger.warning(f"Relay connection lost: {e}")
            finally:
                self._ws = None
                self._connected.clear()

            if not self._closing:
                logger.info(f"Reconnecting to relay in {delay}s")
                await asyncio.sleep(delay)

    async def _dispatch(self, message):
        if isinstance(message, bytes):
            logger.debug("Ignoring binary frame from relay")
            return
        try:
            event, data = decode_frame(message)
        except MalformedFrame as e:
            logger.warning(f"Ignoring malformed relay frame: {e}")
            return

        for handler in list(self._handlers.get(event, ())):
            try:
                result = handler(data)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Handler for '{event}' failed")
