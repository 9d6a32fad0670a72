# apps/mobile/tests/fakes.py
"""In-process stand-ins for the platform and the relay used by the device tests."""
import asyncio
import inspect
import json

from apps.mobile.alerts import AlertPresenter
from apps.mobile.exceptions import PermissionDenied
from apps.mobile.producer import Position, PositionSource
from apps.services.relay_protocol import encode_frame


class RecordingPresenter(AlertPresenter):
    def __init__(self):
        self.calls = []
        self.vibrating = False

    def names(self):
        return [name for name, _ in self.calls]

    def vibrate(self, pattern, repeat=False):
        self.vibrating = repeat
        self.calls.append(('vibrate', (tuple(pattern), repeat)))

    def cancel_vibration(self):
        self.vibrating = False
        self.calls.append(('cancel_vibration', ()))

    def notify(self, title, body, data=None):
        self.calls.append(('notify', (title, body)))

    def show_modal(self, title, message, on_dismiss=None):
        self.calls.append(('show_modal', (title, message)))
        self.last_dismiss = on_dismiss

    def show_toast(self, message):
        self.calls.append(('show_toast', (message,)))

    def show_alert(self, title, message):
        self.calls.append(('show_alert', (title, message)))


class FakePositionSource(PositionSource):
    def __init__(self, positions=((0.0, 0.0),), granted=True, background_granted=True):
        self.positions = [Position(lat, lon) for lat, lon in positions]
        self.granted = granted
        self.background_granted = background_granted
        self.revoked = False
        self.failure = None

    async def request_permission(self, background=False):
        return self.background_granted if background else self.granted

    async def current_position(self):
        if self.revoked:
            raise PermissionDenied("location access revoked")
        if self.failure is not None:
            raise self.failure
        if len(self.positions) > 1:
            return self.positions.pop(0)
        return self.positions[0]


class FakeHub:
    """Broadcasts to every open FakeRelay, the sender included."""

    def __init__(self):
        self.peers = []

    async def broadcast(self, event, data):
        for peer in list(self.peers):
            await peer.deliver(event, json.loads(json.dumps(data)))


class FakeRelay:
    def __init__(self, hub=None):
        self.hub = hub or FakeHub()
        self.handlers = {}
        self.emitted = []
        self.calls = []
        self.connected = False

    def on(self, event, handler):
        self.calls.append(('on', event))
        self.handlers.setdefault(event, []).append(handler)

    def off(self, event, handler=None):
        if handler is None:
            self.handlers.pop(event, None)
        elif handler in self.handlers.get(event, []):
            self.handlers[event].remove(handler)

    async def open(self):
        self.calls.append(('open', None))
        self.connected = True
        if self not in self.hub.peers:
            self.hub.peers.append(self)

    async def close(self):
        self.calls.append(('close', None))
        self.connected = False
        if self in self.hub.peers:
            self.hub.peers.remove(self)

    async def emit(self, event, data):
        if not self.connected:
            return False
        self.emitted.append((event, data))
        await self.hub.broadcast(event, data)
        return True

    async def deliver(self, event, data):
        for handler in list(self.handlers.get(event, ())):
            result = handler(data)
            if inspect.isawaitable(result):
                await result


class FakeSocket:
    """Minimal websocket client protocol: ``send``, ``close`` and async iteration."""

    def __init__(self):
        self.sent = []
        self.closed = False
        self.incoming = asyncio.Queue()

    async def send(self, text):
        if self.closed:
            raise OSError("socket closed")
        self.sent.append(text)

    async def close(self):
        self.closed = True
        self.incoming.put_nowait(None)

    def push(self, event, data):
        self.incoming.put_nowait(encode_frame(event, data))

    def push_raw(self, text):
        self.incoming.put_nowait(text)

    def drop(self):
        self.incoming.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        message = await self.incoming.get()
        if message is None:
            raise StopAsyncIteration
        return message


async def wait_for_condition(predicate, timeout=1.0, interval=0.01):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(interval)
