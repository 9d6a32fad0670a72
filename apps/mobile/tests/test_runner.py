# apps/mobile/tests/test_runner.py
import json
import tempfile
import unittest
from pathlib import Path

import httpx

from apps.mobile.alerts import LoggingAlertPresenter
from apps.mobile.config import MobileConfig
from apps.mobile.runner import FixedPositionSource, build_device, run_child, run_parent
from apps.mobile.storage import SAVED_FAMILY_CODE_KEY, LocalStore
from .fakes import FakeSocket


class RunnerTestCase(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.config = MobileConfig.from_env({
            'SECURENEST_API_URL': 'http://api.test/api',
            'SECURENEST_RELAY_URL': 'ws://relay.test/ws/relay/',
            'SECURENEST_STORAGE_PATH': str(Path(self.tmpdir.name) / 'device.json'),
        })
        self.config.reconnect_initial_delay = 0.01
        self.config.reconnect_max_delay = 0.05
        self.config.request_timeout = 2.0
        self.sockets = []
        self.requests = []

    async def asyncTearDown(self):
        self.tmpdir.cleanup()

    async def connect(self, url):
        socket = FakeSocket()
        self.sockets.append((url, socket))
        return socket

    def transport(self, routes):
        def handler(request):
            self.requests.append((request.method, request.url.path))
            status, body = routes.get((request.method, request.url.path), (404, {'success': False, 'message': 'Not found'}))
            return httpx.Response(status, json=body)
        return httpx.MockTransport(handler)

    def sent_frames(self, event):
        frames = [json.loads(text) for _, socket in self.sockets for text in socket.sent]
        return [frame['data'] for frame in frames if frame['event'] == event]


class BuildDeviceTests(RunnerTestCase):

    async def test_components_follow_config(self):
        relay, store, api, presenter = build_device(self.config, connect=self.connect)
        self.addAsyncCleanup(api.aclose)

        self.assertEqual(relay.url, 'ws://relay.test/ws/relay/')
        self.assertEqual((relay.initial_delay, relay.max_delay), (0.01, 0.05))
        self.assertEqual(store.path, Path(self.tmpdir.name) / 'device.json')
        self.assertEqual(api.base_url, 'http://api.test/api')
        self.assertEqual(api._client.timeout, httpx.Timeout(2.0))
        self.assertIsInstance(presenter, LoggingAlertPresenter)


class RunChildTests(RunnerTestCase):

    async def test_authenticates_streams_and_sends_sos(self):
        transport = self.transport({
            ('POST', '/api/children/authenticate/'): (200, {'success': True, 'child': {'id': 3, 'parentId': 9, 'familyCode': 'KID001'}}),
        })

        completed = await run_child(
            self.config, FixedPositionSource(1.5, 2.5), family_code='KID001', duration=0,
            sos_message='Help', connect=self.connect, transport=transport,
        )

        self.assertTrue(completed)
        self.assertEqual(self.sockets[0][0], 'ws://relay.test/ws/relay/')
        self.assertIn(('GET', '/api/geofencing/parent/9/'), self.requests)
        self.assertEqual(
            self.sent_frames('sosAlert'),
            [{'message': 'Help', 'location': {'latitude': 1.5, 'longitude': 2.5}, 'familyCode': 'KID001'}],
        )
        self.assertTrue(self.sockets[0][1].closed)
        store = LocalStore(self.config.storage_path)
        self.assertEqual(await store.get_item(SAVED_FAMILY_CODE_KEY), 'KID001')

    async def test_rejected_family_code_stops_early(self):
        transport = self.transport({
            ('POST', '/api/children/authenticate/'): (400, {'success': False, 'message': 'Invalid family code'}),
        })

        completed = await run_child(
            self.config, FixedPositionSource(0.0, 0.0), family_code='NOPE00', duration=0,
            connect=self.connect, transport=transport,
        )
        self.assertFalse(completed)
        self.assertEqual(self.sockets, [])


class RunParentTests(RunnerTestCase):

    async def test_follows_family_codes(self):
        transport = self.transport({
            ('GET', '/api/parents/clerk/user_1/'): (200, {'success': True, 'parent': {'id': 9, 'familyCodes': ['KID001']}}),
            ('GET', '/api/geofencing/parent/9/'): (200, {'success': True, 'geoFences': []}),
        })

        with self.assertLogs('apps.mobile.runner', level='INFO') as logs:
            completed = await run_parent(self.config, 'user_1', duration=0, connect=self.connect, transport=transport)

        self.assertTrue(completed)
        self.assertIn("Following family codes ['KID001']", logs.output[0])

    async def test_unknown_parent(self):
        completed = await run_parent(self.config, 'user_404', duration=0, connect=self.connect, transport=self.transport({}))
        self.assertFalse(completed)
