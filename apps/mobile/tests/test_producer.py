# apps/mobile/tests/test_producer.py
import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock

from apps.mobile.producer import LocationProducer, PositionWatcher, iso_timestamp
from apps.mobile.storage import LocalStore, SAVED_FAMILY_CODE_KEY
from apps.mobile.subscriber import LocationSubscriber
from .fakes import FakePositionSource, FakeRelay, RecordingPresenter, wait_for_condition


class ProducerTestCase(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.store = LocalStore(Path(self.tmpdir.name) / 'storage.json')
        self.relay = FakeRelay()
        await self.relay.open()
        self.samples = []
        self.producer = LocationProducer(self.relay, self.store, on_sample=lambda *args: self.samples.append(args))
        self.presenter = RecordingPresenter()

    async def asyncTearDown(self):
        self.tmpdir.cleanup()


class LocationProducerTests(ProducerTestCase):

    async def test_family_code_is_read_at_each_emission(self):
        await self.store.set_item(SAVED_FAMILY_CODE_KEY, 'OLD001')
        await self.producer.emit_location(1.0, 2.0, 'foreground')
        await self.store.set_item(SAVED_FAMILY_CODE_KEY, 'NEW001')
        await self.producer.emit_location(1.0, 2.0, 'background')

        codes = [data['familyCode'] for _, data in self.relay.emitted]
        self.assertEqual(codes, ['OLD001', 'NEW001'])

    async def test_location_payload(self):
        await self.store.set_item(SAVED_FAMILY_CODE_KEY, 'X1')
        self.assertTrue(await self.producer.emit_location(10, 20, 'foreground'))

        event, data = self.relay.emitted[0]
        self.assertEqual(event, 'childLocationUpdate')
        self.assertEqual((data['latitude'], data['longitude'], data['familyCode']), (10, 20, 'X1'))
        self.assertTrue(data['timestamp'].endswith('Z'))
        self.assertEqual(self.samples, [(10, 20, 'foreground')])

    async def test_missing_family_code_still_emits(self):
        await self.producer.emit_location(1.0, 2.0, 'recenter')
        self.assertIsNone(self.relay.emitted[0][1]['familyCode'])

    async def test_emit_while_relay_closed(self):
        await self.relay.close()
        self.assertFalse(await self.producer.emit_location(1.0, 2.0, 'foreground'))
        self.assertEqual(self.samples, [(1.0, 2.0, 'foreground')])

    async def test_recenter_emits_current_fix(self):
        position = await self.producer.recenter(FakePositionSource([(3.0, 4.0)]))
        self.assertEqual((position.latitude, position.longitude), (3.0, 4.0))
        self.assertEqual(self.samples, [(3.0, 4.0, 'recenter')])

    async def test_sos_before_first_sample_takes_a_fresh_fix(self):
        await self.store.set_item(SAVED_FAMILY_CODE_KEY, 'X1')
        self.assertTrue(await self.producer.send_sos(position_source=FakePositionSource([(7.0, 8.0)])))

        event, data = self.relay.emitted[-1]
        self.assertEqual(event, 'sosAlert')
        self.assertEqual(data['location'], {'latitude': 7.0, 'longitude': 8.0})

        parent = LocationSubscriber(FakeRelay(), self.store, self.presenter, family_codes=['X1'])
        self.assertTrue(await parent.handle_sos_alert(data))
        self.assertEqual(self.presenter.names(), ['notify', 'vibrate', 'show_modal'])

    async def test_sos_carries_last_location(self):
        await self.store.set_item(SAVED_FAMILY_CODE_KEY, 'X1')
        await self.producer.emit_location(5.0, 6.0, 'foreground')
        await self.producer.send_sos('Help')
        event, data = self.relay.emitted[-1]
        self.assertEqual(event, 'sosAlert')
        self.assertEqual(data, {'message': 'Help', 'location': {'latitude': 5.0, 'longitude': 6.0}, 'familyCode': 'X1'})

    def test_iso_timestamp_format(self):
        self.assertRegex(iso_timestamp(), r'^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$')


class PositionWatcherTests(ProducerTestCase):

    def make_watcher(self, source, background=False, distance_interval=5.0):
        watcher = PositionWatcher(
            'background' if background else 'foreground', source, self.producer,
            distance_interval=distance_interval, time_interval=0.01,
            presenter=self.presenter, background=background,
        )
        self.addAsyncCleanup(watcher.stop)
        return watcher

    async def test_emits_first_fix_and_moves_past_threshold(self):
        # ~1 m then ~111 m from the origin
        source = FakePositionSource([(0.0, 0.0), (0.0, 0.00001), (0.0, 0.001)])
        watcher = self.make_watcher(source)

        self.assertTrue(await watcher.start())
        await wait_for_condition(lambda: len(self.relay.emitted) >= 2)
        await watcher.stop()

        coords = [(data['latitude'], data['longitude']) for _, data in self.relay.emitted]
        self.assertEqual(coords, [(0.0, 0.0), (0.0, 0.001)])
        self.assertFalse(watcher.running)

    async def test_every_sample_is_one_event(self):
        source = FakePositionSource([(0.0, 0.0), (0.0, 0.001), (0.0, 0.002)])
        watcher = self.make_watcher(source, distance_interval=0)

        await watcher.start()
        await wait_for_condition(lambda: len(self.samples) >= 3)
        await watcher.stop()
        self.assertEqual(len(self.relay.emitted), len(self.samples))

    async def test_permission_denied_disables_cadence(self):
        watcher = self.make_watcher(FakePositionSource(background_granted=False), background=True)

        self.assertFalse(await watcher.start())
        self.assertFalse(watcher.running)
        self.assertEqual(self.presenter.calls[0][0], 'show_alert')
        self.assertEqual(self.presenter.calls[0][1][0], 'Background Permission Denied')
        self.assertEqual(self.relay.emitted, [])

    async def test_revoked_permission_stops_watcher(self):
        source = FakePositionSource()
        watcher = self.make_watcher(source)
        await watcher.start()
        await wait_for_condition(lambda: self.relay.emitted)

        source.revoked = True
        await wait_for_condition(lambda: not watcher.running)
        self.assertEqual(self.presenter.names(), ['show_alert'])

    async def test_failed_fix_does_not_end_cadence(self):
        source = FakePositionSource([(0.0, 0.0)])
        source.failure = OSError("gps chip fault")
        watcher = self.make_watcher(source)

        with self.assertLogs('apps.mobile.producer', level='WARNING') as logs:
            await watcher.start()
            await wait_for_condition(lambda: any('gps chip fault' in line for line in logs.output))
        self.assertTrue(watcher.running)
        self.assertEqual(self.relay.emitted, [])

        source.failure = None
        await wait_for_condition(lambda: self.relay.emitted)
        await watcher.stop()
        self.assertFalse(watcher.running)

    async def test_stop_absorbs_a_crashed_cadence(self):
        watcher = self.make_watcher(FakePositionSource())
        self.producer.emit_location = AsyncMock(side_effect=OSError("disk full"))

        await watcher.start()
        await wait_for_condition(lambda: not watcher.running)
        with self.assertLogs('apps.mobile.producer', level='ERROR'):
            await watcher.stop()
        self.assertFalse(watcher.running)
