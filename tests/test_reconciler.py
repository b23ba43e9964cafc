import os
import tempfile
import threading
import unittest
from datetime import timedelta
from unittest.mock import patch

from factories import T0, make_session_factory, make_profile, snapshot_entry

from netwatch_monitor.core.exceptions import NotFoundError, ValidationError
from netwatch_monitor.models.netwatch_device import NetwatchDevice
from netwatch_monitor.models.status_change import NetwatchStatusChange
from netwatch_monitor.services import device_store
from netwatch_monitor.services.reconciler import reconcile, profile_lock
from netwatch_monitor.services.summary import summarize


class TestReconciler(unittest.TestCase):
    """Test cases for merging netwatch snapshots into the device store"""

    def setUp(self):
        """Set up test fixtures"""
        self.session_factory = make_session_factory()
        self.db = self.session_factory()
        self.profile = make_profile(self.db)
        self.now = T0 + timedelta(minutes=5)

    def tearDown(self):
        self.db.close()

    def stored_devices(self):
        return self.db.query(NetwatchDevice).order_by(NetwatchDevice.id).all()

    def test_first_sighting_then_status_change(self):
        """One host going from up to down keeps a single row and local id"""
        t1 = T0 + timedelta(minutes=10)

        created = reconcile(self.db, self.profile.id, [snapshot_entry("*1", "8.8.8.8", "up", T0)], now=self.now)
        summary = summarize(self.db, self.profile.id)
        self.assertEqual(len(self.stored_devices()), 1)
        self.assertEqual((summary.total_devices, summary.up_devices, summary.down_devices), (1, 1, 0))

        updated = reconcile(self.db, self.profile.id, [snapshot_entry("*1", "8.8.8.8", "down", t1)],
                            now=self.now + timedelta(minutes=10))
        summary = summarize(self.db, self.profile.id)
        devices = self.stored_devices()
        self.assertEqual(len(devices), 1)
        self.assertEqual(updated[0].id, created[0].id)
        self.assertEqual(devices[0].status, "down")
        self.assertEqual(devices[0].since, t1)
        self.assertEqual((summary.total_devices, summary.up_devices, summary.down_devices), (1, 0, 1))

    def test_unknown_profile_raises_and_writes_nothing(self):
        with self.assertRaises(NotFoundError):
            reconcile(self.db, 999, [snapshot_entry("*1", "8.8.8.8")])
        self.assertEqual(self.db.query(NetwatchDevice).count(), 0)

    def test_same_snapshot_twice_is_idempotent(self):
        snapshot = [
            snapshot_entry("*1", "8.8.8.8", "up", label="Google DNS"),
            snapshot_entry("*2", "192.168.88.100", "down"),
        ]
        reconcile(self.db, self.profile.id, snapshot, now=self.now)
        first = [(d.id, d.native_id, d.address, d.label, d.status, d.since) for d in self.stored_devices()]

        later = self.now + timedelta(seconds=5)
        reconcile(self.db, self.profile.id, snapshot, now=later)
        devices = self.stored_devices()
        second = [(d.id, d.native_id, d.address, d.label, d.status, d.since) for d in devices]

        self.assertEqual(first, second)
        self.assertTrue(all(d.updated_at == later for d in devices))
        self.assertTrue(all(d.created_at == self.now for d in devices))

    def test_local_ids_stable_across_polls(self):
        first = reconcile(self.db, self.profile.id, [
            snapshot_entry("*1", "8.8.8.8", "up"),
            snapshot_entry("*2", "1.1.1.1", "up"),
        ])
        ids = {d.native_id: d.id for d in first}

        second = reconcile(self.db, self.profile.id, [
            snapshot_entry("*2", "1.1.1.1", "down", T0 + timedelta(minutes=1)),
            snapshot_entry("*1", "8.8.8.8", "down", T0 + timedelta(minutes=1)),
        ])
        self.assertEqual({d.native_id: d.id for d in second}, ids)

    def test_since_kept_when_status_unchanged(self):
        reconcile(self.db, self.profile.id, [snapshot_entry("*1", "8.8.8.8", "up", T0)])
        reconcile(self.db, self.profile.id, [snapshot_entry("*1", "8.8.8.8", "up", T0 + timedelta(hours=1))])

        self.assertEqual(self.stored_devices()[0].since, T0)

    def test_fields_refreshed_from_snapshot(self):
        reconcile(self.db, self.profile.id, [snapshot_entry("*1", "8.8.8.8", label="Google DNS")])
        reconcile(self.db, self.profile.id, [
            snapshot_entry("*1", "8.8.4.4", label=None, timeout="10s", interval="00:05:00")
        ])

        device = self.stored_devices()[0]
        self.assertEqual(device.address, "8.8.4.4")
        self.assertIsNone(device.label)
        self.assertEqual(device.timeout, "10s")
        self.assertEqual(device.interval, "00:05:00")

    def test_absent_devices_left_untouched(self):
        reconcile(self.db, self.profile.id, [
            snapshot_entry("*1", "8.8.8.8", "up"),
            snapshot_entry("*2", "1.1.1.1", "up"),
        ], now=self.now)

        later = self.now + timedelta(minutes=1)
        returned = reconcile(self.db, self.profile.id, [snapshot_entry("*1", "8.8.8.8", "down")], now=later)

        self.assertEqual([d.native_id for d in returned], ["*1"])
        vanished = self.db.query(NetwatchDevice).filter(NetwatchDevice.native_id == "*2").one()
        self.assertEqual(vanished.status, "up")
        self.assertEqual(vanished.updated_at, self.now)
        self.assertEqual(summarize(self.db, self.profile.id).total_devices, 2)

    def test_duplicate_native_id_last_write_wins(self):
        returned = reconcile(self.db, self.profile.id, [
            snapshot_entry("*1", "8.8.8.8", "up"),
            snapshot_entry("*1", "8.8.4.4", "down", T0 + timedelta(seconds=30)),
        ])

        self.assertEqual(len(returned), 1)
        devices = self.stored_devices()
        self.assertEqual(len(devices), 1)
        self.assertEqual(devices[0].address, "8.8.4.4")
        self.assertEqual(devices[0].status, "down")

    def test_same_native_id_on_two_profiles(self):
        other = make_profile(self.db, name="Branch Router", address="10.0.0.1")
        reconcile(self.db, self.profile.id, [snapshot_entry("*1", "8.8.8.8")])
        reconcile(self.db, other.id, [snapshot_entry("*1", "1.1.1.1")])

        self.assertEqual(self.db.query(NetwatchDevice).count(), 2)
        self.assertEqual(summarize(self.db, other.id).total_devices, 1)

    def test_invalid_entry_rejected_before_writes(self):
        snapshot = [
            snapshot_entry("*1", "8.8.8.8"),
            snapshot_entry("*2", "1.1.1.1", status="unknown"),
        ]
        with self.assertRaises(ValidationError):
            reconcile(self.db, self.profile.id, snapshot)
        self.assertEqual(self.db.query(NetwatchDevice).count(), 0)

    def test_empty_snapshot(self):
        self.assertEqual(reconcile(self.db, self.profile.id, []), [])

    def test_status_history_periods(self):
        t1 = T0 + timedelta(minutes=10)
        t2 = T0 + timedelta(minutes=25)
        reconcile(self.db, self.profile.id, [snapshot_entry("*1", "8.8.8.8", "up", T0)])
        reconcile(self.db, self.profile.id, [snapshot_entry("*1", "8.8.8.8", "up", T0)])
        reconcile(self.db, self.profile.id, [snapshot_entry("*1", "8.8.8.8", "down", t1)])
        reconcile(self.db, self.profile.id, [snapshot_entry("*1", "8.8.8.8", "up", t2)])

        periods = self.db.query(NetwatchStatusChange).order_by(NetwatchStatusChange.started_at).all()
        self.assertEqual([p.status for p in periods], ["up", "down", "up"])
        self.assertEqual(periods[0].ended_at, t1)
        self.assertEqual(periods[0].duration_seconds, 600)
        self.assertEqual(periods[1].duration_seconds, 900)
        self.assertIsNone(periods[2].ended_at)

    def test_status_change_reported_before_current_period(self):
        """A transition time older than the open period never rewinds history"""
        reconcile(self.db, self.profile.id, [snapshot_entry("*1", "8.8.8.8", "up", T0)])
        reconcile(self.db, self.profile.id, [snapshot_entry("*1", "8.8.8.8", "down", T0 - timedelta(hours=1))])

        device = self.stored_devices()[0]
        self.assertEqual(device.status, "down")
        self.assertEqual(device.since, T0)

        periods = self.db.query(NetwatchStatusChange).order_by(NetwatchStatusChange.id).all()
        self.assertEqual([(p.status, p.started_at) for p in periods], [("up", T0), ("down", T0)])
        self.assertEqual(periods[0].ended_at, T0)
        self.assertEqual(periods[0].duration_seconds, 0)
        self.assertIsNone(periods[1].ended_at)

    def test_insert_race_retries_as_update(self):
        """Another session inserting the same native id first leaves one row"""
        t1 = T0 + timedelta(minutes=1)
        real_lookup = device_store.get_by_native_id
        rival = self.session_factory()
        rival_ids = []

        def lookup_after_rival_insert(db, router_profile_id, native_id):
            if not rival_ids:
                device = NetwatchDevice(router_profile_id=router_profile_id, native_id=native_id,
                                        address="10.9.9.9", status="up", since=T0,
                                        created_at=T0, updated_at=T0)
                rival.add(device)
                rival.commit()
                rival_ids.append(device.id)
                return None
            return real_lookup(db, router_profile_id, native_id)

        with patch.object(device_store, "get_by_native_id", side_effect=lookup_after_rival_insert):
            reconciled = reconcile(self.db, self.profile.id,
                                   [snapshot_entry("*1", "8.8.8.8", "down", t1)], now=self.now)
        rival.close()

        devices = self.stored_devices()
        self.assertEqual(len(devices), 1)
        self.assertEqual(devices[0].id, rival_ids[0])
        self.assertEqual(reconciled[0].id, rival_ids[0])
        self.assertEqual((devices[0].address, devices[0].status, devices[0].since), ("8.8.8.8", "down", t1))

    def test_profile_lock_is_per_profile(self):
        self.assertIs(profile_lock(1), profile_lock(1))
        self.assertIsNot(profile_lock(1), profile_lock(2))


class TestConcurrentReconcile(unittest.TestCase):
    """Test cases for passes racing on one router profile"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.session_factory = make_session_factory(
            "sqlite:///" + os.path.join(self.tmpdir.name, "netwatch.db"))
        db = self.session_factory()
        self.profile_id = make_profile(db).id
        db.close()

    def tearDown(self):
        self.session_factory.kw["bind"].dispose()
        self.tmpdir.cleanup()

    def test_two_threads_same_snapshot(self):
        snapshot = [
            snapshot_entry("*1", "8.8.8.8", "up"),
            snapshot_entry("*2", "1.1.1.1", "down"),
        ]
        start = threading.Barrier(2)
        errors = []

        def worker():
            db = self.session_factory()
            try:
                start.wait()
                reconcile(db, self.profile_id, snapshot)
            except Exception as e:
                errors.append(e)
            finally:
                db.close()

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        self.assertEqual(errors, [])
        db = self.session_factory()
        try:
            rows = db.query(NetwatchDevice.native_id).order_by(NetwatchDevice.native_id).all()
            self.assertEqual([r.native_id for r in rows], ["*1", "*2"])
            self.assertEqual(db.query(NetwatchStatusChange).count(), 2)
        finally:
            db.close()


if __name__ == '__main__':
    unittest.main()
