import unittest

from neighborlink.db import InMemoryDbClient, Profile, SafetyAlert
from neighborlink.queue import InMemoryJobQueue
from neighborlink.realtime import InMemoryBroadcaster
from neighborlink.worker import process_next
from shared.types import DeliveryStatus


class WorkerTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.queue = InMemoryJobQueue()
        self.broadcaster = InMemoryBroadcaster()

    def _process(self):
        return process_next(
            db=self.db, queue=self.queue, broadcaster=self.broadcaster, block=False
        )

    def test_process_alert_job_fans_out(self):
        self.db.save_profile(Profile(user_id="creator", neighborhood="lekki"))
        self.db.save_profile(Profile(user_id="n1", neighborhood="lekki"))
        self.db.save_profile(Profile(user_id="n2", neighborhood="lekki"))
        alert = self.db.create_safety_alert(
            SafetyAlert(user_id="creator", title="Robbery", severity="high")
        )

        self.queue.enqueue({"kind": "process_alert", "alert_id": alert.id, "priority": 2})
        self.assertTrue(self._process())

        channels = sorted(m["channel"] for m in self.broadcaster.messages)
        self.assertEqual(channels, ["user_n1", "user_n2"])
        logs = self.db.list_delivery_logs(alert.id)
        self.assertEqual(len(logs), 2)
        self.assertTrue(all(log.delivery_status == DeliveryStatus.PENDING for log in logs))

    def test_process_once_no_jobs(self):
        self.assertFalse(self._process())

    def test_missing_alert_job_is_dropped(self):
        self.queue.enqueue({"kind": "process_alert", "alert_id": "gone"})
        self.assertTrue(self._process())
        self.assertEqual(self.queue.items, [])

    def test_unknown_job_kind_is_dropped(self):
        self.queue.enqueue({"kind": "resize_images"})
        with self.assertLogs("neighborlink.worker", level="WARNING"):
            self.assertTrue(self._process())


if __name__ == "__main__":
    unittest.main()
