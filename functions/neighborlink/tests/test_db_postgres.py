import time
import unittest

from neighborlink.db import (
    AdCampaign,
    ApiKeyRecord,
    DeliveryLogEntry,
    EmergencyContact,
    EmergencyContactRequest,
    Escalation,
    Notification,
    PostgresDbClient,
    Profile,
    SafetyAlert,
    WebhookLog,
)
from shared.types import CampaignStatus, EscalationStatus, PaymentStatus, WebhookStatus


class PostgresDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the Postgres client logic.
    """

    @classmethod
    def setUpClass(cls):
        cls.db = PostgresDbClient("sqlite+pysqlite:///:memory:")

    def test_profile_roundtrip_and_neighbors(self):
        self.db.save_profile(
            Profile(
                user_id="p-1",
                full_name="Chidi",
                neighborhood="yaba",
                push_subscription={"token": "abc"},
            )
        )
        self.db.save_profile(Profile(user_id="p-2", neighborhood="yaba"))
        self.db.save_profile(Profile(user_id="p-3", neighborhood="ikeja"))

        loaded = self.db.get_profile("p-1")
        self.assertEqual(loaded.full_name, "Chidi")
        self.assertEqual(loaded.push_subscription, {"token": "abc"})

        neighbors = self.db.list_neighbors("yaba", "p-1")
        self.assertEqual([p.user_id for p in neighbors], ["p-2"])
        self.assertEqual(self.db.list_neighbors(None, "p-1"), [])

    def test_last_seen_and_recent_activity(self):
        self.db.save_profile(Profile(user_id="seen-1"))
        now = time.time()
        self.db.touch_last_seen("seen-1", now)
        self.assertIn("seen-1", self.db.list_recently_active(now - 10))
        self.assertNotIn("seen-1", self.db.list_recently_active(now + 10))

    def test_roles_and_staff_permissions(self):
        self.db.add_role("staff-1", "moderator")
        self.db.add_role("staff-1", "moderator")
        self.assertEqual(self.db.get_roles("staff-1"), ["moderator"])

        self.db.grant_staff_permission("staff-2", "emergency_management", "write")
        self.assertTrue(
            self.db.has_staff_permission("staff-2", "emergency_management", "write")
        )
        self.assertFalse(
            self.db.has_staff_permission("staff-2", "emergency_management", "read")
        )

    def test_ad_campaign_session_lookup_and_update(self):
        campaign = self.db.create_ad_campaign(
            AdCampaign(user_id="owner", campaign_name="Shop")
        )
        self.db.update_ad_campaign(
            campaign.id,
            payment_session_id="cs_db_1",
            status=CampaignStatus.PENDING_PAYMENT,
        )
        found = self.db.find_ad_campaign_by_session("cs_db_1")
        self.assertEqual(found.id, campaign.id)
        self.assertEqual(found.status, CampaignStatus.PENDING_PAYMENT)
        self.assertEqual(found.payment_status, PaymentStatus.UNPAID)
        self.assertIsNone(self.db.update_ad_campaign("missing", status="active"))

    def test_find_safety_alerts_by_window(self):
        base = 1_700_000_000.0
        inside = self.db.create_safety_alert(
            SafetyAlert(user_id="alerter", title="A", severity="critical", created_at=base)
        )
        self.db.create_safety_alert(
            SafetyAlert(user_id="alerter", title="B", severity="critical", created_at=base + 5)
        )
        self.db.create_safety_alert(
            SafetyAlert(user_id="alerter", title="C", severity="low", created_at=base)
        )
        found = self.db.find_safety_alerts("alerter", "critical", base - 1, base + 1)
        self.assertEqual([a.id for a in found], [inside.id])

    def test_notifications_and_delivery_logs(self):
        older = self.db.create_notification(
            Notification(
                notification_type="safety_alert",
                recipient_id="reader",
                alert_id="alert-n",
                created_at=1.0,
            )
        )
        self.db.create_notification(
            Notification(notification_type="other", recipient_id="reader", created_at=2.0)
        )
        items = self.db.list_notifications("reader")
        self.assertEqual([n.notification_type for n in items], ["other", "safety_alert"])

        self.assertEqual(self.db.find_alert_notification("alert-n", "reader").id, older.id)
        self.assertTrue(self.db.mark_notification_read(older.id).is_read)

        self.db.add_delivery_logs(
            DeliveryLogEntry(alert_id="alert-n", user_id=u, delivery_channel="websocket")
            for u in ("a", "b")
        )
        self.assertEqual(len(self.db.list_delivery_logs("alert-n")), 2)

    def test_due_escalations_are_pending_and_ordered(self):
        now = time.time()
        late = self.db.create_escalation(
            Escalation(alert_id="esc", user_id="u1", due_at=now - 10)
        )
        early = self.db.create_escalation(
            Escalation(alert_id="esc", user_id="u2", due_at=now - 100)
        )
        done = self.db.create_escalation(
            Escalation(alert_id="esc", user_id="u3", due_at=now - 50)
        )
        self.db.create_escalation(Escalation(alert_id="esc", user_id="u4", due_at=now + 100))
        self.db.update_escalation(done.id, status=EscalationStatus.SENT)

        due = [e.id for e in self.db.list_due_escalations(now, 10) if e.alert_id == "esc"]
        self.assertEqual(due, [early.id, late.id])

    def test_api_key_lookup_by_hash(self):
        record = self.db.create_api_key(
            ApiKeyRecord(
                key_name="ci",
                key_prefix="nlk_development_abc",
                key_hash="hash-1",
                company_id="c1",
                created_by="admin",
                environment="development",
                permissions=["alerts:read"],
            )
        )
        found = self.db.find_api_key_by_hash("hash-1")
        self.assertEqual(found.id, record.id)
        self.assertEqual(found.permissions, ["alerts:read"])
        self.assertIsNone(self.db.find_api_key_by_hash("other"))

    def test_webhook_log_update(self):
        log = self.db.create_webhook_log(WebhookLog(source="payment", event_type="ping"))
        self.db.update_webhook_log(
            log.id, status=WebhookStatus.PROCESSED, processing_result={"success": True}
        )
        loaded = self.db.get_webhook_log(log.id)
        self.assertEqual(loaded.status, WebhookStatus.PROCESSED)
        self.assertEqual(loaded.processing_result, {"success": True})

    def test_config_roundtrip(self):
        self.assertIsNone(self.db.get_config("webhooks_enabled"))
        self.db.set_config("webhooks_enabled", True)
        self.assertTrue(self.db.get_config("webhooks_enabled"))
        self.db.set_config("webhooks_enabled", False)
        self.assertFalse(self.db.get_config("webhooks_enabled"))

    def test_alert_metric_is_stored(self):
        self.db.track_alert_metric("metric-alert", "processed", details={"targetUsers": 3})

    def test_contact_request_roundtrip(self):
        request = self.db.create_contact_request(
            EmergencyContactRequest(sender_id="req-1", recipient_phone="+234700")
        )
        self.db.update_contact_request(request.id, recipient_id="req-2", notification_sent=True)
        loaded = self.db.get_contact_request(request.id)
        self.assertEqual(loaded.recipient_id, "req-2")
        self.assertTrue(loaded.notification_sent)
        self.assertIsNone(self.db.get_contact_request("missing"))

    def test_delete_user_data_only_touches_that_user(self):
        self.db.save_profile(Profile(user_id="gone-1"))
        self.db.save_profile(Profile(user_id="kept-1"))
        self.db.add_role("gone-1", "moderator")
        self.db.grant_staff_permission("gone-1", "content_moderation", "write")
        self.db.add_emergency_contact(
            EmergencyContact(user_id="gone-1", contact_name="Aunt", phone_number="+234701")
        )
        self.db.add_emergency_contact(
            EmergencyContact(user_id="kept-1", contact_name="Uncle", phone_number="+234702")
        )
        self.db.create_contact_request(
            EmergencyContactRequest(
                sender_id="kept-1", recipient_phone="+234703", recipient_id="gone-1"
            )
        )
        self.db.create_notification(
            Notification(notification_type="system", recipient_id="gone-1")
        )

        removed = self.db.delete_user_data("gone-1")
        self.assertEqual(removed["profiles"], 1)
        self.assertEqual(removed["emergency_contacts"], 1)
        self.assertEqual(removed["emergency_contact_requests"], 1)
        self.assertEqual(removed["alert_notifications"], 1)
        self.assertEqual(removed["user_roles"], 1)
        self.assertEqual(removed["staff_permissions"], 1)

        self.assertIsNone(self.db.get_profile("gone-1"))
        self.assertEqual(self.db.get_roles("gone-1"), [])
        self.assertFalse(
            self.db.has_staff_permission("gone-1", "content_moderation", "write")
        )
        self.assertIsNotNone(self.db.get_profile("kept-1"))
        self.assertEqual(len(self.db.list_emergency_contacts("kept-1")), 1)


if __name__ == "__main__":
    unittest.main()
