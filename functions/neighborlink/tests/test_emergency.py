import unittest

from neighborlink.auth import AuthUser
from neighborlink.db import (
    EmergencyContact,
    EmergencyContactRequest,
    EmergencyPreferences,
    InMemoryDbClient,
    PanicAlert,
    Profile,
    SafetyAlert,
)
from neighborlink.emergency import (
    build_alert_message,
    notify_contact_invitation,
    situation_label,
    trigger_emergency_alert,
    update_panic_alert_status,
)
from neighborlink.errors import AuthorizationError, NotFoundError, ValidationError
from neighborlink.providers import InMemorySmsClient
from shared.types import AlertSeverity

LOCATION = {"latitude": 6.45, "longitude": 3.39, "address": "4 Marina Rd"}


class FlakySmsClient(InMemorySmsClient):
    def send_whatsapp(self, to, body):
        raise ConnectionError("whatsapp unavailable")


class SmsDownClient(InMemorySmsClient):
    def send_sms(self, to, body):
        raise ConnectionError("sms gateway down")


class TriggerEmergencyAlertTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.sms = FlakySmsClient()
        self.user = AuthUser(id="victim", email="victim@example.com")
        self.panic = self.db.create_panic_alert(
            PanicAlert(user_id="victim", situation_type="break_in")
        )

    def _trigger(self):
        return trigger_emergency_alert(
            self.db,
            self.sms,
            self.user,
            panic_alert_id=self.panic.id,
            situation_type="break_in",
            location=LOCATION,
            user_name="Bola",
        )

    def test_contacts_notified_by_preferred_methods(self):
        self.db.add_emergency_contact(
            EmergencyContact(
                user_id="victim",
                contact_name="Sister",
                phone_number="+2348000000010",
                contact_user_id="sister",
            )
        )
        self.db.add_emergency_contact(
            EmergencyContact(
                user_id="victim",
                contact_name="Brother",
                phone_number="+2348000000011",
                preferred_methods=["sms", "phone_call"],
            )
        )
        self.db.add_emergency_contact(
            EmergencyContact(
                user_id="victim",
                contact_name="Friend",
                phone_number="+2348000000012",
                preferred_methods=["whatsapp"],
            )
        )

        result = self._trigger()
        self.assertTrue(result["success"])
        self.assertEqual(result["contacts_notified"], 3)
        self.assertEqual(result["contacts_failed"], 1)
        self.assertNotIn("public_alert_id", result)

        in_app = self.db.list_notifications("sister")
        self.assertEqual(len(in_app), 1)
        self.assertEqual(in_app[0].notification_type, "emergency_alert")
        self.assertEqual(in_app[0].panic_alert_id, self.panic.id)
        self.assertIn("Bola needs help!", in_app[0].content)

        channels = [(m["channel"], m["to"]) for m in self.sms.messages]
        self.assertEqual(
            channels, [("sms", "+2348000000011"), ("call", "+2348000000011")]
        )
        self.assertIn("Break In", self.sms.messages[0]["body"])

    def test_failed_method_does_not_skip_the_next(self):
        self.sms = SmsDownClient()
        self.db.add_emergency_contact(
            EmergencyContact(
                user_id="victim",
                contact_name="Brother",
                phone_number="+2348000000011",
                preferred_methods=["sms", "phone_call"],
            )
        )

        result = self._trigger()
        self.assertEqual(result["contacts_failed"], 1)
        self.assertEqual([m["channel"] for m in self.sms.messages], ["call"])

    def test_public_alert_when_opted_in(self):
        self.db.save_emergency_preferences(
            EmergencyPreferences(user_id="victim", auto_alert_public=True)
        )
        result = self._trigger()

        public = self.db.public_alerts[result["public_alert_id"]]
        self.assertEqual(public.radius_km, 5)
        self.assertIsNone(public.address)
        self.assertEqual(public.latitude, 6.45)

        safety = self.db.get_safety_alert(result["safety_alert_id"])
        self.assertEqual(safety.severity, AlertSeverity.CRITICAL)
        self.assertEqual(safety.title, "Active Emergency in Area")
        self.assertEqual(safety.created_at, self.panic.created_at)
        self.assertIn("break in", safety.description)

    def test_shared_location_keeps_address(self):
        self.db.save_emergency_preferences(
            EmergencyPreferences(
                user_id="victim", auto_alert_public=True, share_location_with_public=True
            )
        )
        result = self._trigger()
        self.assertEqual(self.db.public_alerts[result["public_alert_id"]].address, "4 Marina Rd")

    def test_missing_fields(self):
        with self.assertRaises(ValidationError):
            trigger_emergency_alert(
                self.db,
                self.sms,
                self.user,
                panic_alert_id="",
                situation_type="fire",
                location={},
                user_name="Bola",
            )

    def test_message_text(self):
        self.assertEqual(situation_label("unknown"), "Emergency")
        message = build_alert_message("Bola", "Fire Emergency", None)
        self.assertIn("Location: Unknown", message)
        self.assertIn("Please check on Bola immediately", message)


class UpdatePanicStatusTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.creator = AuthUser(id="victim")
        self.db.save_profile(Profile(user_id="victim", full_name="Bola"))
        self.panic = self.db.create_panic_alert(
            PanicAlert(user_id="victim", situation_type="fire", created_at=1_700_000_000.0)
        )
        self.matching = self.db.create_safety_alert(
            SafetyAlert(
                user_id="victim",
                title="Active Emergency in Area",
                severity="critical",
                created_at=1_700_000_000.5,
            )
        )
        self.unrelated = self.db.create_safety_alert(
            SafetyAlert(
                user_id="victim",
                title="Earlier",
                severity="critical",
                created_at=1_699_999_990.0,
            )
        )

    def _update(self, user, status, note=None):
        return update_panic_alert_status(
            self.db,
            user,
            panic_alert_id=self.panic.id,
            new_status=status,
            update_note=note,
        )

    def test_creator_resolves_and_mirrors_safety_alert(self):
        updated = self._update(self.creator, "resolved", note="Fire is out")
        self.assertTrue(updated.is_resolved)
        self.assertEqual(updated.resolved_by, "victim")
        self.assertIsNotNone(updated.resolved_at)

        matching = self.db.get_safety_alert(self.matching.id)
        self.assertEqual(matching.status, "resolved")
        self.assertEqual(matching.verified_by, "victim")
        self.assertEqual(self.db.get_safety_alert(self.unrelated.id).status, "active")

        responses = list(self.db.alert_responses.values())
        self.assertEqual(len(responses), 1)
        self.assertEqual(responses[0].alert_id, self.matching.id)
        self.assertEqual(responses[0].response_type, "status_update")
        self.assertEqual(responses[0].comment, "Status updated to resolved by Bola: Fire is out")

    def test_reopening_clears_resolution(self):
        self._update(self.creator, "resolved")
        updated = self._update(self.creator, "false_alarm")
        self.assertFalse(updated.is_resolved)
        self.assertIsNone(updated.resolved_at)
        self.assertIsNone(updated.resolved_by)
        self.assertEqual(self.db.get_safety_alert(self.matching.id).status, "false_alarm")

    def test_emergency_contact_and_moderator_may_update(self):
        self.db.save_profile(Profile(user_id="sister", phone="+2348000000010"))
        self.db.add_emergency_contact(
            EmergencyContact(
                user_id="victim", contact_name="Sister", phone_number="+2348000000010"
            )
        )
        self.assertEqual(
            self._update(AuthUser(id="sister"), "investigating").id, self.panic.id
        )

        self.db.grant_staff_permission("mod", "emergency_management", "write")
        self.assertTrue(self._update(AuthUser(id="mod"), "resolved").is_resolved)

    def test_stranger_is_rejected(self):
        self.db.save_profile(Profile(user_id="stranger", phone="+2348099999999"))
        with self.assertRaises(AuthorizationError):
            self._update(AuthUser(id="stranger"), "resolved")
        self.assertFalse(self.db.get_panic_alert(self.panic.id).is_resolved)

    def test_invalid_status_and_unknown_alert(self):
        with self.assertRaises(ValidationError):
            self._update(self.creator, "closed")
        with self.assertRaises(NotFoundError):
            update_panic_alert_status(
                self.db, self.creator, panic_alert_id="missing", new_status="resolved"
            )


class ContactInvitationTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.sender = AuthUser(id="kemi")
        self.db.save_profile(Profile(user_id="kemi", full_name="Kemi", phone="+2348000000020"))
        self.request = self.db.create_contact_request(
            EmergencyContactRequest(
                sender_id="kemi", recipient_phone="+2348000000021", recipient_id="dayo"
            )
        )

    def test_recipient_notified_once(self):
        result = notify_contact_invitation(self.db, self.sender, self.request.id)
        self.assertTrue(result["success"])

        (notification,) = self.db.list_notifications("dayo")
        self.assertEqual(notification.notification_type, "contact_request")
        self.assertEqual(notification.sender_name, "Kemi")
        self.assertEqual(notification.sender_phone, "+2348000000020")
        self.assertEqual(notification.request_id, self.request.id)
        self.assertEqual(notification.content, "Kemi wants to add you as an emergency contact")
        self.assertEqual(result["notification_id"], notification.id)
        self.assertTrue(self.db.get_contact_request(self.request.id).notification_sent)

        again = notify_contact_invitation(self.db, self.sender, self.request.id)
        self.assertEqual(again["message"], "Notification already sent")
        self.assertEqual(len(self.db.list_notifications("dayo")), 1)

    def test_request_without_recipient_is_left_pending(self):
        pending = self.db.create_contact_request(
            EmergencyContactRequest(sender_id="kemi", recipient_phone="+2348000000099")
        )
        result = notify_contact_invitation(self.db, self.sender, pending.id)
        self.assertFalse(result["success"])
        self.assertEqual(result["message"], "No recipient found")
        self.assertFalse(self.db.get_contact_request(pending.id).notification_sent)

    def test_only_sender_or_moderator(self):
        with self.assertRaises(AuthorizationError):
            notify_contact_invitation(self.db, AuthUser(id="dayo"), self.request.id)

        self.db.add_role("mod", "moderator")
        result = notify_contact_invitation(self.db, AuthUser(id="mod"), self.request.id)
        self.assertTrue(result["success"])

    def test_unknown_request(self):
        with self.assertRaises(NotFoundError):
            notify_contact_invitation(self.db, self.sender, "missing")


if __name__ == "__main__":
    unittest.main()
