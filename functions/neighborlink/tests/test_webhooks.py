import unittest
from unittest.mock import patch

from neighborlink.db import InMemoryDbClient
from neighborlink.errors import AuthenticationError, FeatureDisabledError, ValidationError
from neighborlink.webhooks import process_webhook, sign_payload, verify_signature
from shared.types import WebhookStatus


class ProcessWebhookTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.db.set_config("webhooks_enabled", True)

    def test_disabled(self):
        self.db.set_config("webhooks_enabled", False)
        with self.assertRaises(FeatureDisabledError) as ctx:
            process_webhook(self.db, source="stripe", event="x", data={})
        self.assertEqual(ctx.exception.status, "disabled")
        self.assertEqual(self.db.webhook_logs, {})

    def test_missing_fields(self):
        with self.assertRaises(ValidationError):
            process_webhook(self.db, source="", event="x", data={})

    def test_stripe_event_is_logged_once_and_updated(self):
        result = process_webhook(
            self.db,
            source="stripe",
            event="payment_intent.succeeded",
            data={"id": "pi_1"},
        )
        self.assertTrue(result["success"])
        self.assertEqual(result["result"]["message"], "Payment processed successfully")

        self.assertEqual(len(self.db.webhook_logs), 1)
        log = self.db.get_webhook_log(result["log_id"])
        self.assertEqual(log.status, WebhookStatus.PROCESSED)
        self.assertEqual(log.payload, {"id": "pi_1"})
        self.assertEqual(log.processing_result["message"], "Payment processed successfully")

    def test_unknown_source_is_acknowledged(self):
        result = process_webhook(self.db, source="crm", event="contact.created", data=None)
        self.assertEqual(result["result"]["message"], "Webhook received but not processed")

    def test_signature_checked_when_secret_configured(self):
        self.db.set_config("webhook_secret", "s3cret")
        data = {"b": 2, "a": 1}
        signature = sign_payload("s3cret", data)

        ok = process_webhook(
            self.db, source="payment", event="paid", data=data, signature=signature
        )
        self.assertEqual(ok["result"]["message"], "Payment webhook processed")

        with self.assertRaises(AuthenticationError):
            process_webhook(
                self.db, source="payment", event="paid", data=data, signature="deadbeef"
            )
        self.assertEqual(len(self.db.webhook_logs), 1)

    def test_unsigned_request_rejected_when_secret_configured(self):
        self.db.set_config("webhook_secret", "s3cret")
        with self.assertRaises(AuthenticationError):
            process_webhook(self.db, source="payment", event="paid", data={"a": 1})
        self.assertEqual(self.db.webhook_logs, {})

    def test_handler_failure_marks_log_failed(self):
        def explode(event, data):
            raise RuntimeError("handler crashed")

        with patch.dict("neighborlink.webhooks.HANDLERS", {"payment": explode}):
            with self.assertRaises(RuntimeError):
                process_webhook(self.db, source="payment", event="paid", data={})

        (log,) = self.db.webhook_logs.values()
        self.assertEqual(log.status, WebhookStatus.FAILED)
        self.assertEqual(log.processing_result["error"], "handler crashed")


class SignatureTests(unittest.TestCase):
    def test_signature_ignores_key_order(self):
        signature = sign_payload("k", {"a": 1, "b": [1, 2]})
        self.assertTrue(verify_signature("k", {"b": [1, 2], "a": 1}, signature))
        self.assertTrue(verify_signature("k", {"a": 1, "b": [1, 2]}, signature.upper()))
        self.assertFalse(verify_signature("other", {"a": 1, "b": [1, 2]}, signature))


if __name__ == "__main__":
    unittest.main()
