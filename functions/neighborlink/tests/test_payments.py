import json
import unittest

from neighborlink.auth import AuthUser
from neighborlink.db import AdCampaign, Business, InMemoryDbClient
from neighborlink.errors import NotFoundError, PaymentError, ValidationError
from neighborlink.payments import (
    InMemoryPaymentGateway,
    create_ad_payment,
    create_business_promotion_payment,
    handle_payment_webhook,
)
from shared.types import CampaignStatus, PaymentStatus

ORIGIN = "https://app.example.com"


def completed_event(session_id: str) -> bytes:
    return json.dumps(
        {"type": "checkout.session.completed", "data": {"object": {"id": session_id}}}
    ).encode("utf-8")


class AdPaymentTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.gateway = InMemoryPaymentGateway()
        self.user = AuthUser(id="owner", email="owner@example.com")
        self.campaign = self.db.create_ad_campaign(
            AdCampaign(user_id="owner", campaign_name="Weekend sale")
        )

    def test_checkout_session_for_new_customer(self):
        result = create_ad_payment(
            self.db,
            self.gateway,
            self.user,
            campaign_id=self.campaign.id,
            amount=2500.5,
            origin=ORIGIN,
        )
        self.assertEqual(result["session_id"], "cs_test_1")
        self.assertEqual(result["url"], "https://checkout.example.test/cs_test_1")

        params = self.gateway.sessions[0]
        self.assertEqual(params["customer_email"], "owner@example.com")
        self.assertNotIn("customer", params)
        price = params["line_items"][0]["price_data"]
        self.assertEqual(price["unit_amount"], 250050)
        self.assertEqual(price["currency"], "ngn")
        self.assertEqual(
            params["metadata"],
            {"campaign_id": self.campaign.id, "user_id": "owner", "type": "advertisement"},
        )
        self.assertIn("{CHECKOUT_SESSION_ID}", params["success_url"])

        campaign = self.db.get_ad_campaign(self.campaign.id)
        self.assertEqual(campaign.status, CampaignStatus.PENDING_PAYMENT)
        self.assertEqual(campaign.payment_session_id, "cs_test_1")
        self.assertEqual(campaign.payment_amount, 2500.5)

    def test_existing_customer_is_reused(self):
        self.gateway.customers["owner@example.com"] = "cus_123"
        create_ad_payment(
            self.db,
            self.gateway,
            self.user,
            campaign_id=self.campaign.id,
            amount=100,
            origin=ORIGIN,
        )
        params = self.gateway.sessions[0]
        self.assertEqual(params["customer"], "cus_123")
        self.assertNotIn("customer_email", params)

    def test_other_users_campaign_is_not_found(self):
        stranger = AuthUser(id="stranger", email="s@example.com")
        with self.assertRaises(NotFoundError):
            create_ad_payment(
                self.db,
                self.gateway,
                stranger,
                campaign_id=self.campaign.id,
                amount=100,
                origin=ORIGIN,
            )
        self.assertEqual(self.gateway.sessions, [])

    def test_invalid_requests(self):
        with self.assertRaises(ValidationError):
            create_ad_payment(
                self.db,
                self.gateway,
                AuthUser(id="owner"),
                campaign_id=self.campaign.id,
                amount=100,
                origin=ORIGIN,
            )
        with self.assertRaises(ValidationError):
            create_ad_payment(
                self.db,
                self.gateway,
                self.user,
                campaign_id=self.campaign.id,
                amount=0,
                origin=ORIGIN,
            )


class PromotionPaymentTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.gateway = InMemoryPaymentGateway()
        self.user = AuthUser(id="owner", email="owner@example.com")
        self.business = self.db.create_business(
            Business(user_id="owner", business_name="Mama Put")
        )

    def test_fixed_price_promotion(self):
        result = create_business_promotion_payment(
            self.db,
            self.gateway,
            self.user,
            business_id=self.business.id,
            promotion_type="premium",
            duration_days=14,
            origin=ORIGIN,
            target_location="Surulere",
            images=["users/owner/media/banner.png"],
        )
        params = self.gateway.sessions[0]
        self.assertEqual(params["line_items"][0]["price_data"]["unit_amount"], 1800000)
        self.assertEqual(params["metadata"]["type"], "promotion")
        self.assertEqual(params["metadata"]["duration"], "14")

        promotion = self.db.promotions[result["promotion_id"]]
        self.assertEqual(promotion.budget, 18000.0)
        self.assertAlmostEqual(promotion.end_date - promotion.start_date, 14 * 86400, places=3)
        self.assertEqual(promotion.target_locations, ["Surulere"])
        self.assertEqual(promotion.images, ["users/owner/media/banner.png"])
        self.assertEqual(promotion.payment_session_id, result["session_id"])
        self.assertEqual(promotion.status, CampaignStatus.PENDING_PAYMENT)

    def test_unknown_price_is_rejected(self):
        with self.assertRaises(ValidationError):
            create_business_promotion_payment(
                self.db,
                self.gateway,
                self.user,
                business_id=self.business.id,
                promotion_type="premium",
                duration_days=10,
                origin=ORIGIN,
            )

    def test_business_must_belong_to_user(self):
        with self.assertRaises(NotFoundError):
            create_business_promotion_payment(
                self.db,
                self.gateway,
                AuthUser(id="other", email="o@example.com"),
                business_id=self.business.id,
                promotion_type="basic",
                duration_days=7,
                origin=ORIGIN,
            )


class PaymentWebhookTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.gateway = InMemoryPaymentGateway()

    def test_missing_or_bad_signature(self):
        with self.assertRaises(PaymentError):
            handle_payment_webhook(self.db, self.gateway, completed_event("cs"), None)
        with self.assertRaises(PaymentError):
            handle_payment_webhook(self.db, self.gateway, completed_event("cs"), "forged")

    def test_completed_checkout_activates_campaign(self):
        campaign = self.db.create_ad_campaign(
            AdCampaign(user_id="owner", campaign_name="Launch", payment_session_id="cs_1")
        )
        result = handle_payment_webhook(
            self.db, self.gateway, completed_event("cs_1"), "test-signature"
        )
        self.assertEqual(result, {"received": True})

        updated = self.db.get_ad_campaign(campaign.id)
        self.assertEqual(updated.payment_status, PaymentStatus.PAID)
        self.assertEqual(updated.status, CampaignStatus.PENDING_APPROVAL)
        self.assertIsNotNone(updated.payment_completed_at)

        notifications = list(self.db.notifications.values())
        self.assertEqual(len(notifications), 1)
        self.assertEqual(notifications[0].notification_type, "ad_approval_needed")
        self.assertEqual(notifications[0].sender_name, "System")
        self.assertIn("Launch", notifications[0].content)

    def test_completed_checkout_activates_promotion(self):
        gateway_user = AuthUser(id="owner", email="owner@example.com")
        business = self.db.create_business(Business(user_id="owner", business_name="Shop"))
        result = create_business_promotion_payment(
            self.db,
            self.gateway,
            gateway_user,
            business_id=business.id,
            promotion_type="basic",
            duration_days=7,
            origin=ORIGIN,
        )
        handle_payment_webhook(
            self.db, self.gateway, completed_event(result["session_id"]), "test-signature"
        )
        promotion = self.db.promotions[result["promotion_id"]]
        self.assertEqual(promotion.payment_status, PaymentStatus.PAID)
        self.assertEqual(promotion.status, CampaignStatus.ACTIVE)

    def test_other_events_are_acknowledged(self):
        campaign = self.db.create_ad_campaign(
            AdCampaign(user_id="owner", campaign_name="Launch", payment_session_id="cs_2")
        )
        payload = json.dumps(
            {"type": "payment_intent.created", "data": {"object": {"id": "cs_2"}}}
        ).encode("utf-8")
        result = handle_payment_webhook(self.db, self.gateway, payload, "test-signature")
        self.assertEqual(result, {"received": True})
        self.assertEqual(
            self.db.get_ad_campaign(campaign.id).payment_status, PaymentStatus.UNPAID
        )


if __name__ == "__main__":
    unittest.main()
