"""
Hosted checkout sessions for advertising and business promotions, and the
payment provider webhook that activates them.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

import stripe

from neighborlink.auth import AuthUser
from neighborlink.db import DbClient, Notification, PromotionCampaign
from neighborlink.errors import NotFoundError, PaymentError, ValidationError
from shared.constants import PROMOTION_PRICING
from shared.types import CampaignStatus, PaymentStatus

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


@dataclass
class CheckoutSession:
    id: str
    url: str


class PaymentGateway(Protocol):
    def find_customer(self, email: str) -> Optional[str]:
        ...

    def create_checkout_session(self, **params) -> CheckoutSession:
        ...

    def construct_event(self, payload: bytes, signature: str) -> dict:
        ...


@dataclass
class InMemoryPaymentGateway:
    """Records checkout sessions and accepts a single known webhook signature."""

    valid_signature: str = "test-signature"
    customers: dict = field(default_factory=dict)
    sessions: list = field(default_factory=list)

    def find_customer(self, email: str) -> Optional[str]:
        return self.customers.get(email)

    def create_checkout_session(self, **params) -> CheckoutSession:
        session_id = f"cs_test_{len(self.sessions) + 1}"
        self.sessions.append({"id": session_id, **params})
        return CheckoutSession(
            id=session_id, url=f"https://checkout.example.test/{session_id}"
        )

    def construct_event(self, payload: bytes, signature: str) -> dict:
        if signature != self.valid_signature:
            raise PaymentError("Invalid webhook signature")
        return json.loads(payload)


@dataclass
class StripePaymentGateway:
    api_key: str
    webhook_secret: str
    api_version: str = "2023-10-16"

    def find_customer(self, email: str) -> Optional[str]:
        customers = stripe.Customer.list(
            email=email, limit=1, api_key=self.api_key, stripe_version=self.api_version
        )
        return customers.data[0].id if customers.data else None

    def create_checkout_session(self, **params) -> CheckoutSession:
        session = stripe.checkout.Session.create(
            api_key=self.api_key, stripe_version=self.api_version, **params
        )
        return CheckoutSession(id=session.id, url=session.url)

    def construct_event(self, payload: bytes, signature: str) -> dict:
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            raise PaymentError(f"Webhook signature verification failed: {exc}") from exc
        return json.loads(payload)


def _customer_params(gateway: PaymentGateway, email: str) -> dict:
    customer_id = gateway.find_customer(email)
    if customer_id:
        logger.info("Existing payment customer found: %s", customer_id)
        return {"customer": customer_id}
    return {"customer_email": email}


def create_ad_payment(
    db: DbClient,
    gateway: PaymentGateway,
    user: AuthUser,
    *,
    campaign_id: str,
    amount: float,
    origin: str,
    currency: str | None = None,
    description: str | None = None,
) -> dict:
    """Open a checkout session for an advertisement campaign."""
    if not user.email:
        raise ValidationError("User email not available")
    if not campaign_id or not amount or amount <= 0:
        raise ValidationError("Missing required parameters: campaign_id and amount")

    campaign = db.get_ad_campaign(campaign_id)
    if not campaign or campaign.user_id != user.id:
        raise NotFoundError("Campaign not found or access denied")

    session = gateway.create_checkout_session(
        **_customer_params(gateway, user.email),
        line_items=[
            {
                "price_data": {
                    "currency": currency or "ngn",
                    "product_data": {
                        "name": "Community Advertisement",
                        "description": description
                        or "Advertisement placement in community feed",
                    },
                    "unit_amount": round(amount * 100),
                },
                "quantity": 1,
            }
        ],
        mode="payment",
        success_url=(
            f"{origin}/advertising/campaigns?payment=success"
            "&session_id={CHECKOUT_SESSION_ID}"
        ),
        cancel_url=f"{origin}/advertising/campaigns?payment=cancelled",
        metadata={
            "campaign_id": campaign_id,
            "user_id": user.id,
            "type": "advertisement",
        },
    )
    logger.info("Checkout session %s created for campaign %s", session.id, campaign_id)

    db.update_ad_campaign(
        campaign_id,
        payment_session_id=session.id,
        payment_amount=amount,
        status=CampaignStatus.PENDING_PAYMENT,
    )
    return {"url": session.url, "session_id": session.id}


def create_business_promotion_payment(
    db: DbClient,
    gateway: PaymentGateway,
    user: AuthUser,
    *,
    business_id: str,
    promotion_type: str,
    duration_days: int,
    origin: str,
    target_location: str | None = None,
    images: list[str] | None = None,
    currency: str = "ngn",
) -> dict:
    """Open a checkout session for a fixed-price business promotion."""
    if not user.email:
        raise ValidationError("User email not available")

    business = db.get_business(business_id)
    if not business or business.user_id != user.id:
        raise NotFoundError("Business not found or access denied")

    amount = PROMOTION_PRICING.get(promotion_type, {}).get(duration_days)
    if not amount:
        raise ValidationError("Invalid promotion type or duration")

    label = promotion_type.capitalize()
    metadata = {
        "business_id": business_id,
        "promotion_type": promotion_type,
        "duration": str(duration_days),
        "target_location": target_location or "all",
    }
    session = gateway.create_checkout_session(
        **_customer_params(gateway, user.email),
        line_items=[
            {
                "price_data": {
                    "currency": currency,
                    "product_data": {
                        "name": f"Business Promotion - {label}",
                        "description": (
                            f"{duration_days} days promotion for {business.business_name}"
                        ),
                        "metadata": metadata,
                    },
                    "unit_amount": amount,
                },
                "quantity": 1,
            }
        ],
        mode="payment",
        metadata={**metadata, "user_id": user.id, "type": "promotion"},
        success_url=f"{origin}/business?payment=success&session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{origin}/business?payment=cancelled",
    )

    now = time.time()
    promotion = db.create_promotion(
        PromotionCampaign(
            business_id=business_id,
            created_by=user.id,
            title=f"{business.business_name} - {label} Promotion",
            description=(
                f"{duration_days} days promotion campaign for {business.business_name}"
            ),
            promotion_type=promotion_type,
            budget=amount / 100,
            start_date=now,
            end_date=now + duration_days * 86400,
            target_locations=[target_location] if target_location else [],
            images=list(images or []),
            payment_session_id=session.id,
        )
    )
    logger.info(
        "Promotion %s pending payment (session %s)", promotion.id, session.id
    )
    return {"url": session.url, "session_id": session.id, "promotion_id": promotion.id}


def handle_payment_webhook(
    db: DbClient, gateway: PaymentGateway, payload: bytes, signature: str | None
) -> dict:
    """Verify a provider event and apply completed checkouts."""
    if not signature:
        raise PaymentError("No payment signature found")
    event = gateway.construct_event(payload, signature)
    event_type = event.get("type")
    logger.info("Payment event: %s", event_type)

    if event_type == CHECKOUT_COMPLETED:
        session = (event.get("data") or {}).get("object") or {}
        _complete_checkout(db, session.get("id"))
    return {"received": True}


def _complete_checkout(db: DbClient, session_id: Optional[str]) -> None:
    if not session_id:
        raise PaymentError("Checkout session id missing from event")

    campaign = db.find_ad_campaign_by_session(session_id)
    if campaign:
        now = time.time()
        db.update_ad_campaign(
            campaign.id,
            payment_status=PaymentStatus.PAID,
            payment_completed_at=now,
            status=CampaignStatus.PENDING_APPROVAL,
        )
        db.create_notification(
            Notification(
                notification_type="ad_approval_needed",
                content=(
                    f'New advertisement campaign "{campaign.campaign_name}" '
                    "is awaiting approval"
                ),
                sender_name="System",
                sent_at=now,
            )
        )
        logger.info("Campaign %s paid, awaiting approval", campaign.id)
        return

    promotion = db.find_promotion_by_session(session_id)
    if promotion:
        db.update_promotion(
            promotion.id,
            payment_status=PaymentStatus.PAID,
            status=CampaignStatus.ACTIVE,
        )
        logger.info("Promotion %s paid and activated", promotion.id)
        return

    logger.warning("No campaign or promotion found for session %s", session_id)
