"""
Inbound integration webhooks: verify, log, dispatch by source, record the result.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable

from neighborlink.db import DbClient, WebhookLog
from neighborlink.errors import AuthenticationError, FeatureDisabledError, ValidationError
from shared.types import WebhookStatus

logger = logging.getLogger(__name__)


def canonical_payload(data: Any) -> bytes:
    """The bytes a sender signs: compact JSON with sorted keys."""
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")


def sign_payload(secret: str, data: Any) -> str:
    return hmac.new(secret.encode("utf-8"), canonical_payload(data), hashlib.sha256).hexdigest()


def verify_signature(secret: str, data: Any, signature: str) -> bool:
    return hmac.compare_digest(sign_payload(secret, data), signature.strip().lower())


def _process_stripe(event: str, data: dict) -> dict:
    if event == "payment_intent.succeeded":
        logger.info("Payment succeeded: %s", data.get("id"))
        return {"success": True, "message": "Payment processed successfully"}
    if event == "payment_intent.payment_failed":
        logger.info("Payment failed: %s", data.get("id"))
        return {"success": True, "message": "Payment failure handled"}
    logger.info("Unhandled Stripe event: %s", event)
    return {"success": True, "message": "Event acknowledged but not processed"}


def _process_payment(event: str, data: dict) -> dict:
    logger.info("Processing payment webhook: %s", event)
    return {"success": True, "message": "Payment webhook processed"}


def _process_external_api(event: str, data: dict) -> dict:
    logger.info("Processing external API webhook: %s", event)
    return {"success": True, "message": "External API webhook processed"}


HANDLERS: dict[str, Callable[[str, dict], dict]] = {
    "stripe": _process_stripe,
    "payment": _process_payment,
    "external_api": _process_external_api,
}


def process_webhook(
    db: DbClient,
    *,
    source: str,
    event: str,
    data: dict | None,
    signature: str | None = None,
) -> dict:
    if not source or not event:
        raise ValidationError("Missing required fields: source, event")
    if not db.get_config("webhooks_enabled"):
        raise FeatureDisabledError("Webhooks are disabled")

    data = data or {}
    logger.info("Webhook received: source=%s event=%s keys=%s", source, event, list(data))

    secret = db.get_config("webhook_secret")
    if secret:
        if not signature:
            logger.warning("Rejected webhook from %s: missing signature", source)
            raise AuthenticationError("Missing webhook signature")
        if not verify_signature(str(secret), data, signature):
            logger.warning("Rejected webhook from %s: bad signature", source)
            raise AuthenticationError("Invalid webhook signature")

    log = db.create_webhook_log(
        WebhookLog(source=source, event_type=event, payload=data, signature=signature)
    )

    handler = HANDLERS.get(source)
    try:
        if handler is None:
            logger.info("Unknown webhook source: %s", source)
            result = {"success": True, "message": "Webhook received but not processed"}
        else:
            result = handler(event, data)
    except Exception as exc:
        db.update_webhook_log(
            log.id,
            status=WebhookStatus.FAILED,
            processing_result={"success": False, "error": str(exc)},
        )
        raise

    db.update_webhook_log(
        log.id,
        status=WebhookStatus.PROCESSED if result.get("success") else WebhookStatus.FAILED,
        processing_result=result,
    )
    return {
        "success": True,
        "message": "Webhook processed successfully",
        "source": source,
        "event": event,
        "log_id": log.id,
        "processedAt": datetime.now(timezone.utc).isoformat(),
        "result": result,
    }
