"""
Alert fan-out and per-channel notification delivery.

A safety alert is first expanded into target users (``process_alert``), each
target then receives realtime, push, SMS or email deliveries
(``deliver_alert``). Unread alerts can be escalated to SMS later
(``process_escalations``). Every attempt lands in the delivery log.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from neighborlink.db import DbClient, DeliveryLogEntry, Notification, Profile, SafetyAlert
from neighborlink.errors import (
    FeatureDisabledError,
    NotFoundError,
    ValidationError,
    with_retry,
)
from neighborlink.providers import EmailClient, PushClient, SmsClient
from neighborlink.realtime import Broadcaster, user_channel
from shared.constants import NON_CRITICAL_TARGET_LIMIT, SMS_MAX_LENGTH
from shared.types import (
    AlertSeverity,
    DeliveryChannel,
    DeliveryStatus,
    EscalationStatus,
)

logger = logging.getLogger(__name__)


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


@dataclass
class DeliveryResult:
    channel: str
    status: str
    timestamp: float
    error: Optional[str] = None

    def as_dict(self) -> dict:
        data = asdict(self)
        data["timestamp"] = _iso(self.timestamp)
        return data


def _attempt(channel: DeliveryChannel, send) -> DeliveryResult:
    """Run one channel's send, capturing failure instead of raising."""
    try:
        skipped_reason = send()
    except Exception as exc:
        logger.exception("%s delivery failed", channel)
        return DeliveryResult(channel, DeliveryStatus.FAILED, time.time(), str(exc))
    if skipped_reason:
        logger.warning("%s delivery skipped: %s", channel, skipped_reason)
        return DeliveryResult(
            channel, DeliveryStatus.SKIPPED, time.time(), skipped_reason
        )
    return DeliveryResult(channel, DeliveryStatus.SENT, time.time())


def _alert_payload(alert: SafetyAlert) -> dict:
    return {
        "alertId": alert.id,
        "title": alert.title or "Safety Alert",
        "description": alert.description,
        "severity": alert.severity,
        "location": alert.address,
        "timestamp": _iso(time.time()),
        "type": "safety_alert",
    }


def deliver_alert(
    db: DbClient,
    alert_id: str,
    user_id: str,
    channels: Iterable[str],
    priority: int = 3,
    *,
    broadcaster: Broadcaster,
    push_client: Optional[PushClient] = None,
    sms_client: Optional[SmsClient] = None,
    email_client: Optional[EmailClient] = None,
) -> list[DeliveryResult]:
    """
    Deliver one alert to one user over the requested channels.

    SMS is attempted only when the profile has a phone number, email only
    when it has an address. Channels whose provider is not configured are
    logged as skipped.
    """
    alert = db.get_safety_alert(alert_id)
    if not alert:
        raise NotFoundError(f"Alert not found: {alert_id}")
    profile = db.get_profile(user_id)
    if not profile:
        raise NotFoundError(f"User not found: {user_id}")

    try:
        channels = [DeliveryChannel(c) for c in channels]
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    payload = _alert_payload(alert)
    results: list[DeliveryResult] = []

    if DeliveryChannel.WEBSOCKET in channels:

        def send_websocket():
            broadcaster.send(user_channel(user_id), "alert_notification", payload)

        results.append(_attempt(DeliveryChannel.WEBSOCKET, send_websocket))

    if DeliveryChannel.PUSH in channels:

        def send_push():
            if push_client is None:
                return "push provider not configured"
            if not profile.push_subscription:
                return "no_subscription"
            push_client.send_push(
                profile.push_subscription,
                {
                    "title": payload["title"],
                    "body": alert.description or "",
                    "tag": "safety_alert",
                    "requireInteraction": alert.severity == AlertSeverity.CRITICAL,
                    "data": payload,
                },
            )

        results.append(_attempt(DeliveryChannel.PUSH, send_push))

    if DeliveryChannel.SMS in channels and profile.phone:

        def send_sms():
            if sms_client is None:
                return "sms provider not configured"
            sms_client.send_sms(profile.phone, _escalation_text(alert))

        results.append(_attempt(DeliveryChannel.SMS, send_sms))

    if DeliveryChannel.EMAIL in channels and profile.email:

        def send_email():
            if email_client is None:
                return "email provider not configured"
            email_client.send_email(
                profile.email,
                payload["title"],
                f"<p>{alert.description or ''}</p><p>{alert.address or ''}</p>",
            )

        results.append(_attempt(DeliveryChannel.EMAIL, send_email))

    db.add_delivery_logs(
        DeliveryLogEntry(
            alert_id=alert_id,
            user_id=user_id,
            delivery_channel=result.channel,
            delivery_status=result.status,
            sent_at=result.timestamp if result.status == DeliveryStatus.SENT else None,
            failure_reason=result.error,
        )
        for result in results
    )
    db.track_alert_metric(
        alert_id,
        "delivery_attempt",
        user_id=user_id,
        details={
            "channels": [str(c) for c in channels],
            "results": [r.as_dict() for r in results],
            "priority": priority,
        },
    )
    return results


def _target_users(db: DbClient, alert: SafetyAlert) -> list[Profile]:
    creator = db.get_profile(alert.user_id)
    neighborhood = creator.neighborhood if creator else None
    if alert.severity == AlertSeverity.CRITICAL:
        return db.list_neighbors(neighborhood, alert.user_id)
    return db.list_neighbors(neighborhood, alert.user_id, limit=NON_CRITICAL_TARGET_LIMIT)


def process_alert(
    db: DbClient, broadcaster: Broadcaster, alert_id: str, priority: int = 3
) -> int:
    """
    Fan an alert out to its neighborhood. Returns the number of target users.

    Critical alerts reach every neighbor of the creator; other severities are
    capped at a fixed number of recipients.
    """
    alert = db.get_safety_alert(alert_id)
    if not alert:
        raise NotFoundError(f"Alert not found: {alert_id}")
    creator = db.get_profile(alert.user_id)
    targets = _target_users(db, alert)
    logger.info("Found %d target users for alert %s", len(targets), alert_id)

    db.add_delivery_logs(
        DeliveryLogEntry(
            alert_id=alert_id,
            user_id=target.user_id,
            delivery_channel=DeliveryChannel.WEBSOCKET,
            delivery_status=DeliveryStatus.PENDING,
        )
        for target in targets
    )

    event = {
        "alert": asdict(alert),
        "severity": alert.severity,
        "creator": (creator.full_name if creator else None) or "Unknown",
        "timestamp": _iso(time.time()),
    }
    for target in targets:
        try:
            broadcaster.send(user_channel(target.user_id), "new_alert", event)
        except Exception:
            logger.exception("Broadcast to %s failed", target.user_id)

    db.track_alert_metric(
        alert_id,
        "processed",
        details={"targetUsers": len(targets), "priority": priority},
    )
    return len(targets)


def _config_enabled(db: DbClient, key: str) -> bool:
    return bool(db.get_config(key))


def send_push_notification(
    db: DbClient,
    push_client: Optional[PushClient],
    *,
    user_id: str,
    title: str,
    message: str,
    notification_type: str = "notification",
    priority: str = "normal",
    data: dict | None = None,
) -> dict:
    if not user_id or not title or not message:
        raise ValidationError("Missing required fields: userId, title, message")
    if not _config_enabled(db, "push_notifications_enabled"):
        raise FeatureDisabledError("Push notifications are disabled")

    profile = db.get_profile(user_id)
    if not profile or not profile.push_subscription:
        raise FeatureDisabledError(
            "User has no push subscription", status="no_subscription"
        )

    if notification_type == "emergency" and _config_enabled(
        db, "emergency_push_priority"
    ):
        priority = "high"

    now = time.time()
    db.create_notification(
        Notification(
            recipient_id=user_id,
            notification_type=notification_type,
            title=title,
            content=message,
            priority=priority,
            data=data or {},
            delivery_method=DeliveryChannel.PUSH,
            sent_at=now,
        )
    )

    notification = {
        "title": title,
        "body": message,
        "icon": "/icon-192.png",
        "badge": "/badge-72.png",
        "tag": notification_type,
        "requireInteraction": priority == "high",
        "data": {
            **(data or {}),
            "type": notification_type,
            "userId": user_id,
            "timestamp": _iso(now),
        },
    }
    if push_client is None:
        logger.warning("Push provider not configured; notification %s stored only", title)
        delivery = DeliveryStatus.SKIPPED
    else:
        push_client.send_push(profile.push_subscription, notification)
        delivery = DeliveryStatus.SENT

    return {
        "success": True,
        "message": "Push notification sent successfully",
        "recipient": user_id,
        "title": title,
        "type": notification_type,
        "priority": priority,
        "delivery": delivery,
        "sentAt": _iso(now),
    }


def send_email_notification(
    db: DbClient,
    email_client: Optional[EmailClient],
    *,
    to: str,
    subject: str,
    body: str,
    notification_type: str = "notification",
    user_id: str | None = None,
) -> dict:
    if not to or not subject or not body:
        raise ValidationError("Missing required fields: to, subject, body")
    if not _config_enabled(db, "email_enabled"):
        raise FeatureDisabledError("Email notifications are disabled")

    if email_client is None:
        logger.warning("Email provider not configured; skipping email to %s", to)
        delivery = DeliveryStatus.SKIPPED
    else:
        email_client.send_email(to, subject, body)
        delivery = DeliveryStatus.SENT

    now = time.time()
    if user_id:
        db.create_notification(
            Notification(
                recipient_id=user_id,
                notification_type=notification_type,
                title=subject,
                content=body,
                delivery_method=DeliveryChannel.EMAIL,
                sent_at=now,
            )
        )
    return {
        "success": True,
        "message": "Email notification sent successfully",
        "recipient": to,
        "subject": subject,
        "type": notification_type,
        "delivery": delivery,
        "sentAt": _iso(now),
    }


def _escalation_text(alert: Optional[SafetyAlert]) -> str:
    severity = str(alert.severity if alert and alert.severity else "info").upper()
    title = (alert.title if alert else None) or "Safety Alert"
    description = (alert.description if alert else None) or ""
    return f"[{severity}] {title} - {description}"[:SMS_MAX_LENGTH]


def process_escalations(
    db: DbClient,
    sms_client: Optional[SmsClient],
    limit: int = 50,
    now: float | None = None,
    sleep=time.sleep,
) -> dict:
    """Send SMS for due escalations whose alert notification is still unread."""
    now = now if now is not None else time.time()
    results = []

    for escalation in db.list_due_escalations(now, limit):
        notification = db.find_alert_notification(escalation.alert_id, escalation.user_id)
        if notification and notification.is_read:
            db.update_escalation(
                escalation.id, status=EscalationStatus.SKIPPED, processed_at=time.time()
            )
            results.append({"id": escalation.id, "status": "skipped"})
            continue

        profile = db.get_profile(escalation.user_id)
        if not profile or not profile.phone:
            db.update_escalation(
                escalation.id,
                status=EscalationStatus.FAILED,
                processed_at=time.time(),
                last_error="No phone on profile",
            )
            results.append({"id": escalation.id, "status": "failed", "reason": "no_phone"})
            continue

        try:
            if sms_client is None:
                raise RuntimeError("Missing SMS provider configuration")
            text = _escalation_text(db.get_safety_alert(escalation.alert_id))
            sid = with_retry(
                lambda: sms_client.send_sms(profile.phone, text),
                max_retries=2,
                base_delay=0.8,
                sleep=sleep,
            )
        except Exception as exc:
            logger.exception("Escalation %s failed", escalation.id)
            db.update_escalation(
                escalation.id,
                attempts=escalation.attempts + 1,
                last_error=str(exc),
            )
            results.append({"id": escalation.id, "status": "error", "error": str(exc)})
            continue

        sent_at = time.time()
        db.update_escalation(
            escalation.id,
            status=EscalationStatus.SENT,
            processed_at=sent_at,
            attempts=escalation.attempts + 1,
        )
        db.add_delivery_logs(
            [
                DeliveryLogEntry(
                    alert_id=escalation.alert_id,
                    user_id=escalation.user_id,
                    delivery_channel=DeliveryChannel.SMS,
                    delivery_status=DeliveryStatus.SENT,
                    sent_at=sent_at,
                )
            ]
        )
        db.track_alert_metric(
            escalation.alert_id,
            "escalation_delivered",
            user_id=escalation.user_id,
            details={"provider": "twilio", "sid": sid},
        )
        results.append({"id": escalation.id, "status": "sent"})

    return {"processed": len(results), "results": results}


def list_notifications(db: DbClient, user_id: str) -> list[Notification]:
    return db.list_notifications(user_id)


def mark_notification_read(
    db: DbClient, user_id: str, notification_id: str
) -> Notification:
    notification = next(
        (n for n in db.list_notifications(user_id) if n.id == notification_id), None
    )
    if notification is None:
        raise NotFoundError("Notification not found")
    return db.mark_notification_read(notification_id)
