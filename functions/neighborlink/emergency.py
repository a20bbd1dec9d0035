"""
Panic button handling: notify a user's emergency contacts, optionally raise a
public alert, and track the panic alert's status afterwards.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from neighborlink.auth import AuthUser, is_moderator
from neighborlink.db import (
    AlertResponse,
    DbClient,
    EmergencyContact,
    EmergencyContactRequest,
    Notification,
    PanicAlert,
    PublicEmergencyAlert,
    SafetyAlert,
)
from neighborlink.errors import AuthorizationError, NotFoundError, ValidationError
from neighborlink.providers import SmsClient
from shared.constants import PUBLIC_ALERT_RADIUS_KM, SITUATION_LABELS
from shared.types import AlertSeverity, ContactMethod, PanicStatus

logger = logging.getLogger(__name__)

# Safety alerts raised alongside a panic alert share its creation time.
SAFETY_ALERT_MATCH_WINDOW_SECONDS = 1.0


def situation_label(situation_type: str) -> str:
    return SITUATION_LABELS.get(situation_type, "Emergency")


def build_alert_message(user_name: str, label: str, address: str | None) -> str:
    sent_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    return (
        "🚨 EMERGENCY ALERT 🚨\n\n"
        f"{user_name} needs help!\n\n"
        f"Situation: {label}\n"
        f"Location: {address or 'Unknown'}\n"
        f"Time: {sent_at}\n\n"
        "This is an automated emergency alert. "
        f"Please check on {user_name} immediately or contact emergency services if needed."
    )


def _send_to_contact(
    db: DbClient,
    sms_client: Optional[SmsClient],
    contact: EmergencyContact,
    method: str,
    *,
    panic_alert_id: str,
    message: str,
    user_name: str,
    label: str,
) -> None:
    if method == ContactMethod.IN_APP:
        if not contact.contact_user_id:
            logger.info("Contact %s has no account; skipping in-app alert", contact.id)
            return
        db.create_notification(
            Notification(
                notification_type="emergency_alert",
                recipient_id=contact.contact_user_id,
                panic_alert_id=panic_alert_id,
                title=f"{user_name} needs help",
                content=message,
                priority="high",
                delivery_method=ContactMethod.IN_APP,
                sent_at=time.time(),
            )
        )
        return

    if sms_client is None:
        logger.warning("SMS provider not configured; skipping %s to contact", method)
        return
    if method == ContactMethod.SMS:
        sms_client.send_sms(contact.phone_number, message)
    elif method == ContactMethod.WHATSAPP:
        sms_client.send_whatsapp(contact.phone_number, message)
    elif method == ContactMethod.PHONE_CALL:
        sms_client.start_call(
            contact.phone_number,
            f"Emergency alert for {user_name}. Situation: {label}. "
            "Please check immediately or call local emergency services.",
        )
    else:
        logger.warning("Unknown contact method %s", method)


def _notify_contact(
    db: DbClient,
    sms_client: Optional[SmsClient],
    contact: EmergencyContact,
    **context,
) -> int:
    """Try every preferred method for one contact; returns how many failed."""
    failed = 0
    for method in contact.preferred_methods or [ContactMethod.IN_APP]:
        try:
            _send_to_contact(db, sms_client, contact, method, **context)
        except Exception:
            failed += 1
            logger.exception("Failed to alert emergency contact %s via %s", contact.id, method)
    return failed


def trigger_emergency_alert(
    db: DbClient,
    sms_client: Optional[SmsClient],
    user: AuthUser,
    *,
    panic_alert_id: str,
    situation_type: str,
    location: dict,
    user_name: str,
) -> dict:
    """
    Fan a panic alert out to the user's emergency contacts.

    Each contact method is tried on its own; a failure is logged and does not
    stop the remaining methods or contacts.
    When the user opted in, a public alert and a critical community safety
    alert are also recorded.
    """
    if not panic_alert_id or not situation_type:
        raise ValidationError("Missing required fields: panic_alert_id, situation_type")
    logger.info("Processing emergency alert %s for user %s", panic_alert_id, user.id)

    label = situation_label(situation_type)
    address = location.get("address")
    message = build_alert_message(user_name, label, address)

    contacts = db.list_emergency_contacts(user.id)
    failures = 0
    for contact in contacts:
        if _notify_contact(
            db,
            sms_client,
            contact,
            panic_alert_id=panic_alert_id,
            message=message,
            user_name=user_name,
            label=label,
        ):
            failures += 1

    result = {
        "success": True,
        "message": "Emergency alerts sent successfully",
        "contacts_notified": len(contacts),
        "contacts_failed": failures,
    }

    preferences = db.get_emergency_preferences(user.id)
    if preferences and preferences.auto_alert_public:
        public_alert = db.create_public_alert(
            PublicEmergencyAlert(
                panic_alert_id=panic_alert_id,
                user_id=user.id,
                situation_type=situation_type,
                latitude=location.get("latitude"),
                longitude=location.get("longitude"),
                address=address if preferences.share_location_with_public else None,
                radius_km=PUBLIC_ALERT_RADIUS_KM,
            )
        )
        panic_alert = db.get_panic_alert(panic_alert_id)
        safety_alert = db.create_safety_alert(
            SafetyAlert(
                user_id=user.id,
                title="Active Emergency in Area",
                description=(
                    f"There is an active {label.lower()} situation in your "
                    "neighborhood. Please stay alert and avoid the area if possible."
                ),
                alert_type="other",
                severity=AlertSeverity.CRITICAL,
                latitude=location.get("latitude"),
                longitude=location.get("longitude"),
                address=address,
                created_at=panic_alert.created_at if panic_alert else time.time(),
            )
        )
        result["public_alert_id"] = public_alert.id
        result["safety_alert_id"] = safety_alert.id
        logger.info("Public alert %s raised for %s", public_alert.id, panic_alert_id)

    return result


def _is_emergency_contact_of(db: DbClient, user_id: str, creator_id: str) -> bool:
    profile = db.get_profile(user_id)
    if not profile or not profile.phone:
        return False
    return any(
        contact.phone_number == profile.phone
        for contact in db.list_emergency_contacts(creator_id)
    )


def _matching_safety_alerts(db: DbClient, panic_alert: PanicAlert) -> list[SafetyAlert]:
    return db.find_safety_alerts(
        panic_alert.user_id,
        AlertSeverity.CRITICAL,
        panic_alert.created_at - SAFETY_ALERT_MATCH_WINDOW_SECONDS,
        panic_alert.created_at + SAFETY_ALERT_MATCH_WINDOW_SECONDS,
    )


def update_panic_alert_status(
    db: DbClient,
    user: AuthUser,
    *,
    panic_alert_id: str,
    new_status: str,
    update_note: str | None = None,
) -> PanicAlert:
    """Change a panic alert's status and mirror it onto the matching safety alerts."""
    try:
        status = PanicStatus(new_status)
    except ValueError as exc:
        raise ValidationError(f"Invalid status: {new_status}") from exc

    panic_alert = db.get_panic_alert(panic_alert_id)
    if not panic_alert:
        raise NotFoundError("Panic alert not found")

    is_creator = panic_alert.user_id == user.id
    allowed = (
        is_creator
        or is_moderator(db, user.id)
        or _is_emergency_contact_of(db, user.id, panic_alert.user_id)
    )
    if not allowed:
        raise AuthorizationError(
            "Only the alert creator, emergency contacts, or moderators can update status"
        )

    now = time.time()
    if status == PanicStatus.RESOLVED:
        updated = db.update_panic_alert(
            panic_alert_id, is_resolved=True, resolved_at=now, resolved_by=user.id
        )
    else:
        updated = db.update_panic_alert(
            panic_alert_id, is_resolved=False, resolved_at=None, resolved_by=None
        )

    safety_alerts = _matching_safety_alerts(db, panic_alert)
    for safety_alert in safety_alerts:
        changes = {"status": status}
        if status == PanicStatus.RESOLVED:
            changes.update(verified_at=now, verified_by=user.id)
        try:
            db.update_safety_alert(safety_alert.id, **changes)
        except Exception:
            logger.exception("Failed to update safety alert %s", safety_alert.id)

    if update_note and safety_alerts:
        profile = db.get_profile(user.id)
        name = (profile.full_name if profile else None) or "User"
        db.add_alert_response(
            AlertResponse(
                alert_id=safety_alerts[0].id,
                user_id=user.id,
                response_type="status_update",
                comment=(
                    f"Status updated to {status.replace('_', ' ')} by {name}: {update_note}"
                ),
            )
        )

    logger.info("Panic alert %s updated to %s", panic_alert_id, status)
    return updated


def notify_contact_invitation(db: DbClient, user: AuthUser, request_id: str) -> dict:
    """
    Tell a user that someone wants to add them as an emergency contact.

    Runs once per request: the request is flagged ``notification_sent`` after
    the in-app notification is written. Requests whose recipient has no
    account yet are left untouched so a later call can deliver them.
    """
    request: EmergencyContactRequest | None = db.get_contact_request(request_id)
    if not request:
        raise NotFoundError("Contact request not found")
    if request.sender_id != user.id and not is_moderator(db, user.id):
        raise AuthorizationError("Only the sender can send this invitation")

    if request.notification_sent:
        return {"success": True, "message": "Notification already sent"}
    if not request.recipient_id:
        logger.info("No recipient found for contact request %s", request.id)
        return {"success": False, "message": "No recipient found"}

    sender = db.get_profile(request.sender_id)
    if not sender:
        raise NotFoundError("Failed to fetch sender information")

    notification = db.create_notification(
        Notification(
            notification_type="contact_request",
            recipient_id=request.recipient_id,
            sender_name=sender.full_name,
            sender_phone=sender.phone,
            content=f"{sender.full_name} wants to add you as an emergency contact",
            request_id=request.id,
            sent_at=time.time(),
        )
    )
    db.update_contact_request(request.id, notification_sent=True)
    return {
        "success": True,
        "message": "Emergency contact invitation notification created",
        "notification_id": notification.id,
    }
