"""
HTTP routes for the NeighborLink API.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from starlette.concurrency import run_in_threadpool

from neighborlink import account, api_keys, emergency, notifications, payments, webhooks
from neighborlink.auth import AuthClient, AuthUser, is_admin, is_moderator
from neighborlink.config import get_settings
from neighborlink.db import DbClient
from neighborlink.dependencies import (
    get_auth_client,
    get_broadcaster,
    get_current_user,
    get_db_client,
    get_email_client,
    get_key_value_store,
    get_payment_gateway,
    get_presence_tracker,
    get_push_client,
    get_queue_client,
    get_sms_client,
    get_storage_client,
)
from neighborlink.errors import AuthorizationError
from neighborlink.offline_cache import KeyValueStore, OfflineCache
from neighborlink.payments import PaymentGateway
from neighborlink.presence import PresenceTracker
from neighborlink.providers import EmailClient, PushClient, SmsClient
from neighborlink.queue import JobQueue
from neighborlink.realtime import Broadcaster
from neighborlink.schemas import (
    AdPaymentRequest,
    ApiAccessRequestIn,
    ApiAccessRequestResponse,
    BusinessPromotionRequest,
    ContactInvitationResponse,
    DeleteAccountRequest,
    DeleteAccountResponse,
    DeliverAlertRequest,
    DeliverAlertResponse,
    EmailNotificationRequest,
    EmergencyAlertRequest,
    EmergencyAlertResponse,
    ExportResponse,
    GenerateApiKeyRequest,
    GenerateApiKeyResponse,
    HeartbeatRequest,
    ListNotificationsResponse,
    NotificationModel,
    NotificationSendResponse,
    OfflineCachePutRequest,
    OfflineCacheUsageResponse,
    PanicStatusRequest,
    PanicStatusResponse,
    PaymentSessionResponse,
    PresenceResponse,
    ProcessAlertRequest,
    ProcessAlertResponse,
    ProcessEscalationsRequest,
    ProcessEscalationsResponse,
    PruneRequest,
    PruneResponse,
    PushNotificationRequest,
    SignUploadResponse,
    WebhookAck,
    WebhookRequest,
)
from neighborlink.storage import StorageClient, ensure_owned, user_media_path

logger = logging.getLogger(__name__)

router = APIRouter()


def _origin(request: Request) -> str:
    return (request.headers.get("origin") or get_settings().site_origin).rstrip("/")


def _require_staff(db: DbClient, user: AuthUser) -> None:
    if not (is_admin(db, user.id) or is_moderator(db, user.id)):
        raise AuthorizationError("Staff access required")


@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/payments/ad-campaign", response_model=PaymentSessionResponse)
def create_ad_payment(
    payload: AdPaymentRequest,
    request: Request,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    return payments.create_ad_payment(
        db,
        gateway,
        user,
        campaign_id=payload.campaign_id,
        amount=payload.amount,
        currency=payload.currency or get_settings().default_currency,
        description=payload.description,
        origin=_origin(request),
    )


@router.post("/payments/business-promotion", response_model=PaymentSessionResponse)
def create_business_promotion_payment(
    payload: BusinessPromotionRequest,
    request: Request,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    return payments.create_business_promotion_payment(
        db,
        gateway,
        user,
        business_id=payload.business_id,
        promotion_type=payload.promotion_type,
        duration_days=payload.duration_days,
        target_location=payload.target_location,
        images=payload.images,
        currency=get_settings().default_currency,
        origin=_origin(request),
    )


@router.post("/payments/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None),
    db: DbClient = Depends(get_db_client),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Provider callback. The raw body is needed for signature verification.
    """
    body = await request.body()
    return await run_in_threadpool(
        payments.handle_payment_webhook, db, gateway, body, stripe_signature
    )


@router.post(
    "/alerts/{alert_id}/process", response_model=ProcessAlertResponse, status_code=202
)
def process_alert(
    alert_id: str,
    payload: ProcessAlertRequest | None = None,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
):
    """
    Enqueue alert fan-out. The worker does the delivery.
    """
    alert = db.get_safety_alert(alert_id)
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    if alert.user_id != user.id:
        _require_staff(db, user)
    priority = payload.priority if payload else 3
    queue.enqueue({"kind": "process_alert", "alert_id": alert_id, "priority": priority})
    return ProcessAlertResponse(alert_id=alert_id, status="queued")


@router.post("/notifications/deliver", response_model=DeliverAlertResponse)
def deliver_alert(
    payload: DeliverAlertRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    push_client: Optional[PushClient] = Depends(get_push_client),
    sms_client: Optional[SmsClient] = Depends(get_sms_client),
    email_client: Optional[EmailClient] = Depends(get_email_client),
):
    _require_staff(db, user)
    results = notifications.deliver_alert(
        db,
        payload.alert_id,
        payload.user_id,
        payload.channels,
        payload.priority,
        broadcaster=broadcaster,
        push_client=push_client,
        sms_client=sms_client,
        email_client=email_client,
    )
    return DeliverAlertResponse(
        success=True,
        alert_id=payload.alert_id,
        user_id=payload.user_id,
        delivery_results=[r.as_dict() for r in results],
    )


@router.post("/notifications/push", response_model=NotificationSendResponse)
def send_push_notification(
    payload: PushNotificationRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    push_client: Optional[PushClient] = Depends(get_push_client),
):
    if payload.user_id != user.id:
        _require_staff(db, user)
    return notifications.send_push_notification(
        db,
        push_client,
        user_id=payload.user_id,
        title=payload.title,
        message=payload.message,
        notification_type=payload.type,
        priority=payload.priority,
        data=payload.data,
    )


@router.post("/notifications/email", response_model=NotificationSendResponse)
def send_email_notification(
    payload: EmailNotificationRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    email_client: Optional[EmailClient] = Depends(get_email_client),
):
    _require_staff(db, user)
    return notifications.send_email_notification(
        db,
        email_client,
        to=payload.to,
        subject=payload.subject,
        body=payload.body,
        notification_type=payload.type,
        user_id=payload.user_id,
    )


@router.get("/notifications", response_model=ListNotificationsResponse)
def list_notifications(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    items = notifications.list_notifications(db, user.id)
    return ListNotificationsResponse(
        notifications=[NotificationModel(**asdict(n)) for n in items],
        unread=sum(1 for n in items if not n.is_read),
    )


@router.post("/notifications/{notification_id}/read", response_model=NotificationModel)
def mark_notification_read(
    notification_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    notification = notifications.mark_notification_read(db, user.id, notification_id)
    return NotificationModel(**asdict(notification))


@router.post("/escalations/process", response_model=ProcessEscalationsResponse)
def process_escalations(
    payload: ProcessEscalationsRequest | None = None,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    sms_client: Optional[SmsClient] = Depends(get_sms_client),
):
    _require_staff(db, user)
    limit = payload.limit if payload else get_settings().escalation_batch_size
    return notifications.process_escalations(db, sms_client, limit=limit)


@router.post("/emergency/alert", response_model=EmergencyAlertResponse)
def trigger_emergency_alert(
    payload: EmergencyAlertRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    sms_client: Optional[SmsClient] = Depends(get_sms_client),
    queue: JobQueue = Depends(get_queue_client),
):
    result = emergency.trigger_emergency_alert(
        db,
        sms_client,
        user,
        panic_alert_id=payload.panic_alert_id,
        situation_type=payload.situation_type,
        location=payload.location.model_dump(),
        user_name=payload.user_name,
    )
    if result.get("safety_alert_id"):
        # Critical community alerts are fanned out like any other alert.
        queue.enqueue(
            {"kind": "process_alert", "alert_id": result["safety_alert_id"], "priority": 1}
        )
    return result


@router.post("/emergency/status", response_model=PanicStatusResponse)
def update_panic_alert_status(
    payload: PanicStatusRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    updated = emergency.update_panic_alert_status(
        db,
        user,
        panic_alert_id=payload.panic_alert_id,
        new_status=payload.new_status,
        update_note=payload.update_note,
    )
    return PanicStatusResponse(
        success=True,
        panic_alert=asdict(updated),
        message=f"Panic alert status updated to {payload.new_status.replace('_', ' ')}",
    )


@router.post(
    "/emergency/contact-requests/{request_id}/notify",
    response_model=ContactInvitationResponse,
)
def notify_contact_invitation(
    request_id: str,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return emergency.notify_contact_invitation(db, user, request_id)


@router.post("/api-keys", response_model=GenerateApiKeyResponse)
def generate_api_key(
    payload: GenerateApiKeyRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
):
    return api_keys.generate_enterprise_api_key(db, user, payload)


@router.post("/api-keys/requests", response_model=ApiAccessRequestResponse, status_code=201)
def submit_access_request(
    payload: ApiAccessRequestIn,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    email_client: Optional[EmailClient] = Depends(get_email_client),
):
    logger.info("API access request from user %s", user.id)
    return api_keys.submit_access_request(
        db, email_client, payload, get_settings().api_team_email
    )


@router.get("/api-keys/verify")
def verify_api_key(
    x_api_key: Optional[str] = Header(default=None),
    db: DbClient = Depends(get_db_client),
):
    record = api_keys.resolve_api_key(db, x_api_key or "")
    if not record:
        raise HTTPException(status_code=401, detail="Invalid or expired API key")
    return {
        "key_id": record.id,
        "key_prefix": record.key_prefix,
        "company_id": record.company_id,
        "environment": record.environment,
        "permissions": record.permissions,
        "rate_limit_per_hour": record.rate_limit_per_hour,
        "rate_limit_per_day": record.rate_limit_per_day,
    }


@router.post("/webhooks")
def process_webhook(
    payload: WebhookRequest,
    x_webhook_signature: Optional[str] = Header(default=None),
    db: DbClient = Depends(get_db_client),
):
    return webhooks.process_webhook(
        db,
        source=payload.source,
        event=payload.event,
        data=payload.data,
        signature=x_webhook_signature or payload.signature,
    )


@router.post("/presence/heartbeat", status_code=204)
def presence_heartbeat(
    payload: HeartbeatRequest,
    user: AuthUser = Depends(get_current_user),
    tracker: PresenceTracker = Depends(get_presence_tracker),
):
    tracker.track(user.id, user_name=payload.user_name, avatar_url=payload.avatar_url)


@router.get("/presence", response_model=PresenceResponse)
def online_users(
    user: AuthUser = Depends(get_current_user),
    tracker: PresenceTracker = Depends(get_presence_tracker),
):
    return PresenceResponse(
        online_users=tracker.online_users(requesting_user_id=user.id),
        status=tracker.status(),
    )


def _offline_cache(
    user: AuthUser = Depends(get_current_user),
    store: KeyValueStore = Depends(get_key_value_store),
) -> OfflineCache:
    return OfflineCache(
        store,
        namespace=user.id,
        capacity_bytes=get_settings().offline_cache_capacity_bytes,
        platform="server",
    )


def _usage_response(cache: OfflineCache) -> OfflineCacheUsageResponse:
    return OfflineCacheUsageResponse(
        **asdict(cache.usage()),
        is_storage_low=cache.is_storage_low(),
        info=cache.storage_info(),
    )


@router.put("/offline-cache/{key:path}", response_model=OfflineCacheUsageResponse)
def put_offline_item(
    key: str,
    payload: OfflineCachePutRequest,
    cache: OfflineCache = Depends(_offline_cache),
):
    cache.put(key, payload.value)
    return _usage_response(cache)


@router.get("/offline-cache", response_model=OfflineCacheUsageResponse)
def offline_usage(cache: OfflineCache = Depends(_offline_cache)):
    return _usage_response(cache)


@router.get("/offline-cache/export")
def export_offline_cache(cache: OfflineCache = Depends(_offline_cache)):
    return cache.export()


@router.post("/offline-cache/prune", response_model=PruneResponse)
def prune_offline_cache(
    payload: PruneRequest | None = None,
    cache: OfflineCache = Depends(_offline_cache),
):
    target = payload.target_percentage if payload else 80
    freed = cache.prune(target)
    return PruneResponse(bytes_freed=freed, usage=_usage_response(cache))


@router.delete("/offline-cache")
def clear_offline_cache(
    include_critical: bool = Query(False),
    cache: OfflineCache = Depends(_offline_cache),
):
    return {"removed": cache.clear(include_critical=include_critical)}


@router.get("/media/sign-upload", response_model=SignUploadResponse)
def sign_upload(
    filename: str = Query(..., max_length=255),
    content_type: str = Query("application/octet-stream"),
    folder: str = Query("media", max_length=64),
    user: AuthUser = Depends(get_current_user),
    storage: StorageClient = Depends(get_storage_client),
):
    path = user_media_path(user.id, filename, folder)
    return SignUploadResponse(
        url=storage.presign_put(path, content_type=content_type), path=path
    )


@router.delete("/media", status_code=204)
def delete_media(
    path: str = Query(...),
    user: AuthUser = Depends(get_current_user),
    storage: StorageClient = Depends(get_storage_client),
):
    storage.delete(ensure_owned(user.id, path))


@router.get("/account/export", response_model=ExportResponse)
def export_account(
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    return account.export_user_data(db, storage, user.id)


@router.delete("/account", response_model=DeleteAccountResponse)
def delete_account(
    payload: DeleteAccountRequest,
    user: AuthUser = Depends(get_current_user),
    db: DbClient = Depends(get_db_client),
    auth_client: AuthClient = Depends(get_auth_client),
):
    return account.delete_user_account(db, auth_client, user, payload.confirmation)
