"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header

from neighborlink.auth import AuthClient, AuthUser, BaasAuthClient, InMemoryAuthClient, bearer_token
from neighborlink.config import get_settings
from neighborlink.db import DbClient, InMemoryDbClient, PostgresDbClient
from neighborlink.errors import AuthenticationError
from neighborlink.offline_cache import (
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
)
from neighborlink.payments import InMemoryPaymentGateway, PaymentGateway, StripePaymentGateway
from neighborlink.presence import (
    InMemoryPresenceStore,
    PresenceTracker,
    RedisPresenceStore,
)
from neighborlink.providers import (
    EmailClient,
    FcmPushClient,
    InMemoryEmailClient,
    InMemoryPushClient,
    InMemorySmsClient,
    PushClient,
    ResendEmailClient,
    SmsClient,
    TwilioClient,
)
from neighborlink.queue import InMemoryJobQueue, JobQueue, RedisJobQueue
from neighborlink.realtime import Broadcaster, InMemoryBroadcaster, RedisBroadcaster
from neighborlink.storage import InMemoryStorageClient, S3StorageClient, StorageClient

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_queue_client: JobQueue | None = None
_payment_gateway: PaymentGateway | None = None
_auth_client: AuthClient | None = None
_sms_client: SmsClient | None = None
_email_client: EmailClient | None = None
_push_client: PushClient | None = None
_broadcaster: Broadcaster | None = None
_presence_tracker: PresenceTracker | None = None
_key_value_store: KeyValueStore | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            region=settings.storage_region or "",
            endpoint=settings.storage_endpoint,
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return _storage_client


def get_queue_client() -> JobQueue:
    """
    Return a singleton queue client for dispatching jobs to workers.
    """
    global _queue_client
    if _queue_client:
        return _queue_client

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _queue_client = RedisJobQueue(
            url=settings.redis_url,
            queue_key=settings.redis_queue_key,
        )
    else:
        _queue_client = InMemoryJobQueue()
    return _queue_client


def get_payment_gateway() -> PaymentGateway:
    global _payment_gateway
    if _payment_gateway:
        return _payment_gateway

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.stripe_secret_key:
        if not settings.use_in_memory_backends:
            logger.warning("Stripe secret key not configured; using in-memory payments")
        _payment_gateway = InMemoryPaymentGateway()
    else:
        _payment_gateway = StripePaymentGateway(
            api_key=settings.stripe_secret_key,
            webhook_secret=settings.stripe_webhook_secret or "",
            api_version=settings.stripe_api_version,
        )
    return _payment_gateway


def get_auth_client() -> AuthClient:
    global _auth_client
    if _auth_client:
        return _auth_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.baas_url:
        _auth_client = InMemoryAuthClient()
    else:
        _auth_client = BaasAuthClient(
            base_url=settings.baas_url,
            anon_key=settings.baas_anon_key or "",
            service_role_key=settings.baas_service_role_key or "",
            timeout=settings.provider_timeout_seconds,
        )
    return _auth_client


def get_sms_client() -> Optional[SmsClient]:
    """
    Return the SMS/voice client, or None when Twilio is not configured.
    """
    global _sms_client
    if _sms_client:
        return _sms_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _sms_client = InMemorySmsClient()
    elif (
        settings.twilio_account_sid
        and settings.twilio_auth_token
        and settings.twilio_from_number
    ):
        _sms_client = TwilioClient(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_from_number,
            timeout=settings.provider_timeout_seconds,
        )
    return _sms_client


def get_email_client() -> Optional[EmailClient]:
    global _email_client
    if _email_client:
        return _email_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _email_client = InMemoryEmailClient()
    elif settings.resend_api_key:
        _email_client = ResendEmailClient(
            api_key=settings.resend_api_key,
            sender=settings.email_from,
            timeout=settings.provider_timeout_seconds,
        )
    return _email_client


def get_push_client() -> Optional[PushClient]:
    global _push_client
    if _push_client:
        return _push_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _push_client = InMemoryPushClient()
    elif settings.fcm_server_key:
        _push_client = FcmPushClient(
            server_key=settings.fcm_server_key,
            timeout=settings.provider_timeout_seconds,
        )
    return _push_client


def get_broadcaster() -> Broadcaster:
    global _broadcaster
    if _broadcaster:
        return _broadcaster

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _broadcaster = RedisBroadcaster(url=settings.redis_url)
    else:
        _broadcaster = InMemoryBroadcaster()
    return _broadcaster


def get_presence_tracker() -> PresenceTracker:
    global _presence_tracker
    if _presence_tracker:
        return _presence_tracker

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        store = RedisPresenceStore(url=settings.redis_url)
    else:
        store = InMemoryPresenceStore()
    _presence_tracker = PresenceTracker(
        store=store,
        db=get_db_client(),
        window_seconds=settings.presence_window_seconds,
    )
    return _presence_tracker


def get_key_value_store() -> KeyValueStore:
    global _key_value_store
    if _key_value_store:
        return _key_value_store

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _key_value_store = RedisKeyValueStore(url=settings.redis_url)
    else:
        _key_value_store = InMemoryKeyValueStore()
    return _key_value_store


def get_current_user(
    authorization: str | None = Header(default=None),
    auth_client: AuthClient = Depends(get_auth_client),
) -> AuthUser:
    """Resolve the bearer token on the request to a user."""
    if not authorization:
        raise AuthenticationError("No authorization header provided")
    token = bearer_token(authorization)
    if not token:
        raise AuthenticationError("Invalid authorization header")
    user = auth_client.get_user(token)
    if not user:
        raise AuthenticationError("User not authenticated")
    return user
