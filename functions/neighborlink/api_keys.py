"""
Enterprise API keys. Only a SHA-256 hash and a short display prefix are
stored; the full key is returned exactly once, at generation time.
"""

from __future__ import annotations

import hashlib
import html
import logging
import secrets
import time
from typing import Optional

from neighborlink.auth import AuthUser, is_admin
from neighborlink.db import ActivityLog, ApiAccessRequest, ApiKeyRecord, Company, DbClient
from neighborlink.errors import AuthorizationError, ValidationError
from neighborlink.providers import EmailClient
from neighborlink.schemas import ApiAccessRequestIn, GenerateApiKeyRequest
from shared.constants import (
    API_KEY_PREFIX,
    API_KEY_PREFIX_LENGTH,
    API_REQUEST_TYPE_LABELS,
    DEFAULT_RATE_LIMIT_PER_DAY,
    DEFAULT_RATE_LIMIT_PER_HOUR,
)
from shared.types import ApiEnvironment

logger = logging.getLogger(__name__)


def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def new_api_key(environment: str) -> str:
    return f"{API_KEY_PREFIX}_{environment}_{secrets.token_hex(32)}"


def _find_or_create_company(db: DbClient, request: GenerateApiKeyRequest) -> Company:
    company = db.find_company_by_name(request.company_name)
    if company:
        logger.info("Found existing company: %s", company.id)
        return company
    company = db.create_company(
        Company(
            name=request.company_name,
            domain=request.company_domain,
            billing_email=request.billing_email,
            technical_contact_email=request.technical_contact_email,
            industry=request.industry,
            size=request.company_size,
            website=request.website,
            plan_type="free",
        )
    )
    logger.info("Created new company: %s", company.id)
    return company


def generate_enterprise_api_key(
    db: DbClient, user: AuthUser, request: GenerateApiKeyRequest
) -> dict:
    if not is_admin(db, user.id):
        raise AuthorizationError("Unauthorized: Admin access required")
    if not (
        request.company_name and request.billing_email and request.technical_contact_email
    ):
        raise ValidationError(
            "Missing required fields: company_name, billing_email, technical_contact_email"
        )
    if not request.key_name or not request.permissions:
        raise ValidationError("Missing required fields: key_name, environment, permissions")
    try:
        environment = ApiEnvironment(request.environment)
    except ValueError as exc:
        raise ValidationError(f"Invalid environment: {request.environment}") from exc

    company = _find_or_create_company(db, request)

    full_key = new_api_key(environment)
    prefix = full_key[:API_KEY_PREFIX_LENGTH]
    logger.info("Generated API key with prefix %s...", prefix)

    api_key = db.create_api_key(
        ApiKeyRecord(
            key_name=request.key_name,
            key_prefix=prefix,
            key_hash=hash_api_key(full_key),
            company_id=company.id,
            created_by=user.id,
            environment=environment,
            permissions=list(request.permissions),
            rate_limit_per_hour=request.rate_limit_per_hour or DEFAULT_RATE_LIMIT_PER_HOUR,
            rate_limit_per_day=request.rate_limit_per_day or DEFAULT_RATE_LIMIT_PER_DAY,
            request_id=request.request_id,
            expires_at=request.expires_at,
        )
    )

    if request.request_id:
        updated = db.update_access_request(
            request.request_id,
            status="resolved",
            company_id=company.id,
            api_key_id=api_key.id,
            resolved_at=time.time(),
        )
        if updated is None:
            logger.warning("API access request %s not found", request.request_id)

    db.log_activity(
        ActivityLog(
            user_id=user.id,
            action_type="api_key_generated",
            resource_type="enterprise_api_key",
            resource_id=api_key.id,
            details={
                "company_name": request.company_name,
                "key_name": request.key_name,
                "environment": str(environment),
                "permissions": list(request.permissions),
            },
        )
    )

    return {
        "success": True,
        "api_key": full_key,
        "key_id": api_key.id,
        "key_prefix": prefix,
        "company_id": company.id,
        "message": (
            "API key generated successfully. "
            "Save this key now - it will never be shown again!"
        ),
    }


def resolve_api_key(db: DbClient, raw_key: str, now: float | None = None) -> Optional[ApiKeyRecord]:
    """Return the active, unexpired key matching ``raw_key``."""
    if not raw_key or not raw_key.startswith(f"{API_KEY_PREFIX}_"):
        return None
    record = db.find_api_key_by_hash(hash_api_key(raw_key))
    if not record or not record.is_active:
        return None
    now = now if now is not None else time.time()
    if record.expires_at is not None and record.expires_at <= now:
        return None
    return record


def _access_request_email(request: ApiAccessRequest, label: str) -> str:
    section = '<p><strong>{}</strong><br>{}</p>'
    return "".join(
        [
            "<h1>New API Access Request</h1>",
            f"<p><em>{html.escape(label)}</em></p>",
            section.format("Company", html.escape(request.company_name)),
            section.format("Contact Name", html.escape(request.contact_name or "")),
            section.format(
                "Email Address",
                f'<a href="mailto:{html.escape(request.contact_email)}">'
                f"{html.escape(request.contact_email)}</a>",
            ),
            section.format("Message", html.escape(request.message or "")),
            f"<p>Request ID: {request.id}</p>",
            "<p>Please respond to this request within 24-48 hours.</p>",
        ]
    )


def submit_access_request(
    db: DbClient,
    email_client: Optional[EmailClient],
    payload: ApiAccessRequestIn,
    team_email: str,
) -> dict:
    """Record an API access request and email the API team about it."""
    if not all(
        value.strip()
        for value in (
            payload.name,
            payload.email,
            payload.company,
            payload.request_type,
            payload.message,
        )
    ):
        raise ValidationError("Missing required fields")

    request = db.create_access_request(
        ApiAccessRequest(
            company_name=payload.company,
            contact_email=payload.email,
            contact_name=payload.name,
            request_type=payload.request_type,
            message=payload.message,
        )
    )
    label = API_REQUEST_TYPE_LABELS.get(payload.request_type, payload.request_type)

    email_id = None
    if email_client is None:
        logger.warning("Email provider not configured; access request %s not mailed", request.id)
    else:
        email_id = email_client.send_email(
            team_email,
            f"New API Request - {label} from {payload.company}",
            _access_request_email(request, label),
            reply_to=payload.email,
        )
        logger.info("API access request %s sent to %s", request.id, team_email)
    return {"success": True, "request_id": request.id, "email_id": email_id}
