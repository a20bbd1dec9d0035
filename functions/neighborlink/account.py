"""
Account data export and account deletion.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict
from datetime import datetime, timezone

from neighborlink.auth import AuthClient, AuthUser
from neighborlink.db import ActivityLog, DbClient
from neighborlink.errors import NotFoundError, ValidationError
from neighborlink.storage import StorageClient

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "DELETE_MY_ACCOUNT"


def collect_user_data(db: DbClient, user_id: str) -> dict:
    profile = db.get_profile(user_id)
    if not profile:
        raise NotFoundError("Profile not found")
    preferences = db.get_emergency_preferences(user_id)
    return {
        "exportDate": datetime.now(timezone.utc).isoformat(),
        "userId": user_id,
        "profile": asdict(profile),
        "emergencyContacts": [asdict(c) for c in db.list_emergency_contacts(user_id)],
        "emergencyPreferences": asdict(preferences) if preferences else None,
        "notifications": [asdict(n) for n in db.list_notifications(user_id)],
        "adCampaigns": [asdict(c) for c in db.list_ad_campaigns(user_id)],
        "businesses": [asdict(b) for b in db.list_businesses(user_id)],
    }


def export_user_data(
    db: DbClient, storage: StorageClient, user_id: str, expires_in: int = 3600
) -> dict:
    """Write the user's data to storage and return a short-lived download URL."""
    data = collect_user_data(db, user_id)
    path = f"exports/{user_id}/{int(time.time())}.json"
    storage.upload_json(path, data)
    db.log_activity(
        ActivityLog(
            user_id=user_id,
            action_type="data_export",
            resource_type="user_data",
            resource_id=user_id,
            details={"path": path},
        )
    )
    logger.info("Data export completed for user %s", user_id)
    return {
        "success": True,
        "path": path,
        "url": storage.presign_get(path, expires_in=expires_in),
        "data": data,
    }


def delete_user_account(
    db: DbClient, auth_client: AuthClient, user: AuthUser, confirmation: str | None
) -> dict:
    """
    Permanently delete the caller's account.

    The caller must send the literal confirmation phrase. An activity entry is
    written first so the deletion stays traceable, then the user's rows are
    removed and finally the auth user itself.
    """
    if confirmation != DELETE_CONFIRMATION:
        raise ValidationError(
            f"Invalid confirmation. Please type {DELETE_CONFIRMATION} to confirm."
        )
    logger.info("Processing account deletion for user %s", user.id)

    db.log_activity(
        ActivityLog(
            user_id=user.id,
            action_type="account_deletion_initiated",
            resource_type="user",
            resource_id=user.id,
            details={"email": user.email, "timestamp": datetime.now(timezone.utc).isoformat()},
        )
    )
    removed = db.delete_user_data(user.id)
    auth_client.delete_user(user.id)

    logger.info("Account deleted for user %s (%s rows)", user.id, sum(removed.values()))
    return {
        "success": True,
        "message": "Your account has been permanently deleted.",
        "removed": removed,
    }
