"""
Authentication against the Backend-as-a-Service user endpoint, plus role checks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import requests

from neighborlink.db import DbClient
from neighborlink.errors import ExternalServiceError
from shared.constants import ADMIN_ROLES, MODERATION_PERMISSIONS, MODERATOR_ROLES

logger = logging.getLogger(__name__)


@dataclass
class AuthUser:
    id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    user_metadata: dict = field(default_factory=dict)


class AuthClient(Protocol):
    def get_user(self, token: str) -> Optional[AuthUser]:
        ...

    def delete_user(self, user_id: str) -> None:
        ...


@dataclass
class InMemoryAuthClient:
    """Token to user map for development and tests."""

    users: dict = field(default_factory=dict)
    deleted: list = field(default_factory=list)

    def register(self, token: str, user: AuthUser) -> None:
        self.users[token] = user

    def get_user(self, token: str) -> Optional[AuthUser]:
        return self.users.get(token)

    def delete_user(self, user_id: str) -> None:
        self.deleted.append(user_id)
        for token in [t for t, user in self.users.items() if user.id == user_id]:
            del self.users[token]


@dataclass
class BaasAuthClient:
    """Resolves bearer tokens through the BaaS auth REST endpoint."""

    base_url: str
    anon_key: str
    service_role_key: str = ""
    timeout: float = 10.0

    def get_user(self, token: str) -> Optional[AuthUser]:
        response = requests.get(
            f"{self.base_url.rstrip('/')}/auth/v1/user",
            headers={"Authorization": f"Bearer {token}", "apikey": self.anon_key},
            timeout=self.timeout,
        )
        if response.status_code != 200:
            logger.info("Auth lookup rejected with status %s", response.status_code)
            return None
        body = response.json()
        return AuthUser(
            id=body["id"],
            email=body.get("email"),
            phone=body.get("phone"),
            user_metadata=body.get("user_metadata") or {},
        )

    def delete_user(self, user_id: str) -> None:
        """Remove the auth user through the admin endpoint (service role)."""
        response = requests.delete(
            f"{self.base_url.rstrip('/')}/auth/v1/admin/users/{user_id}",
            headers={
                "Authorization": f"Bearer {self.service_role_key}",
                "apikey": self.service_role_key,
            },
            timeout=self.timeout,
        )
        if not response.ok:
            logger.error("Auth user deletion failed with status %s", response.status_code)
            raise ExternalServiceError(f"Failed to delete account: {response.text}")


def bearer_token(authorization: str | None) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def is_admin(db: DbClient, user_id: str) -> bool:
    return any(role in ADMIN_ROLES for role in db.get_roles(user_id))


def is_moderator(db: DbClient, user_id: str) -> bool:
    if any(role in MODERATOR_ROLES for role in db.get_roles(user_id)):
        return True
    return any(
        db.has_staff_permission(user_id, permission, "write")
        for permission in MODERATION_PERMISSIONS
    )
