"""
Online presence. Heartbeats go to a fast store (Redis); when the store is
unreachable the tracker falls back to polling profile ``last_seen_at`` values.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

from neighborlink.db import DbClient

logger = logging.getLogger(__name__)

STORE_ERRORS = (redis_exceptions.RedisError, ConnectionError, TimeoutError)


class PresenceStore(Protocol):
    def heartbeat(self, user_id: str, at: float, metadata: dict) -> None:
        ...

    def online(self, since: float) -> dict[str, dict]:
        ...


@dataclass
class InMemoryPresenceStore:
    last_seen: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)

    def heartbeat(self, user_id: str, at: float, metadata: dict) -> None:
        self.last_seen[user_id] = at
        self.metadata[user_id] = metadata

    def online(self, since: float) -> dict[str, dict]:
        return {
            user_id: self.metadata.get(user_id, {})
            for user_id, seen in self.last_seen.items()
            if seen >= since
        }


@dataclass
class RedisPresenceStore:
    """Sorted set of user id -> last heartbeat, plus a hash of presence metadata."""

    url: str
    key: str = "neighborlink:presence"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    @property
    def meta_key(self) -> str:
        return f"{self.key}:meta"

    def heartbeat(self, user_id: str, at: float, metadata: dict) -> None:
        pipe = self.client.pipeline()
        pipe.zadd(self.key, {user_id: at})
        pipe.hset(self.meta_key, user_id, json.dumps(metadata))
        pipe.execute()

    def online(self, since: float) -> dict[str, dict]:
        self.client.zremrangebyscore(self.key, "-inf", f"({since}")
        user_ids = [
            raw.decode("utf-8") for raw in self.client.zrangebyscore(self.key, since, "+inf")
        ]
        if not user_ids:
            return {}
        raw_meta = self.client.hmget(self.meta_key, user_ids)
        return {
            user_id: json.loads(meta) if meta else {}
            for user_id, meta in zip(user_ids, raw_meta)
        }


class PresenceTracker:
    def __init__(
        self,
        store: PresenceStore,
        db: DbClient,
        window_seconds: int = 120,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.db = db
        self.window_seconds = window_seconds
        self.clock = clock
        self.fallback_mode = False
        self.attempts = 0
        self.failures = 0
        self.last_success: Optional[float] = None
        self._lock = threading.Lock()

    def _set_fallback(self, value: bool) -> None:
        with self._lock:
            if self.fallback_mode == value:
                return
            self.fallback_mode = value
        if value:
            logger.info("Presence: realtime store unavailable, using polling fallback")
        else:
            logger.info("Presence: realtime store restored")

    def track(
        self,
        user_id: str,
        user_name: str | None = None,
        avatar_url: str | None = None,
    ) -> None:
        now = self.clock()
        metadata = {
            "user_id": user_id,
            "user_name": user_name,
            "avatar_url": avatar_url,
            "online_at": now,
        }
        try:
            self.store.heartbeat(user_id, now, metadata)
        except STORE_ERRORS as exc:
            logger.warning("Presence heartbeat failed: %s", exc)
            self._set_fallback(True)
        self.db.touch_last_seen(user_id, now)

    def online_users(self, requesting_user_id: str | None = None) -> dict[str, dict]:
        now = self.clock()
        since = now - self.window_seconds
        self.attempts += 1
        try:
            users = self.store.online(since)
        except STORE_ERRORS as exc:
            self.failures += 1
            logger.warning("Presence store read failed: %s", exc)
            self._set_fallback(True)
            return self._fallback_users(since, now, requesting_user_id)

        self.last_success = now
        self._set_fallback(False)
        return users

    def _fallback_users(
        self, since: float, now: float, requesting_user_id: str | None
    ) -> dict[str, dict]:
        user_ids = set(self.db.list_recently_active(since))
        if requesting_user_id:
            user_ids.add(requesting_user_id)
        return {
            user_id: {"user_id": user_id, "online_at": now} for user_id in sorted(user_ids)
        }

    def status(self) -> dict:
        return {
            "fallback_mode": self.fallback_mode,
            "attempts": self.attempts,
            "failures": self.failures,
            "last_success": self.last_success,
        }
