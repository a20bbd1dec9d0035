"""
Per-user offline snapshot cache with priority-based pruning.

Clients sync the data they keep offline here; when a user's namespace nears
its capacity, low-priority entries are pruned first and critical entries
(emergency contacts, profile, auth) are never pruned.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

import redis

logger = logging.getLogger(__name__)

PRIORITY_CRITICAL = 4

STORAGE_PRIORITIES = (
    (PRIORITY_CRITICAL, ("emergency-contacts", "profile", "auth")),
    (3, ("conversations", "notifications")),
    (2, ("feed", "events", "saved-posts")),
    (1, ("marketplace", "businesses", "recommendations")),
)


def get_priority(key: str) -> int:
    for priority, markers in STORAGE_PRIORITIES:
        if any(marker in key for marker in markers):
            return priority
    return 0


def item_size(key: str, value: str) -> int:
    # Sized in UTF-16 code units, as the client-side stores count them.
    return len((key + value).encode("utf-16-le"))


@dataclass
class CacheItem:
    key: str
    size: int
    priority: int


@dataclass
class StorageStats:
    used: int
    total: int
    percentage: int
    available: int
    items: int


class KeyValueStore(Protocol):
    def items(self, namespace: str) -> dict[str, str]:
        ...

    def set(self, namespace: str, key: str, value: str) -> None:
        ...

    def delete(self, namespace: str, key: str) -> None:
        ...


@dataclass
class InMemoryKeyValueStore:
    data: dict = field(default_factory=dict)

    def items(self, namespace: str) -> dict[str, str]:
        return dict(self.data.get(namespace, {}))

    def set(self, namespace: str, key: str, value: str) -> None:
        self.data.setdefault(namespace, {})[key] = value

    def delete(self, namespace: str, key: str) -> None:
        self.data.get(namespace, {}).pop(key, None)


@dataclass
class RedisKeyValueStore:
    """One Redis hash per namespace."""

    url: str
    prefix: str = "neighborlink:offline"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url, decode_responses=True)

    def _key(self, namespace: str) -> str:
        return f"{self.prefix}:{namespace}"

    def items(self, namespace: str) -> dict[str, str]:
        return self.client.hgetall(self._key(namespace))

    def set(self, namespace: str, key: str, value: str) -> None:
        self.client.hset(self._key(namespace), key, value)

    def delete(self, namespace: str, key: str) -> None:
        self.client.hdel(self._key(namespace), key)


class OfflineCache:
    def __init__(
        self,
        store: KeyValueStore,
        namespace: str,
        capacity_bytes: int = 5 * 1024 * 1024,
        platform: str = "web",
    ):
        self.store = store
        self.namespace = namespace
        self.capacity_bytes = capacity_bytes
        self.platform = platform

    def put(self, key: str, value: str) -> None:
        self.store.set(self.namespace, key, value)

    def cache_items(self) -> list[CacheItem]:
        return [
            CacheItem(key=key, size=item_size(key, value), priority=get_priority(key))
            for key, value in self.store.items(self.namespace).items()
            if value
        ]

    def usage(self) -> StorageStats:
        items = self.cache_items()
        used = sum(item.size for item in items)
        total = self.capacity_bytes
        return StorageStats(
            used=used,
            total=total,
            percentage=math.floor(used / total * 100 + 0.5) if total else 100,
            available=total - used,
            items=len(items),
        )

    def prune(self, target_percentage: float = 80) -> int:
        """Delete low-priority, large entries until usage is at or below target."""
        stats = self.usage()
        if stats.percentage <= target_percentage:
            logger.debug("Offline cache %s within target, no pruning needed", self.namespace)
            return 0

        logger.info(
            "Pruning offline cache %s: %s%% used, target %s%%",
            self.namespace,
            stats.percentage,
            target_percentage,
        )
        items = sorted(self.cache_items(), key=lambda item: (item.priority, -item.size))
        target_bytes = stats.total * (target_percentage / 100)
        current = stats.used
        freed = 0
        for item in items:
            if current <= target_bytes:
                break
            if item.priority >= PRIORITY_CRITICAL:
                continue
            self.store.delete(self.namespace, item.key)
            current -= item.size
            freed += item.size
            logger.debug("Pruned %s (%d bytes)", item.key, item.size)

        logger.info("Freed %d bytes from offline cache %s", freed, self.namespace)
        return freed

    def clear(self, include_critical: bool = False) -> int:
        removed = 0
        for item in self.cache_items():
            if not include_critical and item.priority >= PRIORITY_CRITICAL:
                continue
            self.store.delete(self.namespace, item.key)
            removed += 1
        return removed

    def export(self) -> dict:
        data = {}
        for key, value in self.store.items(self.namespace).items():
            if not value:
                continue
            try:
                data[key] = json.loads(value)
            except ValueError:
                data[key] = value
        return {
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "platform": self.platform,
            "items": len(data),
            "data": data,
        }

    def is_storage_low(self, threshold: float = 90) -> bool:
        return self.usage().percentage >= threshold

    def storage_info(self) -> str:
        stats = self.usage()
        used_mb = stats.used / (1024 * 1024)
        total_mb = stats.total / (1024 * 1024)
        return (
            f"{used_mb:.2f}MB / {total_mb:.2f}MB ({stats.percentage}%) - {stats.items} items"
        )
