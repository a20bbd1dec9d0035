"""
Queue abstraction for background jobs.

Supports an in-memory fallback for tests/local runs and a Redis-backed
implementation for production. Jobs are JSON objects with a ``kind`` field.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Optional, Protocol

import redis
from redis import exceptions as redis_exceptions


class JobQueue(Protocol):
    """Minimal queue interface for dispatching jobs to workers."""

    def enqueue(self, job: dict) -> None:
        ...

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[dict]:
        ...


@dataclass
class InMemoryJobQueue:
    """Simple FIFO queue for testing/dev."""

    items: list[dict] = field(default_factory=list)

    def enqueue(self, job: dict) -> None:
        self.items.append(json.loads(json.dumps(job)))

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[dict]:
        if not self.items:
            return None
        return self.items.pop(0)


@dataclass
class RedisJobQueue:
    """Redis-backed queue using list push/pop operations."""

    url: str
    queue_key: str = "neighborlink:jobs"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def enqueue(self, job: dict) -> None:
        self.client.rpush(self.queue_key, json.dumps(job))

    def dequeue(self, *, block: bool = True, timeout: int | None = None) -> Optional[dict]:
        try:
            if block:
                result = self.client.blpop(self.queue_key, timeout=timeout or 0)
                if result is None:
                    return None
                _, raw = result
            else:
                raw = self.client.lpop(self.queue_key)
                if raw is None:
                    return None
            return json.loads(raw.decode("utf-8"))
        except redis_exceptions.ConnectionError:
            # Connection resets can happen on managed Redis. Treat as empty queue
            # and allow the worker loop to retry.
            self.client = redis.Redis.from_url(self.url)
            return None
