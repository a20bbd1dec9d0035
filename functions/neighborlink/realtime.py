"""
Realtime broadcast channels. Clients subscribe to ``user_{id}`` to receive alerts.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Protocol

import redis

logger = logging.getLogger(__name__)


def user_channel(user_id: str) -> str:
    return f"user_{user_id}"


class Broadcaster(Protocol):
    def send(self, channel: str, event: str, payload: dict) -> None:
        ...


@dataclass
class InMemoryBroadcaster:
    messages: list = field(default_factory=list)

    def send(self, channel: str, event: str, payload: dict) -> None:
        self.messages.append({"channel": channel, "event": event, "payload": payload})


@dataclass
class RedisBroadcaster:
    """Publishes ``{"event", "payload"}`` JSON on a Redis pub/sub channel."""

    url: str

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def send(self, channel: str, event: str, payload: dict) -> None:
        message = json.dumps({"event": event, "payload": payload}, default=str)
        receivers = self.client.publish(channel, message)
        logger.debug("Broadcast %s on %s reached %s subscribers", event, channel, receivers)
