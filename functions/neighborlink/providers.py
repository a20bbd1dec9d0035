"""
Outbound delivery channels: SMS/voice (Twilio), email (Resend) and push (FCM).

Each channel has an HTTP client for production and an in-memory double that
records what would have been sent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol
from urllib.parse import quote

import requests

from neighborlink.errors import ExternalServiceError

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
TWIMLET_MESSAGE_URL = "https://twimlets.com/message?Message%5B0%5D="
RESEND_API_URL = "https://api.resend.com/emails"
FCM_SEND_URL = "https://fcm.googleapis.com/fcm/send"


class SmsClient(Protocol):
    """Text, WhatsApp and voice delivery. Each call returns the provider message id."""

    def send_sms(self, to: str, body: str) -> str:
        ...

    def send_whatsapp(self, to: str, body: str) -> str:
        ...

    def start_call(self, to: str, message: str) -> str:
        ...


class EmailClient(Protocol):
    def send_email(
        self, to: str, subject: str, html: str, reply_to: Optional[str] = None
    ) -> str:
        ...


class PushClient(Protocol):
    def send_push(self, subscription: dict, notification: dict) -> str:
        ...


def _raise_for_provider(provider: str, response: requests.Response) -> None:
    if response.ok:
        return
    logger.error("%s error %s: %s", provider, response.status_code, response.text)
    raise ExternalServiceError(
        f"{provider} error {response.status_code}: {response.text}"
    )


@dataclass
class InMemorySmsClient:
    """Records messages instead of sending them."""

    messages: list = field(default_factory=list)

    def _record(self, channel: str, to: str, body: str) -> str:
        sid = f"SM{len(self.messages) + 1:032d}"
        self.messages.append({"channel": channel, "to": to, "body": body, "sid": sid})
        return sid

    def send_sms(self, to: str, body: str) -> str:
        return self._record("sms", to, body)

    def send_whatsapp(self, to: str, body: str) -> str:
        return self._record("whatsapp", to, body)

    def start_call(self, to: str, message: str) -> str:
        return self._record("call", to, message)


@dataclass
class TwilioClient:
    account_sid: str
    auth_token: str
    from_number: str
    timeout: float = 10.0

    def __post_init__(self):
        self._session = requests.Session()
        self._session.auth = (self.account_sid, self.auth_token)

    def _post(self, resource: str, data: dict) -> str:
        url = f"{TWILIO_API_BASE}/Accounts/{self.account_sid}/{resource}.json"
        response = self._session.post(url, data=data, timeout=self.timeout)
        _raise_for_provider("Twilio", response)
        sid = response.json().get("sid", "")
        logger.info("Twilio %s accepted: %s", resource, sid)
        return sid

    def send_sms(self, to: str, body: str) -> str:
        return self._post("Messages", {"From": self.from_number, "To": to, "Body": body})

    def send_whatsapp(self, to: str, body: str) -> str:
        return self._post(
            "Messages",
            {
                "From": f"whatsapp:{self.from_number}",
                "To": f"whatsapp:{to}",
                "Body": body,
            },
        )

    def start_call(self, to: str, message: str) -> str:
        return self._post(
            "Calls",
            {
                "From": self.from_number,
                "To": to,
                "Url": TWIMLET_MESSAGE_URL + quote(message, safe=""),
            },
        )


@dataclass
class InMemoryEmailClient:
    sent: list = field(default_factory=list)

    def send_email(
        self, to: str, subject: str, html: str, reply_to: Optional[str] = None
    ) -> str:
        message_id = f"email-{len(self.sent) + 1}"
        self.sent.append(
            {"to": to, "subject": subject, "html": html, "reply_to": reply_to, "id": message_id}
        )
        return message_id


@dataclass
class ResendEmailClient:
    api_key: str
    sender: str
    timeout: float = 10.0

    def send_email(
        self, to: str, subject: str, html: str, reply_to: Optional[str] = None
    ) -> str:
        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        if reply_to:
            payload["reply_to"] = reply_to
        response = requests.post(
            RESEND_API_URL,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json=payload,
            timeout=self.timeout,
        )
        _raise_for_provider("Resend", response)
        return response.json().get("id", "")


@dataclass
class InMemoryPushClient:
    sent: list = field(default_factory=list)

    def send_push(self, subscription: dict, notification: dict) -> str:
        message_id = f"push-{len(self.sent) + 1}"
        self.sent.append(
            {"subscription": subscription, "notification": notification, "id": message_id}
        )
        return message_id


@dataclass
class FcmPushClient:
    """Legacy FCM HTTP endpoint; the subscription carries the device token."""

    server_key: str
    timeout: float = 10.0

    def send_push(self, subscription: dict, notification: dict) -> str:
        token: Optional[str] = subscription.get("token") or subscription.get("endpoint")
        if not token:
            raise ExternalServiceError("Push subscription has no device token")
        payload = {
            "to": token,
            "priority": "high" if notification.get("requireInteraction") else "normal",
            "notification": {
                "title": notification.get("title"),
                "body": notification.get("body"),
                "icon": notification.get("icon"),
                "tag": notification.get("tag"),
            },
            "data": notification.get("data", {}),
        }
        response = requests.post(
            FCM_SEND_URL,
            headers={"Authorization": f"key={self.server_key}"},
            json=payload,
            timeout=self.timeout,
        )
        _raise_for_provider("FCM", response)
        results = response.json().get("results") or [{}]
        return str(results[0].get("message_id", ""))
