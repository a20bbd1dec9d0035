"""
Status vocabularies shared by the API, the worker and the database rows.

Values are stored as plain strings, so every enum is a ``StrEnum``.
"""

from enum import StrEnum


class CampaignStatus(StrEnum):
    DRAFT = "draft"
    PENDING_PAYMENT = "pending_payment"
    PENDING_APPROVAL = "pending_approval"
    ACTIVE = "active"
    REJECTED = "rejected"
    COMPLETED = "completed"


class PaymentStatus(StrEnum):
    UNPAID = "unpaid"
    PAID = "paid"


class AlertSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class PanicStatus(StrEnum):
    ACTIVE = "active"
    RESOLVED = "resolved"
    INVESTIGATING = "investigating"
    FALSE_ALARM = "false_alarm"


class ContactMethod(StrEnum):
    IN_APP = "in_app"
    SMS = "sms"
    WHATSAPP = "whatsapp"
    PHONE_CALL = "phone_call"


class DeliveryChannel(StrEnum):
    WEBSOCKET = "websocket"
    PUSH = "push"
    SMS = "sms"
    EMAIL = "email"


class DeliveryStatus(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class EscalationStatus(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


class WebhookStatus(StrEnum):
    RECEIVED = "received"
    PROCESSED = "processed"
    FAILED = "failed"


class ApiEnvironment(StrEnum):
    PRODUCTION = "production"
    DEVELOPMENT = "development"
    STAGING = "staging"
