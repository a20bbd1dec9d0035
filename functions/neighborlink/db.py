"""
Database abstraction for Postgres and an in-memory test implementation.

The managed database owns the schema and row-level security; this layer only
covers the rows the server-side handlers read and write.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    Integer,
    String,
    create_engine,
    delete,
    or_,
    select,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from shared.types import (
    CampaignStatus,
    DeliveryStatus,
    EscalationStatus,
    PaymentStatus,
    WebhookStatus,
)


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> float:
    return time.time()


@dataclass
class Profile:
    user_id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    neighborhood: Optional[str] = None
    avatar_url: Optional[str] = None
    push_subscription: Optional[dict] = None
    last_seen_at: Optional[float] = None
    created_at: float = field(default_factory=_now)


@dataclass
class AdCampaign:
    user_id: str
    campaign_name: str
    status: str = CampaignStatus.DRAFT
    payment_status: str = PaymentStatus.UNPAID
    payment_session_id: Optional[str] = None
    payment_amount: Optional[float] = None
    payment_completed_at: Optional[float] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)
    updated_at: float = field(default_factory=_now)


@dataclass
class Business:
    user_id: str
    business_name: str
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)


@dataclass
class PromotionCampaign:
    business_id: str
    created_by: str
    title: str
    promotion_type: str
    budget: float
    start_date: float
    end_date: float
    description: Optional[str] = None
    status: str = CampaignStatus.PENDING_PAYMENT
    payment_status: str = PaymentStatus.UNPAID
    payment_session_id: Optional[str] = None
    target_locations: list = field(default_factory=list)
    images: list = field(default_factory=list)
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)
    updated_at: float = field(default_factory=_now)


@dataclass
class SafetyAlert:
    user_id: str
    title: str
    severity: str
    description: Optional[str] = None
    alert_type: str = "other"
    status: str = "active"
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None
    verified_at: Optional[float] = None
    verified_by: Optional[str] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)
    updated_at: float = field(default_factory=_now)


@dataclass
class AlertResponse:
    alert_id: str
    user_id: str
    response_type: str
    comment: Optional[str] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)


@dataclass
class PanicAlert:
    user_id: str
    situation_type: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None
    is_resolved: bool = False
    resolved_at: Optional[float] = None
    resolved_by: Optional[str] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)
    updated_at: float = field(default_factory=_now)


@dataclass
class EmergencyContact:
    user_id: str
    contact_name: str
    phone_number: str
    preferred_methods: list = field(default_factory=lambda: ["in_app"])
    contact_user_id: Optional[str] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)


@dataclass
class EmergencyContactRequest:
    sender_id: str
    recipient_phone: str
    recipient_id: Optional[str] = None
    status: str = "pending"
    notification_sent: bool = False
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)
    updated_at: float = field(default_factory=_now)


@dataclass
class EmergencyPreferences:
    user_id: str
    auto_alert_public: bool = False
    share_location_with_public: bool = False


@dataclass
class PublicEmergencyAlert:
    panic_alert_id: str
    user_id: str
    situation_type: str
    latitude: Optional[float]
    longitude: Optional[float]
    address: Optional[str]
    radius_km: float
    is_active: bool = True
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)


@dataclass
class Notification:
    notification_type: str
    recipient_id: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None
    priority: Optional[str] = None
    data: Optional[dict] = None
    delivery_method: Optional[str] = None
    sender_name: Optional[str] = None
    alert_id: Optional[str] = None
    panic_alert_id: Optional[str] = None
    sender_phone: Optional[str] = None
    request_id: Optional[str] = None
    is_read: bool = False
    sent_at: Optional[float] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)


@dataclass
class DeliveryLogEntry:
    alert_id: str
    user_id: str
    delivery_channel: str
    delivery_status: str = DeliveryStatus.PENDING
    sent_at: Optional[float] = None
    failure_reason: Optional[str] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)


@dataclass
class Escalation:
    alert_id: str
    user_id: str
    due_at: float
    status: str = EscalationStatus.PENDING
    attempts: int = 0
    processed_at: Optional[float] = None
    last_error: Optional[str] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)


@dataclass
class AlertMetric:
    alert_id: str
    metric_type: str
    user_id: Optional[str] = None
    details: Optional[dict] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)


@dataclass
class Company:
    name: str
    billing_email: Optional[str] = None
    technical_contact_email: Optional[str] = None
    domain: Optional[str] = None
    industry: Optional[str] = None
    size: Optional[str] = None
    website: Optional[str] = None
    plan_type: str = "free"
    is_active: bool = True
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)


@dataclass
class ApiKeyRecord:
    key_name: str
    key_prefix: str
    key_hash: str
    company_id: str
    created_by: str
    environment: str
    permissions: list = field(default_factory=list)
    rate_limit_per_hour: int = 1000
    rate_limit_per_day: int = 10000
    request_id: Optional[str] = None
    is_active: bool = True
    expires_at: Optional[float] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)


@dataclass
class ApiAccessRequest:
    company_name: str
    contact_email: str
    contact_name: Optional[str] = None
    request_type: Optional[str] = None
    message: Optional[str] = None
    status: str = "pending"
    company_id: Optional[str] = None
    api_key_id: Optional[str] = None
    resolved_at: Optional[float] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)


@dataclass
class ActivityLog:
    user_id: str
    action_type: str
    resource_type: str
    resource_id: Optional[str] = None
    details: Optional[dict] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=_now)


@dataclass
class WebhookLog:
    source: str
    event_type: str
    payload: Optional[dict] = None
    signature: Optional[str] = None
    status: str = WebhookStatus.RECEIVED
    processing_result: Optional[dict] = None
    id: str = field(default_factory=_new_id)
    received_at: float = field(default_factory=_now)
    updated_at: float = field(default_factory=_now)


class DbClient(Protocol):
    """Interface for database access."""

    # Profiles and roles
    def save_profile(self, profile: Profile) -> Profile:
        ...

    def get_profile(self, user_id: str) -> Optional[Profile]:
        ...

    def list_neighbors(
        self, neighborhood: str, exclude_user_id: str, limit: int | None = None
    ) -> list[Profile]:
        ...

    def touch_last_seen(self, user_id: str, at: float) -> None:
        ...

    def list_recently_active(self, since: float) -> list[str]:
        ...

    def add_role(self, user_id: str, role: str) -> None:
        ...

    def get_roles(self, user_id: str) -> list[str]:
        ...

    def grant_staff_permission(
        self, user_id: str, permission: str, access_type: str
    ) -> None:
        ...

    def has_staff_permission(
        self, user_id: str, permission: str, access_type: str
    ) -> bool:
        ...

    # Advertising
    def create_ad_campaign(self, campaign: AdCampaign) -> AdCampaign:
        ...

    def get_ad_campaign(self, campaign_id: str) -> Optional[AdCampaign]:
        ...

    def find_ad_campaign_by_session(self, session_id: str) -> Optional[AdCampaign]:
        ...

    def update_ad_campaign(self, campaign_id: str, **changes) -> Optional[AdCampaign]:
        ...

    def list_ad_campaigns(self, user_id: str) -> list[AdCampaign]:
        ...

    def create_business(self, business: Business) -> Business:
        ...

    def get_business(self, business_id: str) -> Optional[Business]:
        ...

    def list_businesses(self, user_id: str) -> list[Business]:
        ...

    def create_promotion(self, promotion: PromotionCampaign) -> PromotionCampaign:
        ...

    def find_promotion_by_session(
        self, session_id: str
    ) -> Optional[PromotionCampaign]:
        ...

    def update_promotion(
        self, promotion_id: str, **changes
    ) -> Optional[PromotionCampaign]:
        ...

    # Safety and emergencies
    def create_safety_alert(self, alert: SafetyAlert) -> SafetyAlert:
        ...

    def get_safety_alert(self, alert_id: str) -> Optional[SafetyAlert]:
        ...

    def find_safety_alerts(
        self,
        user_id: str,
        severity: str,
        created_from: float,
        created_to: float,
    ) -> list[SafetyAlert]:
        ...

    def update_safety_alert(self, alert_id: str, **changes) -> Optional[SafetyAlert]:
        ...

    def add_alert_response(self, response: AlertResponse) -> AlertResponse:
        ...

    def create_panic_alert(self, alert: PanicAlert) -> PanicAlert:
        ...

    def get_panic_alert(self, panic_alert_id: str) -> Optional[PanicAlert]:
        ...

    def update_panic_alert(
        self, panic_alert_id: str, **changes
    ) -> Optional[PanicAlert]:
        ...

    def add_emergency_contact(self, contact: EmergencyContact) -> EmergencyContact:
        ...

    def list_emergency_contacts(self, user_id: str) -> list[EmergencyContact]:
        ...

    def create_contact_request(
        self, request: EmergencyContactRequest
    ) -> EmergencyContactRequest:
        ...

    def get_contact_request(self, request_id: str) -> Optional[EmergencyContactRequest]:
        ...

    def update_contact_request(
        self, request_id: str, **changes
    ) -> Optional[EmergencyContactRequest]:
        ...

    def get_emergency_preferences(
        self, user_id: str
    ) -> Optional[EmergencyPreferences]:
        ...

    def save_emergency_preferences(self, preferences: EmergencyPreferences) -> None:
        ...

    def create_public_alert(
        self, alert: PublicEmergencyAlert
    ) -> PublicEmergencyAlert:
        ...

    # Notifications
    def create_notification(self, notification: Notification) -> Notification:
        ...

    def list_notifications(self, recipient_id: str) -> list[Notification]:
        ...

    def find_alert_notification(
        self, alert_id: str, recipient_id: str
    ) -> Optional[Notification]:
        ...

    def mark_notification_read(self, notification_id: str) -> Optional[Notification]:
        ...

    def add_delivery_logs(self, entries: Iterable[DeliveryLogEntry]) -> None:
        ...

    def list_delivery_logs(self, alert_id: str) -> list[DeliveryLogEntry]:
        ...

    def create_escalation(self, escalation: Escalation) -> Escalation:
        ...

    def list_due_escalations(self, now: float, limit: int) -> list[Escalation]:
        ...

    def update_escalation(self, escalation_id: str, **changes) -> Optional[Escalation]:
        ...

    def track_alert_metric(
        self,
        alert_id: str,
        metric_type: str,
        user_id: str | None = None,
        details: dict | None = None,
    ) -> None:
        ...

    # Enterprise API
    def find_company_by_name(self, name: str) -> Optional[Company]:
        ...

    def create_company(self, company: Company) -> Company:
        ...

    def create_api_key(self, api_key: ApiKeyRecord) -> ApiKeyRecord:
        ...

    def find_api_key_by_hash(self, key_hash: str) -> Optional[ApiKeyRecord]:
        ...

    def create_access_request(self, request: ApiAccessRequest) -> ApiAccessRequest:
        ...

    def get_access_request(self, request_id: str) -> Optional[ApiAccessRequest]:
        ...

    def update_access_request(
        self, request_id: str, **changes
    ) -> Optional[ApiAccessRequest]:
        ...

    def log_activity(self, entry: ActivityLog) -> None:
        ...

    # Account removal
    def delete_user_data(self, user_id: str) -> dict[str, int]:
        """Delete the user's rows and return how many were removed per table."""
        ...

    # Inbound webhooks and app configuration
    def create_webhook_log(self, log: WebhookLog) -> WebhookLog:
        ...

    def update_webhook_log(self, log_id: str, **changes) -> Optional[WebhookLog]:
        ...

    def get_webhook_log(self, log_id: str) -> Optional[WebhookLog]:
        ...

    def get_config(self, key: str) -> Any:
        ...

    def set_config(self, key: str, value: Any) -> None:
        ...


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.profiles: Dict[str, Profile] = {}
        self.roles: Dict[str, set[str]] = {}
        self.staff_permissions: set[tuple[str, str, str]] = set()
        self.ad_campaigns: Dict[str, AdCampaign] = {}
        self.businesses: Dict[str, Business] = {}
        self.promotions: Dict[str, PromotionCampaign] = {}
        self.safety_alerts: Dict[str, SafetyAlert] = {}
        self.alert_responses: Dict[str, AlertResponse] = {}
        self.panic_alerts: Dict[str, PanicAlert] = {}
        self.emergency_contacts: Dict[str, EmergencyContact] = {}
        self.contact_requests: Dict[str, EmergencyContactRequest] = {}
        self.emergency_preferences: Dict[str, EmergencyPreferences] = {}
        self.public_alerts: Dict[str, PublicEmergencyAlert] = {}
        self.notifications: Dict[str, Notification] = {}
        self.delivery_logs: Dict[str, DeliveryLogEntry] = {}
        self.escalations: Dict[str, Escalation] = {}
        self.alert_metrics: Dict[str, AlertMetric] = {}
        self.companies: Dict[str, Company] = {}
        self.api_keys: Dict[str, ApiKeyRecord] = {}
        self.access_requests: Dict[str, ApiAccessRequest] = {}
        self.activity_logs: Dict[str, ActivityLog] = {}
        self.webhook_logs: Dict[str, WebhookLog] = {}
        self.app_config: Dict[str, Any] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        for value in vars(self).values():
            value.clear()

    @staticmethod
    def _update(table: dict, key: str, changes: dict):
        record = table.get(key)
        if record is None:
            return None
        for name, value in changes.items():
            setattr(record, name, value)
        if hasattr(record, "updated_at") and "updated_at" not in changes:
            record.updated_at = time.time()
        return record

    def save_profile(self, profile: Profile) -> Profile:
        self.profiles[profile.user_id] = profile
        return profile

    def get_profile(self, user_id: str) -> Optional[Profile]:
        return self.profiles.get(user_id)

    def list_neighbors(
        self, neighborhood: str, exclude_user_id: str, limit: int | None = None
    ) -> list[Profile]:
        if not neighborhood:
            return []
        items = [
            profile
            for profile in sorted(self.profiles.values(), key=lambda p: p.created_at)
            if profile.neighborhood == neighborhood
            and profile.user_id != exclude_user_id
        ]
        return items[:limit] if limit is not None else items

    def touch_last_seen(self, user_id: str, at: float) -> None:
        profile = self.profiles.get(user_id)
        if profile:
            profile.last_seen_at = at

    def list_recently_active(self, since: float) -> list[str]:
        return [
            profile.user_id
            for profile in self.profiles.values()
            if profile.last_seen_at is not None and profile.last_seen_at >= since
        ]

    def add_role(self, user_id: str, role: str) -> None:
        self.roles.setdefault(user_id, set()).add(role)

    def get_roles(self, user_id: str) -> list[str]:
        return sorted(self.roles.get(user_id, set()))

    def grant_staff_permission(
        self, user_id: str, permission: str, access_type: str
    ) -> None:
        self.staff_permissions.add((user_id, permission, access_type))

    def has_staff_permission(
        self, user_id: str, permission: str, access_type: str
    ) -> bool:
        return (user_id, permission, access_type) in self.staff_permissions

    def create_ad_campaign(self, campaign: AdCampaign) -> AdCampaign:
        self.ad_campaigns[campaign.id] = campaign
        return campaign

    def get_ad_campaign(self, campaign_id: str) -> Optional[AdCampaign]:
        return self.ad_campaigns.get(campaign_id)

    def find_ad_campaign_by_session(self, session_id: str) -> Optional[AdCampaign]:
        for campaign in self.ad_campaigns.values():
            if campaign.payment_session_id == session_id:
                return campaign
        return None

    def update_ad_campaign(self, campaign_id: str, **changes) -> Optional[AdCampaign]:
        return self._update(self.ad_campaigns, campaign_id, changes)

    def list_ad_campaigns(self, user_id: str) -> list[AdCampaign]:
        return [c for c in self.ad_campaigns.values() if c.user_id == user_id]

    def create_business(self, business: Business) -> Business:
        self.businesses[business.id] = business
        return business

    def get_business(self, business_id: str) -> Optional[Business]:
        return self.businesses.get(business_id)

    def list_businesses(self, user_id: str) -> list[Business]:
        return [b for b in self.businesses.values() if b.user_id == user_id]

    def create_promotion(self, promotion: PromotionCampaign) -> PromotionCampaign:
        self.promotions[promotion.id] = promotion
        return promotion

    def find_promotion_by_session(
        self, session_id: str
    ) -> Optional[PromotionCampaign]:
        for promotion in self.promotions.values():
            if promotion.payment_session_id == session_id:
                return promotion
        return None

    def update_promotion(
        self, promotion_id: str, **changes
    ) -> Optional[PromotionCampaign]:
        return self._update(self.promotions, promotion_id, changes)

    def create_safety_alert(self, alert: SafetyAlert) -> SafetyAlert:
        self.safety_alerts[alert.id] = alert
        return alert

    def get_safety_alert(self, alert_id: str) -> Optional[SafetyAlert]:
        return self.safety_alerts.get(alert_id)

    def find_safety_alerts(
        self,
        user_id: str,
        severity: str,
        created_from: float,
        created_to: float,
    ) -> list[SafetyAlert]:
        return [
            alert
            for alert in self.safety_alerts.values()
            if alert.user_id == user_id
            and alert.severity == severity
            and created_from <= alert.created_at <= created_to
        ]

    def update_safety_alert(self, alert_id: str, **changes) -> Optional[SafetyAlert]:
        return self._update(self.safety_alerts, alert_id, changes)

    def add_alert_response(self, response: AlertResponse) -> AlertResponse:
        self.alert_responses[response.id] = response
        return response

    def create_panic_alert(self, alert: PanicAlert) -> PanicAlert:
        self.panic_alerts[alert.id] = alert
        return alert

    def get_panic_alert(self, panic_alert_id: str) -> Optional[PanicAlert]:
        return self.panic_alerts.get(panic_alert_id)

    def update_panic_alert(
        self, panic_alert_id: str, **changes
    ) -> Optional[PanicAlert]:
        return self._update(self.panic_alerts, panic_alert_id, changes)

    def add_emergency_contact(self, contact: EmergencyContact) -> EmergencyContact:
        self.emergency_contacts[contact.id] = contact
        return contact

    def list_emergency_contacts(self, user_id: str) -> list[EmergencyContact]:
        return [
            c for c in self.emergency_contacts.values() if c.user_id == user_id
        ]

    def create_contact_request(
        self, request: EmergencyContactRequest
    ) -> EmergencyContactRequest:
        self.contact_requests[request.id] = request
        return request

    def get_contact_request(self, request_id: str) -> Optional[EmergencyContactRequest]:
        return self.contact_requests.get(request_id)

    def update_contact_request(
        self, request_id: str, **changes
    ) -> Optional[EmergencyContactRequest]:
        return self._update(self.contact_requests, request_id, changes)

    def get_emergency_preferences(
        self, user_id: str
    ) -> Optional[EmergencyPreferences]:
        return self.emergency_preferences.get(user_id)

    def save_emergency_preferences(self, preferences: EmergencyPreferences) -> None:
        self.emergency_preferences[preferences.user_id] = preferences

    def create_public_alert(
        self, alert: PublicEmergencyAlert
    ) -> PublicEmergencyAlert:
        self.public_alerts[alert.id] = alert
        return alert

    def create_notification(self, notification: Notification) -> Notification:
        self.notifications[notification.id] = notification
        return notification

    def list_notifications(self, recipient_id: str) -> list[Notification]:
        items = [
            n for n in self.notifications.values() if n.recipient_id == recipient_id
        ]
        return sorted(items, key=lambda n: n.created_at, reverse=True)

    def find_alert_notification(
        self, alert_id: str, recipient_id: str
    ) -> Optional[Notification]:
        for notification in self.notifications.values():
            if (
                notification.alert_id == alert_id
                and notification.recipient_id == recipient_id
            ):
                return notification
        return None

    def mark_notification_read(self, notification_id: str) -> Optional[Notification]:
        return self._update(self.notifications, notification_id, {"is_read": True})

    def add_delivery_logs(self, entries: Iterable[DeliveryLogEntry]) -> None:
        for entry in entries:
            self.delivery_logs[entry.id] = entry

    def list_delivery_logs(self, alert_id: str) -> list[DeliveryLogEntry]:
        return [e for e in self.delivery_logs.values() if e.alert_id == alert_id]

    def create_escalation(self, escalation: Escalation) -> Escalation:
        self.escalations[escalation.id] = escalation
        return escalation

    def list_due_escalations(self, now: float, limit: int) -> list[Escalation]:
        due = [
            e
            for e in self.escalations.values()
            if e.status == EscalationStatus.PENDING and e.due_at <= now
        ]
        return sorted(due, key=lambda e: e.due_at)[:limit]

    def update_escalation(self, escalation_id: str, **changes) -> Optional[Escalation]:
        return self._update(self.escalations, escalation_id, changes)

    def track_alert_metric(
        self,
        alert_id: str,
        metric_type: str,
        user_id: str | None = None,
        details: dict | None = None,
    ) -> None:
        metric = AlertMetric(
            alert_id=alert_id, metric_type=metric_type, user_id=user_id, details=details
        )
        self.alert_metrics[metric.id] = metric

    def find_company_by_name(self, name: str) -> Optional[Company]:
        for company in self.companies.values():
            if company.name == name:
                return company
        return None

    def create_company(self, company: Company) -> Company:
        self.companies[company.id] = company
        return company

    def create_api_key(self, api_key: ApiKeyRecord) -> ApiKeyRecord:
        self.api_keys[api_key.id] = api_key
        return api_key

    def find_api_key_by_hash(self, key_hash: str) -> Optional[ApiKeyRecord]:
        for api_key in self.api_keys.values():
            if api_key.key_hash == key_hash:
                return api_key
        return None

    def create_access_request(self, request: ApiAccessRequest) -> ApiAccessRequest:
        self.access_requests[request.id] = request
        return request

    def get_access_request(self, request_id: str) -> Optional[ApiAccessRequest]:
        return self.access_requests.get(request_id)

    def update_access_request(
        self, request_id: str, **changes
    ) -> Optional[ApiAccessRequest]:
        return self._update(self.access_requests, request_id, changes)

    def log_activity(self, entry: ActivityLog) -> None:
        self.activity_logs[entry.id] = entry

    def delete_user_data(self, user_id: str) -> dict[str, int]:
        def purge(table: dict, matches) -> int:
            doomed = [key for key, record in table.items() if matches(record)]
            for key in doomed:
                del table[key]
            return len(doomed)

        removed = {
            "alert_notifications": purge(
                self.notifications, lambda n: n.recipient_id == user_id
            ),
            "emergency_contacts": purge(
                self.emergency_contacts, lambda c: c.user_id == user_id
            ),
            "emergency_contact_requests": purge(
                self.contact_requests,
                lambda r: user_id in (r.sender_id, r.recipient_id),
            ),
            "emergency_preferences": int(
                self.emergency_preferences.pop(user_id, None) is not None
            ),
            "user_roles": len(self.roles.pop(user_id, set())),
        }
        staff = {entry for entry in self.staff_permissions if entry[0] == user_id}
        self.staff_permissions -= staff
        removed["staff_permissions"] = len(staff)
        removed["profiles"] = int(self.profiles.pop(user_id, None) is not None)
        return removed

    def create_webhook_log(self, log: WebhookLog) -> WebhookLog:
        self.webhook_logs[log.id] = log
        return log

    def update_webhook_log(self, log_id: str, **changes) -> Optional[WebhookLog]:
        return self._update(self.webhook_logs, log_id, changes)

    def get_webhook_log(self, log_id: str) -> Optional[WebhookLog]:
        return self.webhook_logs.get(log_id)

    def get_config(self, key: str) -> Any:
        return self.app_config.get(key)

    def set_config(self, key: str, value: Any) -> None:
        self.app_config[key] = value


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        engine_kwargs: dict[str, Any] = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # A single shared connection keeps the in-memory database alive
            # across the request thread pool.
            engine_kwargs.update(
                poolclass=StaticPool, connect_args={"check_same_thread": False}
            )
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @staticmethod
    def _to_record(row, record_cls):
        return record_cls(**{f.name: getattr(row, f.name) for f in fields(record_cls)})

    def _add(self, row_cls, record):
        values = {name: _plain(value) for name, value in asdict(record).items()}
        with self.Session() as session:
            session.merge(row_cls(**values))
            session.commit()
        return record

    def _get(self, row_cls, record_cls, key):
        with self.Session() as session:
            row = session.get(row_cls, key)
            return self._to_record(row, record_cls) if row else None

    def _update(self, row_cls, record_cls, key, changes: dict):
        with self.Session() as session:
            row = session.get(row_cls, key)
            if not row:
                return None
            for name, value in changes.items():
                setattr(row, name, _plain(value))
            if hasattr(row, "updated_at") and "updated_at" not in changes:
                row.updated_at = time.time()
            session.commit()
            return self._to_record(row, record_cls)

    def _select(self, record_cls, stmt) -> list:
        with self.Session() as session:
            rows = session.execute(stmt).scalars().all()
            return [self._to_record(row, record_cls) for row in rows]

    def _first(self, record_cls, stmt):
        items = self._select(record_cls, stmt.limit(1))
        return items[0] if items else None

    def save_profile(self, profile: Profile) -> Profile:
        return self._add(ProfileRow, profile)

    def get_profile(self, user_id: str) -> Optional[Profile]:
        return self._get(ProfileRow, Profile, user_id)

    def list_neighbors(
        self, neighborhood: str, exclude_user_id: str, limit: int | None = None
    ) -> list[Profile]:
        if not neighborhood:
            return []
        stmt = (
            select(ProfileRow)
            .where(
                ProfileRow.neighborhood == neighborhood,
                ProfileRow.user_id != exclude_user_id,
            )
            .order_by(ProfileRow.created_at.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return self._select(Profile, stmt)

    def touch_last_seen(self, user_id: str, at: float) -> None:
        self._update(ProfileRow, Profile, user_id, {"last_seen_at": at})

    def list_recently_active(self, since: float) -> list[str]:
        with self.Session() as session:
            stmt = select(ProfileRow.user_id).where(ProfileRow.last_seen_at >= since)
            return list(session.execute(stmt).scalars().all())

    def add_role(self, user_id: str, role: str) -> None:
        with self.Session() as session:
            session.merge(UserRoleRow(user_id=user_id, role=role))
            session.commit()

    def get_roles(self, user_id: str) -> list[str]:
        with self.Session() as session:
            stmt = (
                select(UserRoleRow.role)
                .where(UserRoleRow.user_id == user_id)
                .order_by(UserRoleRow.role)
            )
            return list(session.execute(stmt).scalars().all())

    def grant_staff_permission(
        self, user_id: str, permission: str, access_type: str
    ) -> None:
        with self.Session() as session:
            session.merge(
                StaffPermissionRow(
                    user_id=user_id, permission=permission, access_type=access_type
                )
            )
            session.commit()

    def has_staff_permission(
        self, user_id: str, permission: str, access_type: str
    ) -> bool:
        with self.Session() as session:
            row = session.get(StaffPermissionRow, (user_id, permission, access_type))
            return row is not None

    def create_ad_campaign(self, campaign: AdCampaign) -> AdCampaign:
        return self._add(AdCampaignRow, campaign)

    def get_ad_campaign(self, campaign_id: str) -> Optional[AdCampaign]:
        return self._get(AdCampaignRow, AdCampaign, campaign_id)

    def find_ad_campaign_by_session(self, session_id: str) -> Optional[AdCampaign]:
        stmt = select(AdCampaignRow).where(
            AdCampaignRow.payment_session_id == session_id
        )
        return self._first(AdCampaign, stmt)

    def update_ad_campaign(self, campaign_id: str, **changes) -> Optional[AdCampaign]:
        return self._update(AdCampaignRow, AdCampaign, campaign_id, changes)

    def list_ad_campaigns(self, user_id: str) -> list[AdCampaign]:
        stmt = select(AdCampaignRow).where(AdCampaignRow.user_id == user_id)
        return self._select(AdCampaign, stmt)

    def create_business(self, business: Business) -> Business:
        return self._add(BusinessRow, business)

    def get_business(self, business_id: str) -> Optional[Business]:
        return self._get(BusinessRow, Business, business_id)

    def list_businesses(self, user_id: str) -> list[Business]:
        stmt = select(BusinessRow).where(BusinessRow.user_id == user_id)
        return self._select(Business, stmt)

    def create_promotion(self, promotion: PromotionCampaign) -> PromotionCampaign:
        return self._add(PromotionCampaignRow, promotion)

    def find_promotion_by_session(
        self, session_id: str
    ) -> Optional[PromotionCampaign]:
        stmt = select(PromotionCampaignRow).where(
            PromotionCampaignRow.payment_session_id == session_id
        )
        return self._first(PromotionCampaign, stmt)

    def update_promotion(
        self, promotion_id: str, **changes
    ) -> Optional[PromotionCampaign]:
        return self._update(
            PromotionCampaignRow, PromotionCampaign, promotion_id, changes
        )

    def create_safety_alert(self, alert: SafetyAlert) -> SafetyAlert:
        return self._add(SafetyAlertRow, alert)

    def get_safety_alert(self, alert_id: str) -> Optional[SafetyAlert]:
        return self._get(SafetyAlertRow, SafetyAlert, alert_id)

    def find_safety_alerts(
        self,
        user_id: str,
        severity: str,
        created_from: float,
        created_to: float,
    ) -> list[SafetyAlert]:
        stmt = select(SafetyAlertRow).where(
            SafetyAlertRow.user_id == user_id,
            SafetyAlertRow.severity == _plain(severity),
            SafetyAlertRow.created_at >= created_from,
            SafetyAlertRow.created_at <= created_to,
        )
        return self._select(SafetyAlert, stmt)

    def update_safety_alert(self, alert_id: str, **changes) -> Optional[SafetyAlert]:
        return self._update(SafetyAlertRow, SafetyAlert, alert_id, changes)

    def add_alert_response(self, response: AlertResponse) -> AlertResponse:
        return self._add(AlertResponseRow, response)

    def create_panic_alert(self, alert: PanicAlert) -> PanicAlert:
        return self._add(PanicAlertRow, alert)

    def get_panic_alert(self, panic_alert_id: str) -> Optional[PanicAlert]:
        return self._get(PanicAlertRow, PanicAlert, panic_alert_id)

    def update_panic_alert(
        self, panic_alert_id: str, **changes
    ) -> Optional[PanicAlert]:
        return self._update(PanicAlertRow, PanicAlert, panic_alert_id, changes)

    def add_emergency_contact(self, contact: EmergencyContact) -> EmergencyContact:
        return self._add(EmergencyContactRow, contact)

    def list_emergency_contacts(self, user_id: str) -> list[EmergencyContact]:
        stmt = select(EmergencyContactRow).where(
            EmergencyContactRow.user_id == user_id
        )
        return self._select(EmergencyContact, stmt)

    def create_contact_request(
        self, request: EmergencyContactRequest
    ) -> EmergencyContactRequest:
        return self._add(EmergencyContactRequestRow, request)

    def get_contact_request(self, request_id: str) -> Optional[EmergencyContactRequest]:
        return self._get(EmergencyContactRequestRow, EmergencyContactRequest, request_id)

    def update_contact_request(
        self, request_id: str, **changes
    ) -> Optional[EmergencyContactRequest]:
        return self._update(
            EmergencyContactRequestRow, EmergencyContactRequest, request_id, changes
        )

    def get_emergency_preferences(
        self, user_id: str
    ) -> Optional[EmergencyPreferences]:
        return self._get(EmergencyPreferencesRow, EmergencyPreferences, user_id)

    def save_emergency_preferences(self, preferences: EmergencyPreferences) -> None:
        self._add(EmergencyPreferencesRow, preferences)

    def create_public_alert(
        self, alert: PublicEmergencyAlert
    ) -> PublicEmergencyAlert:
        return self._add(PublicEmergencyAlertRow, alert)

    def create_notification(self, notification: Notification) -> Notification:
        return self._add(NotificationRow, notification)

    def list_notifications(self, recipient_id: str) -> list[Notification]:
        stmt = (
            select(NotificationRow)
            .where(NotificationRow.recipient_id == recipient_id)
            .order_by(NotificationRow.created_at.desc())
        )
        return self._select(Notification, stmt)

    def find_alert_notification(
        self, alert_id: str, recipient_id: str
    ) -> Optional[Notification]:
        stmt = select(NotificationRow).where(
            NotificationRow.alert_id == alert_id,
            NotificationRow.recipient_id == recipient_id,
        )
        return self._first(Notification, stmt)

    def mark_notification_read(self, notification_id: str) -> Optional[Notification]:
        return self._update(
            NotificationRow, Notification, notification_id, {"is_read": True}
        )

    def add_delivery_logs(self, entries: Iterable[DeliveryLogEntry]) -> None:
        with self.Session() as session:
            for entry in entries:
                values = {k: _plain(v) for k, v in asdict(entry).items()}
                session.add(DeliveryLogRow(**values))
            session.commit()

    def list_delivery_logs(self, alert_id: str) -> list[DeliveryLogEntry]:
        stmt = (
            select(DeliveryLogRow)
            .where(DeliveryLogRow.alert_id == alert_id)
            .order_by(DeliveryLogRow.created_at.asc())
        )
        return self._select(DeliveryLogEntry, stmt)

    def create_escalation(self, escalation: Escalation) -> Escalation:
        return self._add(EscalationRow, escalation)

    def list_due_escalations(self, now: float, limit: int) -> list[Escalation]:
        stmt = (
            select(EscalationRow)
            .where(
                EscalationRow.status == EscalationStatus.PENDING.value,
                EscalationRow.due_at <= now,
            )
            .order_by(EscalationRow.due_at.asc())
            .limit(limit)
        )
        return self._select(Escalation, stmt)

    def update_escalation(self, escalation_id: str, **changes) -> Optional[Escalation]:
        return self._update(EscalationRow, Escalation, escalation_id, changes)

    def track_alert_metric(
        self,
        alert_id: str,
        metric_type: str,
        user_id: str | None = None,
        details: dict | None = None,
    ) -> None:
        self._add(
            AlertMetricRow,
            AlertMetric(
                alert_id=alert_id,
                metric_type=metric_type,
                user_id=user_id,
                details=details,
            ),
        )

    def find_company_by_name(self, name: str) -> Optional[Company]:
        return self._first(Company, select(CompanyRow).where(CompanyRow.name == name))

    def create_company(self, company: Company) -> Company:
        return self._add(CompanyRow, company)

    def create_api_key(self, api_key: ApiKeyRecord) -> ApiKeyRecord:
        return self._add(ApiKeyRow, api_key)

    def find_api_key_by_hash(self, key_hash: str) -> Optional[ApiKeyRecord]:
        stmt = select(ApiKeyRow).where(ApiKeyRow.key_hash == key_hash)
        return self._first(ApiKeyRecord, stmt)

    def create_access_request(self, request: ApiAccessRequest) -> ApiAccessRequest:
        return self._add(ApiAccessRequestRow, request)

    def get_access_request(self, request_id: str) -> Optional[ApiAccessRequest]:
        return self._get(ApiAccessRequestRow, ApiAccessRequest, request_id)

    def update_access_request(
        self, request_id: str, **changes
    ) -> Optional[ApiAccessRequest]:
        return self._update(ApiAccessRequestRow, ApiAccessRequest, request_id, changes)

    def log_activity(self, entry: ActivityLog) -> None:
        self._add(ActivityLogRow, entry)

    def delete_user_data(self, user_id: str) -> dict[str, int]:
        # Children first, the profile last.
        statements = [
            delete(NotificationRow).where(NotificationRow.recipient_id == user_id),
            delete(EmergencyContactRow).where(EmergencyContactRow.user_id == user_id),
            delete(EmergencyContactRequestRow).where(
                or_(
                    EmergencyContactRequestRow.sender_id == user_id,
                    EmergencyContactRequestRow.recipient_id == user_id,
                )
            ),
            delete(EmergencyPreferencesRow).where(
                EmergencyPreferencesRow.user_id == user_id
            ),
            delete(UserRoleRow).where(UserRoleRow.user_id == user_id),
            delete(StaffPermissionRow).where(StaffPermissionRow.user_id == user_id),
            delete(ProfileRow).where(ProfileRow.user_id == user_id),
        ]
        removed = {}
        with self.Session() as session:
            for stmt in statements:
                result = session.execute(stmt)
                removed[stmt.table.name] = result.rowcount
            session.commit()
        return removed

    def create_webhook_log(self, log: WebhookLog) -> WebhookLog:
        return self._add(WebhookLogRow, log)

    def update_webhook_log(self, log_id: str, **changes) -> Optional[WebhookLog]:
        return self._update(WebhookLogRow, WebhookLog, log_id, changes)

    def get_webhook_log(self, log_id: str) -> Optional[WebhookLog]:
        return self._get(WebhookLogRow, WebhookLog, log_id)

    def get_config(self, key: str) -> Any:
        with self.Session() as session:
            row = session.get(AppConfigRow, key)
            return row.config_value if row else None

    def set_config(self, key: str, value: Any) -> None:
        with self.Session() as session:
            session.merge(AppConfigRow(config_key=key, config_value=value))
            session.commit()


Base = declarative_base()


class ProfileRow(Base):
    __tablename__ = "profiles"

    user_id = Column(String, primary_key=True)
    full_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True, index=True)
    neighborhood = Column(String, nullable=True, index=True)
    avatar_url = Column(String, nullable=True)
    push_subscription = Column(JSON, nullable=True)
    last_seen_at = Column(Float, nullable=True, index=True)
    created_at = Column(Float, nullable=False)


class UserRoleRow(Base):
    __tablename__ = "user_roles"

    user_id = Column(String, primary_key=True)
    role = Column(String, primary_key=True)


class StaffPermissionRow(Base):
    __tablename__ = "staff_permissions"

    user_id = Column(String, primary_key=True)
    permission = Column(String, primary_key=True)
    access_type = Column(String, primary_key=True)


class AdCampaignRow(Base):
    __tablename__ = "advertisement_campaigns"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    campaign_name = Column(String, nullable=False)
    status = Column(String, nullable=False)
    payment_status = Column(String, nullable=False)
    payment_session_id = Column(String, nullable=True, index=True)
    payment_amount = Column(Float, nullable=True)
    payment_completed_at = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class BusinessRow(Base):
    __tablename__ = "businesses"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    business_name = Column(String, nullable=False)
    created_at = Column(Float, nullable=False)


class PromotionCampaignRow(Base):
    __tablename__ = "promotion_campaigns"

    id = Column(String, primary_key=True)
    business_id = Column(String, nullable=False, index=True)
    created_by = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    promotion_type = Column(String, nullable=False)
    budget = Column(Float, nullable=False)
    start_date = Column(Float, nullable=False)
    end_date = Column(Float, nullable=False)
    status = Column(String, nullable=False)
    payment_status = Column(String, nullable=False)
    payment_session_id = Column(String, nullable=True, index=True)
    target_locations = Column(JSON, nullable=False)
    images = Column(JSON, nullable=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class SafetyAlertRow(Base):
    __tablename__ = "safety_alerts"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    alert_type = Column(String, nullable=False)
    severity = Column(String, nullable=False)
    status = Column(String, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    address = Column(String, nullable=True)
    verified_at = Column(Float, nullable=True)
    verified_by = Column(String, nullable=True)
    created_at = Column(Float, nullable=False, index=True)
    updated_at = Column(Float, nullable=False)


class AlertResponseRow(Base):
    __tablename__ = "alert_responses"

    id = Column(String, primary_key=True)
    alert_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False)
    response_type = Column(String, nullable=False)
    comment = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)


class PanicAlertRow(Base):
    __tablename__ = "panic_alerts"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    situation_type = Column(String, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    address = Column(String, nullable=True)
    is_resolved = Column(Boolean, nullable=False, default=False)
    resolved_at = Column(Float, nullable=True)
    resolved_by = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class EmergencyContactRow(Base):
    __tablename__ = "emergency_contacts"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    contact_name = Column(String, nullable=False)
    phone_number = Column(String, nullable=False, index=True)
    preferred_methods = Column(JSON, nullable=False)
    contact_user_id = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)


class EmergencyContactRequestRow(Base):
    __tablename__ = "emergency_contact_requests"

    id = Column(String, primary_key=True)
    sender_id = Column(String, nullable=False, index=True)
    recipient_phone = Column(String, nullable=False)
    recipient_id = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False)
    notification_sent = Column(Boolean, nullable=False, default=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class EmergencyPreferencesRow(Base):
    __tablename__ = "emergency_preferences"

    user_id = Column(String, primary_key=True)
    auto_alert_public = Column(Boolean, nullable=False, default=False)
    share_location_with_public = Column(Boolean, nullable=False, default=False)


class PublicEmergencyAlertRow(Base):
    __tablename__ = "public_emergency_alerts"

    id = Column(String, primary_key=True)
    panic_alert_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False)
    situation_type = Column(String, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    address = Column(String, nullable=True)
    radius_km = Column(Float, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(Float, nullable=False)


class NotificationRow(Base):
    __tablename__ = "alert_notifications"

    id = Column(String, primary_key=True)
    notification_type = Column(String, nullable=False)
    recipient_id = Column(String, nullable=True, index=True)
    title = Column(String, nullable=True)
    content = Column(String, nullable=True)
    priority = Column(String, nullable=True)
    data = Column(JSON, nullable=True)
    delivery_method = Column(String, nullable=True)
    sender_name = Column(String, nullable=True)
    alert_id = Column(String, nullable=True, index=True)
    panic_alert_id = Column(String, nullable=True)
    sender_phone = Column(String, nullable=True)
    request_id = Column(String, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    sent_at = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)


class DeliveryLogRow(Base):
    __tablename__ = "notification_delivery_log"

    id = Column(String, primary_key=True)
    alert_id = Column(String, nullable=False, index=True)
    user_id = Column(String, nullable=False)
    delivery_channel = Column(String, nullable=False)
    delivery_status = Column(String, nullable=False)
    sent_at = Column(Float, nullable=True)
    failure_reason = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)


class EscalationRow(Base):
    __tablename__ = "notification_escalations"

    id = Column(String, primary_key=True)
    alert_id = Column(String, nullable=False)
    user_id = Column(String, nullable=False)
    due_at = Column(Float, nullable=False, index=True)
    status = Column(String, nullable=False, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    processed_at = Column(Float, nullable=True)
    last_error = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)


class AlertMetricRow(Base):
    __tablename__ = "alert_metrics"

    id = Column(String, primary_key=True)
    alert_id = Column(String, nullable=False, index=True)
    metric_type = Column(String, nullable=False)
    user_id = Column(String, nullable=True)
    details = Column("metadata", JSON, nullable=True)
    created_at = Column(Float, nullable=False)


class CompanyRow(Base):
    __tablename__ = "companies"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    billing_email = Column(String, nullable=True)
    technical_contact_email = Column(String, nullable=True)
    domain = Column(String, nullable=True)
    industry = Column(String, nullable=True)
    size = Column(String, nullable=True)
    website = Column(String, nullable=True)
    plan_type = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(Float, nullable=False)


class ApiKeyRow(Base):
    __tablename__ = "enterprise_api_keys"

    id = Column(String, primary_key=True)
    key_name = Column(String, nullable=False)
    key_prefix = Column(String, nullable=False)
    key_hash = Column(String, nullable=False, unique=True)
    company_id = Column(String, nullable=False, index=True)
    created_by = Column(String, nullable=False)
    environment = Column(String, nullable=False)
    permissions = Column(JSON, nullable=False)
    rate_limit_per_hour = Column(Integer, nullable=False)
    rate_limit_per_day = Column(Integer, nullable=False)
    request_id = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)


class ApiAccessRequestRow(Base):
    __tablename__ = "api_access_requests"

    id = Column(String, primary_key=True)
    company_name = Column(String, nullable=False)
    contact_email = Column(String, nullable=False)
    contact_name = Column(String, nullable=True)
    request_type = Column(String, nullable=True)
    message = Column(String, nullable=True)
    status = Column(String, nullable=False)
    company_id = Column(String, nullable=True)
    api_key_id = Column(String, nullable=True)
    resolved_at = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)


class ActivityLogRow(Base):
    __tablename__ = "activity_logs"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    action_type = Column(String, nullable=False)
    resource_type = Column(String, nullable=False)
    resource_id = Column(String, nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(Float, nullable=False)


class WebhookLogRow(Base):
    __tablename__ = "webhook_logs"

    id = Column(String, primary_key=True)
    source = Column(String, nullable=False)
    event_type = Column(String, nullable=False)
    payload = Column(JSON, nullable=True)
    signature = Column(String, nullable=True)
    status = Column(String, nullable=False)
    processing_result = Column(JSON, nullable=True)
    received_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class AppConfigRow(Base):
    __tablename__ = "app_configuration"

    config_key = Column(String, primary_key=True)
    config_value = Column(JSON, nullable=True)
