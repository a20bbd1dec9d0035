"""
Pydantic schemas for the NeighborLink API.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from shared.constants import MAX_NOTIFICATION_BODY_LENGTH, MAX_NOTIFICATION_TITLE_LENGTH


class AdPaymentRequest(BaseModel):
    campaign_id: str = Field(..., max_length=64)
    amount: float
    currency: Optional[str] = None
    description: Optional[str] = None


class BusinessPromotionRequest(BaseModel):
    business_id: str = Field(..., max_length=64)
    promotion_type: str
    duration_days: int
    target_location: Optional[str] = None
    images: list[str] = Field(default_factory=list)


class PaymentSessionResponse(BaseModel):
    url: str
    session_id: str
    promotion_id: Optional[str] = None


class WebhookAck(BaseModel):
    received: bool


class ProcessAlertRequest(BaseModel):
    priority: int = 3


class ProcessAlertResponse(BaseModel):
    alert_id: str
    status: str


class DeliverAlertRequest(BaseModel):
    alert_id: str
    user_id: str
    channels: list[Literal["websocket", "push", "sms", "email"]]
    priority: int = 3


class DeliveryResultModel(BaseModel):
    channel: str
    status: str
    timestamp: str
    error: Optional[str] = None


class DeliverAlertResponse(BaseModel):
    success: bool
    alert_id: str
    user_id: str
    delivery_results: list[DeliveryResultModel]


class PushNotificationRequest(BaseModel):
    user_id: str
    title: str = Field(..., max_length=MAX_NOTIFICATION_TITLE_LENGTH)
    message: str = Field(..., max_length=MAX_NOTIFICATION_BODY_LENGTH)
    type: str = "notification"
    priority: str = "normal"
    data: dict = Field(default_factory=dict)


class EmailNotificationRequest(BaseModel):
    to: str
    subject: str = Field(..., max_length=MAX_NOTIFICATION_TITLE_LENGTH)
    body: str
    type: str = "notification"
    user_id: Optional[str] = None


class NotificationSendResponse(BaseModel):
    success: bool
    message: str
    recipient: str
    type: str
    delivery: str
    sentAt: str
    title: Optional[str] = None
    subject: Optional[str] = None
    priority: Optional[str] = None


class NotificationModel(BaseModel):
    id: str
    notification_type: str
    title: Optional[str] = None
    content: Optional[str] = None
    priority: Optional[str] = None
    data: Optional[dict] = None
    sender_name: Optional[str] = None
    alert_id: Optional[str] = None
    panic_alert_id: Optional[str] = None
    is_read: bool
    sent_at: Optional[float] = None
    created_at: float


class ListNotificationsResponse(BaseModel):
    notifications: list[NotificationModel]
    unread: int


class ProcessEscalationsRequest(BaseModel):
    limit: int = Field(default=50, ge=1, le=500)


class ProcessEscalationsResponse(BaseModel):
    processed: int
    results: list[dict]


class EmergencyLocation(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None


class EmergencyAlertRequest(BaseModel):
    panic_alert_id: str
    situation_type: str
    location: EmergencyLocation = Field(default_factory=EmergencyLocation)
    user_name: str


class EmergencyAlertResponse(BaseModel):
    success: bool
    message: str
    contacts_notified: int
    contacts_failed: int = 0
    public_alert_id: Optional[str] = None
    safety_alert_id: Optional[str] = None


class PanicStatusRequest(BaseModel):
    panic_alert_id: str
    new_status: Literal["active", "resolved", "investigating", "false_alarm"]
    update_note: Optional[str] = None


class PanicAlertModel(BaseModel):
    id: str
    user_id: str
    situation_type: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None
    is_resolved: bool
    resolved_at: Optional[float] = None
    resolved_by: Optional[str] = None
    created_at: float
    updated_at: float


class PanicStatusResponse(BaseModel):
    success: bool
    panic_alert: PanicAlertModel
    message: str


class GenerateApiKeyRequest(BaseModel):
    company_name: str
    billing_email: str
    technical_contact_email: str
    key_name: str
    environment: Literal["production", "development", "staging"]
    permissions: list[str]
    company_domain: Optional[str] = None
    industry: Optional[str] = None
    company_size: Optional[str] = None
    website: Optional[str] = None
    request_id: Optional[str] = None
    rate_limit_per_hour: Optional[int] = Field(default=None, ge=1)
    rate_limit_per_day: Optional[int] = Field(default=None, ge=1)
    expires_at: Optional[float] = None


class GenerateApiKeyResponse(BaseModel):
    success: bool
    api_key: str
    key_id: str
    key_prefix: str
    company_id: str
    message: str


class ApiAccessRequestIn(BaseModel):
    name: str
    email: str
    company: str
    request_type: str
    message: str


class ApiAccessRequestResponse(BaseModel):
    success: bool
    request_id: str
    email_id: Optional[str] = None


class WebhookRequest(BaseModel):
    source: str
    event: str
    data: Optional[dict] = None
    signature: Optional[str] = None


class HeartbeatRequest(BaseModel):
    user_name: Optional[str] = None
    avatar_url: Optional[str] = None


class PresenceResponse(BaseModel):
    online_users: dict[str, dict]
    status: dict


class OfflineCachePutRequest(BaseModel):
    value: str


class OfflineCacheUsageResponse(BaseModel):
    used: int
    total: int
    percentage: int
    available: int
    items: int
    is_storage_low: bool
    info: str


class PruneRequest(BaseModel):
    target_percentage: float = Field(default=80, ge=0, le=100)


class PruneResponse(BaseModel):
    bytes_freed: int
    usage: OfflineCacheUsageResponse


class SignUploadResponse(BaseModel):
    url: str
    path: str


class ExportResponse(BaseModel):
    success: bool
    path: str
    url: str


class ContactInvitationResponse(BaseModel):
    success: bool
    message: str
    notification_id: Optional[str] = None


class DeleteAccountRequest(BaseModel):
    confirmation: str


class DeleteAccountResponse(BaseModel):
    success: bool
    message: str
    removed: dict[str, int]
