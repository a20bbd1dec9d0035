"""
Fixed values used across handlers.
"""

ADMIN_ROLES = ("admin", "super_admin")
MODERATOR_ROLES = ("moderator", "super_admin", "admin", "manager")
MODERATION_PERMISSIONS = ("content_moderation", "emergency_management")

# Promotion prices in kobo, keyed by promotion type then duration in days.
PROMOTION_PRICING = {
    "basic": {7: 500000, 14: 800000, 30: 1400000},
    "premium": {7: 1000000, 14: 1800000, 30: 3200000},
    "featured": {7: 2000000, 14: 3500000, 30: 6000000},
}

SITUATION_LABELS = {
    "medical_emergency": "Medical Emergency",
    "fire": "Fire Emergency",
    "break_in": "Break In",
    "assault": "Assault",
    "accident": "Accident",
    "natural_disaster": "Natural Disaster",
    "suspicious_activity": "Suspicious Activity",
    "domestic_violence": "Domestic Violence",
    "other": "Emergency",
}

PUBLIC_ALERT_RADIUS_KM = 5
NON_CRITICAL_TARGET_LIMIT = 50
SMS_MAX_LENGTH = 140

API_KEY_PREFIX = "nlk"
API_KEY_PREFIX_LENGTH = 20
DEFAULT_RATE_LIMIT_PER_HOUR = 1000
DEFAULT_RATE_LIMIT_PER_DAY = 10000

MAX_NOTIFICATION_TITLE_LENGTH = 200
MAX_NOTIFICATION_BODY_LENGTH = 4000

API_REQUEST_TYPE_LABELS = {
    "enterprise": "Enterprise API Access",
    "technical": "Technical Support",
    "partnership": "Partnership Inquiry",
    "other": "General Inquiry",
}
