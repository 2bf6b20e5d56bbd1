"""Shared constants across the application."""

# Age thresholds (minutes since the oldest recent view); lower bound exclusive
URGENCY_MEDIUM_AFTER_MINUTES = 15
URGENCY_HIGH_AFTER_MINUTES = 20

# SMS body limits
SMS_MAX_LENGTH = 160
SMS_TRUNCATE_AT = 157
SMS_ELLIPSIS = "..."

# Reminder variations for A/B previews
DEFAULT_VARIATIONS = 3
MAX_VARIATIONS = 5

# Cache keys
LAST_SCAN_CACHE_KEY = "cart_recovery:scan:last"
SCAN_LOCK_KEY = "cart_recovery:scan:lock"
LAST_SCAN_TTL_SECONDS = 60 * 60 * 24

# Column limits for stored view fields
PRODUCT_ID_MAX_LENGTH = 255
PRODUCT_NAME_MAX_LENGTH = 500
EMAIL_MAX_LENGTH = 320
PHONE_MAX_LENGTH = 32
