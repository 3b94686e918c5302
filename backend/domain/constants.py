"""
Domain constants used across services/routers.
"""

# Status names created on demand when no mapping is configured
DEFAULT_CREATION_STATUS_NAME = "Draft"
PAYMENT_SUCCESS_FALLBACK_STATUS_NAME = "New Order"
PAYMENT_FAILED_FALLBACK_STATUS_NAME = "Cancelled: Payment Failed"

# Scheduler settings
CRON_SCHEDULE_SETTING_KEY = "cron_schedule"
DEFAULT_GRACE_MINUTES = 30

# Audit actor label used for system-attributed entries
SYSTEM_ACTOR_NAME = "Bot"

# Placeholder for snapshots of a missing status
UNKNOWN_STATUS_NAME = "Unknown"
