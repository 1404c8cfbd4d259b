# app/constants/demo_request.py
"""
Constants for demo request status, type and source values, plus the
scheduling rules the availability engine applies.
"""

from datetime import timedelta


class DemoRequestStatus:
    """Demo request status values."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"

    @classmethod
    def all_values(cls) -> list[str]:
        """Return all valid status values."""
        return [cls.PENDING, cls.CONFIRMED, cls.COMPLETED, cls.CANCELLED, cls.RESCHEDULED]

    @classmethod
    def is_valid(cls, status: str) -> bool:
        """Check if a status value is valid."""
        return status in cls.all_values()


class DemoType:
    """Demo type values. Label and length only; conflicts ignore the type."""
    GENERAL = "general"
    ENTERPRISE = "enterprise"
    SPECIFIC_FEATURE = "specific-feature"
    CUSTOM = "custom"

    LABELS = {
        GENERAL: "General Demo",
        ENTERPRISE: "Enterprise Demo",
        SPECIFIC_FEATURE: "Feature-Specific Demo",
        CUSTOM: "Custom Demo",
    }

    DURATION_MINUTES = {
        GENERAL: 30,
        ENTERPRISE: 45,
        SPECIFIC_FEATURE: 20,
        CUSTOM: 45,
    }

    @classmethod
    def all_values(cls) -> list[str]:
        return [cls.GENERAL, cls.ENTERPRISE, cls.SPECIFIC_FEATURE, cls.CUSTOM]

    @classmethod
    def is_valid(cls, demo_type: str) -> bool:
        return demo_type in cls.all_values()

    @classmethod
    def label(cls, demo_type: str) -> str:
        return cls.LABELS.get(demo_type, cls.LABELS[cls.GENERAL])

    @classmethod
    def duration(cls, demo_type: str) -> int:
        """Length of the demo in minutes."""
        return cls.DURATION_MINUTES.get(demo_type, cls.DURATION_MINUTES[cls.GENERAL])


class DemoRequestSource:
    """Where a demo request came from."""
    MANUAL = "manual"
    CHATBOT = "chatbot"
    API = "api"

    @classmethod
    def all_values(cls) -> list[str]:
        return [cls.MANUAL, cls.CHATBOT, cls.API]


class BulkAction:
    """Actions accepted by the admin bulk endpoint."""
    CONFIRM = "confirm"
    COMPLETE = "complete"
    CANCEL = "cancel"
    DELETE = "delete"

    @classmethod
    def all_values(cls) -> list[str]:
        return [cls.CONFIRM, cls.COMPLETE, cls.CANCEL, cls.DELETE]


# No two confirmed demos may start within this distance of each other.
CONFLICT_WINDOW = timedelta(hours=1)

# Alternative suggestions: local start hour must satisfy
# BUSINESS_HOUR_START <= hour <= BUSINESS_HOUR_END, so 18:xx is still offered.
BUSINESS_HOUR_START = 9
BUSINESS_HOUR_END = 18
MAX_SUGGESTIONS = 3

# Bookable hourly slots shown for a calendar day: 09:00 through 17:00.
DAY_SLOT_FIRST_HOUR = 9
DAY_SLOT_LAST_HOUR = 17

# Name of the row in demo_schedule_locks that serializes confirmations.
CONFIRMATION_LOCK_NAME = "demo_confirmations"
