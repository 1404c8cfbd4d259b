# app/services/demo_scheduling/exceptions.py
"""
Typed errors raised by the availability engine and the demo request service.

Each error carries a category, an HTTP status and a details dict so the HTTP
layer can translate it to JSON and the chat tool to prose without inspecting
the message text.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError


class ErrorCategory:
    VALIDATION = "validation_error"
    INVALID_DATETIME = "invalid_datetime"
    INVALID_TIMEZONE = "invalid_timezone"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_TRANSITION = "invalid_transition"
    WEEKEND_UNAVAILABLE = "weekend_unavailable"


# Human phrasing for each bookable field, used in "please tell me ..." prompts.
MISSING_FIELD_MESSAGES = {
    "name": "your full name",
    "email": "your email address",
    "demo_type": "the type of demo you'd like (general, enterprise, specific-feature or custom)",
    "preferred_datetime": "your preferred date and time (e.g. 2025-06-16 14:00)",
    "timezone": "your timezone (e.g. America/New_York)",
    "session_id": "the chat session id",
    "confirmed_datetime": "the confirmed date and time",
}

FIELD_LABELS = {
    "name": "name",
    "email": "email",
    "company": "company",
    "phone": "phone",
    "message": "message",
    "demo_type": "demo type",
    "preferred_datetime": "preferred date and time",
    "timezone": "timezone",
    "session_id": "session id",
    "metadata": "metadata",
    "confirmed_datetime": "confirmed date and time",
}


class DemoSchedulingError(Exception):
    """Base error with structured information."""

    category = "demo_scheduling_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


@dataclass
class FieldError:
    field: str
    code: str
    message: str


class DemoValidationError(DemoSchedulingError):
    """One or more fields are missing or invalid. Lists all of them."""

    category = ErrorCategory.VALIDATION
    status_code = 422

    def __init__(self, field_errors: List[FieldError], message: str = "Validation failed"):
        self.field_errors = field_errors
        super().__init__(message, details={"errors": self.errors, "codes": self.codes})

    @classmethod
    def single(cls, field: str, code: str, message: str) -> "DemoValidationError":
        return cls([FieldError(field=field, code=code, message=message)], message=message)

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "DemoValidationError":
        field_errors = []
        for error in exc.errors():
            field = str(error["loc"][0]) if error.get("loc") else "__root__"
            field_errors.append(
                FieldError(
                    field=field,
                    code=_error_code(field, error["type"]),
                    message=_error_message(field, error),
                )
            )
        return cls(field_errors)

    @property
    def errors(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for err in self.field_errors:
            grouped.setdefault(err.field, []).append(err.message)
        return grouped

    @property
    def codes(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for err in self.field_errors:
            grouped.setdefault(err.field, []).append(err.code)
        return grouped

    @property
    def missing_fields(self) -> List[str]:
        return [err.field for err in self.field_errors if err.code.endswith("_required")]


def _error_code(field: str, error_type: str) -> str:
    if error_type == "missing":
        return f"{field}_required"
    if error_type == "string_too_long":
        return f"{field}_too_long"
    if error_type.startswith(f"{field}_"):
        return error_type
    return f"{field}_invalid"


def _error_message(field: str, error: dict) -> str:
    label = FIELD_LABELS.get(field, field.replace("_", " "))
    if error["type"] == "missing":
        return f"The {label} field is required."
    if error["type"] == "string_too_long":
        limit = (error.get("ctx") or {}).get("max_length")
        return f"The {label} may not be greater than {limit} characters."
    if error["type"].startswith(f"{field}_"):
        return error["msg"]
    return f"The {label} is invalid."


class InvalidDatetimeError(DemoSchedulingError):
    category = ErrorCategory.INVALID_DATETIME
    status_code = 422

    def __init__(self, value, message: Optional[str] = None):
        self.value = value
        super().__init__(
            message or f"Could not understand the date and time '{value}'. Please use YYYY-MM-DD HH:MM.",
            details={"value": str(value)},
        )


class InvalidTimezoneError(DemoSchedulingError):
    category = ErrorCategory.INVALID_TIMEZONE
    status_code = 422

    def __init__(self, timezone_name):
        self.timezone = timezone_name
        super().__init__(
            f"'{timezone_name}' is not a recognised timezone. Use an IANA name such as America/New_York.",
            details={"timezone": str(timezone_name)},
        )


class DemoRequestNotFoundError(DemoSchedulingError):
    category = ErrorCategory.NOT_FOUND
    status_code = 404

    def __init__(self, demo_request_id: str):
        self.demo_request_id = demo_request_id
        super().__init__(
            f"Demo request {demo_request_id} not found",
            details={"demo_request_id": demo_request_id},
        )


class SlotConflictError(DemoSchedulingError):
    """The slot is taken. `suggestions` may be empty."""

    category = ErrorCategory.CONFLICT
    status_code = 409

    def __init__(self, suggestions: list, message: str = "The requested time slot is not available."):
        self.suggestions = suggestions
        super().__init__(
            message, details={"suggested_times": [slot.model_dump() for slot in suggestions]}
        )


class InvalidTransitionError(DemoSchedulingError):
    category = ErrorCategory.INVALID_TRANSITION
    status_code = 422

    def __init__(self, status: str, message: Optional[str] = None):
        self.status = status
        super().__init__(
            message or f"Cannot move a demo request to status '{status}'.",
            details={"status": status},
        )


class WeekendUnavailableError(DemoSchedulingError):
    category = ErrorCategory.WEEKEND_UNAVAILABLE
    status_code = 400

    def __init__(self):
        super().__init__("Demos are not available on weekends.")
