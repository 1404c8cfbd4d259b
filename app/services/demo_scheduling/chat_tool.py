# app/services/demo_scheduling/chat_tool.py
"""
The `schedule_demo` tool handed to the chat agent.

The agent calls it with whatever it managed to extract from the
conversation; every argument is optional and free-form. The tool always
answers with text the agent can relay verbatim: a demo overview, a prompt
for missing details, a numbered list of alternatives, or a booking summary.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from app.constants.demo_request import DemoRequestSource, DemoType
from app.core.clock import Clock, system_clock
from app.core.config import settings
from app.models.demo_request import DemoRequest
from app.services.demo_scheduling.datetime_normalizer import normalize_datetime_input
from app.services.demo_scheduling.exceptions import (
    MISSING_FIELD_MESSAGES,
    DemoValidationError,
    InvalidDatetimeError,
    InvalidTimezoneError,
    SlotConflictError,
)
from app.services.demo_scheduling.service import DemoRequestService
from app.utils.timezones import format_human

logger = logging.getLogger(__name__)

DEMO_CATALOGUE = {
    DemoType.GENERAL: {
        "name": "General Platform Demo",
        "duration": "30 minutes",
        "description": "A comprehensive overview of the platform and its key features.",
    },
    DemoType.ENTERPRISE: {
        "name": "Enterprise Demo",
        "duration": "45 minutes",
        "description": "A deep dive into security, integrations, scalability and custom pricing.",
    },
    DemoType.SPECIFIC_FEATURE: {
        "name": "Feature-Focused Demo",
        "duration": "20 minutes",
        "description": "A focused walkthrough of the features you care about most.",
    },
    DemoType.CUSTOM: {
        "name": "Custom Demo",
        "duration": "45 minutes",
        "description": "An agenda built around your own use case and questions.",
    },
}

TOOL_ARGUMENTS = (
    "name",
    "email",
    "company",
    "phone",
    "demo_type",
    "preferred_datetime",
    "timezone",
    "message",
    "session_id",
)

# Any of these means the user is actually trying to book, not just browsing.
_BOOKING_SIGNALS = ("name", "email", "preferred_datetime", "timezone")

TOOL_DEFINITION = {
    "name": "schedule_demo",
    "description": (
        "Book a product demo. Use when the user wants to schedule a demo, book a "
        "meeting or see the platform in action. Pass whatever details are known; "
        "the tool replies with what is still missing."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "Full name of the person booking"},
            "email": {"type": "string", "description": "Contact email address"},
            "company": {"type": "string", "description": "Company name"},
            "phone": {"type": "string", "description": "Phone number"},
            "demo_type": {
                "type": "string",
                "enum": DemoType.all_values(),
                "description": "Kind of demo requested",
            },
            "preferred_datetime": {
                "type": "string",
                "description": "Preferred start, ISO (2025-06-16T14:00) or natural text ('tomorrow at 3pm')",
            },
            "timezone": {"type": "string", "description": "IANA timezone, e.g. America/New_York"},
            "message": {"type": "string", "description": "Anything the user wants covered"},
            "session_id": {"type": "string", "description": "Chat session identifier"},
        },
        "required": [],
    },
}


def _clean_arguments(arguments: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for key in TOOL_ARGUMENTS:
        value = arguments.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        cleaned[key] = value
    return cleaned


class ScheduleDemoTool:
    name = TOOL_DEFINITION["name"]

    def __init__(
        self,
        db: Session,
        *,
        clock: Clock = system_clock,
        support_email: Optional[str] = None,
    ):
        self.db = db
        self.clock = clock
        self.support_email = support_email or settings.SUPPORT_EMAIL
        # Set by a call that created a request, so callers can send notifications.
        self.booked: Optional[DemoRequest] = None

    def __call__(self, **arguments: Any) -> str:
        self.booked = None
        provided = _clean_arguments(arguments)
        if not any(key in provided for key in _BOOKING_SIGNALS):
            return self.format_overview(provided.get("demo_type"))

        try:
            return self._schedule(provided)
        except Exception:
            logger.exception(
                "schedule_demo tool failed",
                extra={"session_id": provided.get("session_id")},
            )
            self.db.rollback()
            return self.format_internal_error()

    def _schedule(self, provided: Dict[str, Any]) -> str:
        data = dict(provided)
        raw_datetime = provided.get("preferred_datetime")
        timezone_name = provided.get("timezone")
        requested_local = None
        # True once the text is known to parse; only the timezone is then in question.
        datetime_understood = False

        if raw_datetime and timezone_name:
            try:
                normalized = normalize_datetime_input(raw_datetime, timezone_name, self.clock.now())
            except InvalidTimezoneError:
                datetime_understood = self._parses_without_timezone(raw_datetime)
            except InvalidDatetimeError:
                # Left as typed; validation reports it.
                pass
            else:
                requested_local = normalized.local
                data["preferred_datetime"] = normalized.canonical
        elif raw_datetime:
            datetime_understood = self._parses_without_timezone(raw_datetime)

        data["metadata"] = {
            "scheduled_via": "chat_tool",
            "original_datetime_input": raw_datetime,
        }

        service = DemoRequestService(self.db, clock=self.clock)
        try:
            demo = service.book(data, source=DemoRequestSource.CHATBOT)
        except DemoValidationError as e:
            skip_codes = {"preferred_datetime_invalid"} if datetime_understood else set()
            return self.format_validation_prompt(e, skip_codes=skip_codes)
        except SlotConflictError as e:
            return self.format_conflict(requested_local, e.suggestions)

        self.booked = demo
        logger.info(
            f"Demo request {demo.id} booked through chat",
            extra={"session_id": demo.session_id},
        )
        return self.format_booked(demo)

    def _parses_without_timezone(self, raw_datetime: Any) -> bool:
        try:
            normalize_datetime_input(raw_datetime, "UTC", self.clock.now())
        except InvalidDatetimeError:
            return False
        return True

    # ------------------------------------------------------------------ #
    # Replies
    # ------------------------------------------------------------------ #

    def format_overview(self, demo_type: Optional[str] = None) -> str:
        demo_type = (demo_type or "").lower()
        if demo_type in DEMO_CATALOGUE:
            demo = DEMO_CATALOGUE[demo_type]
            intro = (
                f"**{demo['name']} ({demo['duration']})**\n\n"
                f"{demo['description']}\n\n"
            )
        else:
            intro = "I'd be happy to help you schedule a demo! We offer several demo options:\n\n"
            for demo in DEMO_CATALOGUE.values():
                intro += f"**{demo['name']} ({demo['duration']})**\n{demo['description']}\n\n"

        return (
            intro
            + "To book it, please tell me:\n"
            + "".join(
                f"• {MISSING_FIELD_MESSAGES[field]}\n"
                for field in ("name", "email", "preferred_datetime", "timezone")
            )
        )

    def format_validation_prompt(
        self, error: DemoValidationError, skip_codes: Iterable[str] = ()
    ) -> str:
        missing = [MISSING_FIELD_MESSAGES.get(field, field) for field in error.missing_fields]
        invalid = [
            err.message
            for err in error.field_errors
            if not err.code.endswith("_required") and err.code not in skip_codes
        ]

        parts = []
        if missing:
            parts.append(
                "To book your demo I still need:\n" + "".join(f"• {item}\n" for item in missing)
            )
        if invalid:
            parts.append(
                "Some details need another look:\n" + "".join(f"• {item}\n" for item in invalid)
            )
        return "\n".join(parts)

    def format_conflict(self, requested_local, suggestions) -> str:
        requested = (
            f"{format_human(requested_local)} is" if requested_local is not None else "That time is"
        )
        if not suggestions:
            return (
                f"Unfortunately {requested} already booked and there are no nearby "
                "alternatives available. Please pick a different time."
            )

        options = "".join(
            f"{index}. {slot.formatted}\n" for index, slot in enumerate(suggestions, start=1)
        )
        return (
            f"Unfortunately {requested} already booked. Here are some alternative times:\n\n"
            f"{options}\n"
            "Let me know which one works for you, or suggest another time."
        )

    def format_booked(self, demo) -> str:
        company = f"• **Company:** {demo.company}\n" if demo.company else ""
        return (
            f"**Your {demo.demo_type_label} request is in!**\n\n"
            f"• **Name:** {demo.name}\n"
            f"• **Email:** {demo.email}\n"
            f"{company}"
            f"• **Requested time:** {demo.formatted_preferred_datetime}\n"
            f"• **Reference:** {demo.id}\n\n"
            "Our team will confirm the details with you by email within 24 hours."
        )

    def format_internal_error(self) -> str:
        return (
            "I'm sorry, I couldn't schedule your demo right now because of a technical issue. "
            f"Please try again in a moment, or email us at {self.support_email} and "
            "we'll set it up for you."
        )
