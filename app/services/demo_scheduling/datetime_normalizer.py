# app/services/demo_scheduling/datetime_normalizer.py
"""
Turn whatever a person (or a language model) typed as a date and time into
the strict "YYYY-MM-DD HH:MM" local form the availability engine accepts.

Handles ISO input with or without seconds, a stray trailing "T", a "Z" or
numeric offset, and loose phrases such as "tomorrow at 3pm",
"next tuesday 10:30am" or "June 16 at 2pm".
"""

import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional

from dateutil import parser as date_parser

from app.services.demo_scheduling.exceptions import (
    InvalidDatetimeError,
    InvalidTimezoneError,
)
from app.utils.timezones import load_zone, normalize_local

CANONICAL_FORMAT = "%Y-%m-%d %H:%M"

_ISO_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_TIME_HINT = re.compile(r"\d{1,2}\s*(?::\d{2})?\s*(?:am|pm|a\.m\.|p\.m\.)|\d{1,2}:\d{2}|\bnoon\b|\bmidday\b")
_WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


@dataclass(frozen=True)
class NormalizedDatetime:
    local: datetime  # aware, in `timezone`
    timezone: str

    @property
    def canonical(self) -> str:
        return self.local.strftime(CANONICAL_FORMAT)


def _parse_iso(text: str, zone) -> datetime:
    if text[-1:] in ("T", "t"):
        text = text[:-1]
    parsed = date_parser.isoparse(text)
    if parsed.tzinfo is None:
        return normalize_local(parsed.replace(tzinfo=zone))
    return parsed.astimezone(zone)


def _resolve_day(text: str, today) -> tuple[Optional[object], str]:
    """Pull a relative day word out of `text`; return (date or None, rest)."""
    if "day after tomorrow" in text:
        return today + timedelta(days=2), text.replace("day after tomorrow", " ")
    if "tomorrow" in text:
        return today + timedelta(days=1), text.replace("tomorrow", " ")
    for word in ("today", "tonight", "this afternoon", "this morning"):
        if word in text:
            return today, text.replace(word, " ")
    for name, weekday in _WEEKDAYS.items():
        match = re.search(rf"\b(?:next\s+|this\s+|on\s+)?{name}\b", text)
        if match:
            ahead = (weekday - today.weekday()) % 7 or 7
            return today + timedelta(days=ahead), text[: match.start()] + " " + text[match.end():]
    return None, text


def _parse_natural(text: str, zone, now: datetime) -> datetime:
    lowered = text.lower().replace("noon", "12:00pm").replace("midday", "12:00pm")
    if not _TIME_HINT.search(lowered):
        raise InvalidDatetimeError(text, "Please include a time of day, for example 'June 16 at 2pm'.")

    today = now.astimezone(zone).date()
    day, rest = _resolve_day(lowered, today)
    default = datetime.combine(day or today, time(0, 0))

    try:
        parsed = date_parser.parse(rest, default=default, fuzzy=True)
    except (date_parser.ParserError, ValueError, OverflowError):
        raise InvalidDatetimeError(text)

    if day is not None:
        parsed = datetime.combine(day, parsed.time())
    if parsed.tzinfo is not None:
        return parsed.astimezone(zone)
    return normalize_local(parsed.replace(tzinfo=zone))


def normalize_datetime_input(raw, timezone_name: str, now: datetime) -> NormalizedDatetime:
    """
    Normalize free-text or ISO input to a local datetime in `timezone_name`.

    `now` anchors relative words ("today", "tomorrow", weekday names).

    Raises:
        InvalidTimezoneError: Unknown timezone
        InvalidDatetimeError: Nothing usable could be parsed
    """
    try:
        zone = load_zone(timezone_name)
    except ValueError:
        raise InvalidTimezoneError(timezone_name)

    if isinstance(raw, datetime):
        local = raw.astimezone(zone) if raw.tzinfo else normalize_local(raw.replace(tzinfo=zone))
        return NormalizedDatetime(local=local, timezone=timezone_name)

    text = str(raw or "").strip()
    if not text:
        raise InvalidDatetimeError(raw, "A preferred date and time is required.")

    if _ISO_PREFIX.match(text):
        try:
            local = _parse_iso(text, zone)
        except ValueError:
            raise InvalidDatetimeError(text)
    else:
        local = _parse_natural(text, zone, now)

    return NormalizedDatetime(local=local.replace(second=0, microsecond=0), timezone=timezone_name)
