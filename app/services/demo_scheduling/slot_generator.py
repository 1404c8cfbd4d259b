# app/services/demo_scheduling/slot_generator.py
"""
Alternative time suggestions for a slot that turned out to be taken.

This is a best-effort "did you mean" rather than a search: exactly three
candidates are tried, always in the same order, and each one is accepted or
dropped on its own merits.

    1. base + 2 hours
    2. base + 1 day (same wall-clock time)
    3. base + 1 day + 2 hours
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, List

from app.constants.demo_request import (
    BUSINESS_HOUR_END,
    BUSINESS_HOUR_START,
    MAX_SUGGESTIONS,
)
from app.schemas.demo_request import Slot
from app.utils.timezones import format_human, normalize_local, to_utc_iso

# Receives an aware UTC instant, answers whether it clashes with a booking.
ConflictPredicate = Callable[[datetime], bool]


def candidate_alternatives(base_local: datetime) -> List[datetime]:
    """
    The three candidates for an aware local `base_local`, in evaluation order.

    "+2 hours" is elapsed time; "+1 day" keeps the local clock time, so a DST
    change overnight doesn't shift the suggestion by an hour.
    """
    zone = base_local.tzinfo
    plus_two_hours = (base_local.astimezone(timezone.utc) + timedelta(hours=2)).astimezone(zone)
    next_day = normalize_local(base_local + timedelta(days=1))
    next_day_plus_two = (next_day.astimezone(timezone.utc) + timedelta(hours=2)).astimezone(zone)
    return [plus_two_hours, next_day, next_day_plus_two]


def is_within_business_hours(local_dt: datetime) -> bool:
    # hour == 18 passes on purpose: 18:xx is still offered as a start time.
    return BUSINESS_HOUR_START <= local_dt.hour <= BUSINESS_HOUR_END


def is_weekend(local_dt: datetime) -> bool:
    return local_dt.weekday() >= 5


def to_slot(local_dt: datetime, timezone_name: str) -> Slot:
    return Slot(
        datetime=to_utc_iso(local_dt),
        local_datetime=local_dt.isoformat(),
        formatted=format_human(local_dt),
        timezone=timezone_name,
    )


def generate_alternatives(
    base_local: datetime,
    timezone_name: str,
    is_conflicting: ConflictPredicate,
    limit: int = MAX_SUGGESTIONS,
) -> List[Slot]:
    """
    Suggest up to `limit` alternatives to `base_local`.

    Candidates outside business hours, on a weekend, or clashing with a
    confirmed booking are skipped. Returning fewer than `limit` (or none) is
    normal.
    """
    suggestions: List[Slot] = []
    for candidate in candidate_alternatives(base_local):
        if not is_within_business_hours(candidate):
            continue
        if is_weekend(candidate):
            continue
        if is_conflicting(candidate.astimezone(timezone.utc)):
            continue

        suggestions.append(to_slot(candidate, timezone_name))
        if len(suggestions) >= limit:
            break

    return suggestions
