# app/utils/timezones.py
"""
Timezone helpers shared by the models, the availability engine and the
notification emails. All arithmetic uses zoneinfo-aware datetimes.
"""

from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@lru_cache(maxsize=256)
def load_zone(name: str) -> ZoneInfo:
    """
    Resolve an IANA timezone identifier.

    Raises:
        ValueError: If the identifier is empty or unknown
    """
    if not name or not isinstance(name, str):
        raise ValueError("Timezone is required")
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def is_valid_timezone(name: str) -> bool:
    try:
        load_zone(name)
    except ValueError:
        return False
    return True


def normalize_local(dt: datetime) -> datetime:
    """
    Round-trip through UTC so wall-clock times that fall in a DST gap or
    overlap settle on a real instant with the right offset.
    """
    return dt.astimezone(timezone.utc).astimezone(dt.tzinfo)


def to_utc_iso(dt: datetime) -> str:
    """ISO-8601 UTC instant with a Z suffix, e.g. 2025-06-16T18:00:00Z."""
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def format_human(dt: datetime) -> str:
    """Render like 'Jun 16, 2025 at 2:00 PM EDT'."""
    hour12 = dt.hour % 12 or 12
    meridiem = "AM" if dt.hour < 12 else "PM"
    return (
        f"{dt.strftime('%b')} {dt.day}, {dt.year} at "
        f"{hour12}:{dt.minute:02d} {meridiem} {dt.tzname()}"
    )


def format_clock_time(dt: datetime) -> str:
    """Render like '2:00 PM'."""
    hour12 = dt.hour % 12 or 12
    meridiem = "AM" if dt.hour < 12 else "PM"
    return f"{hour12}:{dt.minute:02d} {meridiem}"


def parse_local_datetime(value, tz_name: str) -> datetime:
    """
    Interpret `value` as a wall-clock time in `tz_name`.

    Accepts a datetime or an ISO-8601 style string ("2025-06-16 14:00",
    "2025-06-16T14:00:00"). Values that already carry an offset (including a
    trailing Z) keep their instant and are converted into the zone.

    Raises:
        ValueError: If the zone is unknown or the value can't be parsed
    """
    zone = load_zone(tz_name)
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"Unrecognised datetime: {value}") from e
    else:
        raise ValueError("Datetime is required")

    if parsed.tzinfo is None:
        return normalize_local(parsed.replace(tzinfo=zone))
    return parsed.astimezone(zone)
