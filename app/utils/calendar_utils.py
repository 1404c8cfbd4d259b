"""
Calendar utilities for generating ICS invites for confirmed demos.

The invite is RFC 5545 compliant and carries a reminder alarm, so it can be
attached to the confirmation email or downloaded from the admin API.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from icalendar import Alarm, Calendar, Event

from app.constants.demo_request import DemoType
from app.core.config import settings


def generate_demo_ics(demo, now: Optional[datetime] = None) -> bytes:
    """
    Generate an ICS invite for a confirmed demo request.

    Args:
        demo: A DemoRequest with a confirmed_datetime
        now: Timestamp for DTSTAMP (defaults to the current time)

    Returns:
        bytes: ICS file content as bytes

    Raises:
        ValueError: The demo has not been confirmed
    """
    if demo.confirmed_datetime is None:
        raise ValueError(f"Demo request {demo.id} has no confirmed datetime")

    start_time = demo.confirmed_datetime
    if start_time.tzinfo is None:
        start_time = start_time.replace(tzinfo=timezone.utc)
    end_time = start_time + timedelta(minutes=DemoType.duration(demo.demo_type))

    cal = Calendar()
    cal.add("prodid", "-//Demo Scheduling//Product Demos//EN")
    cal.add("version", "2.0")
    cal.add("method", "REQUEST")
    cal.add("calscale", "GREGORIAN")

    event = Event()
    event.add("uid", f"{demo.id}@{settings.RESEND_FROM_DOMAIN}")
    event.add("dtstamp", now or datetime.now(timezone.utc))
    event.add("dtstart", start_time)
    event.add("dtend", end_time)
    event.add("summary", f"{demo.demo_type_label} with {demo.company or demo.name}")

    description = f"""Your {demo.demo_type_label} is confirmed.

Time: {demo.formatted_confirmed_datetime}
Reference: {demo.id}

{demo.message or ''}"""

    event.add("description", description.strip())
    event.add("location", "Online - the meeting link follows by email")
    event.add("status", "CONFIRMED")
    event.add("transp", "OPAQUE")
    event.add("sequence", 0)
    event.add(
        "organizer",
        f"mailto:{settings.DEMO_TEAM_EMAIL}",
        parameters={"cn": "Demo Team"},
    )
    event.add("attendee", f"mailto:{demo.email}", parameters={"cn": demo.name})

    alarm = Alarm()
    alarm.add("action", "DISPLAY")
    alarm.add("trigger", timedelta(minutes=-15))
    alarm.add("description", f"{demo.demo_type_label} starting in 15 minutes")
    event.add_component(alarm)

    cal.add_component(event)
    return cal.to_ical()


def generate_ics_filename(demo) -> str:
    return f"demo-{demo.id}.ics"
