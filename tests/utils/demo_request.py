from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.constants.demo_request import DemoRequestSource, DemoRequestStatus
from app.crud import demo_request as crud_demo_request
from app.models.demo_request import DemoRequest
from app.utils.timezones import parse_local_datetime

NEW_YORK = "America/New_York"

# Tuesday, 10 June 2025, 12:00 UTC. Every test sees this as "now".
FROZEN_NOW = datetime(2025, 6, 10, 12, 0, tzinfo=timezone.utc)


def local(value: str, tz_name: str = NEW_YORK) -> datetime:
    """'2025-06-16 14:00' read as wall-clock time in tz_name."""
    return parse_local_datetime(value, tz_name)


def valid_payload(**overrides) -> dict:
    payload = {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "company": "Analytical Engines",
        "demo_type": "general",
        "preferred_datetime": "2025-06-16 14:00",
        "timezone": NEW_YORK,
    }
    payload.update(overrides)
    return payload


def create_demo_request(
    db: Session,
    *,
    preferred: str = "2025-06-16 14:00",
    timezone_name: str = NEW_YORK,
    status: str = DemoRequestStatus.PENDING,
    confirmed: Optional[str] = None,
    **fields,
) -> DemoRequest:
    """
    Inserts a demo request directly, bypassing validation and availability.
    `confirmed` is a local wall-clock time in `timezone_name`.
    """
    obj_in = {
        "name": "Test Person",
        "email": "test@example.com",
        "demo_type": "general",
        "preferred_datetime": local(preferred, timezone_name),
        "timezone": timezone_name,
        "status": status,
        "source": DemoRequestSource.MANUAL,
        "confirmed_datetime": local(confirmed, timezone_name) if confirmed else None,
    }
    obj_in.update(fields)
    return crud_demo_request.create(db, obj_in=obj_in)


def create_confirmed_demo(db: Session, at: str, timezone_name: str = NEW_YORK, **fields) -> DemoRequest:
    return create_demo_request(
        db,
        preferred=at,
        timezone_name=timezone_name,
        status=DemoRequestStatus.CONFIRMED,
        confirmed=at,
        **fields,
    )
