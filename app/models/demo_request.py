# app/models/demo_request.py
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Column, Index, Integer, String, Text, func

from app.constants.demo_request import DemoRequestSource, DemoRequestStatus, DemoType
from app.db.base_class import Base
from app.db.types import UTCDateTime
from app.utils.timezones import format_human, load_zone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DemoRequest(Base):
    """
    A request to see a product demo.

    preferred_datetime and confirmed_datetime are stored as UTC instants;
    timezone is the requester's IANA zone used to render them back.
    confirmed_datetime is only written by the confirm transition and is kept
    as history when the request later completes or is cancelled.
    """
    __tablename__ = "demo_requests"

    id = Column(
        String, primary_key=True, default=lambda: f"demo_{uuid.uuid4().hex[:12]}"
    )
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    company = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    message = Column(Text, nullable=True)
    demo_type = Column(String(32), nullable=False, default=DemoType.GENERAL)

    preferred_datetime = Column(UTCDateTime, nullable=False)
    timezone = Column(String(64), nullable=False)

    status = Column(
        String(20), nullable=False, default=DemoRequestStatus.PENDING,
        server_default=DemoRequestStatus.PENDING,
    )
    confirmed_datetime = Column(UTCDateTime, nullable=True)

    source = Column(String(20), nullable=False, default=DemoRequestSource.MANUAL)
    session_id = Column(String(100), nullable=True, index=True)  # chatbot conversation
    user_id = Column(String, nullable=True)  # No FK - users live in another service
    admin_notes = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes, hence the attribute name.
    request_metadata = Column("metadata", JSON, nullable=True)

    created_at = Column(
        UTCDateTime, nullable=False, default=_utcnow, server_default=func.now()
    )
    updated_at = Column(
        UTCDateTime, nullable=False, default=_utcnow, onupdate=_utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_demo_requests_status_preferred", "status", "preferred_datetime"),
        Index("ix_demo_requests_status_confirmed", "status", "confirmed_datetime"),
        Index("ix_demo_requests_email_status", "email", "status"),
    )

    def _localize(self, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        return value.astimezone(load_zone(self.timezone))

    @property
    def preferred_datetime_local(self) -> Optional[datetime]:
        return self._localize(self.preferred_datetime)

    @property
    def confirmed_datetime_local(self) -> Optional[datetime]:
        return self._localize(self.confirmed_datetime)

    @property
    def formatted_preferred_datetime(self) -> Optional[str]:
        local = self.preferred_datetime_local
        return format_human(local) if local else None

    @property
    def formatted_confirmed_datetime(self) -> Optional[str]:
        local = self.confirmed_datetime_local
        return format_human(local) if local else None

    @property
    def demo_type_label(self) -> str:
        return DemoType.label(self.demo_type)


class DemoScheduleLock(Base):
    """
    Single-row mutex table. Confirmations bump `version` on the named row
    before re-checking conflicts, which serializes them at the database.
    """
    __tablename__ = "demo_schedule_locks"

    name = Column(String(64), primary_key=True)
    version = Column(Integer, nullable=False, default=0, server_default="0")
