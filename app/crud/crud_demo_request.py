# app/crud/crud_demo_request.py
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .base import CRUDBase
from app.constants.demo_request import CONFLICT_WINDOW, DemoRequestStatus
from app.models.demo_request import DemoRequest, DemoScheduleLock
from app.schemas.demo_request import DemoRequestCreate, DemoRequestUpdate

logger = logging.getLogger(__name__)


class CRUDDemoRequest(CRUDBase[DemoRequest, DemoRequestCreate, DemoRequestUpdate]):
    """Persistence for demo requests. Callers own validation and commits of transitions."""

    def find_conflicting(
        self,
        db: Session,
        *,
        instant: datetime,
        window: timedelta = CONFLICT_WINDOW,
        exclude_id: Optional[str] = None,
    ) -> Optional[DemoRequest]:
        """
        Return a confirmed request whose confirmed_datetime lies in the closed
        interval [instant - window, instant + window], or None.
        """
        query = db.query(self.model).filter(
            self.model.status == DemoRequestStatus.CONFIRMED,
            self.model.confirmed_datetime >= instant - window,
            self.model.confirmed_datetime <= instant + window,
        )
        if exclude_id is not None:
            query = query.filter(self.model.id != exclude_id)
        return query.order_by(self.model.confirmed_datetime).first()

    def _filtered_query(
        self,
        db: Session,
        *,
        status: Optional[str] = None,
        demo_type: Optional[str] = None,
        source: Optional[str] = None,
        search: Optional[str] = None,
    ):
        query = db.query(self.model)
        if status:
            query = query.filter(self.model.status == status)
        if demo_type:
            query = query.filter(self.model.demo_type == demo_type)
        if source:
            query = query.filter(self.model.source == source)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    self.model.name.ilike(pattern),
                    self.model.email.ilike(pattern),
                    self.model.company.ilike(pattern),
                )
            )
        return query

    def get_multi_filtered(
        self,
        db: Session,
        *,
        skip: int = 0,
        limit: int = 15,
        status: Optional[str] = None,
        demo_type: Optional[str] = None,
        source: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[DemoRequest]:
        query = self._filtered_query(
            db, status=status, demo_type=demo_type, source=source, search=search
        )
        return (
            query.order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count_filtered(
        self,
        db: Session,
        *,
        status: Optional[str] = None,
        demo_type: Optional[str] = None,
        source: Optional[str] = None,
        search: Optional[str] = None,
    ) -> int:
        query = self._filtered_query(
            db, status=status, demo_type=demo_type, source=source, search=search
        )
        return query.count()

    def count_by_status(self, db: Session) -> Dict[str, int]:
        rows = (
            db.query(self.model.status, func.count(self.model.id))
            .group_by(self.model.status)
            .all()
        )
        return {status: count for status, count in rows}

    def count_created_between(self, db: Session, *, start: datetime, end: datetime) -> int:
        return (
            db.query(func.count(self.model.id))
            .filter(self.model.created_at >= start, self.model.created_at < end)
            .scalar()
        ) or 0

    def get_by_session(self, db: Session, *, session_id: str) -> List[DemoRequest]:
        return (
            db.query(self.model)
            .filter(self.model.session_id == session_id)
            .order_by(self.model.created_at.desc())
            .all()
        )

    def acquire_schedule_lock(self, db: Session, *, name: str) -> None:
        """
        Take the named scheduling lock for the rest of the current transaction.

        The UPDATE row-locks the lock row on PostgreSQL and takes the write
        lock on SQLite, so a second confirmation blocks here until the first
        commits or rolls back. The row is created on first use.
        """
        updated = (
            db.query(DemoScheduleLock)
            .filter(DemoScheduleLock.name == name)
            .update(
                {DemoScheduleLock.version: DemoScheduleLock.version + 1},
                synchronize_session=False,
            )
        )
        if updated:
            return

        db.add(DemoScheduleLock(name=name, version=1))
        try:
            db.flush()
        except IntegrityError:
            # Another transaction created the row first; start over and lock it.
            db.rollback()
            logger.debug(f"Schedule lock row {name} created concurrently, retrying")
            db.query(DemoScheduleLock).filter(DemoScheduleLock.name == name).update(
                {DemoScheduleLock.version: DemoScheduleLock.version + 1},
                synchronize_session=False,
            )


demo_request = CRUDDemoRequest(DemoRequest)
