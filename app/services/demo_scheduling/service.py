# app/services/demo_scheduling/service.py
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.constants.demo_request import (
    CONFIRMATION_LOCK_NAME,
    BulkAction,
    DemoRequestSource,
    DemoRequestStatus,
    DemoType,
)
from app.core.clock import Clock, system_clock
from app.crud.crud_demo_request import demo_request as crud_demo_request
from app.models.demo_request import DemoRequest
from app.schemas.demo_request import ChatbotDemoRequestCreate, DemoRequestCreate
from app.services.demo_scheduling.availability import AvailabilityEngine, localize
from app.services.demo_scheduling.exceptions import (
    DemoRequestNotFoundError,
    DemoSchedulingError,
    DemoValidationError,
    FieldError,
    InvalidDatetimeError,
    InvalidTransitionError,
    SlotConflictError,
)
from app.utils.timezones import to_utc_iso

logger = logging.getLogger(__name__)

# Statuses reachable through transition(). Confirming needs a datetime and
# goes through confirm().
TRANSITION_TARGETS = (
    DemoRequestStatus.PENDING,
    DemoRequestStatus.COMPLETED,
    DemoRequestStatus.CANCELLED,
    DemoRequestStatus.RESCHEDULED,
)

_BULK_TARGET_STATUS = {
    BulkAction.COMPLETE: DemoRequestStatus.COMPLETED,
    BulkAction.CANCEL: DemoRequestStatus.CANCELLED,
}


@dataclass
class BulkResult:
    action: str
    updated_count: int = 0
    updated_ids: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)


class DemoRequestService:
    """
    Creation, lookup and status transitions for demo requests.

    create() validates but does not look at availability; book() is the
    check-then-create flow the public entry points use. Status transitions
    are deliberately permissive: any status may be set from any other, except
    that confirming always needs an explicit datetime and a free slot.
    """

    def __init__(
        self,
        db: Session,
        *,
        clock: Clock = system_clock,
        engine: Optional[AvailabilityEngine] = None,
    ):
        self.db = db
        self.clock = clock
        self.engine = engine or AvailabilityEngine(db, clock=clock)

    # ------------------------------------------------------------------ #
    # Creation
    # ------------------------------------------------------------------ #

    def validate(
        self,
        data: Union[Mapping[str, Any], BaseModel],
        *,
        require_session: bool = False,
    ) -> DemoRequestCreate:
        """Validate booking input, reporting every bad field at once."""
        if isinstance(data, BaseModel):
            data = data.model_dump()
        schema = ChatbotDemoRequestCreate if require_session else DemoRequestCreate
        try:
            return schema.model_validate(dict(data), context={"now": self.clock.now()})
        except PydanticValidationError as e:
            raise DemoValidationError.from_pydantic(e)

    def create(
        self,
        data: Union[Mapping[str, Any], BaseModel],
        *,
        source: str,
        user_id: Optional[str] = None,
        require_session: bool = False,
    ) -> DemoRequest:
        validated = self.validate(data, require_session=require_session)
        return self._insert(validated, source=source, user_id=user_id)

    def book(
        self,
        data: Union[Mapping[str, Any], BaseModel],
        *,
        source: str,
        user_id: Optional[str] = None,
        require_session: bool = False,
    ) -> DemoRequest:
        """
        Validate, check the slot, then create a pending request.

        Raises:
            DemoValidationError: Missing or invalid fields
            SlotConflictError: The slot is taken (carries suggestions)
        """
        validated = self.validate(data, require_session=require_session)
        result = self.engine.check_availability(
            validated.preferred_datetime, validated.timezone
        )
        if not result.available:
            raise SlotConflictError(result.suggestions)
        return self._insert(validated, source=source, user_id=user_id)

    def _insert(
        self, validated: DemoRequestCreate, *, source: str, user_id: Optional[str]
    ) -> DemoRequest:
        db_obj = crud_demo_request.create(
            self.db,
            obj_in={
                "name": validated.name,
                "email": validated.email,
                "company": validated.company,
                "phone": validated.phone,
                "message": validated.message,
                "demo_type": validated.demo_type,
                "preferred_datetime": validated.preferred_datetime.astimezone(timezone.utc),
                "timezone": validated.timezone,
                "status": DemoRequestStatus.PENDING,
                "source": source,
                "session_id": validated.session_id,
                "user_id": user_id,
                "request_metadata": validated.metadata,
                "created_at": self.clock.now(),
            },
        )
        logger.info(
            f"Demo request {db_obj.id} created via {source} for "
            f"{to_utc_iso(db_obj.preferred_datetime)}",
            extra={"demo_request_id": db_obj.id, "source": source, "session_id": db_obj.session_id},
        )
        return db_obj

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get(self, demo_request_id: str) -> DemoRequest:
        db_obj = crud_demo_request.get(self.db, id=demo_request_id)
        if db_obj is None:
            raise DemoRequestNotFoundError(demo_request_id)
        return db_obj

    def list_requests(
        self,
        *,
        page: int = 1,
        limit: int = 15,
        status: Optional[str] = None,
        demo_type: Optional[str] = None,
        source: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[DemoRequest], int]:
        """
        Newest first. Unknown status, demo_type or source values raise
        DemoValidationError.
        """
        allowed = {
            "status": DemoRequestStatus.all_values(),
            "demo_type": DemoType.all_values(),
            "source": DemoRequestSource.all_values(),
        }
        filters = dict(status=status, demo_type=demo_type, source=source, search=search)
        invalid = [
            FieldError(
                field=name,
                code=f"{name}_invalid",
                message=f"The {name} filter must be one of: {', '.join(allowed[name])}.",
            )
            for name in allowed
            if filters[name] and filters[name] not in allowed[name]
        ]
        if invalid:
            raise DemoValidationError(invalid)

        items = crud_demo_request.get_multi_filtered(
            self.db, skip=(page - 1) * limit, limit=limit, **filters
        )
        total = crud_demo_request.count_filtered(self.db, **filters)
        return items, total

    def stats(self) -> Dict[str, int]:
        now = self.clock.now()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        start_of_week = start_of_day - timedelta(days=start_of_day.weekday())
        by_status = crud_demo_request.count_by_status(self.db)
        return {
            "total": sum(by_status.values()),
            "pending": by_status.get(DemoRequestStatus.PENDING, 0),
            "confirmed": by_status.get(DemoRequestStatus.CONFIRMED, 0),
            "completed": by_status.get(DemoRequestStatus.COMPLETED, 0),
            "today": crud_demo_request.count_created_between(
                self.db, start=start_of_day, end=start_of_day + timedelta(days=1)
            ),
            "this_week": crud_demo_request.count_created_between(
                self.db, start=start_of_week, end=start_of_week + timedelta(days=7)
            ),
        }

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #

    def confirm(
        self,
        demo_request_id: str,
        confirmed_datetime: Union[str, datetime, None],
        admin_notes: Optional[str] = None,
    ) -> DemoRequest:
        """
        Confirm a request for `confirmed_datetime`.

        Naive input is read in the request's own timezone. The conflict
        re-check and the write share one transaction behind the schedule
        lock, so two overlapping confirmations can't both succeed.

        Raises:
            DemoValidationError: Datetime missing, unparseable or not in the future
            DemoRequestNotFoundError: Unknown id
            SlotConflictError: Another confirmed demo is within the conflict window
        """
        if confirmed_datetime is None or (
            isinstance(confirmed_datetime, str) and not confirmed_datetime.strip()
        ):
            raise DemoValidationError.single(
                "confirmed_datetime",
                "confirmed_datetime_required",
                "Confirmed datetime is required when confirming a demo.",
            )

        db_obj = self.get(demo_request_id)
        try:
            confirmed_local = localize(confirmed_datetime, db_obj.timezone)
        except InvalidDatetimeError:
            raise DemoValidationError.single(
                "confirmed_datetime",
                "confirmed_datetime_invalid",
                "The confirmed date and time must be a valid date such as 2025-06-16 14:00.",
            )
        if confirmed_local <= self.clock.now():
            raise DemoValidationError.single(
                "confirmed_datetime",
                "confirmed_datetime_past",
                "The confirmed date and time must be in the future.",
            )
        confirmed_utc = confirmed_local.astimezone(timezone.utc)

        try:
            crud_demo_request.acquire_schedule_lock(self.db, name=CONFIRMATION_LOCK_NAME)
            self.db.refresh(db_obj)

            if self.engine.has_conflict(confirmed_utc, exclude_id=db_obj.id):
                suggestions = self.engine.generate_alternatives(
                    confirmed_local, db_obj.timezone, exclude_id=db_obj.id
                )
                self.db.rollback()
                logger.info(
                    f"Confirmation of demo request {demo_request_id} at "
                    f"{to_utc_iso(confirmed_utc)} rejected: slot taken"
                )
                raise SlotConflictError(suggestions)

            old_status = db_obj.status
            db_obj.status = DemoRequestStatus.CONFIRMED
            db_obj.confirmed_datetime = confirmed_utc
            if admin_notes is not None:
                db_obj.admin_notes = admin_notes
            self.db.commit()
        except SlotConflictError:
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(db_obj)
        logger.info(
            f"Demo request {demo_request_id} confirmed for {to_utc_iso(confirmed_utc)} "
            f"(was {old_status})"
        )
        return db_obj

    def transition(
        self,
        demo_request_id: str,
        status: str,
        admin_notes: Optional[str] = None,
    ) -> DemoRequest:
        """
        Move a request to pending, completed, cancelled or rescheduled.

        No state graph is enforced; administrators may need to correct a
        mis-set status. confirmed_datetime is left as it was.
        """
        if status == DemoRequestStatus.CONFIRMED:
            raise InvalidTransitionError(
                status, "Confirming a demo request requires a confirmed datetime."
            )
        if status not in TRANSITION_TARGETS:
            raise InvalidTransitionError(status)

        db_obj = self.get(demo_request_id)
        old_status = db_obj.status
        update_data: Dict[str, Any] = {"status": status}
        if admin_notes is not None:
            update_data["admin_notes"] = admin_notes
        db_obj = crud_demo_request.update(self.db, db_obj=db_obj, obj_in=update_data)

        logger.info(f"Demo request {demo_request_id} status {old_status} -> {status}")
        return db_obj

    def update_status(
        self,
        demo_request_id: str,
        status: str,
        *,
        confirmed_datetime: Union[str, datetime, None] = None,
        admin_notes: Optional[str] = None,
    ) -> DemoRequest:
        if status == DemoRequestStatus.CONFIRMED:
            return self.confirm(demo_request_id, confirmed_datetime, admin_notes)
        return self.transition(demo_request_id, status, admin_notes)

    def delete(self, demo_request_id: str) -> None:
        removed = crud_demo_request.remove(self.db, id=demo_request_id)
        if removed is None:
            raise DemoRequestNotFoundError(demo_request_id)
        logger.info(f"Demo request {demo_request_id} deleted")

    def bulk_transition(
        self,
        ids: Iterable[str],
        action: str,
        *,
        confirmed_datetime: Union[str, datetime, None] = None,
        admin_notes: Optional[str] = None,
    ) -> BulkResult:
        """
        Apply `action` to each id independently.

        Every record is committed on its own; a failing id is reported in
        `failures` and does not undo the others.
        """
        if action not in BulkAction.all_values():
            raise InvalidTransitionError(action, f"Unknown bulk action '{action}'.")
        if action == BulkAction.CONFIRM and (
            confirmed_datetime is None
            or (isinstance(confirmed_datetime, str) and not confirmed_datetime.strip())
        ):
            raise DemoValidationError.single(
                "confirmed_datetime",
                "confirmed_datetime_required",
                "Confirmed datetime is required for bulk confirmation.",
            )

        result = BulkResult(action=action)
        for demo_request_id in dict.fromkeys(ids):
            try:
                if action == BulkAction.CONFIRM:
                    self.confirm(demo_request_id, confirmed_datetime, admin_notes)
                elif action == BulkAction.DELETE:
                    self.delete(demo_request_id)
                else:
                    self.transition(demo_request_id, _BULK_TARGET_STATUS[action], admin_notes)
                result.updated_count += 1
                result.updated_ids.append(demo_request_id)
            except DemoSchedulingError as e:
                result.failures[demo_request_id] = e.message
                logger.warning(f"Bulk {action} skipped demo request {demo_request_id}: {e.message}")

        logger.info(
            f"Bulk {action} applied to {result.updated_count} demo request(s), "
            f"{len(result.failures)} failed"
        )
        return result
