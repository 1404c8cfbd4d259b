# app/services/demo_scheduling/availability.py
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from app.constants.demo_request import (
    CONFLICT_WINDOW,
    DAY_SLOT_FIRST_HOUR,
    DAY_SLOT_LAST_HOUR,
    MAX_SUGGESTIONS,
)
from app.core.clock import Clock, system_clock
from app.crud.crud_demo_request import demo_request as crud_demo_request
from app.schemas.demo_request import DaySlot, Slot
from app.services.demo_scheduling import slot_generator
from app.services.demo_scheduling.exceptions import (
    DemoValidationError,
    InvalidDatetimeError,
    InvalidTimezoneError,
    WeekendUnavailableError,
)
from app.utils.timezones import (
    format_clock_time,
    load_zone,
    normalize_local,
    parse_local_datetime,
    to_utc_iso,
)

logger = logging.getLogger(__name__)


@dataclass
class AvailabilityResult:
    available: bool
    requested_local: datetime
    timezone: str
    suggestions: List[Slot] = field(default_factory=list)

    @property
    def requested_utc(self) -> datetime:
        return self.requested_local.astimezone(timezone.utc)


def localize(candidate: Union[str, datetime], timezone_name: str) -> datetime:
    """
    Strictly parse `candidate` as a wall-clock time in `timezone_name`.

    Raises:
        InvalidTimezoneError: Unknown timezone identifier
        InvalidDatetimeError: Unparseable datetime
    """
    try:
        load_zone(timezone_name)
    except ValueError:
        raise InvalidTimezoneError(timezone_name)
    try:
        return parse_local_datetime(candidate, timezone_name)
    except ValueError:
        raise InvalidDatetimeError(candidate)


class AvailabilityEngine:
    """
    Decides whether a slot can be booked by looking at confirmed requests only.

    Two demos may not be confirmed within CONFLICT_WINDOW of each other; both
    ends of the window count as a clash. The engine only reads.
    """

    def __init__(
        self,
        db: Session,
        *,
        clock: Clock = system_clock,
        conflict_window: timedelta = CONFLICT_WINDOW,
        max_suggestions: int = MAX_SUGGESTIONS,
    ):
        self.db = db
        self.clock = clock
        self.conflict_window = conflict_window
        self.max_suggestions = max_suggestions

    def has_conflict(self, instant: datetime, *, exclude_id: Optional[str] = None) -> bool:
        conflicting = crud_demo_request.find_conflicting(
            self.db,
            instant=instant.astimezone(timezone.utc),
            window=self.conflict_window,
            exclude_id=exclude_id,
        )
        return conflicting is not None

    def generate_alternatives(
        self,
        base: Union[str, datetime],
        timezone_name: str,
        *,
        exclude_id: Optional[str] = None,
    ) -> List[Slot]:
        base_local = localize(base, timezone_name)
        return slot_generator.generate_alternatives(
            base_local,
            timezone_name,
            lambda instant: self.has_conflict(instant, exclude_id=exclude_id),
            limit=self.max_suggestions,
        )

    def check_availability(
        self, candidate: Union[str, datetime], timezone_name: str
    ) -> AvailabilityResult:
        local = localize(candidate, timezone_name)

        if not self.has_conflict(local):
            return AvailabilityResult(available=True, requested_local=local, timezone=timezone_name)

        suggestions = self.generate_alternatives(local, timezone_name)
        logger.info(
            f"Slot {to_utc_iso(local)} ({timezone_name}) is taken, "
            f"offering {len(suggestions)} alternative(s)"
        )
        return AvailabilityResult(
            available=False,
            requested_local=local,
            timezone=timezone_name,
            suggestions=suggestions,
        )

    def get_available_slots(self, day: Union[str, date], timezone_name: str) -> List[DaySlot]:
        """
        Hourly slots from DAY_SLOT_FIRST_HOUR to DAY_SLOT_LAST_HOUR local time
        on `day`, minus the hours already past. Each is flagged with the same
        conflict rule as check_availability.
        """
        try:
            zone = load_zone(timezone_name)
        except ValueError:
            raise InvalidTimezoneError(timezone_name)

        if isinstance(day, str):
            try:
                day = date.fromisoformat(day.strip())
            except ValueError:
                raise DemoValidationError.single(
                    "date", "date_invalid", "The date must be in YYYY-MM-DD format."
                )

        now = self.clock.now()
        if day < now.astimezone(zone).date():
            raise DemoValidationError.single(
                "date", "date_past", "The date must be today or later."
            )
        if day.weekday() >= 5:
            raise WeekendUnavailableError()

        slots: List[DaySlot] = []
        for hour in range(DAY_SLOT_FIRST_HOUR, DAY_SLOT_LAST_HOUR + 1):
            slot_local = normalize_local(datetime.combine(day, time(hour, 0), tzinfo=zone))
            if slot_local <= now:
                continue
            slots.append(
                DaySlot(
                    time=slot_local.strftime("%H:%M"),
                    datetime=to_utc_iso(slot_local),
                    formatted=format_clock_time(slot_local),
                    available=not self.has_conflict(slot_local),
                )
            )
        return slots
