from datetime import timedelta

import pytest

from app.constants.demo_request import DemoRequestStatus
from app.services.demo_scheduling import (
    AvailabilityEngine,
    DemoValidationError,
    InvalidDatetimeError,
    InvalidTimezoneError,
    WeekendUnavailableError,
)
from tests.utils.demo_request import (
    NEW_YORK,
    create_confirmed_demo,
    create_demo_request,
    local,
)


@pytest.fixture
def engine(db_session, clock):
    return AvailabilityEngine(db_session, clock=clock)


class TestCheckAvailability:
    def test_free_slot(self, engine):
        result = engine.check_availability("2025-06-16 14:00", NEW_YORK)

        assert result.available is True
        assert result.suggestions == []
        assert result.requested_local == local("2025-06-16 14:00")

    def test_worked_example(self, db_session, engine):
        create_confirmed_demo(db_session, "2025-06-16 14:30")

        result = engine.check_availability("2025-06-16 14:00", NEW_YORK)

        assert result.available is False
        assert [s.formatted for s in result.suggestions] == [
            "Jun 16, 2025 at 4:00 PM EDT",
            "Jun 17, 2025 at 2:00 PM EDT",
            "Jun 17, 2025 at 4:00 PM EDT",
        ]

    @pytest.mark.parametrize(
        "booked, available",
        [
            ("2025-06-16 13:00", False),  # exactly one hour before
            ("2025-06-16 15:00", False),  # exactly one hour after
            ("2025-06-16 12:59", True),
            ("2025-06-16 15:01", True),
        ],
    )
    def test_window_is_closed_at_both_ends(self, db_session, engine, booked, available):
        create_confirmed_demo(db_session, booked)

        result = engine.check_availability("2025-06-16 14:00", NEW_YORK)

        assert result.available is available

    @pytest.mark.parametrize(
        "status",
        [
            DemoRequestStatus.PENDING,
            DemoRequestStatus.COMPLETED,
            DemoRequestStatus.CANCELLED,
            DemoRequestStatus.RESCHEDULED,
        ],
    )
    def test_only_confirmed_requests_block(self, db_session, engine, status):
        create_demo_request(
            db_session, preferred="2025-06-16 14:00", status=status, confirmed="2025-06-16 14:00"
        )

        assert engine.check_availability("2025-06-16 14:00", NEW_YORK).available is True

    def test_compares_instants_across_timezones(self, db_session, engine):
        # 19:00 in London is 14:00 in New York.
        create_confirmed_demo(db_session, "2025-06-16 19:00", timezone_name="Europe/London")

        result = engine.check_availability("2025-06-16 14:30", NEW_YORK)

        assert result.available is False

    def test_offset_input_keeps_its_instant(self, engine):
        result = engine.check_availability("2025-06-16T18:00:00Z", NEW_YORK)

        assert result.requested_local.hour == 14
        assert result.requested_local.tzname() == "EDT"

    def test_unknown_timezone(self, engine):
        with pytest.raises(InvalidTimezoneError):
            engine.check_availability("2025-06-16 14:00", "Mars/Olympus_Mons")

    def test_unparseable_datetime(self, engine):
        with pytest.raises(InvalidDatetimeError):
            engine.check_availability("next week sometime", NEW_YORK)

    def test_exclude_id_ignores_own_booking(self, db_session, engine):
        own = create_confirmed_demo(db_session, "2025-06-16 14:00")
        instant = local("2025-06-16 14:00")

        assert engine.has_conflict(instant) is True
        assert engine.has_conflict(instant, exclude_id=own.id) is False


class TestGetAvailableSlots:
    def test_lists_nine_hourly_slots(self, engine):
        slots = engine.get_available_slots("2025-06-16", NEW_YORK)

        assert [s.time for s in slots] == [f"{h:02d}:00" for h in range(9, 18)]
        assert all(s.available for s in slots)
        assert slots[0].datetime == "2025-06-16T13:00:00Z"
        assert slots[5].formatted == "2:00 PM"

    def test_marks_slots_near_confirmed_demos(self, db_session, engine):
        create_confirmed_demo(db_session, "2025-06-16 14:00")

        slots = {s.time: s.available for s in engine.get_available_slots("2025-06-16", NEW_YORK)}

        assert slots["12:00"] is True
        assert slots["13:00"] is False
        assert slots["14:00"] is False
        assert slots["15:00"] is False
        assert slots["16:00"] is True

    def test_today_skips_hours_already_past(self, engine, clock):
        # Frozen "now" is 08:00 in New York; move it to 11:30.
        clock.advance(timedelta(hours=3, minutes=30))

        slots = engine.get_available_slots("2025-06-10", NEW_YORK)

        assert slots[0].time == "12:00"

    def test_weekend_is_rejected(self, engine):
        with pytest.raises(WeekendUnavailableError):
            engine.get_available_slots("2025-06-14", NEW_YORK)

    def test_past_date_is_rejected(self, engine):
        with pytest.raises(DemoValidationError) as exc_info:
            engine.get_available_slots("2025-06-09", NEW_YORK)

        assert exc_info.value.codes == {"date": ["date_past"]}

    def test_malformed_date_is_rejected(self, engine):
        with pytest.raises(DemoValidationError) as exc_info:
            engine.get_available_slots("16/06/2025", NEW_YORK)

        assert exc_info.value.codes == {"date": ["date_invalid"]}

    def test_unknown_timezone(self, engine):
        with pytest.raises(InvalidTimezoneError):
            engine.get_available_slots("2025-06-16", "Nowhere/Special")
