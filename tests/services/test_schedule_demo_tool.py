from unittest.mock import patch

import pytest

from app.constants.demo_request import DemoRequestSource, DemoRequestStatus
from app.crud import demo_request as crud_demo_request
from app.services.demo_scheduling import TOOL_DEFINITION, ScheduleDemoTool
from tests.utils.demo_request import NEW_YORK, create_confirmed_demo


@pytest.fixture
def tool(db_session, clock):
    return ScheduleDemoTool(db_session, clock=clock, support_email="help@example.com")


def _full_arguments(**overrides):
    arguments = {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "demo_type": "enterprise",
        "preferred_datetime": "2025-06-16T14:00",
        "timezone": NEW_YORK,
        "session_id": "chat_abc",
    }
    arguments.update(overrides)
    return arguments


def test_definition_lists_every_argument():
    properties = TOOL_DEFINITION["parameters"]["properties"]

    assert TOOL_DEFINITION["name"] == "schedule_demo"
    assert set(properties) == {
        "name",
        "email",
        "company",
        "phone",
        "demo_type",
        "preferred_datetime",
        "timezone",
        "message",
        "session_id",
    }
    assert TOOL_DEFINITION["parameters"]["required"] == []


def test_no_details_returns_overview(tool):
    reply = tool()

    assert "General Platform Demo (30 minutes)" in reply
    assert "Enterprise Demo (45 minutes)" in reply
    assert "your email address" in reply


def test_demo_type_only_describes_that_demo(tool):
    reply = tool(demo_type="specific-feature")

    assert "Feature-Focused Demo (20 minutes)" in reply
    assert "Enterprise Demo" not in reply


def test_partial_input_lists_all_missing_fields(tool, db_session):
    reply = tool(name="Ada Lovelace", preferred_datetime="tomorrow at 3pm")

    assert "your email address" in reply
    assert "your timezone" in reply
    assert "the type of demo" in reply
    assert crud_demo_request.get_multi(db_session) == []
    assert "Some details need another look" not in reply


def test_natural_datetime_without_timezone_only_asks_for_timezone(tool):
    reply = tool(
        name="Ada Lovelace",
        email="ada@example.com",
        demo_type="general",
        preferred_datetime="tomorrow at 3pm",
    )

    assert "your timezone" in reply
    assert "YYYY-MM-DD HH:MM" not in reply
    assert tool.booked is None


def test_unknown_timezone_does_not_blame_the_datetime(tool):
    reply = tool(**_full_arguments(preferred_datetime="tomorrow at 3pm", timezone="Mars/Olympus"))

    assert "Mars/Olympus" in reply
    assert "YYYY-MM-DD HH:MM" not in reply


def test_unparseable_datetime_without_timezone_reports_both(tool):
    reply = tool(name="Ada Lovelace", email="ada@example.com", preferred_datetime="sometime soon")

    assert "your timezone" in reply
    assert "YYYY-MM-DD HH:MM" in reply


def test_invalid_values_are_explained(tool):
    reply = tool(**_full_arguments(email="ada-at-example"))

    assert "Please provide a valid email address." in reply


def test_unparseable_datetime_asks_for_format(tool):
    reply = tool(**_full_arguments(preferred_datetime="sometime soon"))

    assert "YYYY-MM-DD HH:MM" in reply


def test_books_pending_chatbot_request(tool, db_session):
    reply = tool(**_full_arguments(preferred_datetime="June 16 at 2pm", company="Acme"))

    [demo] = crud_demo_request.get_by_session(db_session, session_id="chat_abc")
    assert demo.status == DemoRequestStatus.PENDING
    assert demo.source == DemoRequestSource.CHATBOT
    assert demo.formatted_preferred_datetime == "Jun 16, 2025 at 2:00 PM EDT"
    assert demo.request_metadata == {
        "scheduled_via": "chat_tool",
        "original_datetime_input": "June 16 at 2pm",
    }
    assert "Enterprise Demo request is in" in reply
    assert demo.id in reply
    assert "Company:** Acme" in reply
    assert tool.booked is demo


def test_conflict_lists_numbered_alternatives(tool, db_session):
    create_confirmed_demo(db_session, "2025-06-16 14:30")

    reply = tool(**_full_arguments())

    assert "Jun 16, 2025 at 2:00 PM EDT is already booked" in reply
    assert "1. Jun 16, 2025 at 4:00 PM EDT" in reply
    assert "2. Jun 17, 2025 at 2:00 PM EDT" in reply
    assert "3. Jun 17, 2025 at 4:00 PM EDT" in reply


def test_conflict_without_alternatives(tool, db_session):
    # Friday evening: every candidate is out of hours or on the weekend.
    create_confirmed_demo(db_session, "2025-06-20 18:00")

    reply = tool(**_full_arguments(preferred_datetime="2025-06-20 18:00"))

    assert "no nearby alternatives" in reply
    assert "1." not in reply


def test_unexpected_error_is_apologetic(tool):
    with patch(
        "app.services.demo_scheduling.chat_tool.DemoRequestService.book",
        side_effect=RuntimeError("connection reset"),
    ):
        reply = tool(**_full_arguments())

    assert "technical issue" in reply
    assert "help@example.com" in reply
    assert "connection reset" not in reply
