"""
Tests for demo request emails and calendar invites.
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from icalendar import Calendar

from app.core import email
from app.models.demo_request import DemoRequest
from app.utils.calendar_utils import generate_demo_ics, generate_ics_filename


@pytest.fixture
def confirmed_demo():
    return DemoRequest(
        id="demo_abc123",
        name="Ada Lovelace",
        email="ada@example.com",
        company="Analytical Engines",
        demo_type="specific-feature",
        timezone="America/New_York",
        status="confirmed",
        source="manual",
        preferred_datetime=datetime(2025, 6, 16, 18, 0, tzinfo=timezone.utc),
        confirmed_datetime=datetime(2025, 6, 16, 19, 0, tzinfo=timezone.utc),
    )


class TestCalendarInvite:
    def test_invite_contents(self, confirmed_demo):
        cal = Calendar.from_ical(generate_demo_ics(confirmed_demo))
        [event] = cal.walk("VEVENT")

        assert str(event["uid"]).startswith("demo_abc123@")
        assert event.decoded("dtstart") == datetime(2025, 6, 16, 19, 0, tzinfo=timezone.utc)
        # Feature-focused demos run for 20 minutes.
        assert event.decoded("dtend") == datetime(2025, 6, 16, 19, 20, tzinfo=timezone.utc)
        assert "Jun 16, 2025 at 3:00 PM EDT" in str(event["description"])
        assert len(event.walk("VALARM")) == 1

    def test_requires_confirmation(self, confirmed_demo):
        confirmed_demo.confirmed_datetime = None

        with pytest.raises(ValueError):
            generate_demo_ics(confirmed_demo)

    def test_filename(self, confirmed_demo):
        assert generate_ics_filename(confirmed_demo) == "demo-demo_abc123.ics"


class TestEmails:
    def test_disabled_emails_are_skipped(self, confirmed_demo):
        with patch.object(email.settings, "EMAILS_ENABLED", False), patch(
            "app.core.email.resend.Emails.send"
        ) as mock_send:
            result = email.send_demo_request_received(confirmed_demo)

        assert result == {"success": False, "skipped": True}
        mock_send.assert_not_called()

    def test_confirmation_attaches_invite(self, confirmed_demo):
        with patch.object(email.settings, "EMAILS_ENABLED", True), patch(
            "app.core.email.resend.Emails.send", return_value={"id": "email_1"}
        ) as mock_send:
            result = email.send_demo_confirmed(confirmed_demo)

        assert result == {"success": True, "id": "email_1"}
        params = mock_send.call_args.args[0]
        assert params["to"] == ["ada@example.com"]
        [attachment] = params["attachments"]
        assert attachment["filename"] == "demo-demo_abc123.ics"
        assert bytes(attachment["content"]).startswith(b"BEGIN:VCALENDAR")

    def test_team_notification_goes_to_demo_team(self, confirmed_demo):
        with patch.object(email.settings, "EMAILS_ENABLED", True), patch.object(
            email.settings, "DEMO_TEAM_EMAIL", "demos@example.com"
        ), patch("app.core.email.resend.Emails.send", return_value={"id": "email_2"}) as mock_send:
            email.send_demo_request_notification(confirmed_demo)

        params = mock_send.call_args.args[0]
        assert params["to"] == ["demos@example.com"]
        assert params["reply_to"] == "ada@example.com"
        assert "Ada Lovelace" in params["subject"]

    def test_send_failure_is_reported_not_raised(self, confirmed_demo):
        with patch.object(email.settings, "EMAILS_ENABLED", True), patch(
            "app.core.email.resend.Emails.send", side_effect=RuntimeError("rate limited")
        ):
            result = email.send_demo_request_received(confirmed_demo)

        assert result == {"success": False, "error": "rate limited"}
