"""Tests for API routes."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from groupmeet.main import app
from groupmeet.models import AttendeeRef, AttendeeStatus, Meeting, MeetingReminderToken
from groupmeet.routes.reminders import get_notifier
from groupmeet.series.store import AttendanceLedger, OccurrenceStore


class FailingNotifier:
    def send_leader_reminder(self, meeting, confirmation_url, attendee_count):
        pass

    def send_attendee_reminder(self, meeting, recipients, description, message):
        raise ConnectionError("mail server unavailable")


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check(self, client: TestClient):
        """Test the health endpoint returns OK."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"


class TestMeetingRoutes:
    """Tests for meeting routes."""

    def test_create_series(self, client: TestClient):
        """Creating a weekly meeting returns every occurrence."""
        group_id = uuid4()
        user_id = uuid4()
        response = client.post(
            f"/groups/{group_id}/meetings",
            json={
                "title": "Chess Club",
                "date": "2030-01-07T18:00:00Z",
                "recurrence": "weekly",
                "count": 3,
                "duration_minutes": 90,
                "attendee_user_ids": [str(user_id)],
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert [m["series_index"] for m in data] == [1, 2, 3]
        assert len({m["series_id"] for m in data}) == 1
        assert data[1]["date"].startswith("2030-01-14T18:00:00")
        assert data[0]["attendees"][0]["user_id"] == str(user_id)
        assert data[0]["attendees"][0]["status"] == "invited"

    def test_create_bad_count(self, client: TestClient):
        """An out-of-range count is a 400 with the validation message."""
        response = client.post(
            f"/groups/{uuid4()}/meetings",
            json={"title": "Too many", "date": "2030-01-07T18:00:00Z", "recurrence": "weekly", "count": 53},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Number of occurrences must be between 1 and 52"

    def test_create_unknown_recurrence(self, client: TestClient):
        response = client.post(
            f"/groups/{uuid4()}/meetings",
            json={"title": "Daily", "date": "2030-01-07T18:00:00Z", "recurrence": "daily"},
        )
        assert response.status_code == 422

    def test_list_group_meetings(self, client: TestClient, weekly_series: list[Meeting]):
        """Past meetings are listed only when asked for."""
        group_id = weekly_series[0].group_id

        upcoming = client.get(f"/groups/{group_id}/meetings")
        everything = client.get(f"/groups/{group_id}/meetings", params={"include_past": True})

        assert upcoming.status_code == 200
        assert upcoming.json() == []
        assert [m["series_index"] for m in everything.json()] == [1, 2, 3, 4]

    def test_meeting_detail_not_found(self, client: TestClient):
        response = client.get(f"/meetings/{uuid4()}")
        assert response.status_code == 404

    def test_skip(self, client: TestClient, weekly_series: list[Meeting]):
        """Skipping returns the applied plan."""
        response = client.post(f"/meetings/{weekly_series[1].id}/skip")

        assert response.status_code == 200
        plan = response.json()["plan"]
        assert plan["frequency_ms"] == 604800000
        assert [c["new_date"] for c in plan["date_changes"]] == [
            "2024-01-29T19:00:00+00:00",
            "2024-02-05T19:00:00+00:00",
            "2024-02-12T19:00:00+00:00",
        ]

    def test_skip_standalone(self, client: TestClient, standalone_meeting: Meeting):
        response = client.post(f"/meetings/{standalone_meeting.id}/skip")
        assert response.status_code == 400
        assert response.json()["detail"] == "Only meetings in a series can be skipped"

    def test_skip_unknown(self, client: TestClient):
        response = client.post(f"/meetings/{uuid4()}/skip")
        assert response.status_code == 404

    def test_rsvp_occurrence(
        self, client: TestClient, session: Session, weekly_series: list[Meeting], alice: AttendeeRef
    ):
        """Answering one occurrence returns the updated record."""
        meeting = weekly_series[0]
        [record] = [
            r for r in AttendanceLedger(session).fetch_for_meeting(meeting.id) if r.attendee == alice
        ]

        response = client.post(
            f"/meetings/{meeting.id}/attendees/{record.id}/rsvp", json={"status": "accepted"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "accepted"
        assert response.json()["is_series_rsvp"] is False

    def test_rsvp_wrong_meeting(
        self, client: TestClient, session: Session, weekly_series: list[Meeting]
    ):
        record = AttendanceLedger(session).fetch_for_meeting(weekly_series[0].id)[0]
        response = client.post(
            f"/meetings/{weekly_series[1].id}/attendees/{record.id}/rsvp", json={"status": "accepted"}
        )
        assert response.status_code == 404

    def test_delete_meeting(self, client: TestClient, session: Session, standalone_meeting: Meeting):
        meeting_id = standalone_meeting.id

        response = client.delete(f"/meetings/{meeting_id}")
        again = client.delete(f"/meetings/{meeting_id}")

        assert response.status_code == 204
        assert again.status_code == 404
        assert OccurrenceStore(session).get(meeting_id) is None


class TestSeriesRoutes:
    """Tests for series routes."""

    def test_series_detail(self, client: TestClient, weekly_series: list[Meeting]):
        response = client.get(f"/series/{weekly_series[0].series_id}")
        assert response.status_code == 200
        assert len(response.json()) == 4

    def test_series_detail_not_found(self, client: TestClient):
        response = client.get(f"/series/{uuid4()}")
        assert response.status_code == 404

    def test_series_rsvp(
        self, client: TestClient, session: Session, weekly_series: list[Meeting], alice: AttendeeRef
    ):
        """A series answer updates every occurrence."""
        response = client.post(
            f"/series/{weekly_series[0].series_id}/rsvp",
            json={"status": "accepted", "user_id": str(alice.user_id)},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "updated": 4}
        records = [
            r
            for r in AttendanceLedger(session).fetch_for_meetings(m.id for m in weekly_series)
            if r.attendee == alice
        ]
        assert all(r.status == AttendeeStatus.ACCEPTED and r.is_series_rsvp for r in records)

    def test_series_rsvp_needs_one_identity(self, client: TestClient, weekly_series: list[Meeting]):
        response = client.post(
            f"/series/{weekly_series[0].series_id}/rsvp",
            json={"status": "accepted", "user_id": str(uuid4()), "placeholder_id": str(uuid4())},
        )
        assert response.status_code == 400

    def test_series_rsvp_unknown_series(self, client: TestClient):
        response = client.post(
            f"/series/{uuid4()}/rsvp", json={"status": "accepted", "user_id": str(uuid4())}
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "No meetings found in series"

    def test_delete_series(self, client: TestClient, weekly_series: list[Meeting]):
        series_id = weekly_series[0].series_id

        response = client.delete(f"/series/{series_id}")

        assert response.status_code == 200
        assert response.json()["deleted"] == 4
        assert client.get(f"/series/{series_id}").status_code == 404


class TestReminderRoutes:
    """Tests for reminder confirmation routes."""

    @pytest.fixture(autouse=True)
    def clear_notifier_override(self):
        yield
        app.dependency_overrides.pop(get_notifier, None)

    def test_reminder_detail(self, client: TestClient, reminder_token: MeetingReminderToken):
        response = client.get(f"/reminders/{reminder_token.token}")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["attendee_count"] == 1
        assert data["meeting"]["title"] == "Planning Session"

    def test_unknown_token(self, client: TestClient):
        response = client.get(f"/reminders/{'0' * 64}")
        assert response.status_code == 404
        assert response.json()["detail"] == "not_found"

    def test_expired_token(
        self, client: TestClient, session: Session, reminder_token: MeetingReminderToken
    ):
        reminder_token.expires_at = datetime.now(UTC) - timedelta(minutes=1)
        session.add(reminder_token)
        session.commit()

        response = client.get(f"/reminders/{reminder_token.token}")

        assert response.status_code == 410
        assert response.json()["detail"] == "expired"

    def test_confirm_once(self, client: TestClient, reminder_token: MeetingReminderToken):
        """The link confirms once; a second attempt is a conflict."""
        url = f"/reminders/{reminder_token.token}/confirm"

        first = client.post(url, json={"custom_message": "See you there"})
        second = client.post(url, json={})

        assert first.status_code == 200
        assert first.json()["attendee_count"] == 1
        assert second.status_code == 409
        assert second.json()["detail"] == "already_confirmed"

    def test_confirm_send_failure(
        self, client: TestClient, session: Session, reminder_token: MeetingReminderToken
    ):
        """A failed send is a 502 and leaves the link usable."""
        app.dependency_overrides[get_notifier] = lambda: FailingNotifier()

        response = client.post(f"/reminders/{reminder_token.token}/confirm", json={})

        assert response.status_code == 502
        session.refresh(reminder_token)
        assert reminder_token.confirmed_at is None
