"""Persistence access patterns for meetings and attendee records.

``OccurrenceStore`` and ``AttendanceLedger`` are the only places that talk to
the database on behalf of the engine. Every write commits on its own, so a
loop over several rows that fails part way leaves the rows already written
in place. Database errors are rolled back and re-raised as
``UpstreamFailure``.
"""
import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from groupmeet.core.errors import NotFoundError, UpstreamFailure
from groupmeet.models import AttendeeRef, AttendeeStatus, Meeting, MeetingAttendee

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(session: Session, action: str) -> Iterator[None]:
    """Roll back and translate database errors raised while doing ``action``."""
    try:
        yield
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Store failure while trying to {action}: {e}")
        raise UpstreamFailure(f"Failed to {action}") from e


def attendee_clause(attendee: AttendeeRef):
    """WHERE clause matching one attendee's records."""
    if attendee.user_id is not None:
        return MeetingAttendee.user_id == attendee.user_id
    return MeetingAttendee.placeholder_id == attendee.placeholder_id


class OccurrenceStore:
    """Meeting occurrences, read and written one row at a time."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, meeting_id: UUID) -> Meeting | None:
        with store_errors(self.session, "load meeting"):
            return self.session.get(Meeting, meeting_id)

    def fetch_series(self, series_id: UUID) -> list[Meeting]:
        """All occurrences of a series, ordered by ``series_index``."""
        statement = (
            select(Meeting)
            .where(Meeting.series_id == series_id)
            .order_by(Meeting.series_index)
        )
        with store_errors(self.session, "load series"):
            return list(self.session.exec(statement).all())

    def fetch_group(
        self,
        group_id: UUID,
        include_past: bool = False,
        now: datetime | None = None,
    ) -> list[Meeting]:
        """Meetings of a group ordered by date, upcoming only unless asked."""
        statement = select(Meeting).where(Meeting.group_id == group_id)
        if not include_past:
            statement = statement.where(Meeting.date >= (now or datetime.now(UTC)))
        statement = statement.order_by(Meeting.date)
        with store_errors(self.session, "load group meetings"):
            return list(self.session.exec(statement).all())

    def create_batch(
        self,
        meetings: list[Meeting],
        attendees: Iterable[MeetingAttendee] = (),
    ) -> list[Meeting]:
        """Insert meetings and their attendee rows in a single commit."""
        with store_errors(self.session, "create meetings"):
            self.session.add_all(meetings)
            self.session.add_all(list(attendees))
            self.session.commit()
            for meeting in meetings:
                self.session.refresh(meeting)
        return meetings

    def update_date(
        self, meeting_id: UUID, new_date: datetime, now: datetime | None = None
    ) -> Meeting:
        with store_errors(self.session, "update meeting date"):
            meeting = self.session.get(Meeting, meeting_id)
            if meeting is None:
                raise NotFoundError(f"Meeting {meeting_id} not found")
            meeting.date = new_date
            meeting.updated_at = now or datetime.now(UTC)
            self.session.add(meeting)
            self.session.commit()
            self.session.refresh(meeting)
        return meeting

    def delete(self, meeting_id: UUID) -> None:
        with store_errors(self.session, "delete meeting"):
            meeting = self.session.get(Meeting, meeting_id)
            if meeting is None:
                raise NotFoundError(f"Meeting {meeting_id} not found")
            self.session.delete(meeting)
            self.session.commit()

    def delete_series(self, series_id: UUID) -> int:
        """Delete every occurrence of a series. Returns the number removed."""
        meetings = self.fetch_series(series_id)
        if not meetings:
            raise NotFoundError(f"Series {series_id} not found")
        with store_errors(self.session, "delete series"):
            for meeting in meetings:
                self.session.delete(meeting)
            self.session.commit()
        return len(meetings)


class AttendanceLedger:
    """Per-occurrence RSVP records."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, record_id: UUID) -> MeetingAttendee | None:
        with store_errors(self.session, "load attendee"):
            return self.session.get(MeetingAttendee, record_id)

    def fetch_for_meeting(self, meeting_id: UUID) -> list[MeetingAttendee]:
        return self.fetch_for_meetings([meeting_id])

    def fetch_for_meetings(self, meeting_ids: Iterable[UUID]) -> list[MeetingAttendee]:
        statement = select(MeetingAttendee).where(
            col(MeetingAttendee.meeting_id).in_(list(meeting_ids))
        )
        with store_errors(self.session, "load attendees"):
            return list(self.session.exec(statement).all())

    def update_record(
        self,
        record_id: UUID,
        status: AttendeeStatus,
        is_series_rsvp: bool,
        responded_at: datetime | None,
    ) -> MeetingAttendee:
        with store_errors(self.session, "update attendee"):
            record = self.session.get(MeetingAttendee, record_id)
            if record is None:
                raise NotFoundError(f"Attendee record {record_id} not found")
            record.status = status
            record.is_series_rsvp = is_series_rsvp
            record.responded_at = responded_at
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
        return record

    def update_for_attendee(
        self,
        meeting_ids: Iterable[UUID],
        attendee: AttendeeRef,
        status: AttendeeStatus,
        is_series_rsvp: bool,
        responded_at: datetime | None,
    ) -> int:
        """Set one attendee's answer on every listed meeting. Returns rows changed."""
        statement = (
            update(MeetingAttendee)
            .where(col(MeetingAttendee.meeting_id).in_(list(meeting_ids)))
            .where(attendee_clause(attendee))
            .values(
                status=status,
                is_series_rsvp=is_series_rsvp,
                responded_at=responded_at,
            )
            .execution_options(synchronize_session=False)
        )
        with store_errors(self.session, "update attendees"):
            result = self.session.exec(statement)
            self.session.commit()
        return result.rowcount
