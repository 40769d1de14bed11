"""Create a meeting, or every occurrence of a recurring series, in one call."""
import logging
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

from sqlmodel import Session

from groupmeet.core.errors import ValidationError
from groupmeet.models import AttendeeRef, AttendeeStatus, Meeting, MeetingAttendee
from groupmeet.series.intervals import RecurrenceType, generate_occurrence_dates
from groupmeet.series.store import OccurrenceStore

logger = logging.getLogger(__name__)


def create_meetings(
    session: Session,
    *,
    group_id: UUID,
    title: str,
    start: datetime,
    recurrence: RecurrenceType | str = RecurrenceType.NONE,
    count: int = 1,
    created_by: UUID | None = None,
    description: str | None = None,
    location: str | None = None,
    timezone: str | None = None,
    duration: timedelta | None = None,
    attendees: Iterable[AttendeeRef] = (),
) -> list[Meeting]:
    """
    Create the occurrences of a meeting and seed attendee rows on each.

    A recurring meeting gets a fresh ``series_id`` and occurrences numbered
    1..N with ``series_total = N``. Every selected attendee receives an
    ``invited`` record on every occurrence. All rows are committed together.
    """
    title = title.strip()
    if not title:
        raise ValidationError("Please enter a title")
    if start.tzinfo is None:
        start = start.replace(tzinfo=UTC)

    dates = generate_occurrence_dates(start, recurrence, count)
    recurrence = RecurrenceType(recurrence)
    is_series = recurrence is not RecurrenceType.NONE
    series_id = uuid4() if is_series else None

    meetings = [
        Meeting(
            group_id=group_id,
            created_by=created_by,
            title=title,
            description=(description or "").strip() or None,
            location=(location or "").strip() or None,
            timezone=timezone,
            date=date,
            end_date=date + duration if duration else None,
            series_id=series_id,
            series_index=index if is_series else None,
            series_total=len(dates) if is_series else None,
        )
        for index, date in enumerate(dates, start=1)
    ]

    unique_attendees = list(dict.fromkeys(attendees))
    records = [
        MeetingAttendee(
            meeting_id=meeting.id,
            user_id=attendee.user_id,
            placeholder_id=attendee.placeholder_id,
            status=AttendeeStatus.INVITED,
            is_series_rsvp=False,
        )
        for meeting in meetings
        for attendee in unique_attendees
    ]

    created = OccurrenceStore(session).create_batch(meetings, records)
    logger.info(
        f"Created {len(created)} meeting(s) for group {group_id}"
        + (f" in series {series_id}" if series_id else "")
        + f" with {len(unique_attendees)} attendee(s)"
    )
    return created
