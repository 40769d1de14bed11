"""RSVP operations at occurrence and series granularity."""
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlmodel import Session

from groupmeet.core.errors import EngineError, NotFoundError
from groupmeet.models import AttendeeRef, AttendeeStatus, MeetingAttendee
from groupmeet.series.store import AttendanceLedger, OccurrenceStore

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Outcome of a multi-row operation: success flag plus an error message."""

    success: bool
    error: EngineError | None = None
    updated: int = 0

    @property
    def message(self) -> str | None:
        return self.error.message if self.error else None


def rsvp_single_occurrence(
    session: Session,
    meeting_id: UUID,
    attendee_id: UUID,
    status: AttendeeStatus,
    now: datetime | None = None,
) -> MeetingAttendee:
    """
    Answer for one date only.

    Always occurrence-scoped: ``is_series_rsvp`` is cleared even if the
    record previously carried a series-wide answer.
    """
    ledger = AttendanceLedger(session)
    record = ledger.get(attendee_id)
    if record is None or record.meeting_id != meeting_id:
        raise NotFoundError(f"Attendee {attendee_id} not found on meeting {meeting_id}")

    return ledger.update_record(
        attendee_id,
        status=AttendeeStatus(status),
        is_series_rsvp=False,
        responded_at=now or datetime.now(UTC),
    )


def rsvp_whole_series(
    session: Session,
    series_id: UUID,
    attendee: AttendeeRef,
    status: AttendeeStatus,
    now: datetime | None = None,
) -> OperationResult:
    """
    Record a standing answer for every occurrence of a series.

    This is the operation that creates the series-scoped records the skip
    algorithm later treats as the attendee's preference.
    """
    status = AttendeeStatus(status)
    try:
        meetings = OccurrenceStore(session).fetch_series(series_id)
        if not meetings:
            raise NotFoundError("No meetings found in series")

        updated = AttendanceLedger(session).update_for_attendee(
            [meeting.id for meeting in meetings],
            attendee,
            status=status,
            is_series_rsvp=True,
            responded_at=now or datetime.now(UTC),
        )
    except EngineError as e:
        logger.warning(f"Series RSVP failed for series {series_id}: {e.message}")
        return OperationResult(success=False, error=e)

    logger.info(f"Series RSVP '{status.value}' applied to {updated} record(s) in series {series_id}")
    return OperationResult(success=True, updated=updated)
