"""Skip a recurring meeting forward and reconcile attendee answers.

Skipping occurrence K moves K and every later occurrence one recurrence
interval later. Earlier occurrences are left alone. Because each moved
occurrence now lands on a different date, an answer given for that date only
no longer applies: it is replaced by the attendee's series-wide answer if
they have one, or reset to ``invited`` if they do not. Series-wide answers
already describe every date and are kept as they are.

The work is split in two. ``plan_skip`` is pure: it reads a snapshot of the
series and returns a ``SkipPlan`` describing every date and attendee change.
``skip_meeting`` loads the snapshot, plans, and writes the plan one
occurrence at a time in ``series_index`` order, so a failure part way leaves
a prefix of the series shifted and the rest untouched.
"""
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from functools import reduce
from itertools import pairwise
from uuid import UUID

from sqlmodel import Session

from groupmeet.core.errors import (
    EngineError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from groupmeet.models import AttendeeRef, AttendeeStatus, Meeting, MeetingAttendee
from groupmeet.series.intervals import infer_interval
from groupmeet.series.store import AttendanceLedger, OccurrenceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DateChange:
    meeting_id: UUID
    series_index: int
    old_date: datetime
    new_date: datetime


@dataclass(frozen=True)
class AttendeeChange:
    attendee_id: UUID
    meeting_id: UUID
    status: AttendeeStatus
    is_series_rsvp: bool
    responded_at: datetime | None


@dataclass
class SkipPlan:
    """Every change a skip makes, in the order it is applied."""

    series_id: UUID
    meeting_id: UUID
    frequency: timedelta
    date_changes: list[DateChange] = field(default_factory=list)
    attendee_changes: list[AttendeeChange] = field(default_factory=list)

    @property
    def frequency_ms(self) -> int:
        return int(self.frequency / timedelta(milliseconds=1))

    def attendee_changes_for(self, meeting_id: UUID) -> list[AttendeeChange]:
        return [c for c in self.attendee_changes if c.meeting_id == meeting_id]

    def to_dict(self) -> dict:
        return {
            "series_id": str(self.series_id),
            "meeting_id": str(self.meeting_id),
            "frequency_ms": self.frequency_ms,
            "date_changes": [
                {
                    "meeting_id": str(c.meeting_id),
                    "series_index": c.series_index,
                    "old_date": c.old_date.isoformat(),
                    "new_date": c.new_date.isoformat(),
                }
                for c in self.date_changes
            ],
            "attendee_changes": [
                {
                    "attendee_id": str(c.attendee_id),
                    "meeting_id": str(c.meeting_id),
                    "status": c.status.value,
                    "is_series_rsvp": c.is_series_rsvp,
                    "responded_at": c.responded_at.isoformat() if c.responded_at else None,
                }
                for c in self.attendee_changes
            ],
        }


@dataclass
class SkipResult:
    success: bool
    error: EngineError | None = None
    plan: SkipPlan | None = None
    applied_meeting_ids: list[UUID] = field(default_factory=list)

    @property
    def message(self) -> str | None:
        return self.error.message if self.error else None


def series_preferences(
    records: Iterable[MeetingAttendee],
) -> dict[AttendeeRef, MeetingAttendee]:
    """
    Each attendee's standing series answer.

    ``records`` must be in series order. The first series-scoped record seen
    for an attendee wins; later series-scoped records for the same attendee
    are ignored even if their status differs.
    """

    def keep_first(preferences, record):
        if not record.is_series_rsvp or record.attendee in preferences:
            return preferences
        return {**preferences, record.attendee: record}

    return reduce(keep_first, records, {})


def series_frequency(meetings: Sequence[Meeting]) -> timedelta:
    """One recurrence interval, taken from the first adjacent pair of occurrences."""
    if len(meetings) < 2:
        raise StateConflictError(
            "Cannot determine meeting frequency from a series with fewer than 2 meetings"
        )
    for first, second in pairwise(meetings):
        if second.series_index - first.series_index == 1:
            frequency = infer_interval(first, second)
            break
    else:
        raise StateConflictError("Cannot determine meeting frequency: no adjacent meetings")

    if frequency <= timedelta(0):
        raise StateConflictError("Cannot determine meeting frequency: dates are not increasing")
    return frequency


def reconcile_attendee(
    record: MeetingAttendee,
    preferences: dict[AttendeeRef, MeetingAttendee],
) -> AttendeeChange | None:
    """The change a moved occurrence applies to one record, or None if it keeps it."""
    if record.is_series_rsvp:
        return None

    preference = preferences.get(record.attendee)
    if preference is not None:
        status, is_series_rsvp, responded_at = (
            preference.status,
            True,
            preference.responded_at,
        )
    else:
        status, is_series_rsvp, responded_at = AttendeeStatus.INVITED, False, None

    if (
        record.status == status
        and record.is_series_rsvp == is_series_rsvp
        and record.responded_at == responded_at
    ):
        return None

    return AttendeeChange(
        attendee_id=record.id,
        meeting_id=record.meeting_id,
        status=status,
        is_series_rsvp=is_series_rsvp,
        responded_at=responded_at,
    )


def plan_skip(
    meetings: Iterable[Meeting],
    records: Iterable[MeetingAttendee],
    meeting_id: UUID,
) -> SkipPlan:
    """Compute the changes for skipping ``meeting_id`` without touching the store."""
    ordered = sorted(meetings, key=lambda m: m.series_index)
    target = next((m for m in ordered if m.id == meeting_id), None)
    if target is None:
        raise NotFoundError(f"Meeting {meeting_id} is not part of this series")
    if target.series_id is None:
        raise ValidationError("Only meetings in a series can be skipped")

    frequency = series_frequency(ordered)

    by_meeting: dict[UUID, list[MeetingAttendee]] = {m.id: [] for m in ordered}
    for record in records:
        by_meeting.setdefault(record.meeting_id, []).append(record)

    preferences = series_preferences(
        record for meeting in ordered for record in by_meeting[meeting.id]
    )

    plan = SkipPlan(series_id=target.series_id, meeting_id=target.id, frequency=frequency)
    for meeting in ordered:
        if meeting.series_index < target.series_index:
            continue
        plan.date_changes.append(
            DateChange(
                meeting_id=meeting.id,
                series_index=meeting.series_index,
                old_date=meeting.date,
                new_date=meeting.date + frequency,
            )
        )
        for record in by_meeting[meeting.id]:
            change = reconcile_attendee(record, preferences)
            if change is not None:
                plan.attendee_changes.append(change)
    return plan


def skip_meeting(
    session: Session, meeting_id: UUID, now: datetime | None = None
) -> SkipResult:
    """
    Shift a meeting and every later meeting in its series by one interval.

    Returns a ``SkipResult``. On failure ``error`` holds the typed engine
    error and ``applied_meeting_ids`` lists the occurrences already written
    before the failure; nothing is undone.
    """
    store = OccurrenceStore(session)
    ledger = AttendanceLedger(session)
    plan = None
    applied: list[UUID] = []

    try:
        meeting = store.get(meeting_id)
        if meeting is None:
            raise NotFoundError(f"Meeting {meeting_id} not found")
        if meeting.series_id is None:
            raise ValidationError("Only meetings in a series can be skipped")

        meetings = store.fetch_series(meeting.series_id)
        records = ledger.fetch_for_meetings(m.id for m in meetings)
        plan = plan_skip(meetings, records, meeting_id)

        for change in plan.date_changes:
            store.update_date(change.meeting_id, change.new_date, now=now)
            for attendee_change in plan.attendee_changes_for(change.meeting_id):
                ledger.update_record(
                    attendee_change.attendee_id,
                    status=attendee_change.status,
                    is_series_rsvp=attendee_change.is_series_rsvp,
                    responded_at=attendee_change.responded_at,
                )
            applied.append(change.meeting_id)
    except EngineError as e:
        logger.warning(
            f"Skip of meeting {meeting_id} stopped after {len(applied)} meeting(s): {e.message}"
        )
        return SkipResult(success=False, error=e, plan=plan, applied_meeting_ids=applied)

    logger.info(
        f"Skipped meeting {meeting_id}: shifted {len(applied)} meeting(s) by {plan.frequency}, "
        f"{len(plan.attendee_changes)} attendee record(s) reconciled"
    )
    return SkipResult(success=True, plan=plan, applied_meeting_ids=applied)
