"""The lead-time window in which a meeting gets its reminder token."""
from datetime import UTC, datetime, timedelta

from sqlmodel import Session, col, select

from groupmeet.core.config import settings
from groupmeet.models import Meeting
from groupmeet.series.store import store_errors


def reminder_window(now: datetime | None = None) -> tuple[datetime, datetime]:
    """
    Start and end of the reminder window, both inclusive.

    Meetings roughly two days out (47 to 49 hours by default) are eligible.
    The two-hour width absorbs jitter in when the scheduler actually polls.
    """
    now = now or datetime.now(UTC)
    return (
        now + timedelta(hours=settings.reminder_window_start_hours),
        now + timedelta(hours=settings.reminder_window_end_hours),
    )


def is_in_reminder_window(meeting_date: datetime, now: datetime | None = None) -> bool:
    start, end = reminder_window(now)
    return start <= meeting_date <= end


def find_meetings_in_window(session: Session, now: datetime | None = None) -> list[Meeting]:
    """Meetings with a leader whose start falls inside the reminder window."""
    start, end = reminder_window(now)
    statement = (
        select(Meeting)
        .where(Meeting.date >= start)
        .where(Meeting.date <= end)
        .where(col(Meeting.created_by).is_not(None))
        .order_by(Meeting.date)
    )
    with store_errors(session, "load meetings in reminder window"):
        return list(session.exec(statement).all())
