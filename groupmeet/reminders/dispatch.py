"""Reminder delivery flow: leader notice, confirmation, attendee email.

Message rendering and delivery belong to a ``ReminderNotifier``; this module
only decides when to call it and keeps token state consistent around the
calls.
"""
import logging
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from sqlmodel import Session, col, select

from groupmeet.core.config import settings
from groupmeet.core.errors import EngineError, NotFoundError, UpstreamFailure
from groupmeet.models import AttendeeStatus, Meeting, MeetingAttendee
from groupmeet.reminders.tokens import ConfirmResult, ReminderTokenService
from groupmeet.reminders.window import find_meetings_in_window, reminder_window
from groupmeet.series.store import store_errors

logger = logging.getLogger(__name__)

RECIPIENT_STATUSES = (AttendeeStatus.INVITED, AttendeeStatus.ACCEPTED)


class ReminderNotifier(Protocol):
    """Delivers reminder messages. Raise on failure; do not retry."""

    def send_leader_reminder(
        self, meeting: Meeting, confirmation_url: str, attendee_count: int
    ) -> None: ...

    def send_attendee_reminder(
        self,
        meeting: Meeting,
        recipients: list[MeetingAttendee],
        description: str | None,
        message: str | None,
    ) -> None: ...


class LoggingNotifier:
    """Notifier that records what would be sent without delivering anything."""

    def send_leader_reminder(
        self, meeting: Meeting, confirmation_url: str, attendee_count: int
    ) -> None:
        logger.info(
            f"Leader reminder for '{meeting.title}' on {meeting.date.isoformat()} "
            f"({attendee_count} attendees): {confirmation_url}"
        )

    def send_attendee_reminder(
        self,
        meeting: Meeting,
        recipients: list[MeetingAttendee],
        description: str | None,
        message: str | None,
    ) -> None:
        logger.info(f"Attendee reminder for '{meeting.title}' to {len(recipients)} attendee(s)")


def confirmation_url(token: str) -> str:
    return f"{settings.confirmation_base_url.rstrip('/')}/reminders/{token}"


def reminder_recipients(session: Session, meeting_id: UUID) -> list[MeetingAttendee]:
    """Attendees who have not declined: still invited or accepted."""
    statement = (
        select(MeetingAttendee)
        .where(MeetingAttendee.meeting_id == meeting_id)
        .where(col(MeetingAttendee.status).in_(RECIPIENT_STATUSES))
    )
    with store_errors(session, "load reminder recipients"):
        return list(session.exec(statement).all())


def generate_reminders(
    session: Session, notifier: ReminderNotifier, now: datetime | None = None
) -> dict:
    """
    Issue tokens and notify leaders for meetings entering the reminder window.

    Meetings whose notice already went out are skipped. A failure on one
    meeting is logged and recorded, and the pass moves on to the next.

    Returns dict with keys: processed, skipped, errors
    """
    now = now or datetime.now(UTC)
    start, end = reminder_window(now)
    logger.info(f"Looking for meetings between {start.isoformat()} and {end.isoformat()}")

    stats = {"processed": 0, "skipped": 0, "errors": []}
    service = ReminderTokenService(session)

    for meeting in find_meetings_in_window(session, now):
        meeting_id = meeting.id
        try:
            existing = service.get_for_meeting(meeting_id)
            if existing is not None and existing.reminder_sent_at is not None:
                logger.info(f"Skipping meeting {meeting_id}: reminder already sent")
                stats["skipped"] += 1
                continue

            attendee_count = len(reminder_recipients(session, meeting_id))
            record = service.issue(meeting_id, meeting.created_by, now=now)
            try:
                notifier.send_leader_reminder(
                    meeting, confirmation_url(record.token), attendee_count
                )
            except Exception as e:
                raise UpstreamFailure(f"Failed to send leader reminder: {e}") from e
            service.mark_sent(record.token, now=now)
            stats["processed"] += 1
        except EngineError as e:
            logger.error(f"Error processing meeting {meeting_id}: {e.message}")
            stats["errors"].append(f"Meeting {meeting_id}: {e.message}")

    logger.info(f"Reminder pass completed: {stats}")
    return stats


def confirm_and_notify(
    session: Session,
    token: str,
    notifier: ReminderNotifier,
    description: str | None = None,
    message: str | None = None,
    now: datetime | None = None,
) -> ConfirmResult:
    """
    Confirm a token and send the reminder to attendees.

    If sending fails, the confirmation is rolled back so the leader can try
    again, and ``UpstreamFailure`` is raised. ``attendee_email_sent_at`` is
    only set once the send succeeded.
    """
    service = ReminderTokenService(session)
    result = service.confirm(token, description, message, now=now)
    if not result.ok:
        return result

    record = result.token
    meeting = session.get(Meeting, record.meeting_id)
    if meeting is None:
        service.rollback_confirmation(token)
        raise NotFoundError("The meeting associated with this link no longer exists")

    recipients = reminder_recipients(session, meeting.id)
    result.attendee_count = len(recipients)
    if not recipients:
        return result

    try:
        notifier.send_attendee_reminder(
            meeting, recipients, record.custom_description, record.custom_message
        )
    except Exception as e:
        logger.error(f"Attendee reminder failed for meeting {meeting.id}: {e}")
        service.rollback_confirmation(token)
        raise UpstreamFailure("Failed to send emails. Please try again.") from e

    result.token = service.mark_attendee_email_sent(token, now=now)
    logger.info(f"Sent reminder emails to {len(recipients)} attendees for meeting {meeting.id}")
    return result
