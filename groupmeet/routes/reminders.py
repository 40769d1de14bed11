"""Reminder routes behind the link a leader receives before a meeting."""
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, SQLModel

from groupmeet.core.database import get_session
from groupmeet.core.errors import EngineError
from groupmeet.models import Meeting, MeetingRead
from groupmeet.reminders.dispatch import (
    LoggingNotifier,
    ReminderNotifier,
    confirm_and_notify,
    reminder_recipients,
)
from groupmeet.reminders.tokens import ReminderTokenService, TokenStatus

router = APIRouter(prefix="/reminders", tags=["reminders"])

# Rejected tokens: gone for good (410) versus never existed (404) versus used (409)
REJECTION_STATUS_CODES = {
    TokenStatus.NOT_FOUND: 404,
    TokenStatus.EXPIRED: 410,
    TokenStatus.MEETING_PASSED: 410,
    TokenStatus.ALREADY_CONFIRMED: 409,
}


class ReminderConfirm(SQLModel):
    custom_description: str | None = None
    custom_message: str | None = None


def get_notifier() -> ReminderNotifier:
    """Dependency for the transport used to deliver attendee reminders."""
    return LoggingNotifier()


def reject(status: TokenStatus):
    raise HTTPException(status_code=REJECTION_STATUS_CODES[status], detail=status.value)


@router.get("/{token}")
async def reminder_detail(token: str, session: Session = Depends(get_session)):
    """
    Show what a reminder link is for.

    Returns the meeting and the number of attendees who would be notified,
    or the reason the link can no longer be used.
    """
    service = ReminderTokenService(session)
    try:
        status = service.validate(token)
        if status is not TokenStatus.OK:
            reject(status)
        record = service.get(token)
        meeting = session.get(Meeting, record.meeting_id)
        attendee_count = len(reminder_recipients(session, meeting.id))
    except EngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return {
        "status": status.value,
        "meeting": MeetingRead.model_validate(meeting),
        "attendee_count": attendee_count,
        "expires_at": record.expires_at,
    }


@router.post("/{token}/confirm")
async def confirm_reminder(
    token: str,
    payload: ReminderConfirm,
    session: Session = Depends(get_session),
    notifier: ReminderNotifier = Depends(get_notifier),
):
    """
    Confirm the meeting is on and send the reminder to attendees.

    A link can be confirmed once. If delivery fails, the confirmation is
    undone so the leader can try the same link again.
    """
    try:
        result = confirm_and_notify(
            session,
            token,
            notifier,
            description=payload.custom_description,
            message=payload.custom_message,
        )
    except EngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    if not result.ok:
        reject(result.status)
    return {
        "success": True,
        "meeting_id": str(result.token.meeting_id),
        "attendee_count": result.attendee_count,
    }
