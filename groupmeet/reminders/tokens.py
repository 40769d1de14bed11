"""Single-use confirmation tokens gating meeting reminders.

A token moves through ``pending -> sent -> confirmed``. It can also expire
before confirmation. ``validate`` reports why a token cannot be used, and
``confirm`` consumes it with a conditional UPDATE, so when two confirmations
race only one of them changes the row and the other sees
``already_confirmed``.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from uuid import UUID

from sqlalchemy import update
from sqlmodel import Session, col, select

from groupmeet.core.config import settings
from groupmeet.core.errors import NotFoundError, StateConflictError
from groupmeet.models import Meeting, MeetingReminderToken
from groupmeet.series.store import store_errors

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32  # 64 hex characters


class TokenStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    ALREADY_CONFIRMED = "already_confirmed"
    MEETING_PASSED = "meeting_passed"


@dataclass
class ConfirmResult:
    status: TokenStatus
    token: MeetingReminderToken | None = None
    attendee_count: int = 0

    @property
    def ok(self) -> bool:
        return self.status is TokenStatus.OK


def generate_secure_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def check_token(
    record: MeetingReminderToken | None,
    meeting_date: datetime | None,
    now: datetime,
) -> TokenStatus:
    """
    Decide whether a token may be used.

    Checks run in a fixed order and stop at the first failure: missing
    token (or missing meeting), expiry, prior confirmation, meeting already
    started. An expired token therefore reports ``expired`` even when it was
    also confirmed or its meeting is over.
    """
    if record is None or meeting_date is None:
        return TokenStatus.NOT_FOUND
    if record.expires_at <= now:
        return TokenStatus.EXPIRED
    if record.confirmed_at is not None:
        return TokenStatus.ALREADY_CONFIRMED
    if meeting_date < now:
        return TokenStatus.MEETING_PASSED
    return TokenStatus.OK


def _clean_text(value: str | None, limit: int) -> str | None:
    value = (value or "").strip()
    return value[:limit] or None


class ReminderTokenService:
    """Issue, validate and consume reminder tokens."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, token: str) -> MeetingReminderToken | None:
        statement = select(MeetingReminderToken).where(MeetingReminderToken.token == token)
        with store_errors(self.session, "load reminder token"):
            return self.session.exec(statement).first()

    def get_for_meeting(self, meeting_id: UUID) -> MeetingReminderToken | None:
        statement = select(MeetingReminderToken).where(
            MeetingReminderToken.meeting_id == meeting_id
        )
        with store_errors(self.session, "load reminder token"):
            return self.session.exec(statement).first()

    def _require(self, token: str) -> MeetingReminderToken:
        record = self.get(token)
        if record is None:
            raise NotFoundError("Reminder token not found")
        return record

    def issue(
        self, meeting_id: UUID, leader_id: UUID, now: datetime | None = None
    ) -> MeetingReminderToken:
        """
        Create the token for a meeting entering its reminder window.

        A meeting keeps a single token row. If one exists but its notice was
        never sent, it is re-keyed with a fresh secret and expiry.
        """
        now = now or datetime.now(UTC)
        with store_errors(self.session, "issue reminder token"):
            if self.session.get(Meeting, meeting_id) is None:
                raise NotFoundError(f"Meeting {meeting_id} not found")

            record = self.get_for_meeting(meeting_id)
            if record is not None and record.reminder_sent_at is not None:
                raise StateConflictError(f"Reminder already sent for meeting {meeting_id}")
            if record is None:
                record = MeetingReminderToken(meeting_id=meeting_id, leader_id=leader_id)

            record.leader_id = leader_id
            record.token = generate_secure_token()
            record.expires_at = now + timedelta(days=settings.token_ttl_days)
            record.confirmed_at = None
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)

        logger.info(f"Issued reminder token for meeting {meeting_id}")
        return record

    def mark_sent(self, token: str, now: datetime | None = None) -> MeetingReminderToken:
        """Record that the leader notice went out. Later calls keep the first time."""
        record = self._require(token)
        if record.reminder_sent_at is None:
            with store_errors(self.session, "mark reminder sent"):
                record.reminder_sent_at = now or datetime.now(UTC)
                self.session.add(record)
                self.session.commit()
                self.session.refresh(record)
        return record

    def validate(self, token: str, now: datetime | None = None) -> TokenStatus:
        record = self.get(token)
        meeting = None
        if record is not None:
            with store_errors(self.session, "load meeting"):
                meeting = self.session.get(Meeting, record.meeting_id)
        return check_token(record, meeting.date if meeting else None, now or datetime.now(UTC))

    def confirm(
        self,
        token: str,
        custom_description: str | None = None,
        custom_message: str | None = None,
        now: datetime | None = None,
    ) -> ConfirmResult:
        """
        Consume the token and store the leader's content.

        The token is validated again right before the write, and the write
        itself only matches a row whose ``confirmed_at`` is still null, so a
        second confirmation that slips past validation still changes nothing.
        """
        now = now or datetime.now(UTC)
        status = self.validate(token, now)
        if status is not TokenStatus.OK:
            return ConfirmResult(status)

        statement = (
            update(MeetingReminderToken)
            .where(MeetingReminderToken.token == token)
            .where(col(MeetingReminderToken.confirmed_at).is_(None))
            .where(MeetingReminderToken.expires_at > now)
            .values(
                confirmed_at=now,
                custom_description=_clean_text(
                    custom_description, settings.max_custom_description_length
                ),
                custom_message=_clean_text(custom_message, settings.max_custom_message_length),
            )
            .execution_options(synchronize_session=False)
        )
        with store_errors(self.session, "confirm reminder token"):
            result = self.session.exec(statement)
            self.session.commit()

        if result.rowcount == 0:
            status = self.validate(token, now)
            if status is TokenStatus.OK:
                status = TokenStatus.ALREADY_CONFIRMED
            logger.info(f"Reminder confirmation lost a race: {status.value}")
            return ConfirmResult(status)

        record = self._require(token)
        logger.info(f"Reminder confirmed for meeting {record.meeting_id}")
        return ConfirmResult(TokenStatus.OK, record)

    def rollback_confirmation(self, token: str) -> MeetingReminderToken:
        """Make a confirmed token confirmable again after a failed send."""
        record = self._require(token)
        with store_errors(self.session, "roll back reminder confirmation"):
            record.confirmed_at = None
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
        logger.warning(f"Rolled back reminder confirmation for meeting {record.meeting_id}")
        return record

    def mark_attendee_email_sent(
        self, token: str, now: datetime | None = None
    ) -> MeetingReminderToken:
        record = self._require(token)
        with store_errors(self.session, "mark attendee email sent"):
            record.attendee_email_sent_at = now or datetime.now(UTC)
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
        return record
