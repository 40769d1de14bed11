"""Reminder token model for the leader confirmation flow.

This module defines the MeetingReminderToken model. Two days before a
meeting the leader receives a link carrying the token; opening it lets them
review the meeting and confirm that a reminder should go out to attendees.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlmodel import Field, Relationship, SQLModel

from groupmeet.core.types import UTCDateTime

if TYPE_CHECKING:
    from groupmeet.models.meeting import Meeting


class ReminderTokenState(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"


class MeetingReminderToken(SQLModel, table=True):
    """A single-use, time-boxed authorization to send one meeting reminder.

    There is at most one token per meeting. The token string is 64 hex
    characters drawn from a CSPRNG; existing links depend on that length.

    Attributes:
        id: Unique identifier (UUID).
        meeting_id: The occurrence the reminder is about (unique).
        leader_id: The recipient allowed to confirm.
        token: Opaque secret embedded in the confirmation link.
        expires_at: After this instant the token can no longer be used.
        reminder_sent_at: When the notice went to the leader.
        confirmed_at: When the leader confirmed; cleared again if the
            attendee email fails afterwards.
        attendee_email_sent_at: When the attendee email actually went out.
        custom_description: Leader's edited meeting description.
        custom_message: Leader's personal note to attendees.
        meeting: Reference to the Meeting object.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    meeting_id: UUID = Field(foreign_key="meeting.id", unique=True)
    leader_id: UUID
    token: str = Field(unique=True, index=True, max_length=64)
    expires_at: datetime = Field(sa_type=UTCDateTime, index=True)
    reminder_sent_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    confirmed_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    attendee_email_sent_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    custom_description: str | None = None
    custom_message: str | None = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), sa_type=UTCDateTime
    )

    # Relationship
    meeting: Optional["Meeting"] = Relationship(back_populates="reminder_token")

    def state_at(self, now: datetime) -> ReminderTokenState:
        """Lifecycle state of the token as seen at ``now``.

        Expiry ranks above confirmation, in the same order as token
        validation: a confirmed token past ``expires_at`` is expired.
        """
        if self.expires_at <= now:
            return ReminderTokenState.EXPIRED
        if self.confirmed_at is not None:
            return ReminderTokenState.CONFIRMED
        if self.reminder_sent_at is not None:
            return ReminderTokenState.SENT
        return ReminderTokenState.PENDING
