"""Attendee model for per-occurrence RSVP tracking.

This module defines the MeetingAttendee model, one attendee's relationship
to one meeting occurrence. The attendee is either a registered user or a
placeholder identity (someone invited by email who has no account); the
engine treats both the same way through ``AttendeeRef``.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from groupmeet.core.errors import ValidationError
from groupmeet.core.types import UTCDateTime

if TYPE_CHECKING:
    from groupmeet.models.meeting import Meeting


class AttendeeStatus(str, Enum):
    INVITED = "invited"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    MAYBE = "maybe"


@dataclass(frozen=True)
class AttendeeRef:
    """Identity of an attendee: exactly one of user or placeholder."""

    user_id: UUID | None = None
    placeholder_id: UUID | None = None

    def __post_init__(self):
        if (self.user_id is None) == (self.placeholder_id is None):
            raise ValidationError(
                "An attendee is identified by exactly one of user_id or placeholder_id"
            )

    @classmethod
    def user(cls, user_id: UUID) -> "AttendeeRef":
        return cls(user_id=user_id)

    @classmethod
    def placeholder(cls, placeholder_id: UUID) -> "AttendeeRef":
        return cls(placeholder_id=placeholder_id)


class MeetingAttendee(SQLModel, table=True):
    """An attendee's RSVP for one meeting occurrence.

    ``is_series_rsvp`` distinguishes a standing preference for the whole
    series (True) from an answer given for this date only (False). The skip
    operation relies on that distinction to decide which answers survive a
    schedule shift.

    Attributes:
        id: Unique identifier (UUID).
        meeting_id: Foreign key to the meeting occurrence.
        user_id: Registered user, if the attendee has an account.
        placeholder_id: Placeholder identity, if the attendee has none.
        status: One of "invited", "accepted", "declined" or "maybe".
        is_series_rsvp: True when ``status`` applies to the whole series.
        invited_at: When the record was created.
        responded_at: When the attendee last answered, if ever.
        meeting: Reference to the parent Meeting object.
    """
    __table_args__ = (
        UniqueConstraint("meeting_id", "user_id"),
        UniqueConstraint("meeting_id", "placeholder_id"),
        CheckConstraint("(user_id IS NULL) <> (placeholder_id IS NULL)"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    meeting_id: UUID = Field(foreign_key="meeting.id", index=True)
    user_id: UUID | None = Field(default=None, index=True)
    placeholder_id: UUID | None = Field(default=None, index=True)
    status: AttendeeStatus = Field(default=AttendeeStatus.INVITED)
    is_series_rsvp: bool = Field(default=False)
    invited_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), sa_type=UTCDateTime
    )
    responded_at: datetime | None = Field(default=None, sa_type=UTCDateTime)

    # Relationship
    meeting: Optional["Meeting"] = Relationship(back_populates="attendees")

    @property
    def attendee(self) -> AttendeeRef:
        return AttendeeRef(user_id=self.user_id, placeholder_id=self.placeholder_id)


class AttendeeRead(SQLModel):
    id: UUID
    meeting_id: UUID
    user_id: UUID | None
    placeholder_id: UUID | None
    status: AttendeeStatus
    is_series_rsvp: bool
    responded_at: datetime | None
