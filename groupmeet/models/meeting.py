"""Meeting model for scheduled group meetings.

This module defines the Meeting model, one dated occurrence of a group
meeting. Occurrences created together as a recurring series share a
``series_id`` and are numbered by ``series_index``; a standalone meeting
leaves all three series columns null.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

from sqlmodel import Field, Relationship, SQLModel

from groupmeet.core.types import UTCDateTime
from groupmeet.models.attendee import AttendeeRead

if TYPE_CHECKING:
    from groupmeet.models.attendee import MeetingAttendee
    from groupmeet.models.reminder_token import MeetingReminderToken


class Meeting(SQLModel, table=True):
    """A single scheduled occurrence of a group meeting.

    Within one series, ``date`` increases strictly with ``series_index``.
    The skip operation is the only code path that moves ``date``, and it
    shifts an occurrence together with every later one so that ordering
    holds after each individual write.

    Attributes:
        id: Unique identifier (UUID).
        group_id: Group the meeting belongs to.
        created_by: Leader who created the meeting and receives reminders.
        title: Display title.
        description: Free-form notes, not interpreted by the engine.
        location: Physical or virtual location.
        timezone: Timezone label carried through to display only.
        date: Authoritative start time.
        end_date: Optional end time.
        series_id: Shared by every occurrence of a recurring series.
        series_index: 1-based position within the series.
        series_total: Number of occurrences when the series was created.
        attendees: RSVP records, one per invited attendee.
        reminder_token: Confirmation token for this occurrence's reminder.
    """
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    group_id: UUID = Field(index=True)
    created_by: UUID | None = None
    title: str
    description: str | None = None
    location: str | None = None
    timezone: str | None = None
    date: datetime = Field(sa_type=UTCDateTime, index=True)
    end_date: datetime | None = Field(default=None, sa_type=UTCDateTime)
    series_id: UUID | None = Field(default=None, index=True)
    series_index: int | None = None
    series_total: int | None = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), sa_type=UTCDateTime
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC), sa_type=UTCDateTime
    )

    # Relationships
    attendees: list["MeetingAttendee"] = Relationship(
        back_populates="meeting",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    reminder_token: Optional["MeetingReminderToken"] = Relationship(
        back_populates="meeting",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "uselist": False},
    )

    @property
    def is_series(self) -> bool:
        return self.series_id is not None


class MeetingRead(SQLModel):
    """Response shape for a meeting together with its attendee records."""
    id: UUID
    group_id: UUID
    created_by: UUID | None
    title: str
    description: str | None
    location: str | None
    timezone: str | None
    date: datetime
    end_date: datetime | None
    series_id: UUID | None
    series_index: int | None
    series_total: int | None
    attendees: list[AttendeeRead] = []
