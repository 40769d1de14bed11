from groupmeet.models.attendee import AttendeeRead, AttendeeRef, AttendeeStatus, MeetingAttendee
from groupmeet.models.meeting import Meeting, MeetingRead
from groupmeet.models.reminder_token import MeetingReminderToken, ReminderTokenState

__all__ = [
    "Meeting",
    "MeetingRead",
    "MeetingAttendee",
    "AttendeeRead",
    "AttendeeRef",
    "AttendeeStatus",
    "MeetingReminderToken",
    "ReminderTokenState",
]
