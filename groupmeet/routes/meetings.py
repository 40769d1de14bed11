"""Meeting routes for creating, listing, skipping and answering meetings."""
from datetime import datetime, timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, SQLModel

from groupmeet.core.database import get_session
from groupmeet.core.errors import EngineError
from groupmeet.models import AttendeeRead, AttendeeRef, AttendeeStatus, MeetingRead
from groupmeet.series.creation import create_meetings
from groupmeet.series.intervals import RecurrenceType
from groupmeet.series.reconcile import skip_meeting
from groupmeet.series.rsvp import rsvp_single_occurrence
from groupmeet.series.store import OccurrenceStore

router = APIRouter(tags=["meetings"])


class MeetingCreate(SQLModel):
    title: str
    date: datetime
    recurrence: RecurrenceType = RecurrenceType.NONE
    count: int = 1
    created_by: UUID | None = None
    description: str | None = None
    location: str | None = None
    timezone: str | None = None
    duration_minutes: int | None = None
    attendee_user_ids: list[UUID] = []
    attendee_placeholder_ids: list[UUID] = []


class RsvpUpdate(SQLModel):
    status: AttendeeStatus


@router.post("/groups/{group_id}/meetings", status_code=201, response_model=list[MeetingRead])
async def create_group_meeting(
    group_id: UUID,
    payload: MeetingCreate,
    session: Session = Depends(get_session),
):
    """
    Create a meeting for a group.

    With a recurrence other than "none", creates every occurrence of the
    series at once and invites the listed attendees to each of them.
    """
    attendees = [AttendeeRef.user(user_id) for user_id in payload.attendee_user_ids] + [
        AttendeeRef.placeholder(placeholder_id)
        for placeholder_id in payload.attendee_placeholder_ids
    ]
    try:
        return create_meetings(
            session,
            group_id=group_id,
            title=payload.title,
            start=payload.date,
            recurrence=payload.recurrence,
            count=payload.count,
            created_by=payload.created_by,
            description=payload.description,
            location=payload.location,
            timezone=payload.timezone,
            duration=(
                timedelta(minutes=payload.duration_minutes)
                if payload.duration_minutes
                else None
            ),
            attendees=attendees,
        )
    except EngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/groups/{group_id}/meetings", response_model=list[MeetingRead])
async def list_group_meetings(
    group_id: UUID,
    include_past: bool = False,
    session: Session = Depends(get_session),
):
    """List a group's meetings by date. Past meetings only when asked for."""
    try:
        return OccurrenceStore(session).fetch_group(group_id, include_past=include_past)
    except EngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/meetings/{meeting_id}", response_model=MeetingRead)
async def meeting_detail(meeting_id: UUID, session: Session = Depends(get_session)):
    meeting = OccurrenceStore(session).get(meeting_id)
    if not meeting:
        raise HTTPException(status_code=404, detail="Meeting not found")
    return meeting


@router.post("/meetings/{meeting_id}/skip")
async def skip(meeting_id: UUID, session: Session = Depends(get_session)):
    """
    Skip a meeting in a series.

    The meeting and every later one in its series move forward by one
    recurrence interval. Returns the applied changes so the caller can update
    its own view. If the skip stops part way, the error says so and the
    meetings already moved stay moved.
    """
    result = skip_meeting(session, meeting_id)
    if not result.success:
        raise HTTPException(status_code=result.error.status_code, detail=result.message)
    return {"success": True, "plan": result.plan.to_dict()}


@router.post(
    "/meetings/{meeting_id}/attendees/{attendee_id}/rsvp",
    response_model=AttendeeRead,
)
async def rsvp_occurrence(
    meeting_id: UUID,
    attendee_id: UUID,
    payload: RsvpUpdate,
    session: Session = Depends(get_session),
):
    """Answer for this date only."""
    try:
        return rsvp_single_occurrence(session, meeting_id, attendee_id, payload.status)
    except EngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/meetings/{meeting_id}", status_code=204)
async def delete_meeting(meeting_id: UUID, session: Session = Depends(get_session)):
    """Delete a single meeting along with its attendee records and reminder token."""
    try:
        OccurrenceStore(session).delete(meeting_id)
    except EngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
