"""Series routes operating on every occurrence of a recurring meeting."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, SQLModel

from groupmeet.core.database import get_session
from groupmeet.core.errors import EngineError
from groupmeet.models import AttendeeRef, AttendeeStatus, MeetingRead
from groupmeet.series.rsvp import rsvp_whole_series
from groupmeet.series.store import OccurrenceStore

router = APIRouter(prefix="/series", tags=["series"])


class SeriesRsvp(SQLModel):
    status: AttendeeStatus
    user_id: UUID | None = None
    placeholder_id: UUID | None = None


@router.get("/{series_id}", response_model=list[MeetingRead])
async def series_detail(series_id: UUID, session: Session = Depends(get_session)):
    """List every occurrence of a series in series order."""
    try:
        meetings = OccurrenceStore(session).fetch_series(series_id)
    except EngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not meetings:
        raise HTTPException(status_code=404, detail="Series not found")
    return meetings


@router.post("/{series_id}/rsvp")
async def rsvp_series(
    series_id: UUID,
    payload: SeriesRsvp,
    session: Session = Depends(get_session),
):
    """
    Answer for every date in the series.

    The answer becomes the attendee's standing preference: when a meeting is
    later skipped, it replaces any answer given for the moved date only.
    """
    try:
        attendee = AttendeeRef(user_id=payload.user_id, placeholder_id=payload.placeholder_id)
    except EngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    result = rsvp_whole_series(session, series_id, attendee, payload.status)
    if not result.success:
        raise HTTPException(status_code=result.error.status_code, detail=result.message)
    return {"success": True, "updated": result.updated}


@router.delete("/{series_id}")
async def delete_series(series_id: UUID, session: Session = Depends(get_session)):
    """Delete every occurrence of a series."""
    try:
        deleted = OccurrenceStore(session).delete_series(series_id)
    except EngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True, "deleted": deleted}
