from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.schemas.event import TrackResponse
from app.schemas.session import SessionResponse, SessionStart, SessionStartResponse, SessionUpdate
from app.services.sessions import SessionTracker
import structlog

logger = structlog.get_logger()
router = APIRouter(prefix="/api/analytics/sessions", tags=["sessions"])


@router.post("", response_model=SessionStartResponse, status_code=status.HTTP_201_CREATED)
async def start_session(
        body: SessionStart,
        db: AsyncSession = Depends(get_db)
):
    """Open a session for a user and return its token."""
    session_id = await SessionTracker(db).start(body.user_id, body.device_info, body.location)
    if session_id is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start user session"
        )
    return SessionStartResponse(session_id=session_id)


@router.patch("/{session_id}", response_model=TrackResponse)
async def update_session(
        session_id: str,
        changes: SessionUpdate,
        db: AsyncSession = Depends(get_db)
):
    """
    Record activity on a session.

    - **page_views_increment**: added to the page view counter
    - **actions**: appended to the session's action list

    Unknown session ids are ignored.
    """
    await SessionTracker(db).update(session_id, changes)
    return TrackResponse(message="Session updated successfully")


@router.delete("/{session_id}", response_model=TrackResponse)
async def end_session(
        session_id: str,
        db: AsyncSession = Depends(get_db)
):
    """Close a session. Safe to call more than once."""
    await SessionTracker(db).end(session_id)
    return TrackResponse(message="Session ended successfully")


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
        session_id: str,
        db: AsyncSession = Depends(get_db)
):
    try:
        session = await SessionTracker(db).get(session_id)
    except Exception as e:
        logger.error("session_lookup_failed", session_id=session_id, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to get user session")

    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session
