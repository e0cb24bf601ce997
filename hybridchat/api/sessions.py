"""
Session API endpoints - list, create, rename, delete and activate sessions.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from .deps import get_orchestrator
from ..core.orchestrator import TurnOrchestrator
from ..models import ChatSession, RenameRequest, SessionList

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _require_session(orchestrator: TurnOrchestrator, session_id: str) -> ChatSession:
    session = orchestrator.get_session(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session not found: {session_id}"
        )
    return session


@router.get("", response_model=SessionList)
async def list_sessions(orchestrator: TurnOrchestrator = Depends(get_orchestrator)):
    """All sessions, most recently updated first."""
    return SessionList(sessions=orchestrator.sessions)


@router.post("", response_model=ChatSession, status_code=status.HTTP_201_CREATED)
async def create_session(orchestrator: TurnOrchestrator = Depends(get_orchestrator)):
    """Start a new chat and make it the active session."""
    return await orchestrator.new_chat()


@router.get("/{session_id}", response_model=ChatSession)
async def get_session(session_id: str, orchestrator: TurnOrchestrator = Depends(get_orchestrator)):
    return _require_session(orchestrator, session_id)


@router.patch("/{session_id}", response_model=ChatSession)
async def rename_session(
    session_id: str,
    body: RenameRequest,
    orchestrator: TurnOrchestrator = Depends(get_orchestrator)
):
    _require_session(orchestrator, session_id)
    await orchestrator.rename_session(session_id, body.title)
    return _require_session(orchestrator, session_id)


@router.delete("/{session_id}")
async def delete_session(session_id: str, orchestrator: TurnOrchestrator = Depends(get_orchestrator)):
    """
    Delete a session. Unknown ids are accepted (idempotent).

    Returns:
        The deleted id and the session that is active afterwards
    """
    await orchestrator.delete_session(session_id)
    return {"deleted": session_id, "active_session_id": orchestrator.active_session_id}


@router.post("/{session_id}/activate", response_model=ChatSession)
async def activate_session(session_id: str, orchestrator: TurnOrchestrator = Depends(get_orchestrator)):
    _require_session(orchestrator, session_id)
    return orchestrator.select_session(session_id)
