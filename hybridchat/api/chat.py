"""
Chat API endpoints - run a turn against the active session.
Supports a plain JSON response or Server-Sent Events streaming.
"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from .deps import get_orchestrator
from ..core.orchestrator import TurnOrchestrator
from ..models import ChatRequest, ChatResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


def _sse(event: dict) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


def _check_turn(orchestrator: TurnOrchestrator, message: ChatRequest) -> None:
    """
    Refuse turns the guard would reject, then activate the requested session.
    A rejected request leaves the active session unchanged.
    """
    if message.session_id is not None and orchestrator.get_session(message.session_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session not found: {message.session_id}"
        )

    reason = orchestrator.rejection_reason(message.content)
    if reason == "no active session" and message.session_id is not None:
        reason = None
    if reason == "empty message":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is empty")
    if reason is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=reason)

    if message.session_id is not None:
        orchestrator.select_session(message.session_id)


@router.post("/message")
async def send_message(
    message: ChatRequest,
    stream: bool = Query(False, description="Enable streaming output"),
    orchestrator: TurnOrchestrator = Depends(get_orchestrator)
):
    """
    Send a user message and get the model's reply.

    Args:
        message: The new user turn
        stream: Enable Server-Sent Events streaming

    Returns:
        ChatResult (stream=false) or StreamingResponse (stream=true)
    """
    _check_turn(orchestrator, message)
    session_id = orchestrator.active_session_id

    if not stream:
        outcome = {"session_id": session_id, "state": "rejected"}
        async for event in orchestrator.stream_turn(message.content):
            if event["type"] == "backend":
                outcome["backend"] = event["backend"]
            elif event["type"] == "done":
                outcome.update(state="committed", message=event["message"])
            elif event["type"] == "error":
                outcome.update(state="failed", message=event["message"])
            elif event["type"] == "rejected":
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=event["reason"])
        return ChatResult.model_validate(outcome)

    async def event_generator():
        try:
            async for event in orchestrator.stream_turn(message.content):
                yield _sse(event)
        except Exception as e:
            # Turn failures arrive as "error" events; this only covers bugs
            logger.error(f"Chat stream aborted: {e}", exc_info=True)
            yield _sse({"type": "error", "error": str(e)})

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        }
    )
