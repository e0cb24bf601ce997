"""
API Models - Request and response bodies for the HTTP surface.
"""

from typing import Optional
from pydantic import BaseModel, Field

from .session import Backend, ConnectionMode, Message


class ChatRequest(BaseModel):
    """A new user turn for the active session."""
    content: str
    session_id: Optional[str] = None  # activates this session first when given


class ChatResult(BaseModel):
    """Outcome of a non-streaming turn."""
    session_id: str
    state: str
    backend: Optional[Backend] = None
    message: Optional[Message] = None


class RenameRequest(BaseModel):
    title: str = Field(min_length=1)


class ModeUpdate(BaseModel):
    mode: ConnectionMode


class ConnectivityUpdate(BaseModel):
    online: bool


class StatusResponse(BaseModel):
    """Snapshot of everything that feeds backend selection."""
    mode: ConnectionMode
    mode_label: str
    online: bool
    cloud_configured: bool
    local_available: bool
    local_status: str
    is_generating: bool
    turn_state: str
    generation_label: Optional[str] = None
    active_session_id: Optional[str] = None
