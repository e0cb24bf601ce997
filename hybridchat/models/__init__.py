"""Models module."""

from .session import (
    Role, MessageState, ConnectionMode, Backend, Message, ChatSession, SessionList,
    now_ms, new_id,
)
from .chat import (
    ChatRequest, ChatResult, RenameRequest, ModeUpdate, ConnectivityUpdate, StatusResponse,
)

__all__ = [
    'Role', 'MessageState', 'ConnectionMode', 'Backend', 'Message', 'ChatSession',
    'SessionList', 'now_ms', 'new_id',
    'ChatRequest', 'ChatResult', 'RenameRequest', 'ModeUpdate', 'ConnectivityUpdate',
    'StatusResponse',
]
