"""
Session Models - Defines structures for chat sessions and their messages.

The persisted layout uses camelCase field names (``isError``, ``createdAt``,
``updatedAt``); Python code uses the snake_case attribute names.
"""

import time
import uuid
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


class Role(str, Enum):
    USER = "user"
    MODEL = "model"
    SYSTEM = "system"


class MessageState(str, Enum):
    """Streaming state of a message. Only ``PENDING`` messages may change."""
    PENDING = "pending"
    FINAL = "final"


class ConnectionMode(str, Enum):
    """User-selected backend policy."""
    CLOUD = "cloud"
    LOCAL = "local"
    AUTO = "auto"

    @property
    def label(self) -> str:
        return _MODE_LABELS[self]


_MODE_LABELS = {
    ConnectionMode.CLOUD: "Cloud (Gemini 2.5)",
    ConnectionMode.LOCAL: "Offline (Gemini Nano)",
    ConnectionMode.AUTO: "Auto",
}


class Backend(str, Enum):
    """Concrete backend chosen for a single turn."""
    CLOUD = "cloud"
    LOCAL = "local"


class Message(BaseModel):
    """Chat message model."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    role: Role
    content: str
    timestamp: int = Field(default_factory=now_ms)
    is_error: bool = Field(default=False, alias="isError")
    # In-memory only; everything read back from storage is final
    state: MessageState = Field(default=MessageState.FINAL, exclude=True)

    @property
    def is_pending(self) -> bool:
        return self.state == MessageState.PENDING


class ChatSession(BaseModel):
    """Full session with messages."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    title: str = "New Chat"
    messages: List[Message] = Field(default_factory=list)
    created_at: int = Field(default_factory=now_ms, alias="createdAt")
    updated_at: int = Field(default_factory=now_ms, alias="updatedAt")

    def find_message(self, message_id: str) -> Optional[Message]:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def to_record(self) -> dict:
        """Serialize to the persisted camelCase record."""
        return self.model_dump(mode="json", by_alias=True)


class SessionList(BaseModel):
    """List of sessions, most recently updated first."""
    sessions: List[ChatSession]
