"""
Session Store - durable mapping from session id to ChatSession.

The whole collection lives in a single JSON blob. Every mutating call reads
the collection, applies the change and rewrites the blob before returning.
"""

import asyncio
import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from ..core.errors import PersistenceError
from ..models.session import ChatSession, now_ms
from .interface import StorageInterface

logger = logging.getLogger(__name__)

DEFAULT_SESSIONS_KEY = "gemini_offline_chat_sessions.json"


def sort_sessions(sessions: List[ChatSession]) -> List[ChatSession]:
    """Most recently updated first."""
    return sorted(sessions, key=lambda s: s.updated_at, reverse=True)


class SessionStore:
    """
    Pure data access for chat sessions. No networking.

    Read-modify-write cycles are serialized inside this process. Writers in
    other processes are not coordinated: the last write wins.
    """

    def __init__(self, storage: StorageInterface, key: str = DEFAULT_SESSIONS_KEY):
        """
        Args:
            storage: Keyed blob storage backend
            key: Key holding the serialized session collection
        """
        self.storage = storage
        self.key = key
        self._lock = asyncio.Lock()

    async def _read(self) -> List[ChatSession]:
        content = await self.storage.load(self.key)
        if not content:
            return []
        try:
            records = json.loads(content.decode('utf-8'))
            if not isinstance(records, list):
                raise ValueError(f"expected a list of sessions, got {type(records).__name__}")
            return [ChatSession.model_validate(record) for record in records]
        except (UnicodeDecodeError, ValueError, ValidationError) as e:
            # json.JSONDecodeError is a ValueError
            logger.error(
                f"Failed to load sessions, treating store as empty: {e}",
                extra={"extra_fields": {"key": self.key, "error": str(e)}}
            )
            return []

    async def _write(self, sessions: List[ChatSession]) -> None:
        payload = json.dumps([s.to_record() for s in sessions], ensure_ascii=False)
        if not await self.storage.save(self.key, payload):
            raise PersistenceError(f"Failed to persist {len(sessions)} sessions to {self.key}")

    async def list_sessions(self) -> List[ChatSession]:
        """Return all sessions sorted by updatedAt descending. Never raises."""
        return sort_sessions(await self._read())

    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        """Fresh read of a single session, or None."""
        for session in await self._read():
            if session.id == session_id:
                return session
        return None

    async def create_session(self) -> ChatSession:
        """Allocate, persist and return a new empty session."""
        now = now_ms()
        session = ChatSession(title="New Chat", messages=[], created_at=now, updated_at=now)
        await self.save_session(session)
        logger.info(f"Created session {session.id}")
        return session

    async def save_session(self, session: ChatSession) -> None:
        """Upsert by id and rewrite the collection."""
        async with self._lock:
            sessions = await self._read()
            for index, existing in enumerate(sessions):
                if existing.id == session.id:
                    sessions[index] = session
                    break
            else:
                sessions.append(session)
            await self._write(sessions)

    async def delete_session(self, session_id: str) -> None:
        """Remove by id. Deleting an unknown id is a no-op."""
        async with self._lock:
            sessions = await self._read()
            remaining = [s for s in sessions if s.id != session_id]
            if len(remaining) == len(sessions):
                logger.debug(f"Delete of unknown session {session_id} ignored")
                return
            await self._write(remaining)
            logger.info(f"Deleted session {session_id}")

    async def rename_session(self, session_id: str, title: str) -> None:
        """Change only the title. No-op if the session does not exist."""
        session = await self.get_session(session_id)
        if session is None:
            return
        await self.save_session(session.model_copy(update={"title": title}))
