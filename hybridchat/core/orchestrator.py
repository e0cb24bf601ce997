"""
Turn Orchestrator - drives one chat turn from user input to durable state.

Per turn: IDLE -> USER_APPENDED -> STREAMING -> COMMITTED | FAILED -> IDLE.

The orchestrator keeps a working copy of the session collection (what the
UI shows, including the pending response while it streams) and reconciles
it into the session store twice per turn: right after the user message
(pre-save) and after the stream completes or fails (final save, against a
fresh read from the store; last writer wins per session record).
"""

import logging
from contextlib import aclosing
from enum import Enum
from typing import Any, AsyncGenerator, Dict, List, Optional

from . import reducers
from .capability_probe import LocalCapabilityProbe
from .connectivity import ConnectivityMonitor
from .errors import ChatError, ConfigurationError, LocalUnavailableError, PersistenceError
from .mode_resolver import resolve_backend
from ..llm.base import GenerationProvider
from ..models.session import (
    Backend, ChatSession, ConnectionMode, Message, Role, new_id, now_ms,
)
from ..storage.session_store import SessionStore, sort_sessions

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "Gemini API Key is missing. Check your environment variables."
LOCAL_MISSING_MESSAGE = (
    "Offline mode requires the on-device model, which is not detected. "
    "Please connect to the internet to use the Cloud model."
)


class TurnState(str, Enum):
    IDLE = "idle"
    USER_APPENDED = "user_appended"
    STREAMING = "streaming"
    COMMITTED = "committed"
    FAILED = "failed"


def _message_payload(message: Message) -> Dict[str, Any]:
    return message.model_dump(mode="json", by_alias=True)


class TurnOrchestrator:
    """
    Top-level driver for chat turns.

    At most one turn is in flight at a time; a second attempt while one is
    generating is rejected, not queued.
    """

    def __init__(
        self,
        store: SessionStore,
        providers: Dict[Backend, GenerationProvider],
        connectivity: ConnectivityMonitor,
        probe: LocalCapabilityProbe,
        mode: ConnectionMode = ConnectionMode.AUTO,
    ):
        """
        Args:
            store: Durable session store
            providers: One provider per backend
            connectivity: Host connectivity signal
            probe: On-device capability probe
            mode: Initial user-selected connection mode
        """
        self.store = store
        self.providers = providers
        self.connectivity = connectivity
        self.probe = probe
        self.mode = mode

        self.sessions: List[ChatSession] = []
        self.active_session_id: Optional[str] = None
        self.is_generating = False
        self.state = TurnState.IDLE
        self.active_backend: Optional[Backend] = None

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------

    @property
    def active_session(self) -> Optional[ChatSession]:
        return self._get_working(self.active_session_id)

    def get_session(self, session_id: str) -> Optional[ChatSession]:
        return self._get_working(session_id)

    async def load(self) -> None:
        """Load persisted sessions, activate the most recent one and probe the device."""
        self.sessions = await self.store.list_sessions()
        if self.sessions:
            self.active_session_id = self.sessions[0].id
        else:
            await self.new_chat()
        await self.probe.refresh()
        logger.info(
            f"Loaded {len(self.sessions)} sessions, active={self.active_session_id}, "
            f"local_available={self.probe.available}"
        )

    async def new_chat(self) -> ChatSession:
        """Create a session, make it active and put it first."""
        try:
            session = await self.store.create_session()
        except PersistenceError as e:
            logger.error(f"Failed to persist new session: {e}")
            session = ChatSession()
        self.sessions = [session] + [s for s in self.sessions if s.id != session.id]
        self.active_session_id = session.id
        return session

    def select_session(self, session_id: str) -> ChatSession:
        session = self._get_working(session_id)
        if session is None:
            raise KeyError(session_id)
        self.active_session_id = session_id
        return session

    async def delete_session(self, session_id: str) -> None:
        """
        Delete a session. If it was active, the most recently updated
        remaining session becomes active, or a fresh one when none remain.
        """
        try:
            await self.store.delete_session(session_id)
        except PersistenceError as e:
            logger.error(f"Failed to persist deletion of {session_id}: {e}")

        self.sessions = [s for s in self.sessions if s.id != session_id]
        if self.active_session_id == session_id:
            if self.sessions:
                self.active_session_id = sort_sessions(self.sessions)[0].id
            else:
                await self.new_chat()

    async def rename_session(self, session_id: str, title: str) -> None:
        try:
            await self.store.rename_session(session_id, title)
        except PersistenceError as e:
            logger.error(f"Failed to persist rename of {session_id}: {e}")
        session = self._get_working(session_id)
        if session is not None:
            self._replace_working(session.model_copy(update={"title": title}))

    def set_mode(self, mode: ConnectionMode) -> None:
        if mode != self.mode:
            logger.info(f"Connection mode changed: {self.mode.value} -> {mode.value}")
        self.mode = mode

    def generation_label(self) -> Optional[str]:
        """Status line while a turn is generating."""
        if not self.is_generating:
            return None
        backend = self.active_backend or resolve_backend(
            self.mode, self.connectivity.online, self.probe.available
        )
        return "Generating on device..." if backend == Backend.LOCAL else "Generating via Cloud..."

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def rejection_reason(self, text: str) -> Optional[str]:
        """Why a turn with this input would be rejected right now, or None."""
        if not text or not text.strip():
            return "empty message"
        if self.active_session_id is None or self.active_session is None:
            return "no active session"
        if self.is_generating:
            return "a response is already being generated"
        return None

    async def send_message(self, text: str) -> Optional[TurnState]:
        """
        Run a full turn.

        Returns:
            The terminal state (COMMITTED or FAILED), or None if the turn was rejected.
        """
        result: Optional[TurnState] = None
        async for event in self.stream_turn(text):
            if event["type"] == "done":
                result = TurnState.COMMITTED
            elif event["type"] == "error":
                result = TurnState.FAILED
        return result

    async def stream_turn(self, text: str) -> AsyncGenerator[Dict[str, Any], None]:
        """
        Run a turn, yielding progress events.

        Events:
            {"type": "rejected", "reason"}            guard refused; nothing changed
            {"type": "user", "session_id", "message"} user message appended and pre-saved
            {"type": "backend", "backend"}            backend chosen
            {"type": "content", "content"}            one text delta
            {"type": "done", "message"}               final response committed
            {"type": "error", "error", "message"}     turn failed; error message appended
        """
        reason = self.rejection_reason(text)
        if reason is not None:
            logger.info(f"Turn rejected: {reason}")
            yield {"type": "rejected", "reason": reason}
            return

        # Set before the first await so a concurrent turn is rejected
        self.is_generating = True
        session_id = self.active_session_id
        try:
            content = text.strip()
            user_message = Message(role=Role.USER, content=content)
            session = self._get_working(session_id)
            history = list(session.messages)

            session = reducers.append_user_message(session, user_message)
            self._replace_working(session)
            self.state = TurnState.USER_APPENDED
            await self._save_working(session)
            yield {"type": "user", "session_id": session_id, "message": _message_payload(user_message)}

            response_id = new_id()
            accumulated = ""
            try:
                backend = await self._select_backend()
                self.active_backend = backend
                yield {"type": "backend", "backend": backend.value}

                self.state = TurnState.STREAMING
                provider = self.providers[backend]
                async with aclosing(provider.stream_response(history, content)) as stream:
                    async for delta in stream:
                        accumulated += delta
                        self._apply_delta(session_id, response_id, delta)
                        yield {"type": "content", "content": delta}
            except Exception as e:
                error_text = e.message if isinstance(e, ChatError) else str(e) or type(e).__name__
                logger.error(
                    f"Turn failed in session {session_id}: {error_text}",
                    exc_info=not isinstance(e, ChatError),
                    extra={"extra_fields": {
                        "session_id": session_id,
                        "backend": self.active_backend.value if self.active_backend else None,
                        "error_type": type(e).__name__,
                        "error": error_text,
                    }}
                )
                error_message = await self._fail_turn(session_id, response_id, error_text)
                self.state = TurnState.FAILED
                yield {"type": "error", "error": error_text, "message": _message_payload(error_message)}
                return

            final_message = await self._commit_turn(session_id, response_id, accumulated)
            self.state = TurnState.COMMITTED
            logger.info(
                f"Turn committed in session {session_id}: backend={self.active_backend.value}, "
                f"response_length={len(accumulated)} chars"
            )
            yield {"type": "done", "message": _message_payload(final_message)}
        finally:
            self.is_generating = False
            self.active_backend = None
            self.state = TurnState.IDLE

    async def _select_backend(self) -> Backend:
        backend = resolve_backend(self.mode, self.connectivity.online, self.probe.available)
        if backend == Backend.CLOUD:
            if not await self.providers[Backend.CLOUD].probe():
                raise ConfigurationError(MISSING_KEY_MESSAGE)
        elif not self.probe.available:
            raise LocalUnavailableError(LOCAL_MISSING_MESSAGE)
        logger.info(
            f"Backend selected: {backend.value} (mode={self.mode.value}, "
            f"online={self.connectivity.online}, local={self.probe.available})"
        )
        return backend

    def _apply_delta(self, session_id: str, response_id: str, delta: str) -> None:
        session = self._get_working(session_id)
        if session is not None:
            self._replace_working(reducers.apply_delta(session, response_id, delta))

    async def _commit_turn(self, session_id: str, response_id: str, content: str) -> Message:
        """Finalize the response in the working copy and the store."""
        final_message = Message(id=response_id, role=Role.MODEL, content=content)

        session = self._get_working(session_id)
        if session is not None:
            pending = session.find_message(response_id)
            if pending is not None:
                final_message = final_message.model_copy(update={"timestamp": pending.timestamp})
                session = reducers.finalize_message(session, response_id, content)
                session = session.model_copy(update={"updated_at": now_ms()})
            else:
                session = reducers.upsert_message(session, final_message)
            self._replace_working(session)

        await self._reconcile(session_id, [final_message])
        return final_message

    async def _fail_turn(self, session_id: str, response_id: str, error_text: str) -> Message:
        """Keep any partial response, then append the error record."""
        to_persist: List[Message] = []
        session = self._get_working(session_id) or ChatSession(id=session_id)

        partial = session.find_message(response_id)
        if partial is not None:
            session = reducers.finalize_message(session, response_id)
            to_persist.append(session.find_message(response_id))

        session = reducers.append_error_message(session, error_text)
        error_message = session.messages[-1]
        to_persist.append(error_message)

        if self._get_working(session_id) is not None:
            self._replace_working(session)
        await self._reconcile(session_id, to_persist)
        return error_message

    async def _reconcile(self, session_id: str, messages: List[Message]) -> None:
        """Upsert messages into a fresh read of the stored session and save it."""
        stored = await self.store.get_session(session_id)
        if stored is None:
            logger.warning(f"Session {session_id} no longer in store; final save skipped")
            return
        for message in messages:
            stored = reducers.upsert_message(stored, message)
        try:
            await self.store.save_session(stored)
        except PersistenceError as e:
            logger.error(f"Final save of session {session_id} failed: {e}")

    async def _save_working(self, session: ChatSession) -> None:
        try:
            await self.store.save_session(session)
        except PersistenceError as e:
            logger.error(f"Pre-save of session {session.id} failed: {e}")

    def _get_working(self, session_id: Optional[str]) -> Optional[ChatSession]:
        if session_id is None:
            return None
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None

    def _replace_working(self, session: ChatSession) -> None:
        self.sessions = sort_sessions(
            [session if s.id == session.id else s for s in self.sessions]
        )
