"""
On-Device Provider.

The device session does not share the application's notion of history, so
every call re-seeds a fresh session with one flattened prompt and tears it
down afterwards. The runtime streams cumulative snapshots; this provider
hands out deltas.
"""

import logging
import time
from typing import AsyncGenerator, List, Optional

from .base import GenerationProvider
from .local_runtime import (
    AppleFoundationRuntime, LocalAvailability, LocalModelRuntime, LocalModelSession,
)
from .streaming import cumulative_to_deltas
from ..core.errors import ChatError, LocalGenerationError, LocalUnavailableError
from ..models.session import Backend, Message, Role

logger = logging.getLogger(__name__)

LOCAL_PREAMBLE = "System: You are a helpful AI assistant residing locally on the user's device."
LOCAL_SESSION_PROMPT = "You are a helpful offline assistant."
REMEDIATION_HINT = (
    "Failed to generate response from the on-device model. "
    "Ensure the on-device model is enabled and fully downloaded."
)


def build_local_prompt(history: List[Message], new_message: str) -> str:
    """
    Flatten history and the new turn into a single prompt.

    Error messages are left out. Anything that is not a user message is
    rendered as the assistant.
    """
    context = "\n\n".join(
        f"{'User' if m.role == Role.USER else 'Assistant'}: {m.content}"
        for m in history
        if not m.is_error
    )

    sections = [LOCAL_PREAMBLE]
    if context:
        sections.append(f"Context:\n{context}")
    sections.append(f"User: {new_message}")
    sections.append("Assistant:")
    return "\n\n".join(sections)


class OnDeviceProvider(GenerationProvider):
    """Provider for the device-local small model."""

    backend = Backend.LOCAL

    def __init__(self, runtime: Optional[LocalModelRuntime] = None, log_calls: bool = True):
        """
        Args:
            runtime: On-device runtime; defaults to the Apple Foundation Models SDK
            log_calls: Log stream start/completion with timings
        """
        self.runtime = runtime or AppleFoundationRuntime()
        self.log_calls = log_calls

    async def availability(self) -> LocalAvailability:
        """Three-state availability. Never raises."""
        try:
            if not self.runtime.is_supported():
                return LocalAvailability.UNAVAILABLE
            return await self.runtime.availability()
        except Exception as e:
            logger.warning(f"On-device availability check failed: {e}")
            return LocalAvailability.UNAVAILABLE

    async def probe(self) -> bool:
        return await self.availability() != LocalAvailability.UNAVAILABLE

    async def _release(self, session: LocalModelSession) -> None:
        try:
            await session.close()
        except Exception as e:
            logger.warning(f"Failed to release on-device session: {e}")

    async def stream_response(
        self,
        history: List[Message],
        new_message: str,
    ) -> AsyncGenerator[str, None]:
        """Stream a turn from the device model as deltas."""
        try:
            supported = self.runtime.is_supported()
        except Exception as e:
            raise LocalUnavailableError(f"Could not load the on-device model: {e}") from e
        if not supported:
            raise LocalUnavailableError("This runtime does not support the on-device model.")

        try:
            availability = await self.runtime.availability()
        except Exception as e:
            raise LocalUnavailableError(f"Could not query the on-device model: {e}") from e
        if availability == LocalAvailability.UNAVAILABLE:
            raise LocalUnavailableError("The on-device model is not available on this device.")

        prompt = build_local_prompt(history, new_message)
        start_time = time.time()
        emitted = 0
        session: Optional[LocalModelSession] = None

        if self.log_calls:
            logger.debug(
                f"On-device stream starting: availability={availability.value}, "
                f"prompt_length={len(prompt)}"
            )

        try:
            session = await self.runtime.create_session(LOCAL_SESSION_PROMPT)
            async for delta in cumulative_to_deltas(session.stream(prompt)):
                emitted += len(delta)
                yield delta
        except ChatError:
            raise
        except Exception as e:
            logger.error(
                f"On-device generation failed: {e}",
                exc_info=True,
                extra={"extra_fields": {
                    "provider": "on-device",
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "error": str(e),
                }}
            )
            raise LocalGenerationError(REMEDIATION_HINT) from e
        finally:
            # Runs on completion, failure and aclose()/cancellation alike
            if session is not None:
                await self._release(session)

        if self.log_calls:
            logger.info(
                "On-device stream completed",
                extra={"extra_fields": {
                    "provider": "on-device",
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "content_length": emitted,
                }}
            )
