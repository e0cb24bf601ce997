"""
On-device model runtime boundary.

The local provider talks to the device model through four operations:
query availability, create a session with a system prompt, stream-generate
from a prompt string, and close the session. ``AppleFoundationRuntime``
implements them on top of the Apple Foundation Models SDK; tests supply
their own runtime.
"""

import importlib
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, AsyncIterator, Optional

logger = logging.getLogger(__name__)


class LocalAvailability(str, Enum):
    """What the runtime reports about the on-device model."""
    READY = "ready"
    DOWNLOADING = "downloading"  # usable once the model finishes downloading
    UNAVAILABLE = "unavailable"


class LocalModelSession(ABC):
    """A scoped generation session. Must be closed after use."""

    @abstractmethod
    def stream(self, prompt: str) -> AsyncIterator[str]:
        """Yield the cumulative text generated so far on every tick."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the session."""
        pass


class LocalModelRuntime(ABC):
    """Factory for on-device sessions."""

    @abstractmethod
    def is_supported(self) -> bool:
        """Whether this process can talk to an on-device model at all."""
        pass

    @abstractmethod
    async def availability(self) -> LocalAvailability:
        pass

    @abstractmethod
    async def create_session(self, system_prompt: str) -> LocalModelSession:
        pass


class AppleFoundationSession(LocalModelSession):
    """Wraps ``apple_fm_sdk.LanguageModelSession``."""

    def __init__(self, session: Any):
        self._session = session

    def stream(self, prompt: str) -> AsyncIterator[str]:
        if self._session is None:
            raise RuntimeError("Session already closed")
        # stream_response yields snapshots of the full response so far
        return self._session.stream_response(prompt)

    async def close(self) -> None:
        # The SDK session has no explicit teardown; dropping the last
        # reference releases it.
        self._session = None


class AppleFoundationRuntime(LocalModelRuntime):
    """
    On-device runtime backed by ``apple_fm_sdk``.

    The SDK is imported lazily. When it is missing (non-Apple hosts, or not
    installed) the runtime reports itself unsupported instead of failing at
    import time.
    """

    SDK_MODULE = "apple_fm_sdk"

    def __init__(self):
        self._fm: Optional[Any] = None
        self._model: Optional[Any] = None

    def _load_sdk(self) -> Any:
        if self._fm is None:
            self._fm = importlib.import_module(self.SDK_MODULE)
        return self._fm

    def _get_model(self) -> Any:
        if self._model is None:
            self._model = self._load_sdk().SystemLanguageModel()
        return self._model

    def is_supported(self) -> bool:
        try:
            self._load_sdk()
            return True
        except ImportError:
            logger.info(f"{self.SDK_MODULE} is not installed; on-device model unsupported")
            return False
        except Exception as e:
            # Native loading failures (missing dylib, unsupported OS)
            logger.warning(f"{self.SDK_MODULE} failed to load; on-device model unsupported: {e}")
            return False

    async def availability(self) -> LocalAvailability:
        available, reason = self._get_model().is_available()
        if available:
            return LocalAvailability.READY
        # The SDK reports a not-ready model (still downloading) as a distinct reason
        normalized = str(reason).replace("_", "").replace(".", "").lower()
        if "notready" in normalized:
            return LocalAvailability.DOWNLOADING
        logger.info(f"On-device model unavailable: {reason}")
        return LocalAvailability.UNAVAILABLE

    async def create_session(self, system_prompt: str) -> LocalModelSession:
        fm = self._load_sdk()
        session = fm.LanguageModelSession(model=self._get_model(), instructions=system_prompt)
        return AppleFoundationSession(session)
