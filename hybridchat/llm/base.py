"""
Generation Provider Base - Abstract base for both text-generation backends.

Every provider exposes the same two capabilities:
- ``probe()``: can this backend serve a turn right now?
- ``stream_response()``: a finite, non-restartable async stream of text deltas
"""

from abc import ABC, abstractmethod
from typing import AsyncGenerator, List

from ..models.session import Backend, Message


class GenerationProvider(ABC):
    """
    Abstract base class for generation providers.
    The turn orchestrator depends only on this interface.
    """

    #: Which backend this provider implements
    backend: Backend

    @abstractmethod
    async def probe(self) -> bool:
        """
        Report whether the backend is usable. Must never raise.

        Returns:
            bool: True if a turn can be attempted
        """
        pass

    @abstractmethod
    def stream_response(
        self,
        history: List[Message],
        new_message: str,
    ) -> AsyncGenerator[str, None]:
        """
        Stream the model's reply to ``new_message``.

        Args:
            history: Prior conversation, oldest first (excludes ``new_message``)
            new_message: The user's new turn

        Yields:
            str: Text deltas; concatenated in order they form the full reply

        Raises:
            ChatError subclasses describing why generation failed
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(backend={self.backend.value})"
