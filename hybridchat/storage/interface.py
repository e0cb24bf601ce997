"""
Storage Interface - Abstract base class for keyed blob storage.
The session store keeps its whole collection under a single key.
"""

from abc import ABC, abstractmethod
from typing import Optional


class StorageInterface(ABC):
    """
    Abstract storage interface that defines the contract for all storage implementations.
    """

    @abstractmethod
    async def save(self, key: str, content: bytes | str) -> bool:
        """
        Save content under the specified key, replacing any previous content.

        Args:
            key: Relative key (e.g., "gemini_offline_chat_sessions.json")
            content: Content to save (bytes, or str encoded as UTF-8)

        Returns:
            bool: True if save was successful, False otherwise
        """
        pass

    @abstractmethod
    async def load(self, key: str) -> Optional[bytes]:
        """
        Load content stored under the specified key.

        Returns:
            Optional[bytes]: Stored content, or None if nothing is stored
        """
        pass
