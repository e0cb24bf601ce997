"""
Local Filesystem Storage Implementation.
Every key maps to one file under a base directory.
"""

import logging
import os
import aiofiles
from pathlib import Path
from typing import Optional
from .interface import StorageInterface

logger = logging.getLogger(__name__)


class LocalStorage(StorageInterface):
    """
    Local filesystem storage implementation.
    Stores all data in a base directory on the host.
    """

    def __init__(self, base_dir: str = "./data"):
        """
        Initialize local storage with a base directory.

        Args:
            base_dir: Base directory for all stored files
        """
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, key: str) -> Path:
        """Convert a key to a full absolute path within the base directory."""
        full_path = (self.base_dir / key).resolve()

        # Security check: ensure path is within base_dir
        if not full_path.is_relative_to(self.base_dir):
            raise ValueError(f"Invalid key: {key} - path traversal detected")

        return full_path

    async def save(self, key: str, content: bytes | str) -> bool:
        """Write to a sibling temp file, then swap it into place."""
        try:
            full_path = self._get_full_path(key)
            full_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = full_path.with_suffix(full_path.suffix + '.tmp')

            if isinstance(content, str):
                content = content.encode('utf-8')
            async with aiofiles.open(tmp_path, 'wb') as f:
                await f.write(content)
                await f.flush()

            os.replace(tmp_path, full_path)
            return True
        except Exception as e:
            logger.error(f"Error saving {key}: {e}", exc_info=True)
            return False

    async def load(self, key: str) -> Optional[bytes]:
        """Load content from local filesystem."""
        try:
            full_path = self._get_full_path(key)
            if not full_path.exists():
                return None

            async with aiofiles.open(full_path, 'rb') as f:
                return await f.read()
        except Exception as e:
            logger.error(f"Error loading {key}: {e}")
            return None
