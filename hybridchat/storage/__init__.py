"""Storage module - keyed blob storage and the session store built on it."""

from .interface import StorageInterface
from .local_storage import LocalStorage
from .session_store import SessionStore, sort_sessions

__all__ = ['StorageInterface', 'LocalStorage', 'SessionStore', 'sort_sessions']
