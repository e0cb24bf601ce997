"""
Error taxonomy for turn generation and persistence.

Generation-time errors (everything except ``PersistenceError``) are caught by
the turn orchestrator and turned into a visible error message in the
conversation. ``PersistenceError`` is only ever logged.
"""


class ChatError(Exception):
    """Base class for all errors raised by the chat core."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(ChatError):
    """The cloud backend was selected but no credential is configured."""


class LocalUnavailableError(ChatError):
    """The on-device backend is unsupported, or was lost between probe and use."""


class NetworkError(ChatError):
    """Transport or protocol failure talking to the cloud backend."""


class LocalGenerationError(ChatError):
    """Internal fault inside the on-device backend."""


class PersistenceError(ChatError):
    """Session store read/write failure."""
