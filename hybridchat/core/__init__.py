"""Core module - error taxonomy, backend selection and turn orchestration."""

from .errors import (
    ChatError, ConfigurationError, LocalUnavailableError, NetworkError,
    LocalGenerationError, PersistenceError,
)
from .mode_resolver import resolve_backend, active_mode_label

__all__ = [
    'ChatError', 'ConfigurationError', 'LocalUnavailableError', 'NetworkError',
    'LocalGenerationError', 'PersistenceError', 'resolve_backend', 'active_mode_label',
]
