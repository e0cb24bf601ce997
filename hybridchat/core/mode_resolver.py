"""
Mode Resolver - maps the user's connection mode and the current environment
to the backend that serves a turn.
"""

from ..models.session import Backend, ConnectionMode


def resolve_backend(
    user_mode: ConnectionMode,
    is_online: bool,
    is_local_available: bool,
) -> Backend:
    """
    Pick the concrete backend for a turn.

    CLOUD and LOCAL are honored as selected; AUTO picks CLOUD when online and
    LOCAL otherwise. CLOUD is always downgraded to LOCAL while offline. There
    is no upgrade: LOCAL stays LOCAL even when the cloud is reachable.

    ``is_local_available`` does not influence the choice; an unavailable local
    backend is reported by the orchestrator when it tries to use it.
    """
    if user_mode == ConnectionMode.CLOUD:
        backend = Backend.CLOUD
    elif user_mode == ConnectionMode.LOCAL:
        backend = Backend.LOCAL
    else:
        backend = Backend.CLOUD if is_online else Backend.LOCAL

    # Forced downgrade
    if backend == Backend.CLOUD and not is_online:
        backend = Backend.LOCAL

    return backend


def active_mode_label(user_mode: ConnectionMode, is_online: bool) -> str:
    """Display label for the mode picker."""
    if user_mode == ConnectionMode.AUTO:
        return "Auto (Cloud)" if is_online else "Auto (Offline)"
    return user_mode.label
