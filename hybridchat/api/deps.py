"""
Shared API dependencies.
"""

from fastapi import HTTPException, Request, status

from ..core.orchestrator import TurnOrchestrator


def get_orchestrator(request: Request) -> TurnOrchestrator:
    """The orchestrator built during application startup."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chat core is not initialized"
        )
    return orchestrator
