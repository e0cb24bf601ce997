"""
Status API endpoints - connection mode, connectivity and device capability.
"""

from fastapi import APIRouter, Depends

from .deps import get_orchestrator
from ..core.mode_resolver import active_mode_label
from ..core.orchestrator import TurnOrchestrator
from ..llm.local_runtime import LocalAvailability
from ..models import Backend, ConnectivityUpdate, ModeUpdate, StatusResponse

router = APIRouter(prefix="/status", tags=["status"])


def _snapshot(orchestrator: TurnOrchestrator) -> StatusResponse:
    cloud = orchestrator.providers[Backend.CLOUD]
    online = orchestrator.connectivity.online
    local_status = orchestrator.probe.status or LocalAvailability.UNAVAILABLE
    return StatusResponse(
        mode=orchestrator.mode,
        mode_label=active_mode_label(orchestrator.mode, online),
        online=online,
        cloud_configured=getattr(cloud, "is_configured", False),
        local_available=orchestrator.probe.available,
        local_status=local_status.value,
        is_generating=orchestrator.is_generating,
        turn_state=orchestrator.state.value,
        generation_label=orchestrator.generation_label(),
        active_session_id=orchestrator.active_session_id,
    )


@router.get("", response_model=StatusResponse)
async def get_status(orchestrator: TurnOrchestrator = Depends(get_orchestrator)):
    return _snapshot(orchestrator)


@router.put("/mode", response_model=StatusResponse)
async def set_mode(body: ModeUpdate, orchestrator: TurnOrchestrator = Depends(get_orchestrator)):
    """Change the user-selected connection mode."""
    orchestrator.set_mode(body.mode)
    return _snapshot(orchestrator)


@router.post("/connectivity", response_model=StatusResponse)
async def report_connectivity(
    body: ConnectivityUpdate,
    orchestrator: TurnOrchestrator = Depends(get_orchestrator)
):
    """The host reports an online/offline transition."""
    orchestrator.connectivity.set_online(body.online)
    return _snapshot(orchestrator)


@router.post("/local/refresh", response_model=StatusResponse)
async def refresh_local(orchestrator: TurnOrchestrator = Depends(get_orchestrator)):
    """Re-run the on-device capability check."""
    await orchestrator.probe.refresh()
    return _snapshot(orchestrator)
