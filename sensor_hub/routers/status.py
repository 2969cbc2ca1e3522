from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ..dependencies import get_hub
from ..schemas import HealthResponse, ServerStatus, StatusResponse
from ..state import HubState

router = APIRouter(prefix="", tags=["status"])


@router.get("/health", response_model=HealthResponse)
async def health(hub: HubState = Depends(get_hub)):
    return HealthResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=hub.settings.server_version,
        uptime=hub.uptime(),
        sessions=len(hub.sessions.codes),
        rooms=len(hub.rooms),
        clients=len(hub.connections),
    )


@router.get("/api/status", response_model=StatusResponse)
async def server_status(hub: HubState = Depends(get_hub)):
    return StatusResponse(
        status=ServerStatus(
            uptime=hub.uptime(),
            total_games=len(hub.catalog),
            active_sessions=len(hub.sessions.codes),
            active_rooms=len(hub.rooms),
            connected_clients=len(hub.connections),
            timestamp=hub.clock(),
        )
    )
