from __future__ import annotations

from fastapi import APIRouter, Depends

from ..dependencies import get_hub
from ..schemas import RoomsResponse
from ..state import HubState

router = APIRouter(prefix="/api", tags=["rooms"])


# ---------------------------------------------------------------------------
# Lobby listing
# ---------------------------------------------------------------------------


@router.get("/rooms", response_model=RoomsResponse)
async def list_rooms(hub: HubState = Depends(get_hub)):
    """Rooms still accepting players."""
    summaries = [room.summary() for room in hub.rooms.waiting_rooms()]
    return RoomsResponse(rooms=summaries, total=len(summaries))
