from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..dependencies import get_hub
from ..schemas import ErrorResponse, GameResponse, GamesResponse
from ..state import HubState

router = APIRouter(prefix="/api", tags=["games"])


@router.get("/games", response_model=GamesResponse)
async def list_games(hub: HubState = Depends(get_hub)):
    games = hub.catalog.list_active()
    return GamesResponse(games=games, total=len(games))


@router.get("/games/{game_id}", response_model=GameResponse, responses={404: {"model": ErrorResponse}})
async def get_game(game_id: str, hub: HubState = Depends(get_hub)):
    game = hub.catalog.get(game_id)
    if game is None:
        return JSONResponse(
            status_code=404,
            content=ErrorResponse(error="Game not found").model_dump(by_alias=True),
        )
    return GameResponse(game=game)
