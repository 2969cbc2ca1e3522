from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .catalog import GameCatalog
from .config import Settings
from .dispatcher import Dispatcher
from .janitor import Janitor
from .routers import games as games_router
from .routers import rooms as rooms_router
from .routers import status as status_router
from .routers import websockets as ws_router
from .state import HubState

log = logging.getLogger("sensor_hub.app")


def create_app(settings: Optional[Settings] = None, hub: Optional[HubState] = None) -> FastAPI:
    """Build the FastAPI app together with the one :class:`HubState` it serves."""
    settings = settings or Settings()
    if hub is None:
        catalog = GameCatalog()
        catalog.load_directory(settings.games_dir)
        hub = HubState(settings, catalog=catalog)
    dispatcher = Dispatcher(hub)
    janitor = Janitor(dispatcher, settings.janitor_interval)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        janitor.start()
        log.info("Sensor hub %s ready (%d game(s))", settings.server_version, len(hub.catalog))
        try:
            yield
        finally:
            await janitor.stop()
            log.info("Sensor hub stopped")

    app = FastAPI(title="Sensor Game Hub", version=settings.server_version, lifespan=lifespan)
    app.state.hub = hub
    app.state.dispatcher = dispatcher
    app.state.janitor = janitor

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(status_router.router)
    app.include_router(games_router.router)
    app.include_router(rooms_router.router)
    app.include_router(ws_router.router)
    return app


_default_app: Optional[FastAPI] = None


def __getattr__(name: str):
    # `uvicorn sensor_hub.app:app` builds the default app on first access only.
    global _default_app
    if name == "app":
        if _default_app is None:
            _default_app = create_app()
        return _default_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["app", "create_app"]
