"""Process entry point: ``sensor-hub`` or ``python -m sensor_hub.main``."""
from __future__ import annotations

import uvicorn

from .app import create_app
from .config import Settings
from .logger import setup_logging


def run() -> None:
    settings = Settings()
    setup_logging(settings.log_level)
    # uvicorn handles SIGINT/SIGTERM and drives the lifespan shutdown.
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
