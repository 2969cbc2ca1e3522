import logging
import os
from typing import Optional

import uvicorn
import websockets
from rich.console import Console
from rich.logging import RichHandler

console = Console()


def setup_logging(level: Optional[str] = None) -> None:
    """Route every ``logging`` record through a single rich console handler."""
    level = (level or os.environ.get("LOGLEVEL", "INFO")).upper()
    handler = RichHandler(
        level=level,
        console=console,
        rich_tracebacks=True,
        tracebacks_suppress=[uvicorn, websockets],
    )
    logging.basicConfig(
        level="NOTSET", format="%(message)s", datefmt="[%X]", handlers=[handler], force=True
    )
    # uvicorn installs its own handlers; let its records reach ours instead.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers = []
        uv_logger.propagate = True


__all__ = ["console", "setup_logging"]
