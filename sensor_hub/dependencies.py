from fastapi import Request

from .state import HubState


def get_hub(request: Request) -> HubState:
    """FastAPI dependency returning the process-wide hub state."""
    return request.app.state.hub


__all__ = ["get_hub"]
