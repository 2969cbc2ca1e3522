from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..dispatcher import Dispatcher
from ..state import HubState

router = APIRouter(prefix="", tags=["ws"])

log = logging.getLogger("sensor_hub.ws")


@router.websocket("/")
@router.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    hub: HubState = ws.app.state.hub
    dispatcher: Dispatcher = ws.app.state.dispatcher

    await ws.accept()
    conn = hub.connections.register(ws)
    writer = asyncio.create_task(conn.pump())
    try:
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue
            dispatcher.handle_frame(conn.id, raw)
    except WebSocketDisconnect:
        pass
    except Exception as e:
        log.warning("WebSocket error on %s: %s", conn.id, e)
    finally:
        dispatcher.disconnect(conn.id)
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass
