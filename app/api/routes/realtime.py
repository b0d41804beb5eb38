from __future__ import annotations

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter(tags=["realtime"])
logger = structlog.get_logger(__name__)


@router.websocket("/ws/changes")
async def stream_changes(websocket: WebSocket) -> None:
    broadcaster = websocket.app.state.broadcaster
    # Subscribe before the handshake completes so no write slips in between.
    queue = broadcaster.subscribe()
    try:
        await websocket.accept()
        logger.info("realtime_client_connected", subscribers=broadcaster.subscriber_count)
        while True:
            event = await queue.get()
            await websocket.send_json(event)
    except WebSocketDisconnect as exc:
        logger.debug("realtime_client_hung_up", close_code=exc.code)
    finally:
        broadcaster.unsubscribe(queue)
        logger.info("realtime_client_disconnected", subscribers=broadcaster.subscriber_count)
