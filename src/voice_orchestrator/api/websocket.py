"""WebSocket API endpoint for live activity updates."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from voice_orchestrator.factory import get_connection_manager, get_session

logger = logging.getLogger(__name__)

router = APIRouter()

SNAPSHOT_SIZE = 50


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Stream activity log entries, starting with a snapshot of recent ones.

    Clients may send "ping" as a keepalive and receive "pong".
    """
    connection_manager = get_connection_manager()
    activity_log = get_session().activity_log
    await connection_manager.connect(websocket, lambda: activity_log.newest_first(SNAPSHOT_SIZE))
    try:
        while True:
            data = await websocket.receive_text()
            logger.debug(f"[WebSocket] Received from client: {data}")

            if data == "ping":
                await websocket.send_text("pong")

    except WebSocketDisconnect:
        logger.info("[WebSocket] Client disconnected normally")
        connection_manager.disconnect(websocket)
    except Exception as e:
        logger.error(f"[WebSocket] Error: {e}", exc_info=True)
        connection_manager.disconnect(websocket)
