"""WebSocket fan-out of activity log entries."""

import json
import logging
from collections.abc import Callable, Iterable
from typing import Any

from fastapi import WebSocket

from voice_orchestrator.api.models import LogEntryResponse
from voice_orchestrator.models import LogEntry

logger = logging.getLogger(__name__)


def log_message(entry: LogEntry) -> dict[str, Any]:
    """Wire message announcing a single new activity entry."""
    return {
        "type": "log",
        "entry": LogEntryResponse(
            timestamp=entry.timestamp,
            source=entry.source.value,
            message=entry.message,
            details=entry.details,
        ).model_dump(mode="json"),
    }


class ConnectionManager:
    """Tracks dashboard clients and pushes activity entries to them.

    A client that fails a send is dropped; it reconnects and receives a
    fresh snapshot.
    """

    def __init__(self) -> None:
        """Initialize with no clients."""
        self.active_connections: list[WebSocket] = []

    async def connect(
        self,
        websocket: WebSocket,
        history: Callable[[], Iterable[LogEntry]] | None = None,
    ) -> None:
        """Accept a client and send it the recent history, newest first.

        The history is read and the client registered in one step, so every
        entry reaches it either in the snapshot or as a broadcast.

        Args:
            websocket: Client connection
            history: Returns the entries to replay before live updates
        """
        await websocket.accept()
        entries = list(history()) if history else []
        self.active_connections.append(websocket)
        logger.info(f"[ConnectionManager] Client connected (total: {len(self.active_connections)})")

        snapshot = {
            "type": "snapshot",
            "entries": [log_message(entry)["entry"] for entry in entries],
        }
        await websocket.send_text(json.dumps(snapshot))

    def disconnect(self, websocket: WebSocket) -> None:
        """Forget a client."""
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
            logger.info(
                f"[ConnectionManager] Client disconnected (total: {len(self.active_connections)})"
            )

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Send message to every client, dropping the ones that fail.

        Args:
            message: JSON-serializable dictionary
        """
        if not self.active_connections:
            return

        message_json = json.dumps(message)
        failed = []
        for connection in list(self.active_connections):
            try:
                await connection.send_text(message_json)
            except Exception as e:
                logger.warning(f"[ConnectionManager] Dropping client after failed send: {e}")
                failed.append(connection)

        for connection in failed:
            self.disconnect(connection)
