"""Append-only activity log shared by all pipeline components."""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from voice_orchestrator.models import LogEntry, LogSource

logger = logging.getLogger(__name__)

LogListener = Callable[[LogEntry], None]


class ActivityLog:
    """In-memory record of every pipeline step, oldest entry first.

    Entries are never mutated or evicted. Each append is mirrored to the
    standard logger and handed to subscribed listeners (e.g. the WebSocket
    broadcaster).
    """

    def __init__(self) -> None:
        """Initialize empty log."""
        self._entries: list[LogEntry] = []
        self._listeners: list[LogListener] = []

    def append(self, source: LogSource, message: str, details: Any = None) -> LogEntry:
        """Record a new entry and notify listeners.

        Args:
            source: Component producing the entry
            message: Human readable message
            details: Optional structured payload

        Returns:
            The stored entry
        """
        entry = LogEntry(timestamp=datetime.now(), source=source, message=message, details=details)
        self._entries.append(entry)
        logger.info(f"[{source.value}] {message}")

        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception as e:
                logger.warning(f"[ActivityLog] Listener failed: {e}")

        return entry

    def subscribe(self, listener: LogListener) -> Callable[[], None]:
        """Register a listener, returning a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def entries(self) -> list[LogEntry]:
        """All entries, oldest first."""
        return list(self._entries)

    def newest_first(self, limit: int | None = None) -> list[LogEntry]:
        """Entries newest first, optionally capped at ``limit``."""
        entries = list(reversed(self._entries))
        return entries if limit is None else entries[:limit]

    def __len__(self) -> int:
        return len(self._entries)
