"""Capture source fed by injected transcripts."""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from voice_orchestrator.pipeline.capture import CaptureListener

logger = logging.getLogger(__name__)


class ManualCaptureSource:
    """Capture source whose results and errors are delivered by the caller.

    Stands in for a browser or device speech recognizer: the recognizer
    posts its transcript (or failure) and this source forwards it as the
    terminal event of the current listening attempt.
    """

    def __init__(self) -> None:
        """Initialize detached and not listening."""
        self._listener: "CaptureListener | None" = None
        self._listening = False

    @property
    def available(self) -> bool:
        return True

    @property
    def listening(self) -> bool:
        return self._listening

    def attach(self, listener: "CaptureListener") -> None:
        """Route events to the listener."""
        self._listener = listener

    def detach(self) -> None:
        """Stop routing events."""
        self._listener = None
        self._listening = False

    async def start(self) -> None:
        """Open a listening attempt."""
        self._listening = True
        if self._listener:
            await self._listener.on_started()

    async def stop(self) -> None:
        """Close the listening attempt without a result."""
        if not self._listening:
            return
        self._listening = False
        if self._listener:
            await self._listener.on_stopped()

    async def deliver_result(self, text: str) -> bool:
        """Deliver a transcript as the attempt's terminal event.

        Returns:
            False if no listening attempt was open
        """
        if not self._listening or not self._listener:
            logger.debug("[ManualCapture] Dropping result, not listening")
            return False
        self._listening = False
        listener = self._listener
        await listener.on_result(text)
        await listener.on_stopped()
        return True

    async def deliver_error(self, reason: str) -> bool:
        """Deliver a recognition failure as the attempt's terminal event.

        Returns:
            False if no listening attempt was open
        """
        if not self._listening or not self._listener:
            logger.debug("[ManualCapture] Dropping error, not listening")
            return False
        self._listening = False
        listener = self._listener
        await listener.on_error(reason)
        await listener.on_stopped()
        return True
