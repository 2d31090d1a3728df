"""State machine governing capture and processing of a single utterance."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Protocol

from voice_orchestrator.activity_log import ActivityLog
from voice_orchestrator.models import LogSource
from voice_orchestrator.pipeline.dispatcher import DispatchOutcome

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Speech recognition not supported by this capture source."
PROCESSING_FAILED_MESSAGE = "Failed to process command"


class CaptureState(str, Enum):
    """Internal state of the capture machine."""

    IDLE = "IDLE"
    LISTENING = "LISTENING"
    RECOGNIZED = "RECOGNIZED"
    ERRORED = "ERRORED"
    PROCESSING = "PROCESSING"


class CaptureStatus(str, Enum):
    """Status exposed to the presentation layer."""

    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    ERROR = "error"


class CaptureListener(Protocol):
    """Receiver of capture source events."""

    async def on_started(self) -> None: ...

    async def on_stopped(self) -> None: ...

    async def on_result(self, text: str) -> None: ...

    async def on_error(self, reason: str) -> None: ...


class CaptureSource(Protocol):
    """Audio capture and transcription source.

    Delivers at most one result or error per activation.
    """

    @property
    def available(self) -> bool:
        """Whether capture is supported at all."""
        ...

    def attach(self, listener: CaptureListener) -> None:
        """Route events to the listener."""
        ...

    def detach(self) -> None:
        """Stop delivering events."""
        ...

    async def start(self) -> None:
        """Begin a listening attempt."""
        ...

    async def stop(self) -> None:
        """Abort the current listening attempt."""
        ...


UtteranceHandler = Callable[[str], Awaitable[DispatchOutcome | None]]
Command = Callable[[], Awaitable[DispatchOutcome | None]]


class CaptureStateMachine:
    """Drives IDLE -> LISTENING -> RECOGNIZED/ERRORED -> PROCESSING -> IDLE.

    ERRORED and RECOGNIZED are pass-through states. While any command is
    processing (spoken, typed or a direct task action), new starts and
    commands are rejected.
    """

    def __init__(
        self,
        source: CaptureSource | None,
        handler: UtteranceHandler,
        activity_log: ActivityLog,
    ) -> None:
        """Initialize machine in IDLE.

        Args:
            source: Capture source, None when no capture is available
            handler: Coroutine classifying and dispatching an utterance
            activity_log: Shared activity log
        """
        self._source = source
        self._handler = handler
        self._log = activity_log
        self._state = CaptureState.IDLE
        self._busy = False
        self._closed = False
        self._transcript = ""
        self._error: str | None = None
        self._processing: asyncio.Task[DispatchOutcome | None] | None = None

        self._unavailable = source is None or not source.available
        if self._unavailable:
            self._error = UNAVAILABLE_MESSAGE
            self._log.append(LogSource.SYSTEM, UNAVAILABLE_MESSAGE)
        else:
            source.attach(self)

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def status(self) -> CaptureStatus:
        """Coarse status for display."""
        if self._state == CaptureState.LISTENING:
            return CaptureStatus.LISTENING
        if self._state in (CaptureState.RECOGNIZED, CaptureState.PROCESSING):
            return CaptureStatus.PROCESSING
        if self._error:
            return CaptureStatus.ERROR
        return CaptureStatus.IDLE

    @property
    def is_processing(self) -> bool:
        return self._busy

    @property
    def is_available(self) -> bool:
        return not self._unavailable

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def can_accept(self) -> bool:
        """Whether a start or command would be accepted now."""
        return not self._closed and not self._busy and self._state == CaptureState.IDLE

    async def start(self) -> bool:
        """Begin listening.

        Returns:
            False if the request was ignored (busy, already listening,
            closed or no capture source)
        """
        if self._unavailable or not self.can_accept:
            logger.debug(f"[Capture] Ignoring start in state {self._state.value}")
            return False

        self._transcript = ""
        self._error = None
        self._state = CaptureState.LISTENING
        try:
            await self._source.start()  # type: ignore[union-attr]
        except Exception as e:
            self._capture_failed(str(e))
            return False
        return True

    async def stop(self) -> bool:
        """Cancel the current listening attempt without producing an utterance."""
        if self._state != CaptureState.LISTENING:
            return False

        self._state = CaptureState.IDLE
        self._log.append(LogSource.SYSTEM, "Listening cancelled")
        try:
            await self._source.stop()  # type: ignore[union-attr]
        except Exception as e:
            logger.warning(f"[Capture] Failed to stop source: {e}")
        return True

    async def process_text(self, text: str) -> DispatchOutcome | None:
        """Process a typed or simulated utterance, bypassing capture.

        Returns:
            Dispatch outcome, or None if the request was ignored
        """
        if not self.can_accept:
            logger.debug(f"[Capture] Ignoring command in state {self._state.value}")
            return None

        if not self._unavailable:
            self._error = None
        return await self._recognize(text)

    async def run_command(self, command: Command) -> DispatchOutcome | None:
        """Run a dispatch that needs no transcript, holding the busy flag.

        Returns:
            Dispatch outcome, or None if the request was ignored or failed
        """
        if not self.can_accept:
            logger.debug(f"[Capture] Ignoring command in state {self._state.value}")
            return None

        if not self._unavailable:
            self._error = None
        return await self._process(command)

    async def on_started(self) -> None:
        if self._closed:
            return
        self._log.append(LogSource.SYSTEM, "Listening started...")

    async def on_stopped(self) -> None:
        if self._closed:
            return
        if self._state == CaptureState.LISTENING:
            self._state = CaptureState.IDLE
        self._log.append(LogSource.SYSTEM, "Listening stopped")

    async def on_result(self, text: str) -> None:
        if self._closed or self._state != CaptureState.LISTENING:
            logger.debug("[Capture] Ignoring result outside listening")
            return
        await self._recognize(text)

    async def on_error(self, reason: str) -> None:
        if self._closed or self._state != CaptureState.LISTENING:
            logger.debug("[Capture] Ignoring error outside listening")
            return
        self._capture_failed(reason)

    def _capture_failed(self, reason: str) -> None:
        self._state = CaptureState.ERRORED
        self._error = f"Microphone error: {reason}"
        self._log.append(LogSource.SYSTEM, self._error, {"reason": reason})
        self._state = CaptureState.IDLE

    async def _recognize(self, text: str) -> DispatchOutcome | None:
        self._state = CaptureState.RECOGNIZED
        self._transcript = text
        self._log.append(LogSource.USER, f'Recognized: "{text}"')
        return await self._process(lambda: self._handler(text))

    async def _process(self, command: Command) -> DispatchOutcome | None:
        self._state = CaptureState.PROCESSING
        self._busy = True
        self._processing = asyncio.ensure_future(command())
        try:
            outcome = await self._processing
            if outcome is not None and not outcome.ok:
                self._set_error(f"{PROCESSING_FAILED_MESSAGE}: {outcome.error}")
            return outcome
        except asyncio.CancelledError:
            if not self._closed:
                raise
            return None
        except Exception as e:
            logger.exception(f"[Capture] Error processing command: {e}")
            self._log.append(
                LogSource.SYSTEM,
                "Error processing command",
                {"error": str(e), "type": type(e).__name__},
            )
            self._set_error(PROCESSING_FAILED_MESSAGE)
            return None
        finally:
            self._busy = False
            self._processing = None
            self._state = CaptureState.IDLE

    def _set_error(self, message: str) -> None:
        # Unavailable capture stays the visible error for the whole session
        if not self._unavailable:
            self._error = message

    async def close(self) -> None:
        """Release the capture source and abandon in-flight processing."""
        if self._closed:
            return
        self._closed = True

        if self._source is not None and not self._unavailable:
            if self._state == CaptureState.LISTENING:
                try:
                    await self._source.stop()
                except Exception as e:
                    logger.warning(f"[Capture] Failed to stop source on close: {e}")
            self._source.detach()

        processing = self._processing
        if processing is not None and not processing.done():
            processing.cancel()
        self._state = CaptureState.IDLE
