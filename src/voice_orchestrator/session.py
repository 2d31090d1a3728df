"""One user's voice command session."""

import logging

from voice_orchestrator.activity_log import ActivityLog
from voice_orchestrator.backend.client import BackendClient
from voice_orchestrator.errors import TaskNotFoundError
from voice_orchestrator.intent.classifier import IntentClassifier
from voice_orchestrator.models import Intent, LogSource
from voice_orchestrator.pipeline.capture import CaptureSource, CaptureStateMachine
from voice_orchestrator.pipeline.dispatcher import CommandDispatcher, DispatchOutcome
from voice_orchestrator.tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


class VoiceSession:
    """Wires capture, classification and dispatch around a private task store.

    The backend client and classifier are chosen once, at construction.
    """

    def __init__(
        self,
        backend: BackendClient,
        classifier: IntentClassifier,
        capture_source: CaptureSource | None = None,
        activity_log: ActivityLog | None = None,
    ) -> None:
        """Initialize session components."""
        self.activity_log = activity_log or ActivityLog()
        self.store = TaskStore()
        self.classifier = classifier
        self.capture_source = capture_source
        self.dispatcher = CommandDispatcher(backend, self.store, self.activity_log)
        self.capture = CaptureStateMachine(capture_source, self.handle_utterance, self.activity_log)

    async def open(self) -> None:
        """Load the initial task list."""
        await self.dispatcher.refresh_tasks()

    async def classify(self, text: str) -> Intent:
        """Classify text, mapping any classifier failure to UNKNOWN."""
        self.activity_log.append(LogSource.SYSTEM, "Sending to intent engine...")
        try:
            intent = await self.classifier.classify(text)
        except Exception as e:
            logger.error(f"[Session] Classifier raised: {e}")
            intent = Intent.unknown(text, confidence=0.0)
        self.activity_log.append(
            LogSource.CLASSIFIER, f"Intent: {intent.kind.value}", intent.to_dict()
        )
        return intent

    async def handle_utterance(self, text: str) -> DispatchOutcome:
        """Classify an utterance and dispatch the resulting intent."""
        intent = await self.classify(text)
        return await self.dispatcher.dispatch(intent)

    async def process_text(self, text: str) -> DispatchOutcome | None:
        """Run a text command through the pipeline, honoring the busy guard."""
        return await self.capture.process_text(text)

    async def approve_task(self, task_id: str) -> DispatchOutcome | None:
        """Approve a task by id under the same busy guard as spoken commands.

        Raises:
            TaskNotFoundError: If the store has no task with that id
        """
        if self.store.get(task_id) is None:
            raise TaskNotFoundError(task_id)
        return await self.capture.run_command(
            lambda: self.dispatcher.approve_task_by_id(task_id)
        )

    async def close(self) -> None:
        """Release the capture source and abandon in-flight work."""
        await self.capture.close()
        logger.info("[Session] Closed")
