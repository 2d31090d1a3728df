"""Exceptions raised inside the voice command pipeline."""

from typing import Any


class VoiceOrchestratorError(Exception):
    """Base class for all pipeline errors."""


class TaskNotFoundError(VoiceOrchestratorError):
    """Raised when no task with the given id is known."""

    def __init__(self, task_id: str) -> None:
        """Initialize with the missing task id."""
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class BackendError(VoiceOrchestratorError):
    """Raised when a call to the task/workflow backend fails."""

    def __init__(
        self, message: str, status_code: int | None = None, payload: Any = None
    ) -> None:
        """Initialize with message and optional HTTP status and response payload."""
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    def to_details(self) -> dict[str, Any]:
        """Structured form of the error for the activity log."""
        details: dict[str, Any] = {"error": str(self)}
        if self.status_code is not None:
            details["status_code"] = self.status_code
        if self.payload is not None:
            details["payload"] = self.payload
        return details


class ClassificationError(VoiceOrchestratorError):
    """Raised by a remote intent engine that returned unusable output."""
