"""Backend client protocol and record normalization."""

import uuid
from datetime import datetime
from typing import Any, Protocol

from voice_orchestrator.models import Task, TaskDecision, TaskPriority, TaskStatus, WorkflowInstance


class BackendClient(Protocol):
    """Protocol for the task/workflow service.

    Every operation raises BackendError on failure.
    """

    async def list_tasks(self) -> list[Task]:
        """List tasks in the user's inbox."""
        ...

    async def complete_task(
        self,
        task_id: str,
        decision: TaskDecision = TaskDecision.APPROVE,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Complete a task with the given decision."""
        ...

    async def start_workflow(self, name: str) -> WorkflowInstance:
        """Start a new workflow instance for a project."""
        ...


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO timestamp, falling back to now."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now()


def normalize_task(raw: dict[str, Any]) -> Task:
    """Build a Task from a raw backend record.

    Accepts both the SAP field names (``subject``, ``ID``, ``createdAtTime``)
    and plain ones (``title``, ``id``, ``createdAt``).
    """
    task_id = raw.get("id", raw.get("ID"))
    return Task(
        id=str(task_id) if task_id is not None else uuid.uuid4().hex,
        title=raw.get("subject") or raw.get("title") or "SAP Task",
        status=TaskStatus.normalize(raw.get("status")),
        priority=TaskPriority.normalize(raw.get("priority")),
        created_at=parse_timestamp(raw.get("createdAt") or raw.get("createdAtTime")),
        description=raw.get("description") or raw.get("Subject") or None,
    )


def normalize_workflow(raw: dict[str, Any]) -> WorkflowInstance:
    """Build a WorkflowInstance from a raw backend record."""
    return WorkflowInstance(
        id=str(raw.get("id", "")),
        status=str(raw.get("status", "RUNNING")),
        started_at=parse_timestamp(raw.get("startedAt")),
        definition_id=raw.get("definitionId"),
        subject=raw.get("subject"),
        context=raw.get("context") or {},
    )
