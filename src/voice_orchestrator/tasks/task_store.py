"""In-memory store of the tasks known to one session."""

from __future__ import annotations

import logging
from dataclasses import replace

from voice_orchestrator.errors import TaskNotFoundError
from voice_orchestrator.models import Task, TaskStatus

logger = logging.getLogger(__name__)


class TaskStore:
    """Current snapshot of backend tasks, in the order of the last fetch."""

    def __init__(self, tasks: list[Task] | None = None) -> None:
        """Initialize store, optionally seeded with tasks."""
        self._tasks: list[Task] = list(tasks or [])

    def list(self) -> list[Task]:
        """Return a snapshot of all tasks."""
        return list(self._tasks)

    def get(self, task_id: str) -> Task | None:
        """Get task by id."""
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def replace_all(self, tasks: list[Task]) -> None:
        """Replace the whole snapshot after a refresh from the backend."""
        self._tasks = list(tasks)
        logger.debug(f"[TaskStore] Replaced contents with {len(self._tasks)} tasks")

    def mark_completed(self, task_id: str) -> Task:
        """Transition a task to COMPLETED.

        Completing an already completed task is a no-op.

        Args:
            task_id: Task identity

        Returns:
            The updated task record

        Raises:
            TaskNotFoundError: If no task has that id
        """
        for index, task in enumerate(self._tasks):
            if task.id != task_id:
                continue
            if task.status == TaskStatus.COMPLETED:
                return task
            updated = replace(task, status=TaskStatus.COMPLETED)
            self._tasks[index] = updated
            logger.debug(f"[TaskStore] Marked {task_id} completed")
            return updated
        raise TaskNotFoundError(task_id)

    def __len__(self) -> int:
        return len(self._tasks)
