"""Execution of classified intents against the backend."""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from voice_orchestrator.activity_log import ActivityLog
from voice_orchestrator.backend.client import BackendClient
from voice_orchestrator.errors import BackendError, TaskNotFoundError
from voice_orchestrator.intent.classifier import DEFAULT_PROJECT_NAME
from voice_orchestrator.models import (
    Intent,
    IntentKind,
    LogSource,
    Task,
    TaskDecision,
    WorkflowInstance,
)
from voice_orchestrator.tasks.entity_resolver import has_entity, resolve
from voice_orchestrator.tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


class DispatchAction(str, Enum):
    """Action the dispatcher took for an intent."""

    FETCH_TASKS = "FETCH_TASKS"
    COMPLETE_TASK = "COMPLETE_TASK"
    START_WORKFLOW = "START_WORKFLOW"
    NO_MATCH = "NO_MATCH"
    NOT_UNDERSTOOD = "NOT_UNDERSTOOD"


@dataclass
class DispatchOutcome:
    """Result of dispatching one intent."""

    action: DispatchAction
    intent: Intent | None = None
    task: Task | None = None
    tasks_fetched: int | None = None
    workflow: WorkflowInstance | None = None
    error: str | None = None
    error_details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether every backend call succeeded."""
        return self.error is None


def _error_details(error: Exception) -> dict[str, Any]:
    if isinstance(error, BackendError):
        return error.to_details()
    return {"error": str(error), "type": type(error).__name__}


class CommandDispatcher:
    """Runs the backend calls implied by an intent and reconciles the task store.

    Dispatches are serialized; at most one intent is in flight at a time.
    Backend failures are logged and returned in the outcome, never raised.
    """

    def __init__(self, backend: BackendClient, store: TaskStore, activity_log: ActivityLog) -> None:
        """Initialize with backend client, task store and activity log."""
        self._backend = backend
        self._store = store
        self._log = activity_log
        self._lock = asyncio.Lock()

    async def dispatch(self, intent: Intent) -> DispatchOutcome:
        """Execute the command for an intent."""
        async with self._lock:
            if intent.kind == IntentKind.LIST_TASKS:
                outcome = await self._refresh_tasks()
            elif intent.kind == IntentKind.APPROVE_TASK:
                outcome = await self._approve_entity(intent.entity)
            elif intent.kind == IntentKind.START_PROJECT:
                outcome = await self._start_project(intent.entity)
            else:
                self._log.append(LogSource.SYSTEM, "Could not understand command")
                outcome = DispatchOutcome(action=DispatchAction.NOT_UNDERSTOOD)

        outcome.intent = intent
        return outcome

    async def refresh_tasks(self) -> DispatchOutcome:
        """Fetch tasks from the backend into the store."""
        async with self._lock:
            return await self._refresh_tasks()

    async def approve_task_by_id(self, task_id: str) -> DispatchOutcome:
        """Approve a task picked directly by id.

        Raises:
            TaskNotFoundError: If the store has no task with that id
        """
        async with self._lock:
            task = self._store.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            return await self._approve(task)

    async def _refresh_tasks(self) -> DispatchOutcome:
        self._log.append(LogSource.SYSTEM, "Fetching tasks from backend...")
        try:
            tasks = await self._backend.list_tasks()
        except Exception as e:
            return self._backend_failure(DispatchAction.FETCH_TASKS, "Error fetching tasks", e)

        self._store.replace_all(tasks)
        self._log.append(LogSource.SYSTEM, f"Fetched {len(tasks)} tasks")
        return DispatchOutcome(action=DispatchAction.FETCH_TASKS, tasks_fetched=len(tasks))

    async def _approve_entity(self, entity: str | None) -> DispatchOutcome:
        # An empty fragment would match every task
        task = resolve(entity, self._store.list()) if has_entity(entity) else None
        if task is None:
            self._log.append(
                LogSource.SYSTEM,
                f'No matching task found for "{entity or ""}"',
                {"entity": entity},
            )
            return DispatchOutcome(action=DispatchAction.NO_MATCH)

        self._log.append(LogSource.SYSTEM, f"Found task: {task.title}", {"task_id": task.id})
        return await self._approve(task)

    async def _approve(self, task: Task) -> DispatchOutcome:
        try:
            await self._backend.complete_task(task.id, TaskDecision.APPROVE)
        except Exception as e:
            outcome = self._backend_failure(
                DispatchAction.COMPLETE_TASK, f"Error approving task {task.id}", e
            )
            outcome.task = task
            return outcome

        completed = self._store.mark_completed(task.id)
        self._log.append(LogSource.BACKEND, f"Approved task {task.id}")

        refresh = await self._refresh_tasks()
        return DispatchOutcome(
            action=DispatchAction.COMPLETE_TASK,
            task=self._store.get(task.id) or completed,
            tasks_fetched=refresh.tasks_fetched,
            error=refresh.error,
            error_details=refresh.error_details,
        )

    async def _start_project(self, entity: str | None) -> DispatchOutcome:
        project_name = entity.strip() if has_entity(entity) else DEFAULT_PROJECT_NAME
        self._log.append(LogSource.SYSTEM, f"Starting project: {project_name}")
        try:
            workflow = await self._backend.start_workflow(project_name)
        except Exception as e:
            return self._backend_failure(
                DispatchAction.START_WORKFLOW, f"Error starting project {project_name}", e
            )

        self._log.append(
            LogSource.BACKEND,
            f"Project started with ID: {workflow.id}",
            asdict(workflow),
        )
        return DispatchOutcome(action=DispatchAction.START_WORKFLOW, workflow=workflow)

    def _backend_failure(
        self, action: DispatchAction, message: str, error: Exception
    ) -> DispatchOutcome:
        details = _error_details(error)
        logger.error(f"[Dispatcher] {message}: {error}")
        self._log.append(LogSource.BACKEND, message, details)
        return DispatchOutcome(action=action, error=str(error), error_details=details)
