"""Test fixtures for VoiceOrchestrator."""

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from voice_orchestrator.activity_log import ActivityLog
from voice_orchestrator.backend.mock_client import MockBackendClient, default_seed_tasks
from voice_orchestrator.models import Task, TaskDecision, WorkflowInstance
from voice_orchestrator.pipeline.dispatcher import CommandDispatcher
from voice_orchestrator.tasks.task_store import TaskStore


class RecordingBackend(MockBackendClient):
    """Mock backend that records calls and can be told to fail."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.calls: list[tuple[Any, ...]] = []
        self.failures: dict[str, Exception] = {}

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name in self.failures:
            raise self.failures[name]

    async def list_tasks(self) -> list[Task]:
        self._record("list_tasks")
        return await super().list_tasks()

    async def complete_task(
        self,
        task_id: str,
        decision: TaskDecision = TaskDecision.APPROVE,
        context: dict[str, Any] | None = None,
    ) -> None:
        self._record("complete_task", task_id, decision)
        await super().complete_task(task_id, decision, context)

    async def start_workflow(self, name: str) -> WorkflowInstance:
        self._record("start_workflow", name)
        return await super().start_workflow(name)

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def seed_tasks() -> list[Task]:
    """Demo inbox: invoice, budget review, onboarding."""
    return default_seed_tasks()


@pytest.fixture
def backend(seed_tasks: list[Task]) -> RecordingBackend:
    """Recording mock backend seeded with the demo inbox."""
    return RecordingBackend(tasks=seed_tasks)


@pytest.fixture
def activity_log() -> ActivityLog:
    """Empty activity log."""
    return ActivityLog()


@pytest.fixture
def store() -> TaskStore:
    """Empty task store."""
    return TaskStore()


@pytest.fixture
def dispatcher(
    backend: RecordingBackend, store: TaskStore, activity_log: ActivityLog
) -> CommandDispatcher:
    """Dispatcher wired to the recording backend."""
    return CommandDispatcher(backend, store, activity_log)


async def wait_until(predicate: Callable[[], bool], attempts: int = 100) -> None:
    """Yield to the event loop until predicate holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("Condition not reached")
