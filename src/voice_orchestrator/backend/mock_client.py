"""In-memory backend used for demos and tests."""

import asyncio
import logging
import random
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import yaml

from voice_orchestrator.backend.client import normalize_task
from voice_orchestrator.errors import BackendError
from voice_orchestrator.models import (
    Task,
    TaskDecision,
    TaskPriority,
    TaskStatus,
    WorkflowInstance,
)

logger = logging.getLogger(__name__)

DEFAULT_WORKFLOW_DEFINITION_ID = "sap.build.sample.project"


def default_seed_tasks() -> list[Task]:
    """Demo inbox."""
    now = datetime.now()
    return [
        Task(
            id="t-001",
            title="Approve Invoice #90210",
            status=TaskStatus.READY,
            priority=TaskPriority.HIGH,
            created_at=now,
            description="Invoice for office supplies from Acme Corp.",
        ),
        Task(
            id="t-002",
            title="Review Q3 Budget",
            status=TaskStatus.READY,
            priority=TaskPriority.MEDIUM,
            created_at=now - timedelta(days=1),
            description="Quarterly budget review for the engineering department.",
        ),
        Task(
            id="t-003",
            title="Onboard Employee: John Doe",
            status=TaskStatus.RESERVED,
            priority=TaskPriority.LOW,
            created_at=now - timedelta(days=2),
        ),
    ]


def load_seed_file(path: str | Path) -> list[Task]:
    """Load seed tasks from a YAML file holding a list of task records.

    Raises:
        ValueError: If the file does not contain a list of mappings
    """
    content = Path(path).read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(content) or []
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in seed file {path}") from e

    if isinstance(data, dict):
        data = data.get("tasks", [])
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ValueError(f"Seed file {path} must contain a list of tasks")
    return [normalize_task(item) for item in data]


class MockBackendClient:
    """Backend holding tasks in memory.

    Returns copies so callers never share records with the backend.
    """

    def __init__(
        self,
        tasks: list[Task] | None = None,
        latency: float = 0.0,
        definition_id: str = DEFAULT_WORKFLOW_DEFINITION_ID,
    ) -> None:
        """Initialize with seed tasks and simulated latency in seconds."""
        self._tasks: list[Task] = list(tasks) if tasks is not None else default_seed_tasks()
        self._latency = latency
        self._definition_id = definition_id
        self.workflows: list[WorkflowInstance] = []

    async def _delay(self) -> None:
        if self._latency > 0:
            await asyncio.sleep(self._latency)

    async def list_tasks(self) -> list[Task]:
        """List all tasks."""
        await self._delay()
        return [replace(task) for task in self._tasks]

    async def complete_task(
        self,
        task_id: str,
        decision: TaskDecision = TaskDecision.APPROVE,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Mark task completed.

        Raises:
            BackendError: If the task id is unknown
        """
        await self._delay()
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                self._tasks[index] = replace(task, status=TaskStatus.COMPLETED)
                logger.info(f"[MockBackend] Completed {task_id} with decision {decision.value}")
                return
        raise BackendError(f"Task not found: {task_id}", status_code=404)

    async def start_workflow(self, name: str) -> WorkflowInstance:
        """Start a simulated workflow."""
        await self._delay()
        workflow = WorkflowInstance(
            id=f"proj-{random.randint(0, 999)}",
            status="RUNNING",
            started_at=datetime.now(),
            definition_id=self._definition_id,
            subject=name,
            context={"projectName": name},
        )
        self.workflows.append(workflow)
        logger.info(f"[MockBackend] Started workflow {workflow.id} for '{name}'")
        return workflow
