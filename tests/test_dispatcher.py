"""Tests for CommandDispatcher."""

import asyncio

import pytest
from conftest import RecordingBackend

from voice_orchestrator.activity_log import ActivityLog
from voice_orchestrator.errors import BackendError, TaskNotFoundError
from voice_orchestrator.models import (
    Intent,
    IntentKind,
    LogSource,
    Task,
    TaskDecision,
    TaskStatus,
)
from voice_orchestrator.pipeline.dispatcher import CommandDispatcher, DispatchAction
from voice_orchestrator.tasks.task_store import TaskStore


def _intent(kind: IntentKind, entity: str | None = None) -> Intent:
    return Intent(kind=kind, entity=entity, confidence=0.9, source_text="test")


def _messages(activity_log: ActivityLog, source: LogSource | None = None) -> list[str]:
    return [e.message for e in activity_log.entries() if source is None or e.source == source]


@pytest.mark.asyncio
async def test_list_tasks_replaces_store(
    dispatcher: CommandDispatcher,
    backend: RecordingBackend,
    store: TaskStore,
    activity_log: ActivityLog,
) -> None:
    """Test LIST_TASKS fetches and stores tasks in backend order."""
    outcome = await dispatcher.dispatch(_intent(IntentKind.LIST_TASKS))

    assert outcome.action == DispatchAction.FETCH_TASKS
    assert outcome.ok
    assert outcome.tasks_fetched == 3
    assert [t.id for t in store.list()] == [t.id for t in await backend.list_tasks()]
    assert "Fetched 3 tasks" in _messages(activity_log, LogSource.SYSTEM)


@pytest.mark.asyncio
async def test_list_tasks_failure_keeps_store(
    dispatcher: CommandDispatcher,
    backend: RecordingBackend,
    store: TaskStore,
    activity_log: ActivityLog,
) -> None:
    """Test a failed fetch leaves the store untouched and logs the error."""
    await dispatcher.refresh_tasks()
    backend.failures["list_tasks"] = BackendError("service down", status_code=503)

    outcome = await dispatcher.dispatch(_intent(IntentKind.LIST_TASKS))

    assert not outcome.ok
    assert outcome.error == "service down"
    assert len(store) == 3
    entry = activity_log.newest_first(1)[0]
    assert entry.source == LogSource.BACKEND
    assert entry.details["status_code"] == 503


@pytest.mark.asyncio
async def test_approve_resolves_and_completes(
    dispatcher: CommandDispatcher,
    backend: RecordingBackend,
    store: TaskStore,
    activity_log: ActivityLog,
) -> None:
    """Test APPROVE_TASK completes the matching task and refreshes."""
    await dispatcher.refresh_tasks()
    backend.calls.clear()

    outcome = await dispatcher.dispatch(_intent(IntentKind.APPROVE_TASK, "invoice"))

    assert outcome.action == DispatchAction.COMPLETE_TASK
    assert outcome.ok
    assert outcome.task.id == "t-001"
    assert outcome.task.status == TaskStatus.COMPLETED
    assert backend.calls == [
        ("complete_task", "t-001", TaskDecision.APPROVE),
        ("list_tasks",),
    ]
    assert store.get("t-001").status == TaskStatus.COMPLETED
    assert "Found task: Approve Invoice #90210" in _messages(activity_log)
    assert "Approved task t-001" in _messages(activity_log, LogSource.BACKEND)


@pytest.mark.asyncio
async def test_approve_no_match_makes_no_backend_call(
    dispatcher: CommandDispatcher, backend: RecordingBackend, activity_log: ActivityLog
) -> None:
    """Test unmatched entity is logged without calling the backend."""
    await dispatcher.refresh_tasks()
    backend.calls.clear()

    outcome = await dispatcher.dispatch(_intent(IntentKind.APPROVE_TASK, "nonexistent"))

    assert outcome.action == DispatchAction.NO_MATCH
    assert outcome.ok
    assert backend.calls == []
    assert 'No matching task found for "nonexistent"' in _messages(activity_log)


@pytest.mark.asyncio
@pytest.mark.parametrize("entity", ["", "   ", None])
async def test_approve_empty_entity_is_no_match(
    dispatcher: CommandDispatcher, backend: RecordingBackend, entity: str | None
) -> None:
    """Test an empty fragment never approves an arbitrary task."""
    await dispatcher.refresh_tasks()
    backend.calls.clear()

    outcome = await dispatcher.dispatch(_intent(IntentKind.APPROVE_TASK, entity))

    assert outcome.action == DispatchAction.NO_MATCH
    assert backend.calls == []


@pytest.mark.asyncio
async def test_approve_backend_failure_leaves_task_unchanged(
    dispatcher: CommandDispatcher,
    backend: RecordingBackend,
    store: TaskStore,
    activity_log: ActivityLog,
) -> None:
    """Test a failed completion is logged and does not touch the store."""
    await dispatcher.refresh_tasks()
    backend.failures["complete_task"] = BackendError("locked", status_code=409, payload="busy")

    outcome = await dispatcher.dispatch(_intent(IntentKind.APPROVE_TASK, "invoice"))

    assert outcome.action == DispatchAction.COMPLETE_TASK
    assert not outcome.ok
    assert store.get("t-001").status == TaskStatus.READY
    entry = activity_log.newest_first(1)[0]
    assert entry.source == LogSource.BACKEND
    assert entry.details == {"error": "locked", "status_code": 409, "payload": "busy"}


@pytest.mark.asyncio
async def test_approve_refresh_failure_keeps_local_completion(
    dispatcher: CommandDispatcher, backend: RecordingBackend, store: TaskStore
) -> None:
    """Test a failed refresh after completion still reports the completion."""
    await dispatcher.refresh_tasks()
    backend.failures["list_tasks"] = BackendError("timeout")

    outcome = await dispatcher.dispatch(_intent(IntentKind.APPROVE_TASK, "invoice"))

    assert not outcome.ok
    assert store.get("t-001").status == TaskStatus.COMPLETED


@pytest.mark.asyncio
async def test_start_project(
    dispatcher: CommandDispatcher, backend: RecordingBackend, activity_log: ActivityLog
) -> None:
    """Test START_PROJECT starts a workflow and logs its id."""
    outcome = await dispatcher.dispatch(_intent(IntentKind.START_PROJECT, "Phoenix"))

    assert outcome.action == DispatchAction.START_WORKFLOW
    assert outcome.ok
    assert backend.calls == [("start_workflow", "Phoenix")]
    assert f"Project started with ID: {outcome.workflow.id}" in _messages(
        activity_log, LogSource.BACKEND
    )


@pytest.mark.asyncio
async def test_start_project_default_name(
    dispatcher: CommandDispatcher, backend: RecordingBackend
) -> None:
    """Test empty project name falls back to the default."""
    await dispatcher.dispatch(_intent(IntentKind.START_PROJECT, ""))

    assert backend.calls == [("start_workflow", "New Project")]


@pytest.mark.asyncio
async def test_start_project_failure(
    dispatcher: CommandDispatcher, backend: RecordingBackend, activity_log: ActivityLog
) -> None:
    """Test workflow start failure becomes a recoverable outcome."""
    backend.failures["start_workflow"] = RuntimeError("boom")

    outcome = await dispatcher.dispatch(_intent(IntentKind.START_PROJECT, "Phoenix"))

    assert not outcome.ok
    assert outcome.workflow is None
    assert activity_log.newest_first(1)[0].details == {"error": "boom", "type": "RuntimeError"}


@pytest.mark.asyncio
async def test_unknown_intent(
    dispatcher: CommandDispatcher, backend: RecordingBackend, activity_log: ActivityLog
) -> None:
    """Test UNKNOWN performs no backend call."""
    outcome = await dispatcher.dispatch(Intent.unknown("xyz nonsense"))

    assert outcome.action == DispatchAction.NOT_UNDERSTOOD
    assert outcome.intent.kind == IntentKind.UNKNOWN
    assert backend.calls == []
    assert _messages(activity_log) == ["Could not understand command"]


@pytest.mark.asyncio
async def test_approve_task_by_id(dispatcher: CommandDispatcher, store: TaskStore) -> None:
    """Test approving a task picked by id."""
    await dispatcher.refresh_tasks()

    outcome = await dispatcher.approve_task_by_id("t-002")

    assert outcome.ok
    assert store.get("t-002").status == TaskStatus.COMPLETED


@pytest.mark.asyncio
async def test_approve_task_by_unknown_id(dispatcher: CommandDispatcher) -> None:
    """Test approving an unknown id."""
    await dispatcher.refresh_tasks()

    with pytest.raises(TaskNotFoundError):
        await dispatcher.approve_task_by_id("t-999")


@pytest.mark.asyncio
async def test_concurrent_dispatches_run_one_at_a_time(
    seed_tasks: list[Task], store: TaskStore, activity_log: ActivityLog
) -> None:
    """Test a second intent's backend calls start only after the first finishes."""
    backend = RecordingBackend(tasks=seed_tasks, latency=0.01)
    dispatcher = CommandDispatcher(backend, store, activity_log)
    await dispatcher.refresh_tasks()
    backend.calls.clear()

    approve, start = await asyncio.gather(
        dispatcher.dispatch(_intent(IntentKind.APPROVE_TASK, "invoice")),
        dispatcher.dispatch(_intent(IntentKind.START_PROJECT, "Phoenix")),
    )

    assert approve.action == DispatchAction.COMPLETE_TASK
    assert start.action == DispatchAction.START_WORKFLOW
    assert backend.call_names() == ["complete_task", "list_tasks", "start_workflow"]
