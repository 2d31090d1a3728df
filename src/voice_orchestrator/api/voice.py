"""Voice command API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query

from voice_orchestrator.api.models import (
    CaptureErrorRequest,
    CommandRequest,
    DispatchResponse,
    IntentResponse,
    LogEntryResponse,
    StatusResponse,
    TaskResponse,
    WorkflowResponse,
)
from voice_orchestrator.capture.manual_source import ManualCaptureSource
from voice_orchestrator.errors import TaskNotFoundError
from voice_orchestrator.factory import get_session
from voice_orchestrator.models import LogEntry, Task
from voice_orchestrator.pipeline.dispatcher import DispatchOutcome
from voice_orchestrator.session import VoiceSession

logger = logging.getLogger(__name__)

router = APIRouter()


def _task_to_response(task: Task) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        title=task.title,
        status=task.status.value,
        priority=task.priority.value,
        created_at=task.created_at,
        description=task.description,
    )


def _log_to_response(entry: LogEntry) -> LogEntryResponse:
    return LogEntryResponse(
        timestamp=entry.timestamp,
        source=entry.source.value,
        message=entry.message,
        details=entry.details,
    )


def _outcome_to_response(outcome: DispatchOutcome) -> DispatchResponse:
    intent = outcome.intent
    workflow = outcome.workflow
    return DispatchResponse(
        action=outcome.action.value,
        ok=outcome.ok,
        intent=IntentResponse(
            kind=intent.kind.value,
            entity=intent.entity,
            confidence=intent.confidence,
            source_text=intent.source_text,
        )
        if intent
        else None,
        task=_task_to_response(outcome.task) if outcome.task else None,
        tasks_fetched=outcome.tasks_fetched,
        workflow=WorkflowResponse(
            id=workflow.id,
            status=workflow.status,
            started_at=workflow.started_at,
            definition_id=workflow.definition_id,
            subject=workflow.subject,
        )
        if workflow
        else None,
        error=outcome.error,
    )


def _status(session: VoiceSession) -> StatusResponse:
    capture = session.capture
    return StatusResponse(
        status=capture.status.value,
        state=capture.state.value,
        is_processing=capture.is_processing,
        capture_available=capture.is_available,
        transcript=capture.transcript,
        error=capture.error,
    )


@router.get("/tasks", response_model=list[TaskResponse])
async def list_tasks() -> list[TaskResponse]:
    """List the session's current task snapshot."""
    session = get_session()
    return [_task_to_response(task) for task in session.store.list()]


@router.post("/tasks/{task_id}/approve", response_model=DispatchResponse)
async def approve_task(task_id: str) -> DispatchResponse:
    """Approve a task directly by id.

    Raises:
        HTTPException: 404 if the task is unknown, 409 while a command is processing
    """
    session = get_session()
    if not session.capture.can_accept:
        raise HTTPException(status_code=409, detail="A command is already processing")

    try:
        outcome = await session.approve_task(task_id)
    except TaskNotFoundError as e:
        logger.error(f"Task not found: {task_id}")
        raise HTTPException(status_code=404, detail=str(e)) from e
    if outcome is None:
        raise HTTPException(status_code=500, detail=session.capture.error or "Approval failed")
    return _outcome_to_response(outcome)


@router.get("/status", response_model=StatusResponse)
async def get_status() -> StatusResponse:
    """Current capture status."""
    return _status(get_session())


@router.get("/logs", response_model=list[LogEntryResponse])
async def list_logs(
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> list[LogEntryResponse]:
    """Activity log entries, newest first."""
    session = get_session()
    return [_log_to_response(entry) for entry in session.activity_log.newest_first(limit)]


@router.post("/listen/start", response_model=StatusResponse)
async def start_listening() -> StatusResponse:
    """Begin a listening attempt.

    Raises:
        HTTPException: 409 if the start was rejected
    """
    session = get_session()
    if not await session.capture.start():
        raise HTTPException(
            status_code=409, detail=f"Cannot start while {session.capture.status.value}"
        )
    return _status(session)


@router.post("/listen/stop", response_model=StatusResponse)
async def stop_listening() -> StatusResponse:
    """Cancel the current listening attempt."""
    session = get_session()
    await session.capture.stop()
    return _status(session)


@router.post("/listen/result", response_model=StatusResponse)
async def deliver_result(request: CommandRequest) -> StatusResponse:
    """Deliver a recognized transcript from the speech recognizer.

    Raises:
        HTTPException: 409 if no listening attempt is open
    """
    session = get_session()
    source = session.capture_source
    if not isinstance(source, ManualCaptureSource):
        raise HTTPException(status_code=409, detail="Capture source does not accept transcripts")
    if not await source.deliver_result(request.text):
        raise HTTPException(status_code=409, detail="Not listening")
    return _status(session)


@router.post("/listen/error", response_model=StatusResponse)
async def deliver_error(request: CaptureErrorRequest) -> StatusResponse:
    """Deliver a recognition failure from the speech recognizer.

    Raises:
        HTTPException: 409 if no listening attempt is open
    """
    session = get_session()
    source = session.capture_source
    if not isinstance(source, ManualCaptureSource):
        raise HTTPException(status_code=409, detail="Capture source does not accept transcripts")
    if not await source.deliver_error(request.reason):
        raise HTTPException(status_code=409, detail="Not listening")
    return _status(session)


@router.post("/commands", response_model=DispatchResponse)
async def run_command(request: CommandRequest) -> DispatchResponse:
    """Run a text command through the pipeline without capture.

    Raises:
        HTTPException: 409 if the pipeline is busy
    """
    logger.info(f"run_command called: text={request.text!r}")
    session = get_session()
    if not session.capture.can_accept:
        raise HTTPException(status_code=409, detail="A command is already processing")

    outcome = await session.process_text(request.text)
    if outcome is None:
        raise HTTPException(status_code=500, detail=session.capture.error or "Command failed")
    return _outcome_to_response(outcome)
