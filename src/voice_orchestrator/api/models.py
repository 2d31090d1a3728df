"""API models for VoiceOrchestrator."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class TaskResponse(BaseModel):
    """API response model for tasks."""

    id: str
    title: str
    status: str
    priority: str
    created_at: datetime
    description: str | None


class IntentResponse(BaseModel):
    """API response model for a classified intent."""

    kind: str
    entity: str | None
    confidence: float
    source_text: str


class WorkflowResponse(BaseModel):
    """API response model for a started workflow."""

    id: str
    status: str
    started_at: datetime
    definition_id: str | None
    subject: str | None


class LogEntryResponse(BaseModel):
    """API response model for activity log entries."""

    timestamp: datetime
    source: str
    message: str
    details: Any = None


class StatusResponse(BaseModel):
    """API response model for the capture status."""

    status: str
    state: str
    is_processing: bool
    capture_available: bool
    transcript: str
    error: str | None


class DispatchResponse(BaseModel):
    """API response model for a processed command."""

    action: str
    ok: bool
    intent: IntentResponse | None
    task: TaskResponse | None
    tasks_fetched: int | None
    workflow: WorkflowResponse | None
    error: str | None


class CommandRequest(BaseModel):
    """Request model for a text command or a recognized transcript."""

    text: str = Field(min_length=1)


class CaptureErrorRequest(BaseModel):
    """Request model for a capture failure."""

    reason: str
