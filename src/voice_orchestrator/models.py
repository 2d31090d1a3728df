"""Domain models for the voice command pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class TaskStatus(str, Enum):
    """Lifecycle status of a backend task."""

    READY = "READY"
    RESERVED = "RESERVED"  # Claimed by a user, shown as in progress
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"

    @classmethod
    def normalize(cls, value: Any) -> "TaskStatus":
        """Map a raw backend value to a status, defaulting to READY."""
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().upper()
        if normalized == "IN_PROGRESS":
            return cls.RESERVED
        try:
            return cls(normalized)
        except ValueError:
            return cls.READY


class TaskPriority(str, Enum):
    """Priority of a backend task."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"

    @classmethod
    def normalize(cls, value: Any) -> "TaskPriority":
        """Map a raw backend value to a priority, defaulting to MEDIUM."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            return cls.MEDIUM


class TaskDecision(str, Enum):
    """Decision sent along with a task completion."""

    APPROVE = "APPROVE"
    REJECT = "REJECT"


@dataclass
class Task:
    """Task known to the backend."""

    id: str
    title: str  # Backend "subject"
    status: TaskStatus
    priority: TaskPriority
    created_at: datetime
    description: str | None = None


@dataclass
class WorkflowInstance:
    """Workflow started on the backend."""

    id: str
    status: str  # RUNNING, ERRONEOUS, SUSPENDED, CANCELED, COMPLETED
    started_at: datetime
    definition_id: str | None = None
    subject: str | None = None
    context: dict[str, Any] = field(default_factory=dict)


class IntentKind(str, Enum):
    """Command vocabulary understood by the dispatcher."""

    LIST_TASKS = "LIST_TASKS"
    APPROVE_TASK = "APPROVE_TASK"
    START_PROJECT = "START_PROJECT"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class Intent:
    """Structured classification of one utterance."""

    kind: IntentKind
    confidence: float
    source_text: str
    entity: str | None = None

    def __post_init__(self) -> None:
        """Clamp confidence into [0, 1]."""
        object.__setattr__(self, "confidence", min(max(float(self.confidence), 0.0), 1.0))

    @classmethod
    def unknown(cls, source_text: str, confidence: float = 0.5) -> "Intent":
        """Build an UNKNOWN intent for the given text."""
        return cls(kind=IntentKind.UNKNOWN, confidence=confidence, source_text=source_text)

    def to_dict(self) -> dict[str, Any]:
        """Plain dict form for log details."""
        return {
            "kind": self.kind.value,
            "entity": self.entity,
            "confidence": self.confidence,
            "source_text": self.source_text,
        }


class LogSource(str, Enum):
    """Component that produced an activity log entry."""

    SYSTEM = "SYSTEM"
    USER = "USER"
    CLASSIFIER = "CLASSIFIER"
    BACKEND = "BACKEND"


@dataclass(frozen=True)
class LogEntry:
    """One immutable activity log record."""

    timestamp: datetime
    source: LogSource
    message: str
    details: Any = None
