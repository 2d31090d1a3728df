"""Tests for configuration and the dependency injection factory."""

import asyncio
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from voice_orchestrator.backend.mock_client import MockBackendClient
from voice_orchestrator.backend.sap_client import SapBackendClient
from voice_orchestrator.config import Config
from voice_orchestrator.factory import create_backend, create_classifier, make_broadcast_listener
from voice_orchestrator.intent.classifier import RuleBasedClassifier
from voice_orchestrator.models import LogEntry, LogSource


def test_config_defaults() -> None:
    """Test default configuration selects the offline implementations."""
    config = Config()

    assert config.backend == "mock"
    assert config.classifier == "rules"
    assert config.sap.workflow_definition_id == "sap.build.sample.project"


def test_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test environment variables with nested SAP settings."""
    monkeypatch.setenv("VOICE_BACKEND", "live")
    monkeypatch.setenv("VOICE_CLASSIFIER", "claude")
    monkeypatch.setenv("VOICE_SAP__API_URL", "https://api.example.com")
    monkeypatch.setenv("VOICE_PORT", "9000")

    config = Config()

    assert config.backend == "live"
    assert config.classifier == "claude"
    assert config.sap.api_url == "https://api.example.com"
    assert config.port == 9000


def test_create_backend_mock_with_seed_file(tmp_path: Path) -> None:
    """Test the mock backend is seeded from a YAML file."""
    seed_file = tmp_path / "seed.yaml"
    seed_file.write_text("- id: x-1\n  subject: Approve travel\n")

    backend = create_backend(Config(mock_seed_file=str(seed_file)))

    assert isinstance(backend, MockBackendClient)
    tasks = asyncio.run(backend.list_tasks())
    assert [t.title for t in tasks] == ["Approve travel"]


def test_create_backend_live() -> None:
    """Test live backend selection."""
    backend = create_backend(Config(backend="live"))

    assert isinstance(backend, SapBackendClient)


def test_create_classifier() -> None:
    """Test classifier selection."""
    from voice_orchestrator.intent.claude_classifier import ClaudeIntentClassifier

    assert isinstance(create_classifier(Config()), RuleBasedClassifier)
    assert isinstance(create_classifier(Config(classifier="claude")), ClaudeIntentClassifier)


@pytest.mark.asyncio
async def test_broadcast_listener_sends_log_entries() -> None:
    """Test activity entries are broadcast to WebSocket clients."""
    manager = MagicMock()
    manager.broadcast = AsyncMock()
    listener = make_broadcast_listener(manager)

    listener(
        LogEntry(
            timestamp=datetime(2026, 1, 1, 12, 0),
            source=LogSource.BACKEND,
            message="Project started with ID: proj-1",
            details={"started_at": datetime(2026, 1, 1, 12, 0)},
        )
    )
    await asyncio.sleep(0)

    manager.broadcast.assert_awaited_once()
    message = manager.broadcast.await_args.args[0]
    assert message["type"] == "log"
    assert message["entry"]["source"] == "BACKEND"
    assert message["entry"]["details"] == {"started_at": "2026-01-01T12:00:00"}


def test_broadcast_listener_without_loop_is_noop() -> None:
    """Test entries appended outside an event loop are skipped."""
    manager = MagicMock()
    manager.broadcast = AsyncMock()
    listener = make_broadcast_listener(manager)

    listener(LogEntry(timestamp=datetime.now(), source=LogSource.SYSTEM, message="hello"))

    manager.broadcast.assert_not_called()
