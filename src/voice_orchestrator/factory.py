"""Dependency injection factory."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from voice_orchestrator.activity_log import LogListener
from voice_orchestrator.backend.client import BackendClient
from voice_orchestrator.backend.mock_client import MockBackendClient, load_seed_file
from voice_orchestrator.backend.sap_client import SapBackendClient
from voice_orchestrator.capture.manual_source import ManualCaptureSource
from voice_orchestrator.config import Config
from voice_orchestrator.intent.classifier import IntentClassifier, RuleBasedClassifier
from voice_orchestrator.models import LogEntry
from voice_orchestrator.session import VoiceSession
from voice_orchestrator.websocket.connection_manager import ConnectionManager, log_message

logger = logging.getLogger(__name__)

# Global config instance for dependency injection
_config: Config | None = None

_connection_manager: ConnectionManager | None = None
_session: VoiceSession | None = None
_background_tasks: set[asyncio.Task[None]] = set()


def get_config() -> Config:
    """Get or create Config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def create_backend(config: Config) -> BackendClient:
    """Create the backend client selected by configuration."""
    if config.backend == "live":
        logger.info(f"[Factory] Using SAP backend at {config.sap.api_url}")
        return SapBackendClient(config.sap)

    tasks = load_seed_file(config.mock_seed_file) if config.mock_seed_file else None
    logger.info("[Factory] Using mock backend")
    return MockBackendClient(
        tasks=tasks,
        latency=config.mock_latency,
        definition_id=config.sap.workflow_definition_id,
    )


def create_classifier(config: Config) -> IntentClassifier:
    """Create the intent classifier selected by configuration."""
    if config.classifier == "claude":
        from voice_orchestrator.intent.claude_classifier import ClaudeIntentClassifier

        logger.info(f"[Factory] Using Claude intent classifier ({config.claude_model})")
        return ClaudeIntentClassifier(model=config.claude_model)

    logger.info("[Factory] Using rule-based intent classifier")
    return RuleBasedClassifier()


def get_connection_manager() -> ConnectionManager:
    """Get or create ConnectionManager singleton."""
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager


def make_broadcast_listener(manager: ConnectionManager) -> LogListener:
    """Create an activity log listener that pushes entries to WebSocket clients."""

    def listener(entry: LogEntry) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        task = loop.create_task(manager.broadcast(log_message(entry)))
        # Keep strong reference until the broadcast finishes
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)

    return listener


def get_session() -> VoiceSession:
    """Get or create the VoiceSession singleton."""
    global _session
    if _session is None:
        config = get_config()
        _session = VoiceSession(
            backend=create_backend(config),
            classifier=create_classifier(config),
            capture_source=ManualCaptureSource(),
        )
        _session.activity_log.subscribe(make_broadcast_listener(get_connection_manager()))
    return _session


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle - startup and shutdown."""
    global _session
    logger.info("[Lifespan] Loading tasks...")
    session = get_session()
    await session.open()
    try:
        yield
    finally:
        logger.info("[Lifespan] Closing session...")
        await session.close()
        _session = None


def create_app() -> FastAPI:
    """Create FastAPI application (composition root)."""
    from voice_orchestrator.api.voice import router as voice_router
    from voice_orchestrator.api.websocket import router as ws_router

    app = FastAPI(
        title="VoiceOrchestrator",
        description="Voice commands for task and workflow automation",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(voice_router, prefix="/api")
    app.include_router(ws_router)  # WebSocket at /ws

    return app
