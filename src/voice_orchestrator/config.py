"""Configuration for VoiceOrchestrator."""

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SapConfig(BaseModel):
    """Connection settings for the live SAP workflow backend."""

    auth_url: str = ""
    api_url: str = ""
    client_id: str = ""
    client_secret: str = ""
    workflow_definition_id: str = "sap.build.sample.project"
    timeout: float = 30.0


class Config(BaseSettings):
    """Application configuration.

    Read from environment variables prefixed with ``VOICE_``, nested values
    separated by ``__`` (e.g. ``VOICE_SAP__API_URL``).
    """

    model_config = SettingsConfigDict(env_prefix="VOICE_", env_nested_delimiter="__")

    backend: Literal["mock", "live"] = Field(default="mock")
    classifier: Literal["rules", "claude"] = Field(default="rules")
    sap: SapConfig = Field(default_factory=SapConfig)
    claude_model: str = Field(default="sonnet")
    mock_seed_file: str | None = Field(default=None)
    mock_latency: float = Field(default=0.0)  # Seconds per simulated backend call
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
