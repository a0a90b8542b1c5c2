"""Configuration management for ambientctx.

Loads settings from a YAML configuration file with environment variable
overrides for endpoints, model names and API keys. Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings

from ambientctx.domain.models import (
    DEFAULT_INTERVAL_SECONDS,
    MAX_INTERVAL_SECONDS,
    MIN_INTERVAL_SECONDS,
    CaptureConfig,
    ContextLimits,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/ambientctx.yaml")


class CaptureSettings(BaseModel):
    interval_seconds: int = Field(
        default=DEFAULT_INTERVAL_SECONDS, ge=MIN_INTERVAL_SECONDS, le=MAX_INTERVAL_SECONDS
    )
    excluded_apps: list[str] = Field(default_factory=list)
    enabled: bool = Field(default=True)
    monitor_index: int = Field(default=1, ge=0, description="mss monitor index (0 = all monitors)")
    max_dimension: int = Field(default=1568, gt=0, description="Longest screenshot side in pixels")

    def to_capture_config(self) -> CaptureConfig:
        return CaptureConfig(
            interval_seconds=self.interval_seconds,
            excluded_apps=set(self.excluded_apps),
            enabled=self.enabled,
        )


class ContextSettings(BaseModel):
    capture_limit: int = Field(default=10, gt=0)
    chat_limit: int = Field(default=20, gt=0)

    def to_limits(self) -> ContextLimits:
        return ContextLimits(capture_limit=self.capture_limit, chat_limit=self.chat_limit)


class VisionSettings(BaseModel):
    provider: Literal["ollama", "openai"] = Field(default="ollama")
    model: str = Field(default="llama3.2-vision")
    chat_model: str | None = Field(default=None, description="Defaults to the vision model")
    base_url: str | None = Field(default=None)
    timeout: float = Field(default=180.0, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=200, gt=0)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the ambientctx system.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "AMBIENTCTX_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # API Keys
    openai_api_key: SecretStr = Field(default=SecretStr(""))

    # Configuration sections
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    context: ContextSettings = Field(default_factory=ContextSettings)
    vision: VisionSettings = Field(default_factory=VisionSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Values set in the YAML file win over ``AMBIENTCTX_*`` variables and
    the .env file, which win over defaults. ``OLLAMA_HOST``,
    ``VISION_MODEL`` and ``OPENAI_API_KEY`` only fill values the YAML
    file leaves unset.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply environment variable overrides for non-prefixed vars."""
    ollama_host = os.environ.get("OLLAMA_HOST", "")
    vision_model = os.environ.get("VISION_MODEL", "")
    openai_key = os.environ.get("OPENAI_API_KEY", "")

    if openai_key and not yaml_data.get("openai_api_key"):
        yaml_data["openai_api_key"] = openai_key

    vision = yaml_data.setdefault("vision", {})

    provider = vision.get("provider", "ollama")
    if ollama_host and provider == "ollama" and not vision.get("base_url"):
        if not ollama_host.startswith(("http://", "https://")):
            ollama_host = f"http://{ollama_host}"
        vision["base_url"] = ollama_host

    if vision_model and not vision.get("model"):
        vision["model"] = vision_model
