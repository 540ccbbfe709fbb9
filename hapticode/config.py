"""Configuration loader — reads config.yaml, validates with Pydantic.

Environment variables override the file:
    GEMINI_API_KEY  — completion service credential (read per request)
    GEMINI_MODEL    — preferred model identifier
    HAPTICODE_CONFIG — alternate path to the YAML file
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

API_KEY_ENV = "GEMINI_API_KEY"
MODEL_ENV = "GEMINI_MODEL"
CONFIG_PATH_ENV = "HAPTICODE_CONFIG"


def _default_python_command() -> str:
    return "python" if sys.platform == "win32" else "python3"


class CompletionSettings(BaseModel):
    """Generative Language API endpoint and model selection."""

    base_url: str = "https://generativelanguage.googleapis.com"
    api_versions: list[str] = ["v1beta", "v1"]
    model: str = "gemini-2.0-flash"
    request_timeout: float = 60.0
    vendor_marker: str = "gemini"
    excluded_model_markers: list[str] = ["embedding", "vision", "imagen"]

    @field_validator("api_versions")
    @classmethod
    def must_have_versions(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one API version is required")
        return v


class ExecutionSettings(BaseModel):
    """Local interpreter invocation limits."""

    python_command: str = Field(default_factory=_default_python_command)
    timeout_seconds: float = 5.0
    max_output_bytes: int = 1024 * 1024
    temp_dir: str | None = None  # None → system temp dir

    @field_validator("timeout_seconds")
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_seconds must be positive")
        return v


class AssistantConfig(BaseModel):
    """Top-level assistant configuration."""

    allowed_origins: list[str] = ["*"]
    completion: CompletionSettings = Field(default_factory=CompletionSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)

    def public_dump(self) -> dict:
        """Config as JSON-safe dict, with credential status but never the key."""
        data = self.model_dump()
        data["completion"]["credential"] = (
            "configured" if get_api_key() else "missing"
        )
        return data


def get_api_key() -> str | None:
    """Return the completion credential from the environment, or None.

    Surrounding whitespace and quotes are stripped (common in .env files).
    """
    key = os.environ.get(API_KEY_ENV)
    if key:
        key = key.strip().strip('"').strip("'")
    return key or None


class MissingCredentialError(RuntimeError):
    """GEMINI_API_KEY is not set."""


def require_api_key() -> str:
    """Return the credential or raise MissingCredentialError."""
    key = get_api_key()
    if not key:
        raise MissingCredentialError(f"Missing {API_KEY_ENV} environment variable")
    return key


def _apply_env_overrides(config: AssistantConfig) -> AssistantConfig:
    model = os.environ.get(MODEL_ENV, "").strip()
    if model:
        config.completion.model = model
    return config


# ---------------------------------------------------------------------------
# Module-level config cache
# ---------------------------------------------------------------------------

_config: AssistantConfig | None = None
_config_path: str = "config.yaml"


def load_config(path: str | None = None) -> AssistantConfig:
    """Read config.yaml from disk, validate, apply env overrides, and cache."""
    global _config, _config_path
    if path is None:
        path = os.environ.get(CONFIG_PATH_ENV, "config.yaml")
    _config_path = path

    config_file = Path(path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file.resolve()}")

    raw = yaml.safe_load(config_file.read_text()) or {}
    _config = _apply_env_overrides(AssistantConfig(**raw))

    logger.info(
        f"Loaded config: model={_config.completion.model}, "
        f"versions={_config.completion.api_versions}, "
        f"python={_config.execution.python_command}"
    )
    return _config


def get_config() -> AssistantConfig:
    """Return cached config. Raises if not yet loaded."""
    if _config is None:
        raise RuntimeError("Config not loaded — call load_config() first")
    return _config


def reload_config() -> AssistantConfig:
    """Re-read config from disk. Called by /reload endpoint."""
    logger.info(f"Reloading config from {_config_path}")
    return load_config(_config_path)
