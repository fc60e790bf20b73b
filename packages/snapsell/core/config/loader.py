"""Configuration loading with JSON and YAML support."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from snapsell.core.config.models import AppConfig
from snapsell.core.studio.models import StudioConfig

logger = logging.getLogger(__name__)

DEFAULT_APP_CONFIG_PATH = Path("snapsell.yaml")

API_KEY_ENV_VARS = ("SNAPSELL_API_KEY", "POLLINATIONS_API_KEY")


def detect_format(file_path: Path | str) -> str:
    """Detect config file format from extension.

    Example:
        >>> detect_format("job.yml")
        'yaml'

    Raises:
        ValueError: Extension is not .json, .yaml or .yml
    """
    suffix = Path(file_path).suffix.lower()
    if suffix == ".json":
        return "json"
    if suffix in (".yaml", ".yml"):
        return "yaml"
    raise ValueError(f"Unsupported config format: {suffix}")


def load_config(path: str | Path) -> dict[str, Any]:
    """Load a raw configuration mapping from JSON or YAML.

    Raises:
        FileNotFoundError: File does not exist
        ValueError: Unsupported format, invalid content, or not a mapping
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file does not exist: {path}")

    fmt = detect_format(path)
    text = path.read_text(encoding="utf-8")
    if fmt == "json":
        try:
            content = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    else:
        try:
            content = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(f"Config root must be a mapping in {path}")
    return content


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration.

    A missing file yields the defaults. The credential falls back to the
    SNAPSELL_API_KEY / POLLINATIONS_API_KEY environment variables.

    Raises:
        pydantic.ValidationError: Config content is invalid
    """
    path = Path(path) if path is not None else DEFAULT_APP_CONFIG_PATH
    if path.exists():
        config = AppConfig.model_validate(load_config(path))
    else:
        if path != DEFAULT_APP_CONFIG_PATH:
            logger.warning(f"Config file not found, using defaults: {path}")
        config = AppConfig()

    _load_env_vars_into_config(config)
    return config


def load_job_config(path: str | Path) -> StudioConfig:
    """Load and validate a listing job (item context and reference URLs)."""
    return StudioConfig.model_validate(load_config(path))


def get_env_api_key() -> str | None:
    for name in API_KEY_ENV_VARS:
        value = os.getenv(name)
        if value and value.strip():
            logger.debug(f"Loaded API key from {name}")
            return value.strip()
    return None


def _load_env_vars_into_config(config: AppConfig) -> None:
    if config.service.api_key is None:
        api_key = get_env_api_key()
        if api_key:
            config.service = config.service.model_copy(update={"api_key": api_key})
