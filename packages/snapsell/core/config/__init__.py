"""Configuration models and loaders."""

from snapsell.core.config.loader import (
    detect_format,
    load_app_config,
    load_config,
    load_job_config,
)
from snapsell.core.config.models import (
    AppConfig,
    ImageHostConfig,
    ImageModelsConfig,
    LoggingConfig,
    ServiceConfig,
)

__all__ = [
    "AppConfig",
    "ImageHostConfig",
    "ImageModelsConfig",
    "LoggingConfig",
    "ServiceConfig",
    "detect_format",
    "load_app_config",
    "load_config",
    "load_job_config",
]
