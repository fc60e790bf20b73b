"""Application configuration models."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CREDENTIAL_PATH = Path.home() / ".config" / "snapsell" / "credential"


class ServiceConfig(BaseModel):
    """Generation service endpoints and text model settings."""

    model_config = ConfigDict(extra="forbid")

    text_base_url: str = Field(
        default="https://gen.pollinations.ai/v1",
        description="OpenAI-compatible base URL for chat completions",
    )
    image_base_url: str = Field(
        default="https://gen.pollinations.ai", description="Base URL of the image endpoint"
    )
    text_model: str = Field(default="openai", description="Model for listing and prompt generation")
    temperature: float | None = Field(default=0.4, ge=0.0, le=2.0)
    api_key: str | None = Field(
        default=None, repr=False, description="Service credential (pk_ or sk_ key)"
    )

    @field_validator("text_base_url", "image_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("base url must start with http:// or https://")
        return v


class ImageModelsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    primary: str = Field(default="nanobanana-pro", description="Preferred image model")
    secondary: str = Field(default="kontext", description="Fallback image model")


class ImageHostConfig(BaseModel):
    """Anonymous image host used to turn local photos into reference URLs."""

    model_config = ConfigDict(extra="forbid")

    base_url: str = "https://api.imgur.com"
    client_id: str = "e74929424854589"


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str | None = None
    filename: str | None = None
    structured: bool = False


class AppConfig(BaseModel):
    """Top-level application configuration (config.yaml / config.json)."""

    model_config = ConfigDict(extra="forbid")

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    image_models: ImageModelsConfig = Field(default_factory=ImageModelsConfig)
    image_host: ImageHostConfig = Field(default_factory=ImageHostConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    credential_path: Path = DEFAULT_CREDENTIAL_PATH
    spool_dir: Path | None = Field(
        default=None, description="Where rendered images are spooled (temp dir when unset)"
    )
