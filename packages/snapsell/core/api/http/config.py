from __future__ import annotations

import httpx
from pydantic import BaseModel, Field, field_validator

# Every call to the generation service is bounded by the same deadline.
DEFAULT_TIMEOUT_S = 30.0

SENSITIVE_HEADERS: tuple[str, ...] = (
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
)


class HttpClientConfig(BaseModel):
    """Settings for one AsyncApiClient.

    ``deadline_s`` caps the whole exchange (connect, upload, wait, download);
    the in-flight request is cancelled when it elapses. ``timeout`` only
    bounds the individual httpx phases and defaults to the same value.
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    base_url: str
    deadline_s: float = Field(default=DEFAULT_TIMEOUT_S, gt=0.0)
    timeout: httpx.Timeout = Field(default_factory=lambda: httpx.Timeout(DEFAULT_TIMEOUT_S))
    limits: httpx.Limits = Field(
        default_factory=lambda: httpx.Limits(max_keepalive_connections=8, max_connections=16)
    )
    follow_redirects: bool = True
    headers: dict[str, str] = Field(default_factory=dict)
    user_agent: str = "snapsell/0.1"
    redact_headers: tuple[str, ...] = SENSITIVE_HEADERS
    max_response_body_for_error: int = 4096

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {v!r}")
        return v.rstrip("/")
