"""HTTPX wrapper used for every call to the generation service.

Exposes a small, ergonomic surface:
- AsyncApiClient: deadline-bounded async client
- HttpClientConfig: configuration
- Exceptions: ApiError and subclasses
- ApiKeyAuth: header credential auth
"""

from snapsell.core.api.http.auth import ApiKeyAuth
from snapsell.core.api.http.client import AsyncApiClient
from snapsell.core.api.http.config import DEFAULT_TIMEOUT_S, HttpClientConfig
from snapsell.core.api.http.errors import (
    ApiError,
    AuthError,
    ClientError,
    DecodeError,
    RateLimitError,
    ServerError,
    TimeoutError,
    TransportError,
    UnexpectedStatusError,
)

__all__ = [
    "AsyncApiClient",
    "HttpClientConfig",
    "DEFAULT_TIMEOUT_S",
    "ApiKeyAuth",
    "ApiError",
    "TransportError",
    "TimeoutError",
    "DecodeError",
    "RateLimitError",
    "AuthError",
    "ClientError",
    "ServerError",
    "UnexpectedStatusError",
]
