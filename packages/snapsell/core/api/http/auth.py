from __future__ import annotations

from collections.abc import AsyncGenerator, Generator

import httpx
from pydantic import BaseModel, Field


class ApiKeyAuth(httpx.Auth, BaseModel):
    """Static API key header authentication.

    Args:
        header_name: Header name for the API key (e.g. "Authorization")
        api_key: API key value
        prefix: Optional prefix for the key value (e.g. "Bearer", "Client-ID")

    Example:
        >>> auth = ApiKeyAuth.bearer("sk_live_123")
        >>> auth = ApiKeyAuth(header_name="Authorization", api_key="abc", prefix="Client-ID")
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    header_name: str
    api_key: str = Field(repr=False)
    prefix: str | None = None

    @classmethod
    def bearer(cls, api_key: str) -> ApiKeyAuth:
        """Bearer-style credential in the Authorization header."""
        return cls(header_name="Authorization", api_key=api_key, prefix="Bearer")

    def _value(self) -> str:
        return f"{self.prefix} {self.api_key}" if self.prefix else self.api_key

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        """Apply API key to request (sync)."""
        request.headers[self.header_name] = self._value()
        yield request

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        """Apply API key to request (async)."""
        request.headers[self.header_name] = self._value()
        yield request
