"""Wiring: build studio clients from AppConfig."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from snapsell.core.api.hosting.imgur import ImgurClient
from snapsell.core.api.http.auth import ApiKeyAuth
from snapsell.core.api.http.client import AsyncApiClient
from snapsell.core.api.http.config import DEFAULT_TIMEOUT_S, HttpClientConfig
from snapsell.core.agents.providers.structured import StructuredGenerationClient
from snapsell.core.config.models import AppConfig
from snapsell.core.studio.flow import ListingStudio
from snapsell.core.studio.images import ImageSpool
from snapsell.core.studio.orchestrator import ImageFallbackOrchestrator

logger = logging.getLogger(__name__)


def text_service_client(config: AppConfig) -> AsyncApiClient:
    """Unauthenticated client for the text base URL (key probing)."""
    return AsyncApiClient(HttpClientConfig(base_url=config.service.text_base_url))


def image_host_client(config: AppConfig) -> ImgurClient:
    auth = ApiKeyAuth(
        header_name="Authorization", api_key=config.image_host.client_id, prefix="Client-ID"
    )
    http = AsyncApiClient(HttpClientConfig(base_url=config.image_host.base_url), auth=auth)
    return ImgurClient(http_client=http)


@asynccontextmanager
async def open_studio(config: AppConfig, api_key: str) -> AsyncIterator[ListingStudio]:
    """Build a ListingStudio and tear everything down on exit.

    On exit every live image handle is released, both HTTP clients are
    closed and a temporary spool directory is removed. Save renders before
    leaving the context.
    """
    image_http = AsyncApiClient(
        HttpClientConfig(base_url=config.service.image_base_url),
        auth=ApiKeyAuth.bearer(api_key),
    )
    structured = StructuredGenerationClient(
        api_key=api_key,
        base_url=config.service.text_base_url,
        timeout=DEFAULT_TIMEOUT_S,
        temperature=config.service.temperature,
    )
    spool = ImageSpool(config.spool_dir)
    orchestrator = ImageFallbackOrchestrator(
        image_http,
        spool,
        primary_model=config.image_models.primary,
        secondary_model=config.image_models.secondary,
    )
    studio = ListingStudio(
        structured_client=structured,
        orchestrator=orchestrator,
        text_model=config.service.text_model,
    )
    try:
        yield studio
    finally:
        released = studio.state.release_all()
        logger.debug(f"Closing studio session ({released} image handles released)")
        await image_http.aclose()
        await structured.aclose()
        spool.cleanup()
