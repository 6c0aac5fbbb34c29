"""FastAPI application factory and lifecycle management."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from distant import __version__
from distant.api.deps import set_client
from distant.api.v1.router import router as v1_router
from distant.client.client import AsyncDistantClient
from distant.config.settings import Settings
from distant.observability.logging import setup_logging

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "DISTANT_CONFIG"
DEFAULT_CONFIG_FILE = "distant-config.yaml"


def load_settings() -> Settings:
    """Settings for a server started without explicit ones.

    Reads the YAML file named by ``DISTANT_CONFIG``, else
    ``distant-config.yaml`` in the working directory if present, else the
    environment alone.
    """
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Settings.from_yaml(explicit)
    if Path(DEFAULT_CONFIG_FILE).is_file():
        return Settings.from_yaml(DEFAULT_CONFIG_FILE)
    return Settings()


def create_app(settings: Settings | None = None, client: AsyncDistantClient[Any] | None = None) -> FastAPI:
    """Create the API application.

    Args:
        settings: Application settings; see :func:`load_settings` when None.
        client: Engine client to serve from.  When None, one is built from
            ``settings.engine`` at startup and closed at shutdown; a client
            passed in stays open and belongs to the caller.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(settings.observability)

        engine_client = client if client is not None else AsyncDistantClient.from_settings(settings)
        set_client(engine_client)
        app.state.settings = settings
        logger.info("Distant v%s serving %s", __version__, settings.engine.hosts[0])
        try:
            yield
        finally:
            set_client(None)
            if client is None:
                await engine_client.close()
            logger.info("Distant stopped")

    app = FastAPI(
        title=settings.app_name,
        description="Fuzzy search, scroll cursors, and bulk ingestion over an Elasticsearch-compatible engine.",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    app.include_router(v1_router, prefix="/v1")
    return app
