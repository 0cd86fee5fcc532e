"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from ayurvision.api.pages import router as pages_router
from ayurvision.api.routes import router
from ayurvision.config import Settings, get_settings, warn_if_unconfigured
from ayurvision.genai.client import PlantIdentifier
from ayurvision.genai.transport import GeminiRestTransport
from ayurvision.intake import PreviewStore
from ayurvision.shell import SessionRegistry

logger = logging.getLogger(__name__)


def init_state(app: FastAPI, settings: Settings, http_client: httpx.AsyncClient) -> None:
    """Build the identifier and session registry and attach them to ``app.state``."""
    transport = GeminiRestTransport.from_settings(http_client, settings)
    identifier = PlantIdentifier(transport, model=settings.model)
    app.state.settings = settings
    app.state.identifier = identifier
    app.state.sessions = SessionRegistry(
        identifier,
        PreviewStore(),
        max_sessions=settings.max_sessions,
        idle_timeout=settings.session_idle_timeout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize on startup, clean up on shutdown."""
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info("Starting AyurVision (model=%s, max_file_size=%s)", settings.model, settings.max_file_size)
    warn_if_unconfigured(settings)

    http_client = httpx.AsyncClient(timeout=settings.request_timeout)
    init_state(app, settings, http_client)

    logger.info("AyurVision ready")
    yield

    logger.info("Shutting down AyurVision")
    app.state.sessions.close_all()
    await http_client.aclose()
    logger.info("AyurVision shutdown complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    application = FastAPI(
        title="AyurVision",
        description="Medicinal plant identification with Ayurvedic profiles",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(SessionMiddleware, secret_key=settings.session_secret)

    application.include_router(router)
    application.include_router(pages_router)
    return application


app = create_app()
