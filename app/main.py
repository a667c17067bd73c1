from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.credentials import router as credentials_router
from app.api.health import router as health_router
from app.api.metrics_endpoint import router as metrics_router
from app.core.config import SETTINGS, Settings
from app.core.logging import setup_logging
from app.core.metrics import CREDENTIALS_STORED
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import RequestContextMiddleware
from app.repos.credential_repo import CredentialStorageError, JsonFileCredentialRepo
from app.services.credential_service import CredentialService

# Configure logging before anything else runs.
setup_logging(
    SETTINGS.log_level, json_format=SETTINGS.log_json, worker_id=SETTINGS.worker_id
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings

    repo = JsonFileCredentialRepo(settings.data_file)
    try:
        repo.load()
    except CredentialStorageError:
        # Serving from an unreadable store would hand out duplicate ids.
        logger.exception("Credential store failed to load; aborting startup")
        raise

    app.state.credential_repo = repo
    app.state.credential_service = CredentialService(repo, settings.worker_id)
    CREDENTIALS_STORED.set(len(repo))
    logger.info(
        "credential store ready  worker=%s records=%d file=%s",
        settings.worker_id,
        len(repo),
        repo.path,
    )
    try:
        yield
    finally:
        app.state.credential_service = None
        app.state.credential_repo = None


def create_app(settings: Settings = SETTINGS) -> FastAPI:
    app = FastAPI(
        title="credential-service",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Worker-ID"],
    )

    # Middleware execution order: last-added runs first (outermost layer).
    # RequestContext (outermost) → Metrics → CORS → route handler
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware, worker_id=settings.worker_id)

    app.include_router(metrics_router)
    app.include_router(credentials_router)
    app.include_router(health_router)

    return app


app = create_app(SETTINGS)

logger.info(
    "credential-service started  env=%s worker=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.worker_id,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
