from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests and the ASGI entry point build the same application.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.routes import (
    example_router,
    github_summarizer_router,
    health_router,
    keys_router,
    validate_key_router,
)
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import get_admission_controller, set_credential_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Open the credential store eagerly so a bad DATABASE_URL fails at boot
    get_admission_controller()
    logger.info("app.started", extra={"app_env": settings.app_env})
    try:
        yield
    finally:
        set_credential_store(None)
        logger.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="README Summarizer API",
        description=(
            "Summarizes GitHub repositories from their README.md. Calls are authenticated "
            "with an API key sent in the x-api-key header; each key has a usage limit and "
            "every admitted call is charged against it. Responses include the key's current "
            "usage and limit."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(github_summarizer_router, prefix="/v1")
    app.include_router(example_router, prefix="/v1")
    app.include_router(keys_router, prefix="/v1")
    app.include_router(validate_key_router, prefix="/v1")
    app.include_router(health_router)

    # OpenAPI customizations (security schemes, tags)
    apply_openapi_customizations(app)

    return app
