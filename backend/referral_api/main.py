"""FastAPI application factory.

``app.py`` calls :func:`create_app` to expose the ASGI app; tests call it
directly after pointing the database at a temporary file.
"""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    1. Logging and Sentry configuration
    2. FastAPI app instantiation with lifespan (tables, background pool)
    3. Middleware
    4. Exception handlers
    5. Routes and health checks
    """
    from referral_api.config.logging import configure_logging, setup_sentry
    from referral_api.core.config import settings
    from referral_api.core.logging import get_logger

    configure_logging()
    setup_sentry(environment=settings.APP_ENV.strip().lower())
    log = get_logger("referral_api.main")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from referral_api.core.database import create_db_and_tables
        from referral_api.services.background import shutdown_background_pool

        create_db_and_tables()
        log.info("[startup] Database tables ready")
        yield
        shutdown_background_pool(wait=False)

    app = FastAPI(title=f"{settings.BRAND_NAME} API", debug=settings.is_dev_mode, lifespan=lifespan)

    from referral_api.config.middleware import configure_middleware
    configure_middleware(app, settings)

    from referral_api.exceptions import install_exception_handlers
    install_exception_handlers(app)

    from referral_api.config.routes import attach_routes
    attach_routes(app)

    log.info("[startup] Application configured successfully")
    return app
