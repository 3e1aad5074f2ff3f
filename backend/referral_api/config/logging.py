"""Logging and Sentry configuration for the application."""
from __future__ import annotations

import logging
import os


def configure_logging() -> None:
    from referral_api.core.logging import configure_logging as core_configure_logging
    core_configure_logging()


def setup_sentry(environment: str, dsn: str | None = None) -> None:
    """Initialize Sentry error tracking outside dev/test.

    Args:
        environment: Current environment (dev, production, etc.)
        dsn: Sentry DSN. If None, reads from SENTRY_DSN env var.
    """
    from referral_api.core.logging import get_logger
    log = get_logger("referral_api.config.logging")

    sentry_dsn = dsn or os.getenv("SENTRY_DSN")
    if not sentry_dsn or environment in ("dev", "development", "test", "testing", "local"):
        log.debug("[startup] Sentry disabled (missing DSN or dev/test env)")
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    def before_send(event, hint):
        # 404s and client validation errors are not actionable
        status_code = event.get("tags", {}).get("status_code")
        if status_code in (404, 422):
            return None
        return event

    try:
        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[
                FastApiIntegration(),
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
                SqlalchemyIntegration(),
            ],
            traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
            environment=environment,
            send_default_pii=False,
            before_send=before_send,
            max_breadcrumbs=100,
        )
        log.info("[startup] Sentry initialized for env=%s", environment)
    except Exception as se:
        log.warning("[startup] Sentry init failed: %s", se)
