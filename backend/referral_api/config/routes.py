"""Routes and health checks for the FastAPI application."""
from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import text

if TYPE_CHECKING:
    from fastapi import FastAPI


def attach_routes(app: FastAPI) -> None:
    from referral_api.core import database
    from referral_api.core.logging import get_logger
    from referral_api.routing import attach_routers

    log = get_logger("referral_api.config.routes")

    availability = attach_routers(app)
    missing = [name for name, ok in availability.items() if not ok]
    if missing:
        log.error("Routers unavailable: %s", missing)

    @app.get("/api/health")
    def api_health():
        return {"status": "ok"}

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    @app.get("/readyz")
    def readyz():
        try:
            with database.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as exc:
            log.warning("[readyz] database check failed: %s", exc)
            return {"ok": False, "database": "unavailable"}
        return {"ok": True, "database": "ok"}
