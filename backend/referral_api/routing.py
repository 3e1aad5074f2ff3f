from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI

log = logging.getLogger(__name__)


def _safe_import(mod: str, name: str = "router"):
    """Import a router object; return None (and log the traceback) on failure.

    A broken optional router must not keep the rest of the API from starting.
    """
    try:
        m = __import__(mod, fromlist=[name])
    except Exception:
        tb_short = "\n".join(traceback.format_exc().splitlines()[:8])
        log.warning("_safe_import failed for %s: %s", mod, tb_short)
        return None
    return getattr(m, name, None)


def attach_routers(app: FastAPI) -> dict[str, bool]:
    """Register every API router under ``/api``; returns availability per router."""
    routers = {
        "programs": _safe_import("referral_api.routers.programs"),
        "workspaces": _safe_import("referral_api.routers.workspaces"),
        "onboarding": _safe_import("referral_api.routers.onboarding"),
    }
    availability: dict[str, bool] = {}
    for name, router in routers.items():
        if router is None:
            availability[name] = False
            continue
        app.include_router(router, prefix="/api")
        availability[name] = True
    log.info("Routers attached: %s", availability)
    return availability
