"""Fail-open Redis cache of program read payloads.

Keys mirror the client-side cache key of the program read endpoint, so a
single string identifies the cached representation on both sides.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from ...core.config import settings
from ...core.redis_client import redis_delete, redis_get, redis_setex

log = logging.getLogger(__name__)


def program_cache_key(program_id: str, workspace_id: str) -> str:
    return f"/api/programs/{program_id}?workspaceId={workspace_id}"


def get_cached_program(program_id: str, workspace_id: str) -> Optional[dict[str, Any]]:
    raw = redis_get(program_cache_key(program_id, workspace_id))
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        log.warning("event=program_cache.corrupt program_id=%s", program_id)
        return None


def cache_program(program_id: str, workspace_id: str, payload: dict[str, Any]) -> bool:
    return redis_setex(
        program_cache_key(program_id, workspace_id),
        settings.PROGRAM_CACHE_TTL,
        json.dumps(payload, default=str),
    )


def invalidate_program(program_id: str, workspace_id: str) -> None:
    redis_delete(program_cache_key(program_id, workspace_id))
    log.info("event=program_cache.invalidated program_id=%s workspace_id=%s", program_id, workspace_id)
