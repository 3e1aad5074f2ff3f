from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy.exc import OperationalError as SAOperationalError
from sqlmodel import Session, SQLModel, create_engine

# Ensure models are imported so SQLModel metadata is populated
from ..models import user as _user_models  # noqa: F401
from ..models import workspace as _workspace_models  # noqa: F401
from ..models import program as _program_models  # noqa: F401
from ..models import link as _link_models  # noqa: F401
from ..models import partner as _partner_models  # noqa: F401
from ..models import onboarding as _onboarding_models  # noqa: F401
from ..models import importer as _importer_models  # noqa: F401
from .config import settings

log = logging.getLogger(__name__)


def _int_from_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        log.warning("[db] Invalid integer for %s=%s; using default %s", name, value, default)
        return default


_DEFAULT_DB_CONNECT_ATTEMPTS = max(_int_from_env("DB_CONNECT_MAX_ATTEMPTS", 5), 1)


def _database_url() -> str:
    url = (settings.DATABASE_URL or "").strip()
    if not url:
        db_path = Path(settings.MEDIA_ROOT) / "referral_api.db"
        return f"sqlite:///{db_path.as_posix()}"
    # Route plain postgres URLs through psycopg3
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _create_engine():
    url = _database_url()
    if url.startswith("sqlite"):
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=_int_from_env("DB_POOL_SIZE", 10),
        max_overflow=_int_from_env("DB_MAX_OVERFLOW", 10),
        pool_recycle=_int_from_env("DB_POOL_RECYCLE", 1800),
        pool_timeout=_int_from_env("DB_POOL_TIMEOUT", 30),
        # Force ROLLBACK on connections returned to the pool
        pool_reset_on_return="rollback",
        connect_args={"connect_timeout": _int_from_env("DB_CONNECT_TIMEOUT", 10)},
    )


engine = _create_engine()


def _wait_for_db_connection(max_attempts: int = _DEFAULT_DB_CONNECT_ATTEMPTS, initial_delay: float = 0.5) -> None:
    attempt = 0
    delay = initial_delay
    while True:
        attempt += 1
        try:
            with engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
            if attempt > 1:
                log.info("[db] Connection succeeded on attempt %s", attempt)
            return
        except SAOperationalError as exc:
            if attempt >= max_attempts:
                log.error("[db] Database connection attempt %s/%s failed: %s", attempt, max_attempts, exc)
                raise
            log.warning(
                "[db] Database connection attempt %s/%s failed (%s); retrying in %.1fs",
                attempt,
                max_attempts,
                exc,
                delay,
            )
            time.sleep(delay)
            delay = min(delay * 2, 5.0)


def create_db_and_tables():
    """Create all tables from SQLModel metadata."""
    _wait_for_db_connection()
    SQLModel.metadata.create_all(engine)


def get_session():
    """Provide a request-scoped session for FastAPI dependency injection.

    expire_on_commit=False keeps attributes readable after the provisioning
    commit, when the background batch snapshots the program.
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        if session.in_transaction():
            session.rollback()
        session.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Provide a session outside FastAPI dependencies (background tasks, scripts).

    Caller is responsible for commit().
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        if session.in_transaction():
            session.rollback()
        session.close()
