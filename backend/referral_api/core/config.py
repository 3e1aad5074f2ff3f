from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger("referral_api.core.config")

# Load .env.local / .env into os.environ before Settings() reads them so the
# storage, tasks and mailer modules (which read os.environ directly) see them too.
try:
    from dotenv import load_dotenv

    _PROJECT_ROOT = Path(__file__).parent.parent.parent
    _ENV_LOCAL = _PROJECT_ROOT / ".env.local"
    _ENV_FILE = _PROJECT_ROOT / ".env"

    if _ENV_LOCAL.exists():
        load_dotenv(_ENV_LOCAL, override=False)
        log.info("[config] Loaded .env.local from %s", _ENV_LOCAL)
    if _ENV_FILE.exists():
        load_dotenv(_ENV_FILE, override=False)
        log.info("[config] Loaded .env from %s", _ENV_FILE)
except ImportError:
    log.debug("[config] python-dotenv not installed, skipping explicit .env loading")

_PROD_ENVS = {"prod", "production", "stage", "staging"}
_DEV_ENVS = {"dev", "development", "local", "test", "testing"}


class Settings(BaseSettings):
    # --- Core Infrastructure ---
    APP_ENV: str = Field(
        default="dev",
        validation_alias=AliasChoices("APP_ENV", "ENV", "PYTHON_ENV"),
    )
    DATABASE_URL: Optional[str] = None
    SECRET_KEY: str = "dev-secret-key-change-me"  # Used for signing JWTs
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30

    # --- Application Behavior ---
    BRAND_NAME: str = "PartnerLinks"
    APP_BASE_URL: Optional[str] = None  # For redirects and links in emails
    CORS_ALLOWED_ORIGINS: str = "http://127.0.0.1:5173,http://localhost:5173"
    MEDIA_ROOT: str = "/tmp"
    SENTRY_DSN: Optional[str] = None

    # --- Program cache (fail-open Redis) ---
    REDIS_HOST: Optional[str] = None
    REDIS_PORT: Optional[int] = None
    PROGRAM_CACHE_TTL: int = Field(default=60, description="Seconds a cached program payload stays valid")

    # --- Best-effort background work ---
    BACKGROUND_MAX_WORKERS: int = Field(default=8, ge=1)
    BACKGROUND_TASKS_EAGER: bool = Field(
        default=False,
        description="Run post-commit background tasks inline (tests, scripts)",
    )

    # --- Onboarding uploads ---
    LOGO_MAX_BYTES: int = 2 * 1024 * 1024

    @property
    def is_dev_mode(self) -> bool:
        env = (self.APP_ENV or "dev").strip().lower()
        return env in _DEV_ENVS

    @property
    def app_base_url(self) -> str:
        return (self.APP_BASE_URL or "https://app.partnerlinks.io").rstrip("/")

    @property
    def cors_allowed_origin_list(self) -> list[str]:
        raw = (self.CORS_ALLOWED_ORIGINS or "").replace(";", ",")
        seen: set[str] = set()
        merged: list[str] = []
        for origin in [*raw.split(","), self.app_base_url]:
            cleaned = (origin or "").strip().rstrip("/")
            if cleaned and cleaned not in seen:
                seen.add(cleaned)
                merged.append(cleaned)
        return merged

    @model_validator(mode="after")
    def _validate_and_warn(self):
        env = (self.APP_ENV or "dev").strip().lower()

        if not (self.DATABASE_URL or "").strip():
            if env in _PROD_ENVS:
                raise ValueError("DATABASE_URL is required outside dev/test")
            log.warning("[config] DATABASE_URL missing; falling back to a local SQLite file")

        if env in _PROD_ENVS:
            if not self.SECRET_KEY or self.SECRET_KEY == "dev-secret-key-change-me":
                raise ValueError("SECRET_KEY must be configured for production deployments")

        return self

    model_config = SettingsConfigDict(
        env_file=(
            str(Path(__file__).parent.parent.parent / ".env.local"),
            str(Path(__file__).parent.parent.parent / ".env"),
        ),
        extra="ignore",
    )


settings = Settings()
