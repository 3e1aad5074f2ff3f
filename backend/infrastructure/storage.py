"""Storage backend abstraction layer.

Routes storage operations to Cloudflare R2 or to a local directory based on
the STORAGE_BACKEND env var, so dev and test runs need no cloud credentials.

Environment Variables:
    STORAGE_BACKEND: "r2" or "local" (default: "local")
    R2_BUCKET: Cloudflare R2 bucket name
    R2_PUBLIC_URL: public URL prefix for the bucket (optional)
    MEDIA_ROOT: directory used by the local backend
    LOCAL_MEDIA_BASE_URL: URL prefix served for locally stored objects
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from infrastructure import r2


logger = logging.getLogger(__name__)

_LOCAL_PREFIX = "/static/media"


def _get_backend() -> str:
    backend = os.getenv("STORAGE_BACKEND", "local").lower()
    if backend not in ("r2", "local"):
        logger.warning("Invalid STORAGE_BACKEND '%s', defaulting to 'local'", backend)
        return "local"
    return backend


def _get_bucket_name() -> str:
    return os.getenv("R2_BUCKET", "partner-assets").strip()


def _local_media_dir() -> Path:
    root = Path((os.getenv("MEDIA_ROOT") or "local_media").strip()).expanduser()
    path = root / "storage"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _normalize_object_key(key: str) -> Path:
    """Normalise an object key to a safe, relative :class:`Path`."""
    key = (key or "").replace("\\", "/").strip("/")
    parts = [part for part in key.split("/") if part and part not in {".", ".."}]
    if not parts:
        raise ValueError("Object key cannot be empty")
    return Path(*parts)


def _local_path(key: str) -> Path:
    return _local_media_dir() / _normalize_object_key(key)


def public_base_url() -> str:
    """URL prefix under which every object of the active backend is served."""
    if _get_backend() == "r2":
        return r2.get_public_base_url(_get_bucket_name())
    return (os.getenv("LOCAL_MEDIA_BASE_URL") or _LOCAL_PREFIX).rstrip("/")


def upload_bytes(key: str, data: bytes, content_type: str = "application/octet-stream") -> str:
    """Upload bytes and return the public URL.

    Raises:
        RuntimeError: if the backend rejects the upload
    """
    if _get_backend() == "r2":
        bucket = _get_bucket_name()
        logger.info("[storage] Uploading %s to R2 bucket %s", key, bucket)
        url = r2.upload_bytes(bucket, key, data, content_type)
        if not url:
            raise RuntimeError(f"R2 upload failed for {key}")
        return url

    path = _local_path(key)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    logger.info("[storage] DEV: wrote %s bytes for %s to %s", len(data), key, path)
    return f"{public_base_url()}/{_normalize_object_key(key).as_posix()}"


def download_bytes(key: str) -> Optional[bytes]:
    if _get_backend() == "r2":
        return r2.download_bytes(_get_bucket_name(), key)
    path = _local_path(key)
    if not path.exists():
        logger.warning("[storage] Local object not found: %s", key)
        return None
    return path.read_bytes()


def blob_exists(key: str) -> bool:
    if _get_backend() == "r2":
        return r2.blob_exists(_get_bucket_name(), key)
    return _local_path(key).exists()


def delete_blob(key: str) -> bool:
    """Delete an object. Returns True if it was removed."""
    if _get_backend() == "r2":
        return r2.delete_blob(_get_bucket_name(), key)
    path = _local_path(key)
    if not path.exists():
        return False
    path.unlink()
    logger.info("[storage] DEV: deleted %s", path)
    return True


def is_stored(url: Optional[str]) -> bool:
    """True when ``url`` points at an object in our own storage."""
    if not url:
        return False
    return url.startswith(f"{public_base_url()}/")


def key_from_url(url: str) -> Optional[str]:
    """Object key for a URL produced by :func:`upload_bytes`, else None."""
    if not is_stored(url):
        return None
    return url[len(public_base_url()) + 1:].split("?", 1)[0] or None
