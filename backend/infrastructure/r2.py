"""Cloudflare R2 storage client using the S3-compatible API."""

from __future__ import annotations

import logging
import os
from typing import Optional
from urllib.parse import quote

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError


logger = logging.getLogger(__name__)

# Cached R2 client
_R2_CLIENT = None


def _get_r2_client():
    """Get or create cached boto3 S3 client configured for Cloudflare R2."""
    global _R2_CLIENT

    if _R2_CLIENT is not None:
        return _R2_CLIENT

    account_id = os.getenv("R2_ACCOUNT_ID")
    access_key_id = os.getenv("R2_ACCESS_KEY_ID")
    secret_access_key = os.getenv("R2_SECRET_ACCESS_KEY")

    if not all([account_id, access_key_id, secret_access_key]):
        logger.warning(
            "Missing R2 credentials (R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY). "
            "R2 operations will fail."
        )
        return None

    # R2 endpoint format: https://<account_id>.r2.cloudflarestorage.com
    endpoint_url = f"https://{account_id}.r2.cloudflarestorage.com"

    _R2_CLIENT = boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=access_key_id,
        aws_secret_access_key=secret_access_key,
        config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        region_name="auto",
    )
    logger.info("R2 client initialized for account %s", account_id)
    return _R2_CLIENT


def get_public_base_url(bucket_name: str) -> str:
    """Public URL prefix for objects in ``bucket_name``.

    ``R2_PUBLIC_URL`` (custom domain or r2.dev URL) wins over the raw endpoint.
    """
    custom = (os.getenv("R2_PUBLIC_URL") or "").strip().rstrip("/")
    if custom:
        return custom
    account_id = os.getenv("R2_ACCOUNT_ID", "UNKNOWN")
    return f"https://{bucket_name}.{account_id}.r2.cloudflarestorage.com"


def get_public_url(bucket_name: str, key: str) -> str:
    return f"{get_public_base_url(bucket_name)}/{quote(key, safe='/')}"


def upload_bytes(
    bucket_name: str,
    key: str,
    data: bytes,
    content_type: str = "application/octet-stream",
) -> Optional[str]:
    """Upload bytes to R2.

    Returns:
        Public R2 URL if successful, None if failed
    """
    client = _get_r2_client()
    if client is None:
        logger.error("Cannot upload to R2 - client not initialized")
        return None

    try:
        client.put_object(Bucket=bucket_name, Key=key, Body=data, ContentType=content_type)
    except (ClientError, BotoCoreError) as e:
        logger.error("[R2] Failed to upload %s: %s", key, e)
        return None

    logger.info("[R2] Uploaded %s bytes to %s", len(data), key)
    return get_public_url(bucket_name, key)


def download_bytes(bucket_name: str, key: str) -> Optional[bytes]:
    """Download object from R2 as bytes; None if missing or on error."""
    client = _get_r2_client()
    if client is None:
        return None

    try:
        response = client.get_object(Bucket=bucket_name, Key=key)
        data = response["Body"].read()
    except ClientError as e:
        if e.response["Error"]["Code"] in ("NoSuchKey", "404"):
            logger.warning("[R2] Object not found: %s", key)
        else:
            logger.error("[R2] Failed to download %s: %s", key, e)
        return None
    except BotoCoreError as e:
        logger.error("[R2] Unexpected error downloading %s: %s", key, e)
        return None

    logger.info("[R2] Downloaded %s bytes from %s", len(data), key)
    return data


def blob_exists(bucket_name: str, key: str) -> bool:
    client = _get_r2_client()
    if client is None:
        return False

    try:
        client.head_object(Bucket=bucket_name, Key=key)
        return True
    except ClientError as e:
        if e.response["Error"]["Code"] in ("404", "NoSuchKey", "NotFound"):
            return False
        logger.error("[R2] Error checking if %s exists: %s", key, e)
        return False


def delete_blob(bucket_name: str, key: str) -> bool:
    """Delete object from R2. Returns True if deleted successfully."""
    client = _get_r2_client()
    if client is None:
        logger.error("Cannot delete from R2 - client not initialized")
        return False

    try:
        client.delete_object(Bucket=bucket_name, Key=key)
    except (ClientError, BotoCoreError) as e:
        logger.error("[R2] Failed to delete %s: %s", key, e)
        return False

    logger.info("[R2] Deleted %s from bucket %s", key, bucket_name)
    return True
