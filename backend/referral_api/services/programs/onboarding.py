"""Staging of onboarding answers ahead of program provisioning."""
from __future__ import annotations

import json
import logging
import mimetypes
from datetime import datetime
from typing import Any, Optional

from sqlmodel import Session, select

from infrastructure import storage

from ...core.config import settings
from ...core.errors import OnboardingValidationError
from ...core.ids import nanoid
from ...models.onboarding import ProgramOnboarding
from ...models.workspace import Workspace
from ..importers import rewardful_importer

log = logging.getLogger(__name__)

ALLOWED_LOGO_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
}
TEMP_LOGO_PREFIX = "tmp/programs/onboarding"


def get_onboarding(session: Session, workspace_id: str) -> Optional[ProgramOnboarding]:
    return session.exec(
        select(ProgramOnboarding).where(ProgramOnboarding.workspace_id == workspace_id)
    ).first()


def stage_onboarding(session: Session, workspace: Workspace, changes: dict[str, Any]) -> ProgramOnboarding:
    """Merge one wizard step into the workspace's staged answers."""
    row = get_onboarding(session, workspace.id)
    if row is None:
        row = ProgramOnboarding(workspace_id=workspace.id)
        payload: dict[str, Any] = {}
    else:
        payload = row.payload
    payload.update(changes)
    row.payload_json = json.dumps(payload, default=str)
    row.updated_at = datetime.utcnow()
    session.add(row)
    session.commit()
    session.refresh(row)
    log.info("event=onboarding.staged workspace_id=%s keys=%s", workspace.id, sorted(changes))
    return row


def discard_onboarding(session: Session, workspace: Workspace) -> bool:
    row = get_onboarding(session, workspace.id)
    if row is None:
        return False
    session.delete(row)
    session.commit()
    log.info("event=onboarding.discarded workspace_id=%s", workspace.id)
    return True


def _guess_content_type(filename: Optional[str], content_type: Optional[str]) -> str:
    ctype = (content_type or "").split(";", 1)[0].strip().lower()
    if ctype in ALLOWED_LOGO_TYPES:
        return ctype
    guessed, _ = mimetypes.guess_type(filename or "")
    return (guessed or ctype or "application/octet-stream").lower()


def upload_onboarding_logo(
    session: Session,
    workspace: Workspace,
    data: bytes,
    *,
    filename: Optional[str] = None,
    content_type: Optional[str] = None,
) -> str:
    """Store an uploaded logo under the workspace's temp prefix and stage its URL."""
    ctype = _guess_content_type(filename, content_type)
    if ctype not in ALLOWED_LOGO_TYPES:
        raise OnboardingValidationError("Logo must be a PNG, JPEG, WebP or SVG image")
    if not data:
        raise OnboardingValidationError("Logo file is empty")
    if len(data) > settings.LOGO_MAX_BYTES:
        raise OnboardingValidationError(
            f"Logo must be smaller than {settings.LOGO_MAX_BYTES // (1024 * 1024)} MB"
        )

    previous = get_onboarding(session, workspace.id)
    previous_logo = previous.payload.get("logo") if previous else None

    key = f"{TEMP_LOGO_PREFIX}/{workspace.id}/logo_{nanoid(7)}{ALLOWED_LOGO_TYPES[ctype]}"
    url = storage.upload_bytes(key, data, ctype)
    stage_onboarding(session, workspace, {"logo": url})

    previous_key = storage.key_from_url(previous_logo) if previous_logo else None
    if previous_key and previous_key.startswith(f"{TEMP_LOGO_PREFIX}/"):
        storage.delete_blob(previous_key)
    return url


def save_rewardful_token(workspace: Workspace, api_token: str) -> None:
    """Store the importer token; the campaign id is merged in at provisioning."""
    rewardful_importer.set_credentials(workspace.id, {"token": api_token})
