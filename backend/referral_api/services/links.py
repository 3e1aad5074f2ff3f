"""Link validation and persistence for partner tracking links."""
from __future__ import annotations

import logging
import re
from typing import Optional, Union
from urllib.parse import urlparse
from uuid import UUID

from sqlmodel import Session, select

from ..models.link import Link
from ..models.workspace import Domain, Workspace
from ..schemas.links import LinkPayload

log = logging.getLogger(__name__)

MAX_KEY_LENGTH = 190
_KEY_RE = re.compile(r"^[A-Za-z0-9_.\-/]+$")


def _normalize_key(key: str) -> str:
    return (key or "").strip().strip("/")


def _key_error(key: str) -> Optional[str]:
    if not key:
        return "Link key is required."
    if len(key) > MAX_KEY_LENGTH:
        return f"Link key must be at most {MAX_KEY_LENGTH} characters."
    if key.startswith("_"):
        return "Link key cannot start with an underscore."
    if not _KEY_RE.match(key):
        return "Link key can only contain letters, numbers, '-', '_', '.' and '/'."
    return None


def _url_error(url: str) -> Optional[str]:
    parsed = urlparse((url or "").strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return "Invalid destination URL."
    return None


def process_link(
    session: Session,
    payload: Union[LinkPayload, dict],
    workspace: Workspace,
    user_id: Optional[UUID] = None,
) -> tuple[Optional[Link], Optional[str]]:
    """Validate a link request and build an unsaved Link.

    Returns ``(link, None)`` on success or ``(None, message)``; never writes.
    """
    data = payload if isinstance(payload, LinkPayload) else LinkPayload.model_validate(payload)
    domain = data.domain.strip().lower()
    key = _normalize_key(data.key)

    owned = session.exec(
        select(Domain).where(Domain.slug == domain, Domain.workspace_id == workspace.id)
    ).first()
    if owned is None:
        return None, f"Domain {domain} does not belong to this workspace."

    error = _key_error(key) or _url_error(data.url)
    if error:
        return None, error

    taken = session.exec(select(Link.id).where(Link.domain == domain, Link.key == key)).first()
    if taken is not None:
        return None, f"Duplicate key: {domain}/{key} is already in use."

    link = Link(
        workspace_id=workspace.id,
        domain=domain,
        key=key,
        url=data.url.strip(),
        short_link=f"https://{domain}/{key}",
        program_id=data.program_id,
        folder_id=data.folder_id,
        track_conversion=data.track_conversion,
        user_id=user_id,
    )
    return link, None


def create_link(session: Session, link: Link) -> Link:
    """Persist a Link produced by :func:`process_link`."""
    session.add(link)
    session.commit()
    session.refresh(link)
    log.info("event=link.created link_id=%s short_link=%s", link.id, link.short_link)
    return link
