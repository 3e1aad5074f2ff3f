from __future__ import annotations

import logging

from sqlmodel import Session, select

from ..core.errors import DomainNotOwned
from ..models.workspace import Domain, Workspace

log = logging.getLogger(__name__)


def get_domain_or_throw(session: Session, workspace: Workspace, domain: str) -> Domain:
    """Return the workspace's Domain row for ``domain`` or raise DomainNotOwned."""
    slug = (domain or "").strip().lower()
    row = session.exec(
        select(Domain).where(Domain.slug == slug, Domain.workspace_id == workspace.id)
    ).first()
    if row is None:
        log.info("event=domain.not_owned workspace_id=%s domain=%s", workspace.id, slug)
        raise DomainNotOwned(slug, workspace.id)
    return row
