from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ...models.enums import FolderAccessLevel, FolderUserRole
from ...models.user import User
from ...models.workspace import Folder, FolderUser, Workspace

log = logging.getLogger(__name__)

PARTNER_LINKS_FOLDER = "Partner Links"


def _find_folder(session: Session, workspace_id: str, name: str = PARTNER_LINKS_FOLDER) -> Optional[Folder]:
    return session.exec(select(Folder).where(Folder.name == name, Folder.workspace_id == workspace_id)).first()


def ensure_partner_links_folder(session: Session, workspace: Workspace, user: User) -> Folder:
    """Find or create the workspace's "Partner Links" folder.

    The creating user becomes the folder owner. A concurrent insert trips the
    (name, workspace_id) unique constraint and resolves to the winner's row.
    """
    existing = _find_folder(session, workspace.id)
    if existing is not None:
        return existing

    folder = Folder(name=PARTNER_LINKS_FOLDER, workspace_id=workspace.id, access_level=FolderAccessLevel.write)
    try:
        session.add(folder)
        session.flush()
        session.add(FolderUser(folder_id=folder.id, user_id=user.id, role=FolderUserRole.owner))
        session.commit()
    except IntegrityError:
        session.rollback()
        existing = _find_folder(session, workspace.id)
        if existing is None:
            raise
        log.info("event=folder.upsert_race workspace_id=%s folder_id=%s", workspace.id, existing.id)
        return existing

    session.refresh(folder)
    log.info("event=folder.created workspace_id=%s folder_id=%s", workspace.id, folder.id)
    return folder
