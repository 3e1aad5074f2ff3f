from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from ..core.auth import get_workspace
from ..core.database import get_session
from ..models.workspace import Folder, FolderPublic, Workspace

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.get("/{workspace_id}/folders", response_model=list[FolderPublic])
def list_folders(
    workspace: Workspace = Depends(get_workspace),
    session: Session = Depends(get_session),
) -> list[Folder]:
    return list(
        session.exec(select(Folder).where(Folder.workspace_id == workspace.id).order_by(Folder.name)).all()
    )
