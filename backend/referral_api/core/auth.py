from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlmodel import Session, select

from .config import settings
from .database import get_session
from ..models.user import User
from ..models.workspace import Workspace, WorkspaceUser

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")


def get_current_user(
    session: Session = Depends(get_session),
    token: str = Depends(oauth2_scheme),
) -> User:
    """Decode the JWT and return the current user or raise 401."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise credentials_exception
    email = payload.get("sub")
    if not isinstance(email, str) or not email:
        raise credentials_exception

    user = session.exec(select(User).where(User.email == email)).first()
    if not user or not user.is_active:
        raise credentials_exception
    return user


def load_workspace_for_user(session: Session, workspace_id: str, user: User) -> Workspace:
    """Return the workspace if ``user`` is a member, else raise 404.

    Non-members get the same 404 as a missing workspace so ids can't be probed.
    """
    workspace = session.get(Workspace, workspace_id)
    membership: Optional[WorkspaceUser] = None
    if workspace is not None:
        membership = session.exec(
            select(WorkspaceUser).where(
                WorkspaceUser.workspace_id == workspace.id,
                WorkspaceUser.user_id == user.id,
            )
        ).first()
    if workspace is None or membership is None:
        logger.info("[auth] workspace %s not accessible for user %s", workspace_id, user.id)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workspace not found")
    return workspace


def get_workspace(
    workspace_id: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> Workspace:
    """Path-parameter flavour: ``/api/workspaces/{workspace_id}/...``."""
    return load_workspace_for_user(session, workspace_id, current_user)


def get_workspace_from_query(
    workspace_id: str = Query(alias="workspaceId"),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> Workspace:
    """Query flavour: ``/api/programs/{id}?workspaceId=...``."""
    return load_workspace_for_user(session, workspace_id, current_user)


__all__ = [
    "get_current_user",
    "get_workspace",
    "get_workspace_from_query",
    "load_workspace_for_user",
    "oauth2_scheme",
]
