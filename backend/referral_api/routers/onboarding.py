"""
Program onboarding: staging the wizard answers and provisioning the program.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status
from fastapi.responses import RedirectResponse
from sqlmodel import Session

from ..core.auth import get_current_user, get_workspace
from ..core.config import settings
from ..core.database import get_session
from ..core.errors import MissingOnboardingData
from ..models.user import User
from ..models.workspace import Workspace
from ..schemas.program_onboarding import ProgramOnboardingUpdate
from ..schemas.programs import RewardfulCredentialsIn
from ..services.programs import onboarding as onboarding_service
from ..services.programs.provisioner import provision_program

router = APIRouter(prefix="/workspaces/{workspace_id}", tags=["onboarding"])
log = logging.getLogger(__name__)


@router.get("/program-onboarding")
def read_onboarding(
    workspace: Workspace = Depends(get_workspace),
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    row = onboarding_service.get_onboarding(session, workspace.id)
    if row is None:
        raise MissingOnboardingData(workspace.id)
    return row.payload


@router.put("/program-onboarding")
def stage_onboarding(
    body: ProgramOnboardingUpdate,
    workspace: Workspace = Depends(get_workspace),
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    changes = dict(body.model_extra or {})
    row = onboarding_service.stage_onboarding(session, workspace, changes)
    return row.payload


@router.delete("/program-onboarding", status_code=status.HTTP_204_NO_CONTENT)
def discard_onboarding(
    workspace: Workspace = Depends(get_workspace),
    session: Session = Depends(get_session),
) -> Response:
    onboarding_service.discard_onboarding(session, workspace)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/program-onboarding/logo")
async def upload_onboarding_logo(
    file: UploadFile = File(...),
    workspace: Workspace = Depends(get_workspace),
    session: Session = Depends(get_session),
) -> dict[str, str]:
    # Read one byte past the limit so oversize uploads are detected without buffering them whole
    data = await file.read(settings.LOGO_MAX_BYTES + 1)
    url = onboarding_service.upload_onboarding_logo(
        session,
        workspace,
        data,
        filename=file.filename,
        content_type=file.content_type,
    )
    return {"logo": url}


@router.put("/program-onboarding/rewardful", status_code=status.HTTP_204_NO_CONTENT)
def save_rewardful_credentials(
    body: RewardfulCredentialsIn,
    workspace: Workspace = Depends(get_workspace),
) -> Response:
    onboarding_service.save_rewardful_token(workspace, body.api_token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/programs")
def create_program(
    workspace: Workspace = Depends(get_workspace),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> RedirectResponse:
    """Provision the workspace's program and redirect to its landing page."""
    if workspace.default_program_id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Workspace already has a program")
    provisioned = provision_program(session, workspace, current_user)
    return RedirectResponse(provisioned.redirect_url, status_code=status.HTTP_303_SEE_OTHER)
