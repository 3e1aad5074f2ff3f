from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..core.auth import get_current_user, get_workspace_from_query, load_workspace_for_user
from ..core.database import get_session
from ..core.errors import ProgramNotFound
from ..models.program import Program, ProgramPublic
from ..models.user import User
from ..models.workspace import Workspace
from ..schemas.programs import UpdateProgramLinkSettings
from ..services.programs.cache import cache_program, get_cached_program
from ..services.programs.link_structure import get_link_structure_options
from ..services.programs.update import update_program

router = APIRouter(prefix="/programs", tags=["programs"])
log = logging.getLogger(__name__)


@router.get("/{program_id}", response_model=ProgramPublic)
def read_program(
    program_id: str,
    workspace: Workspace = Depends(get_workspace_from_query),
    session: Session = Depends(get_session),
) -> Any:
    cached = get_cached_program(program_id, workspace.id)
    if cached is not None:
        return cached

    program = session.get(Program, program_id)
    if program is None or program.workspace_id != workspace.id:
        raise ProgramNotFound(program_id)

    payload = ProgramPublic.model_validate(program).model_dump(mode="json")
    cache_program(program_id, workspace.id, payload)
    return payload


@router.get("/{program_id}/link-structures")
def list_link_structures(
    program_id: str,
    workspace: Workspace = Depends(get_workspace_from_query),
    session: Session = Depends(get_session),
) -> list[dict[str, Any]]:
    program = session.get(Program, program_id)
    if program is None or program.workspace_id != workspace.id:
        raise ProgramNotFound(program_id)
    return [
        {"id": opt.id.value, "label": opt.label, "example": opt.example, "comingSoon": opt.coming_soon}
        for opt in get_link_structure_options(program.domain, program.url)
    ]


@router.patch("/{program_id}", response_model=ProgramPublic)
def patch_program(
    program_id: str,
    body: UpdateProgramLinkSettings,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
) -> Program:
    """Update the link settings of a program."""
    workspace = load_workspace_for_user(session, body.workspace_id, current_user)
    return update_program(session, workspace, program_id, body)
