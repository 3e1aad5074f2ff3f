"""Update action behind the program link-settings form."""
from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from pydantic import ValidationError
from sqlmodel import Session

from ...core.database import session_scope
from ...core.errors import InvalidProgramUpdate, ProgramError, ProgramNotFound
from ...models.program import Program, ProgramPublic
from ...models.workspace import Folder, Workspace
from ...schemas.programs import UpdateProgramLinkSettings
from ..domains import get_domain_or_throw
from .cache import invalidate_program
from .link_structure import is_link_structure_available

log = logging.getLogger(__name__)

GENERIC_UPDATE_ERROR = "Failed to update program."


def update_program(
    session: Session,
    workspace: Workspace,
    program_id: str,
    payload: UpdateProgramLinkSettings,
) -> Program:
    if payload.workspace_id != workspace.id:
        raise InvalidProgramUpdate("Workspace does not match the program's workspace")

    program = session.get(Program, program_id)
    if program is None or program.workspace_id != workspace.id:
        raise ProgramNotFound(program_id)

    if not is_link_structure_available(payload.link_structure):
        raise InvalidProgramUpdate(f"Link structure '{payload.link_structure.value}' is not available yet")

    get_domain_or_throw(session, workspace, payload.domain)

    if payload.default_folder_id:
        folder = session.get(Folder, payload.default_folder_id)
        if folder is None or folder.workspace_id != workspace.id:
            raise InvalidProgramUpdate("Folder not found in this workspace")

    program.domain = payload.domain
    program.url = str(payload.url)
    program.cookie_length = payload.cookie_length
    program.default_folder_id = payload.default_folder_id
    program.link_structure = payload.link_structure
    program.updated_at = datetime.utcnow()
    session.add(program)
    session.commit()
    session.refresh(program)

    invalidate_program(program.id, workspace.id)
    log.info(
        "event=program.updated program_id=%s workspace_id=%s cookie_length=%s link_structure=%s",
        program.id, workspace.id, program.cookie_length, program.link_structure.value,
    )
    return program


@dataclass
class ActionResult:
    data: Optional[dict[str, Any]] = None
    server_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.server_error is None and self.data is not None


def _first_validation_message(exc: ValidationError) -> str:
    errors = exc.errors(include_url=False)
    if not errors:
        return GENERIC_UPDATE_ERROR
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg") or GENERIC_UPDATE_ERROR
    return f"{field}: {message}" if field else message


def bind_update_action(
    workspace_id: str,
    program_id: str,
    session_factory: Callable[[], AbstractContextManager[Session]] = session_scope,
) -> Callable[[dict[str, Any]], ActionResult]:
    """Adapt :func:`update_program` to the form's ``payload -> ActionResult`` contract."""

    def action(payload: dict[str, Any]) -> ActionResult:
        try:
            body = UpdateProgramLinkSettings.model_validate(payload)
        except ValidationError as exc:
            return ActionResult(server_error=_first_validation_message(exc))

        with session_factory() as session:
            workspace = session.get(Workspace, workspace_id)
            if workspace is None:
                return ActionResult(server_error="Workspace not found")
            try:
                program = update_program(session, workspace, program_id, body)
            except ProgramError as exc:
                log.info("event=program.update_rejected program_id=%s code=%s", program_id, exc.code)
                return ActionResult(server_error=exc.message)
            return ActionResult(data=ProgramPublic.model_validate(program).model_dump(mode="json"))

    return action
