from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

from infrastructure.tasks_client import enqueue_http_task

from ..core.errors import PartnerAlreadyEnrolled
from ..models.enums import EnrollmentStatus
from ..models.link import Link
from ..models.partner import Partner, ProgramEnrollment
from ..models.program import Program, Reward
from ..models.workspace import Workspace
from ..schemas.links import PartnerInput
from .background import submit_background

log = logging.getLogger(__name__)

WEBHOOK_TASK_PATH = "/api/tasks/webhooks"


def _partner_enrolled_payload(program: Program, partner: Partner, link: Link, enrollment: ProgramEnrollment) -> dict:
    return {
        "id": partner.id,
        "name": partner.name,
        "email": partner.email,
        "status": enrollment.status.value,
        "program_id": program.id,
        "link": {"id": link.id, "short_link": link.short_link, "url": link.url},
        "created_at": datetime.utcnow().isoformat(),
    }


def create_and_enroll_partner(
    session: Session,
    *,
    program: Program,
    link: Link,
    workspace: Workspace,
    partner: PartnerInput,
    status: EnrollmentStatus = EnrollmentStatus.pending,
    reward: Optional[Reward] = None,
    skip_enrollment_check: bool = False,
) -> Partner:
    """Upsert the partner, attach the link to them and enroll them in ``program``.

    Commits. When the workspace has webhooks enabled a ``partner.enrolled``
    event is queued on the background pool.
    """
    email = str(partner.email).strip().lower()
    row = session.exec(select(Partner).where(Partner.email == email)).first()
    if row is None:
        row = Partner(name=partner.name, email=email)
        session.add(row)
        session.flush()
    elif not skip_enrollment_check:
        existing = session.exec(
            select(ProgramEnrollment.id).where(
                ProgramEnrollment.program_id == program.id,
                ProgramEnrollment.partner_id == row.id,
            )
        ).first()
        if existing is not None:
            raise PartnerAlreadyEnrolled(email, program.id)

    db_link = session.get(Link, link.id) or link
    db_link.partner_id = row.id
    db_link.program_id = program.id
    session.add(db_link)

    enrollment = ProgramEnrollment(
        program_id=program.id,
        partner_id=row.id,
        link_id=db_link.id,
        reward_id=reward.id if reward else None,
        status=status,
    )
    session.add(enrollment)
    session.commit()
    session.refresh(row)
    log.info(
        "event=partner.enrolled program_id=%s partner_id=%s status=%s",
        program.id, row.id, status.value,
    )

    if workspace.webhook_enabled:
        body = {
            "workspace_id": workspace.id,
            "trigger": "partner.enrolled",
            "data": _partner_enrolled_payload(program, row, db_link, enrollment),
        }
        submit_background("webhook:partner.enrolled", enqueue_http_task, WEBHOOK_TASK_PATH, body)

    return row
