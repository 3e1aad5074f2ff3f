"""Program provisioning from staged onboarding answers.

Provisioning has two boundaries. The consistency boundary is a single
transaction that creates the program (and its default reward), points the
workspace at it and consumes the staged answers. The best-effort boundary
is a :class:`BestEffortBatch` dispatched after that commit: logo
finalization, partner invitations and the external campaign import. Batch
failures are logged and never reach the caller; nothing in the batch is
retried.
"""
from __future__ import annotations

import base64
import binascii
import logging
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from urllib.parse import unquote_to_bytes

import requests
from pydantic import ValidationError
from sqlalchemy import delete, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from infrastructure import storage

from ...core.database import session_scope
from ...core.errors import MissingOnboardingData, OnboardingValidationError, TransactionFailure
from ...core.ids import generate_random_string, nanoid
from ...models.enums import EnrollmentStatus
from ...models.onboarding import ProgramOnboarding
from ...models.program import Program, Reward
from ...models.user import User
from ...models.workspace import Folder, Workspace
from ...schemas.links import LinkPayload, PartnerInput
from ...schemas.program_onboarding import OnboardingPartner, ProgramOnboardingData
from ..background import BestEffortBatch, submit_background
from ..domains import get_domain_or_throw
from ..importers import rewardful_importer
from ..links import create_link, process_link
from ..partner_invite_email import InviteProgram, send_partner_invite
from ..partners import create_and_enroll_partner
from .folders import ensure_partner_links_folder
from .onboarding import get_onboarding

log = logging.getLogger(__name__)

LOGO_FETCH_TIMEOUT = 10


@dataclass
class ProvisionedProgram:
    program_id: str
    slug: str
    redirect_url: str
    background: dict[str, "Future[bool]"] = field(default_factory=dict)


def onboarded_redirect_url(slug: str) -> str:
    return f"/{slug}/program?onboarded-program=true"


def provision_program(session: Session, workspace: Workspace, user: User) -> ProvisionedProgram:
    """Create the workspace's program from its staged onboarding answers.

    Raises MissingOnboardingData, OnboardingValidationError or DomainNotOwned
    before anything is written, and TransactionFailure when the store rejects
    the transaction.
    """
    staged = get_onboarding(session, workspace.id)
    if staged is None:
        raise MissingOnboardingData(workspace.id)
    staged_id = staged.id

    try:
        data = ProgramOnboardingData.model_validate(staged.payload)
    except ValidationError as exc:
        raise OnboardingValidationError(
            "Invalid program onboarding data",
            details=exc.errors(include_url=False, include_context=False),
        ) from exc

    get_domain_or_throw(session, workspace, data.domain)

    folder = ensure_partner_links_folder(session, workspace, user)
    program, reward = _create_program(session, workspace, data, folder, staged_id)

    batch = _post_commit_batch(workspace, user, program, reward, data)
    futures = batch.dispatch()

    log.info(
        "event=program.provisioned workspace_id=%s program_id=%s reward=%s background_tasks=%s",
        workspace.id, program.id, bool(reward), len(futures),
    )
    return ProvisionedProgram(
        program_id=program.id,
        slug=program.slug,
        redirect_url=onboarded_redirect_url(workspace.slug),
        background=futures,
    )


def _create_program(
    session: Session,
    workspace: Workspace,
    data: ProgramOnboardingData,
    folder: Folder,
    staged_id: str,
) -> tuple[Program, Optional[Reward]]:
    try:
        # Consume the staged row first; a concurrent call that already did so sees rowcount 0
        consumed = session.execute(delete(ProgramOnboarding).where(ProgramOnboarding.id == staged_id))
        if consumed.rowcount != 1:
            session.rollback()
            raise MissingOnboardingData(workspace.id)

        program = Program(
            workspace_id=workspace.id,
            name=data.name,
            slug=workspace.slug,
            domain=data.domain,
            url=str(data.url),
            default_folder_id=folder.id,
            link_structure=data.link_structure,
            support_email=str(data.support_email) if data.support_email else None,
            help_url=str(data.help_url) if data.help_url else None,
            terms_url=str(data.terms_url) if data.terms_url else None,
        )
        session.add(program)
        session.flush()

        reward = None
        if data.has_default_reward:
            reward = Reward(
                program_id=program.id,
                event=data.default_reward_type,
                type=data.type,
                amount=data.amount,
                max_duration=data.max_duration,
                default=True,
            )
            session.add(reward)

        # Counter and prefix are updated in SQL so concurrent workspace writes are not overwritten
        session.execute(
            update(Workspace)
            .where(Workspace.id == workspace.id)
            .values(default_program_id=program.id, folders_usage=Workspace.folders_usage + 1)
            .execution_options(synchronize_session=False)
        )
        session.execute(
            update(Workspace)
            .where(
                Workspace.id == workspace.id,
                or_(Workspace.invoice_prefix.is_(None), Workspace.invoice_prefix == ""),
            )
            .values(invoice_prefix=generate_random_string(8))
            .execution_options(synchronize_session=False)
        )

        session.commit()
    except MissingOnboardingData:
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        log.exception("event=program.transaction_failed workspace_id=%s", workspace.id)
        raise TransactionFailure() from exc

    session.refresh(program)
    session.refresh(workspace)
    if reward is not None:
        session.refresh(reward)
    return program, reward


def _post_commit_batch(
    workspace: Workspace,
    user: User,
    program: Program,
    reward: Optional[Reward],
    data: ProgramOnboardingData,
) -> BestEffortBatch:
    batch = BestEffortBatch(f"provision:{program.id}")
    invite_program = InviteProgram(name=program.name, slug=program.slug, logo=program.logo)
    reward_id = reward.id if reward else None

    if data.logo:
        batch.add("finalize-logo", finalize_program_logo, program.id, data.logo)

    for invitee in data.partners or []:
        batch.add(
            f"invite-partner:{invitee.email}",
            invite_partner,
            workspace_id=workspace.id,
            program_id=program.id,
            reward_id=reward_id,
            invitee=invitee,
            user_id=user.id,
            invite_program=invite_program,
        )

    if data.rewardful and data.rewardful.id:
        batch.add("import-rewardful", import_rewardful_campaign, workspace.id, program.id, data.rewardful.id)

    return batch


# --- logo ---------------------------------------------------------------


def _decode_data_url(value: str) -> tuple[bytes, str]:
    header, _, encoded = value.partition(",")
    content_type = header[len("data:"):].split(";", 1)[0] or "application/octet-stream"
    try:
        if ";base64" in header:
            return base64.b64decode(encoded, validate=True), content_type
    except binascii.Error as exc:
        raise ValueError("Logo data URL is not valid base64") from exc
    return unquote_to_bytes(encoded), content_type


def _read_staged_logo(logo: str) -> tuple[bytes, str]:
    if logo.startswith("data:"):
        return _decode_data_url(logo)

    key = storage.key_from_url(logo)
    if key:
        blob = storage.download_bytes(key)
        if blob is None:
            raise FileNotFoundError(f"Staged logo {key} not found")
        return blob, _content_type_for_key(key)

    resp = requests.get(logo, timeout=LOGO_FETCH_TIMEOUT)
    resp.raise_for_status()
    content_type = (resp.headers.get("Content-Type") or "application/octet-stream").split(";", 1)[0]
    return resp.content, content_type


def _content_type_for_key(key: str) -> str:
    lowered = key.lower()
    if lowered.endswith(".svg"):
        return "image/svg+xml"
    if lowered.endswith(".webp"):
        return "image/webp"
    if lowered.endswith((".jpg", ".jpeg")):
        return "image/jpeg"
    return "image/png"


def finalize_program_logo(program_id: str, staged_logo: str) -> str:
    """Copy the staged logo to its program path and point the program at it.

    The temporary object is removed afterwards whether or not the copy
    succeeded; a failed removal is only logged.
    """
    final_key = f"programs/{program_id}/logo_{nanoid(7)}"
    try:
        payload, content_type = _read_staged_logo(staged_logo)
        url = storage.upload_bytes(final_key, payload, content_type)
        with session_scope() as session:
            program = session.get(Program, program_id)
            if program is None:
                raise LookupError(f"Program {program_id} disappeared before its logo was stored")
            program.logo = url
            program.updated_at = datetime.utcnow()
            session.add(program)
            session.commit()
        log.info("event=program.logo_finalized program_id=%s key=%s", program_id, final_key)
        return url
    finally:
        _delete_temp_logo(staged_logo, final_key)


def _delete_temp_logo(staged_logo: str, final_key: str) -> None:
    temp_key = storage.key_from_url(staged_logo)
    if not temp_key or temp_key == final_key:
        return
    try:
        storage.delete_blob(temp_key)
    except Exception:
        log.warning("event=program.logo_cleanup_failed key=%s", temp_key, exc_info=True)


# --- partners -----------------------------------------------------------


def invite_partner(
    *,
    workspace_id: str,
    program_id: str,
    reward_id: Optional[str],
    invitee: OnboardingPartner,
    user_id,
    invite_program: InviteProgram,
) -> bool:
    """Create the invitee's link, enroll them as invited and queue their email.

    Returns False when the link could not be built; the invitee is skipped.
    """
    email = str(invitee.email)
    with session_scope() as session:
        workspace = session.get(Workspace, workspace_id)
        program = session.get(Program, program_id)
        if workspace is None or program is None:
            raise LookupError(f"Program {program_id} not found for invite")
        reward = session.get(Reward, reward_id) if reward_id else None

        link, error = process_link(
            session,
            LinkPayload(
                domain=program.domain or "",
                key=invitee.key,
                url=program.url or "",
                program_id=program.id,
                folder_id=program.default_folder_id,
                track_conversion=True,
            ),
            workspace,
            user_id,
        )
        if error is not None:
            log.warning("event=program.invite_link_failed program_id=%s email=%s error=%s", program_id, email, error)
            return False

        link = create_link(session, link)
        create_and_enroll_partner(
            session,
            program=program,
            link=link,
            workspace=workspace,
            partner=PartnerInput(name=invitee.name or email.split("@")[0], email=email),
            status=EnrollmentStatus.invited,
            reward=reward,
            skip_enrollment_check=True,
        )

    submit_background(f"invite-email:{email}", send_partner_invite, email, invite_program)
    return True


# --- external import ----------------------------------------------------


def import_rewardful_campaign(workspace_id: str, program_id: str, campaign_id: str) -> dict:
    credentials = rewardful_importer.get_credentials(workspace_id)
    rewardful_importer.set_credentials(workspace_id, {**credentials, "campaign_id": campaign_id})
    return rewardful_importer.queue(program_id, "import-campaign")
