"""Invitation email sent to partners added during program onboarding."""
from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Optional

from ..core.config import settings
from .mailer import mailer


@dataclass(frozen=True)
class InviteProgram:
    name: str
    slug: str
    logo: Optional[str] = None


def invite_subject(program: InviteProgram) -> str:
    return f"{program.name} invited you to join {settings.BRAND_NAME} Partners"


def invite_url(program: InviteProgram) -> str:
    return f"{settings.app_base_url}/partners/{program.slug}/invite"


def render_partner_invite(program: InviteProgram, email: str) -> tuple[str, str, str]:
    """Return ``(subject, text, html)`` for an invitation to ``email``."""
    url = invite_url(program)
    subject = invite_subject(program)
    text = (
        f"Hi {email},\n\n"
        f"{program.name} invited you to join their partner program on {settings.BRAND_NAME}.\n"
        f"Accept the invitation to get your referral link and start earning rewards:\n\n"
        f"{url}\n"
    )
    name = html.escape(program.name)
    logo = (
        f'<img src="{html.escape(program.logo, quote=True)}" alt="{name}" height="32" />'
        if program.logo
        else ""
    )
    body = (
        f"<div>{logo}"
        f"<h1>{name} invited you to join {html.escape(settings.BRAND_NAME)} Partners</h1>"
        f"<p>Accept the invitation to get your referral link and start earning rewards.</p>"
        f'<p><a href="{html.escape(url, quote=True)}">Accept invite</a></p>'
        f"<p>This invitation was intended for {html.escape(email)}.</p></div>"
    )
    return subject, text, body


def send_partner_invite(email: str, program: InviteProgram) -> bool:
    subject, text, body = render_partner_invite(program, email)
    return mailer.send(email, subject, text, body)
