from __future__ import annotations

import logging
import os
import smtplib
from email.message import EmailMessage
from typing import Optional

from ..core.config import settings

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(self) -> None:
        self.host = os.getenv("SMTP_HOST")
        if self.host:
            logger.info("[MAILER] SMTP_HOST configured: %s", self.host)
        else:
            logger.info("[MAILER] SMTP_HOST not configured; emails will be logged to stdout")

        self.port = int(os.getenv("SMTP_PORT", "587"))
        self.user = os.getenv("SMTP_USER")
        # SMTP_PASSWORD is accepted as a legacy alias
        self.password = os.getenv("SMTP_PASS") or os.getenv("SMTP_PASSWORD")
        self.sender = os.getenv("SMTP_FROM", "no-reply@partnerlinks.io")
        self.sender_name = os.getenv("SMTP_FROM_NAME", settings.BRAND_NAME)

    def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> bool:
        """Send an email. Returns True if accepted by remote SMTP server."""
        if not self.host:
            # Dev fallback: tests and local runs still see the message
            logger.info("[DEV-MAIL] To: %s Subject: %s\n%s", to, subject, text)
            return True

        msg = EmailMessage()
        if self.sender_name and "<" not in self.sender:
            msg["From"] = f"{self.sender_name} <{self.sender}>"
        else:
            msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")

        if not (self.user and self.password):
            logger.warning(
                "SMTP credentials not fully configured (user=%s, pass_present=%s); attempting unauthenticated send",
                bool(self.user), bool(self.password),
            )

        try:
            with smtplib.SMTP(self.host, self.port, timeout=20) as server:
                server.ehlo()
                try:
                    server.starttls()
                    server.ehlo()
                except smtplib.SMTPException as tls_err:
                    logger.warning("SMTP STARTTLS failed (%s); continuing without TLS", tls_err)

                if self.user and self.password:
                    server.login(self.user, self.password)

                server.send_message(msg)
            logger.info("SMTP mail accepted: to=%s from=%s host=%s:%s", to, self.sender, self.host, self.port)
            return True
        except smtplib.SMTPAuthenticationError as auth_err:
            logger.error("SMTP auth failed: code=%s msg=%s", auth_err.smtp_code, auth_err.smtp_error)
        except smtplib.SMTPRecipientsRefused as rr:
            logger.error("SMTP recipients refused: %s", rr.recipients)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP send failed to=%s host=%s:%s error=%s", to, self.host, self.port, e)
        return False


mailer = Mailer()
