from __future__ import annotations

import logging
import re


EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

# Common API key/token patterns (loose on purpose)
TOKEN_LIKE_RE = re.compile(
    r"(?i)"
    r"("
    r"(?:bearer\s+[A-Za-z0-9._~+\-/]+=*)"    # Authorization: Bearer ...
    r"|(?:api[_-]?key\s*[=:]\s*\w{12,})"    # api_key=...
    r"|(?:api[_-]?token\s*[=:]\s*\w{12,})"  # api-token=...
    r"|(?:token\s*[=:]\s*\w{12,})"          # token=...
    r")"
)

AUTH_HEADER_RE = re.compile(r"(?im)^(authorization:\s*)(.+)$")


class RedactionFilter(logging.Filter):
    """Logging filter that masks emails, Authorization values and token-like secrets.

    Partner invitee addresses flow through the provisioning logs, so the
    filter sits on the root logger as well as on every handler.
    """

    def __init__(self, replacement: str = "***") -> None:
        super().__init__()
        self.replacement = replacement

    def filter(self, record: logging.LogRecord) -> bool:  # always keep record
        try:
            original = record.getMessage()
        except Exception:
            return True
        msg = AUTH_HEADER_RE.sub(lambda m: f"{m.group(1)}{self.replacement}", original)
        msg = EMAIL_RE.sub(self.replacement, msg)
        msg = TOKEN_LIKE_RE.sub(self.replacement, msg)
        if msg != original:
            record.msg = msg
            record.args = ()
        return True


def install_redaction_filter(logger: logging.Logger | None = None, *, replacement: str = "***") -> RedactionFilter:
    """Attach the redaction filter to the logger and all of its handlers (root if None)."""
    logger = logger or logging.getLogger()
    filt = RedactionFilter(replacement=replacement)
    logger.addFilter(filt)
    for h in list(logger.handlers):
        h.addFilter(filt)
    return filt

__all__ = ["RedactionFilter", "install_redaction_filter"]
