"""Domain errors raised by the program services.

Each carries a stable ``code`` and an HTTP ``status_code`` so the exception
handlers in ``referral_api.exceptions`` can render them without routers
having to translate every case.
"""
from __future__ import annotations

from typing import Any, Optional


class ProgramError(Exception):
    code = "program_error"
    status_code = 400

    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class MissingOnboardingData(ProgramError):
    code = "missing_onboarding_data"
    status_code = 409

    def __init__(self, workspace_id: str) -> None:
        super().__init__("Program onboarding data not found")
        self.workspace_id = workspace_id


class OnboardingValidationError(ProgramError):
    """Staged onboarding payload does not match the program schema."""
    code = "validation_error"
    status_code = 422


class DomainNotOwned(ProgramError):
    code = "domain_not_owned"
    status_code = 403

    def __init__(self, domain: str, workspace_id: str) -> None:
        super().__init__(f"Domain {domain} does not belong to this workspace")
        self.domain = domain
        self.workspace_id = workspace_id


class TransactionFailure(ProgramError):
    code = "transaction_failure"
    status_code = 500

    def __init__(self, message: str = "Failed to create program. Please try again.") -> None:
        super().__init__(message)


class ProgramNotFound(ProgramError):
    code = "not_found"
    status_code = 404

    def __init__(self, program_id: str) -> None:
        super().__init__("Program not found")
        self.program_id = program_id


class InvalidProgramUpdate(ProgramError):
    code = "invalid_update"
    status_code = 422


class PartnerAlreadyEnrolled(ProgramError):
    code = "already_enrolled"
    status_code = 409

    def __init__(self, email: str, program_id: str) -> None:
        super().__init__(f"Partner {email} is already enrolled in this program")
        self.program_id = program_id


__all__ = [
    "DomainNotOwned",
    "InvalidProgramUpdate",
    "MissingOnboardingData",
    "OnboardingValidationError",
    "PartnerAlreadyEnrolled",
    "ProgramError",
    "ProgramNotFound",
    "TransactionFailure",
]
