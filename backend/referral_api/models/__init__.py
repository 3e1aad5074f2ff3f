from .enums import (
    EnrollmentStatus,
    FolderAccessLevel,
    FolderUserRole,
    LinkStructure,
    RewardEvent,
    RewardType,
    WorkspaceRole,
)
from .importer import ImporterCredential
from .link import Link
from .onboarding import ProgramOnboarding
from .partner import Partner, ProgramEnrollment
from .program import COOKIE_LENGTH_OPTIONS, Program, ProgramPublic, Reward
from .user import User
from .workspace import Domain, Folder, FolderPublic, FolderUser, Workspace, WorkspaceUser

__all__ = [
    "COOKIE_LENGTH_OPTIONS",
    "Domain",
    "EnrollmentStatus",
    "Folder",
    "FolderAccessLevel",
    "FolderPublic",
    "FolderUser",
    "FolderUserRole",
    "ImporterCredential",
    "Link",
    "LinkStructure",
    "Partner",
    "Program",
    "ProgramEnrollment",
    "ProgramOnboarding",
    "ProgramPublic",
    "Reward",
    "RewardEvent",
    "RewardType",
    "User",
    "Workspace",
    "WorkspaceRole",
    "WorkspaceUser",
]
