"""Enumeration types shared by program, reward, link and partner models."""
from enum import Enum


class LinkStructure(str, Enum):
    """Naming convention used to build partner-specific tracked URLs."""
    short = "short"
    query = "query"
    path = "path"


class RewardEvent(str, Enum):
    click = "click"
    lead = "lead"
    sale = "sale"


class RewardType(str, Enum):
    percentage = "percentage"
    flat = "flat"


class EnrollmentStatus(str, Enum):
    invited = "invited"
    pending = "pending"
    approved = "approved"
    declined = "declined"
    banned = "banned"


class FolderAccessLevel(str, Enum):
    read = "read"
    write = "write"


class FolderUserRole(str, Enum):
    owner = "owner"
    editor = "editor"
    viewer = "viewer"


class WorkspaceRole(str, Enum):
    owner = "owner"
    member = "member"
