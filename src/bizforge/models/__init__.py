"""Database models package."""

from .base import Base
from .deployment import TERMINAL_STATUSES, DeploymentRecord, DeploymentStatus
from .ledger import LedgerEntry
from .project import Project
from .user import User, UserRole, UserStatus
from .version import PipelineStage, Version
from .workspace import Workspace

__all__ = [
    "Base",
    "DeploymentRecord",
    "DeploymentStatus",
    "LedgerEntry",
    "PipelineStage",
    "Project",
    "TERMINAL_STATUSES",
    "User",
    "UserRole",
    "UserStatus",
    "Version",
    "Workspace",
]
