"""Pydantic schemas for the HTTP API."""

from .deployment import DeploymentStatusRead, DeploymentSubmitted
from .project import ProjectCreate, ProjectCreated, ProjectRead
from .version import (
    AdvanceRequest,
    FileTree,
    FileUpload,
    PersistFilesRequest,
    PersistFilesResponse,
    StageOutcomeRead,
    VersionRead,
)
from .workspace import WorkspaceCreate, WorkspaceRead

__all__ = [
    "AdvanceRequest",
    "DeploymentStatusRead",
    "DeploymentSubmitted",
    "FileTree",
    "FileUpload",
    "PersistFilesRequest",
    "PersistFilesResponse",
    "ProjectCreate",
    "ProjectCreated",
    "ProjectRead",
    "StageOutcomeRead",
    "VersionRead",
    "WorkspaceCreate",
    "WorkspaceRead",
]
