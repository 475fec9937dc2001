"""Project schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .version import VersionRead


class ProjectCreate(BaseModel):
    """Schema for submitting a business idea."""

    idea: str = Field(..., min_length=1)
    workspace_id: str


class ProjectRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    workspace_id: str
    idea: str
    current_version_id: str
    timestamp: datetime


class ProjectCreated(ProjectRead):
    """Project together with its first version."""

    version: VersionRead
