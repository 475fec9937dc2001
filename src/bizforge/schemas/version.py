"""Version and stage schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Base64Bytes, ConfigDict, Field

from ..models import PipelineStage
from ..pipeline.orchestrator import OutcomeStatus


class VersionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    user_id: str
    stage: PipelineStage
    strategy: dict[str, Any] | None = None
    brand: dict[str, Any] | None = None
    structure: dict[str, Any] | None = None
    assets: dict[str, Any] | None = None
    agent: dict[str, Any] | None = None
    validation: dict[str, Any] | None = None
    is_validated: bool
    files_stored: bool
    last_build: dict[str, Any] | None = None
    timestamp: datetime


class AdvanceRequest(BaseModel):
    """Run the version's current stage.

    ``stage`` is optional; when given it must equal the current stage.
    """

    stage: PipelineStage | None = None
    context: dict[str, Any] = Field(default_factory=dict)


class StageOutcomeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    version_id: str
    stage: PipelineStage
    next_stage: PipelineStage
    status: OutcomeStatus
    payload: dict[str, Any]
    model_id: str


class FileUpload(BaseModel):
    path: str = Field(..., min_length=1)
    content_base64: Base64Bytes


class FileTree(BaseModel):
    files: list[FileUpload] = Field(default_factory=list)


class PersistFilesRequest(BaseModel):
    source: FileTree | None = None
    dist: FileTree | None = None


class PersistFilesResponse(BaseModel):
    ok: bool = True
    files: int
