"""Versions router: pipeline stages and artifact upload."""

from fastapi import APIRouter, Depends

from ..clients.storage import FileBlob
from ..dependencies import AppContainer, get_container, get_current_user
from ..models import User, Version
from ..pipeline.orchestrator import StageOutcome
from ..schemas import (
    AdvanceRequest,
    FileTree,
    PersistFilesRequest,
    PersistFilesResponse,
    StageOutcomeRead,
    VersionRead,
)

router = APIRouter(prefix="/versions", tags=["versions"])


def _blobs(tree: FileTree | None) -> list[FileBlob] | None:
    if tree is None:
        return None
    return [FileBlob(path=f.path, data=f.content_base64) for f in tree.files]


@router.get("/{version_id}", response_model=VersionRead)
async def get_version(
    version_id: str,
    user: User = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> Version:
    """Get a version owned by the caller."""
    return await container.orchestrator.get_version(version_id, user.id)


@router.post("/{version_id}/advance", response_model=StageOutcomeRead)
async def advance_stage(
    version_id: str,
    advance_in: AdvanceRequest | None = None,
    user: User = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> StageOutcome:
    """Run the version's current pipeline stage.

    A failed validation is a normal response with ``status: "halted"``.
    """
    advance_in = advance_in or AdvanceRequest()
    return await container.orchestrator.advance(
        version_id,
        user.id,
        stage=advance_in.stage,
        extra_context=advance_in.context,
    )


@router.post("/{version_id}/files", response_model=PersistFilesResponse)
async def persist_files(
    version_id: str,
    files_in: PersistFilesRequest,
    user: User = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> PersistFilesResponse:
    """Upload generated source and dist trees for a version."""
    uploaded = await container.artifacts.persist(
        version_id, user.id, source=_blobs(files_in.source), dist=_blobs(files_in.dist)
    )
    return PersistFilesResponse(files=uploaded)
