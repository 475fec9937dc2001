"""Pipeline orchestrator.

Runs one stage per ``advance`` call against a version's current stage pointer.
The stage payload and the new pointer are written by a single conditional
UPDATE, so a reader never sees one without the other and two concurrent
advances of the same stage cannot both win.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy import update
import structlog

from ..database import SessionFactory
from ..errors import (
    AccountingFailure,
    GenerationExhausted,
    NotFound,
    PipelineStageFailure,
    StageConflict,
)
from ..logging_config import pipeline_context
from ..models import PipelineStage, Project, Version
from ..services.ledger import LedgerAccountant
from ..services.ownership import OwnershipGuard, ResourceKind
from .executor import StageExecutor, StageResult
from .stages import STAGE_ORDER, ModelTier, StageSpec, grade_validation, next_stage, stage_spec

logger = structlog.get_logger(__name__)


class OutcomeStatus(str, Enum):
    ADVANCED = "advanced"
    COMPLETED = "completed"
    # Validation ran but the version did not validate
    HALTED = "halted"


@dataclass(frozen=True)
class StageOutcome:
    version_id: str
    stage: PipelineStage
    next_stage: PipelineStage
    status: OutcomeStatus
    payload: dict[str, Any]
    model_id: str


class PipelineOrchestrator:
    def __init__(
        self,
        session_factory: SessionFactory,
        executor: StageExecutor,
        accountant: LedgerAccountant,
        guard: OwnershipGuard,
        reasoning_model: str,
        standard_model: str,
    ):
        self.session_factory = session_factory
        self.executor = executor
        self.accountant = accountant
        self.guard = guard
        self.models = {
            ModelTier.REASONING: reasoning_model,
            ModelTier.STANDARD: standard_model,
        }

    def model_for(self, stage: PipelineStage) -> str:
        return self.models[stage_spec(stage).tier]

    async def get_version(self, version_id: str, caller_id: str) -> Version:
        async with self.session_factory() as session:
            return await self.guard.authorize(session, caller_id, ResourceKind.VERSION, version_id)

    @staticmethod
    def build_context(
        idea: str,
        version: Version,
        current: PipelineStage,
        extra_context: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Merge the idea and every earlier stage payload over caller hints.

        Stored payloads take precedence over caller-supplied keys.
        """
        context = dict(extra_context or {})
        context["idea"] = idea
        for stage in STAGE_ORDER[: STAGE_ORDER.index(current)]:
            spec = stage_spec(stage)
            payload = getattr(version, spec.field)
            if payload is not None:
                context[spec.field] = payload
        return context

    async def advance(
        self,
        version_id: str,
        caller_id: str,
        stage: PipelineStage | None = None,
        extra_context: dict[str, Any] | None = None,
    ) -> StageOutcome:
        """Execute the version's current stage and persist the result.

        Args:
            version_id: Version to drive.
            caller_id: Must own the version.
            stage: Optional expected current stage; a mismatch is a conflict.
            extra_context: Caller hints merged under the stored context.

        Raises:
            NotFound, Forbidden: Ownership check failed.
            StageConflict: Version is complete, ``stage`` mismatches, or a
                concurrent advance already moved the pointer.
            PipelineStageFailure: Generation exhausted its attempts. The stage
                pointer is unchanged.
        """
        async with self.session_factory() as session:
            version = await self.guard.authorize(
                session, caller_id, ResourceKind.VERSION, version_id
            )
            project = await session.get(Project, version.project_id)
        if project is None:
            raise NotFound(f"Project {version.project_id} not found")

        current = PipelineStage(version.stage)
        if current is PipelineStage.COMPLETE:
            raise StageConflict(f"Version {version_id} has already completed the pipeline")
        if stage is not None and stage is not current:
            raise StageConflict(
                f"Version {version_id} is at '{current.value}', not '{stage.value}'"
            )

        model = self.model_for(current)
        context = self.build_context(project.idea, version, current, extra_context)
        with pipeline_context(version_id, current.value):
            return await self._run_stage(version_id, caller_id, project.id, current, model, context)

    async def _run_stage(
        self,
        version_id: str,
        caller_id: str,
        project_id: str,
        current: PipelineStage,
        model: str,
        context: dict[str, Any],
    ) -> StageOutcome:
        spec = stage_spec(current)
        log = logger.bind(model=model)
        log.info("stage_started")

        try:
            result = await self.executor.execute(current, context, model)
        except GenerationExhausted as e:
            log.error("pipeline_stage_failed", attempts=e.attempts, error=str(e.last_error))
            raise PipelineStageFailure(version_id, current.value, e) from e

        payload, new_stage, values = self._stage_update(spec, result)
        async with self.session_factory() as session, session.begin():
            updated = await session.execute(
                update(Version)
                .where(Version.id == version_id, Version.stage == current.value)
                .values(**values)
            )
            if updated.rowcount != 1:
                log.warning("stage_write_conflict")
                raise StageConflict(f"Version {version_id} was advanced concurrently")

        if current is PipelineStage.VALIDATE and not payload["isValid"]:
            status = OutcomeStatus.HALTED
            log.warning("pipeline_halted", score=payload["score"])
        elif new_stage is PipelineStage.COMPLETE:
            status = OutcomeStatus.COMPLETED
            log.info("pipeline_completed", score=payload["score"])
        else:
            status = OutcomeStatus.ADVANCED
            log.info("stage_completed", next_stage=new_stage.value, attempts=result.attempts)

        await self._record_usage(caller_id, project_id, spec, result)

        return StageOutcome(
            version_id=version_id,
            stage=current,
            next_stage=new_stage,
            status=status,
            payload=payload,
            model_id=model,
        )

    @staticmethod
    def _stage_update(
        spec: StageSpec, result: StageResult
    ) -> tuple[dict[str, Any], PipelineStage, dict[str, Any]]:
        """Return the stored payload, the new stage pointer and the column values."""
        if spec.stage is not PipelineStage.VALIDATE:
            new_stage = next_stage(spec.stage)
            values = {spec.field: result.payload, "stage": new_stage.value}
            return result.payload, new_stage, values

        payload = grade_validation(result.payload)
        # An invalid verdict keeps the pointer at VALIDATE so it can be re-run
        new_stage = PipelineStage.COMPLETE if payload["isValid"] else PipelineStage.VALIDATE
        values = {
            spec.field: payload,
            "stage": new_stage.value,
            "is_validated": payload["isValid"],
        }
        return payload, new_stage, values

    async def _record_usage(
        self, caller_id: str, project_id: str, spec: StageSpec, result: StageResult
    ) -> None:
        input_tokens = result.input_tokens
        output_tokens = result.output_tokens
        if input_tokens is None or output_tokens is None:
            input_tokens = spec.estimated_input_tokens
            output_tokens = spec.estimated_output_tokens

        try:
            await self.accountant.record(
                caller_id, project_id, result.model_id, input_tokens, output_tokens
            )
        except AccountingFailure as e:
            logger.error(
                "ledger_record_failed",
                user_id=caller_id,
                project_id=project_id,
                stage=spec.stage.value,
                error=str(e),
            )
