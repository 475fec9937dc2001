"""Stage transition table.

Everything the orchestrator needs to know about a stage lives in
``STAGE_TABLE``: the version column its payload is stored in, the model tier
it runs on, and the contract its output must satisfy.
"""

from dataclasses import dataclass
from enum import Enum

from ..models import PipelineStage
from .contracts import (
    AgentContract,
    AssetsContract,
    BrandContract,
    StageContract,
    StrategyContract,
    StructureContract,
    ValidationContract,
)

# Validation thresholds, inclusive and independent of each other
VALIDITY_THRESHOLD = 0.7
BUILD_TEST_THRESHOLD = 0.8


class ModelTier(str, Enum):
    REASONING = "reasoning"
    STANDARD = "standard"


@dataclass(frozen=True)
class StageSpec:
    stage: PipelineStage
    field: str
    tier: ModelTier
    contract: type[StageContract]
    # Billed when the provider reports no usage
    estimated_input_tokens: int
    estimated_output_tokens: int


def _spec(stage, field, tier, contract) -> StageSpec:
    if tier is ModelTier.REASONING:
        return StageSpec(stage, field, tier, contract, 600, 1200)
    return StageSpec(stage, field, tier, contract, 300, 400)


STAGE_ORDER: tuple[PipelineStage, ...] = (
    PipelineStage.STRATEGY,
    PipelineStage.BRAND,
    PipelineStage.STRUCTURE,
    PipelineStage.ASSETS,
    PipelineStage.AGENT,
    PipelineStage.VALIDATE,
    PipelineStage.COMPLETE,
)

STAGE_TABLE: dict[PipelineStage, StageSpec] = {
    spec.stage: spec
    for spec in (
        _spec(PipelineStage.STRATEGY, "strategy", ModelTier.REASONING, StrategyContract),
        _spec(PipelineStage.BRAND, "brand", ModelTier.REASONING, BrandContract),
        _spec(PipelineStage.STRUCTURE, "structure", ModelTier.REASONING, StructureContract),
        _spec(PipelineStage.ASSETS, "assets", ModelTier.STANDARD, AssetsContract),
        _spec(PipelineStage.AGENT, "agent", ModelTier.STANDARD, AgentContract),
        _spec(PipelineStage.VALIDATE, "validation", ModelTier.REASONING, ValidationContract),
    )
}


def next_stage(stage: PipelineStage) -> PipelineStage:
    """Return the stage following ``stage``. COMPLETE has no successor."""
    if stage is PipelineStage.COMPLETE:
        raise ValueError("COMPLETE is terminal")
    return STAGE_ORDER[STAGE_ORDER.index(stage) + 1]


def stage_spec(stage: PipelineStage) -> StageSpec:
    try:
        return STAGE_TABLE[stage]
    except KeyError:
        raise ValueError(f"Stage {stage.value!r} is not executable") from None


def grade_validation(payload: dict) -> dict:
    """Apply the score thresholds to a validation payload.

    ``isValid`` gates the pipeline; ``buildTestPassed`` is advisory only.
    """
    score = float(payload["score"])
    return {
        **payload,
        "isValid": score >= VALIDITY_THRESHOLD,
        "buildTestPassed": score >= BUILD_TEST_THRESHOLD,
    }
