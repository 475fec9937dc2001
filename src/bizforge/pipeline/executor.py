"""Stage executor: one provider call per attempt, validated against the stage contract."""

from dataclasses import dataclass
import json
from typing import Any

import structlog

from ..clients.llm import GenerativeProvider
from ..errors import GenerationExhausted
from ..models import PipelineStage
from .contracts import validate_payload
from .stages import stage_spec

logger = structlog.get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


@dataclass(frozen=True)
class StageResult:
    stage: PipelineStage
    payload: dict[str, Any]
    model_id: str
    input_tokens: int | None
    output_tokens: int | None
    attempts: int


def build_prompt(stage: PipelineStage, context: dict[str, Any]) -> str:
    """Deterministic prompt for ``stage``: same stage and context give the same text."""
    return (
        "You are an AI Architect. "
        f"Stage: {stage.value}. "
        f"Idea: {context.get('idea', '')}. "
        f"Context: {json.dumps(context, sort_keys=True, default=str)}."
    )


class StageExecutor:
    """Runs a single pipeline stage against the generative provider.

    Attempts are retried immediately, without delay, up to ``max_attempts``.
    Provider errors and contract violations both consume an attempt. Nothing
    is persisted here.
    """

    def __init__(self, provider: GenerativeProvider, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.provider = provider
        self.max_attempts = max_attempts

    async def execute(
        self, stage: PipelineStage, context: dict[str, Any], model: str
    ) -> StageResult:
        spec = stage_spec(stage)
        prompt = build_prompt(stage, context)
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                generation = await self.provider.generate(model, prompt, spec.contract)
                payload = validate_payload(spec.contract, generation.payload)
            except Exception as e:
                last_error = e
                logger.warning(
                    "stage_attempt_failed",
                    stage=stage.value,
                    model=model,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            return StageResult(
                stage=stage,
                payload=payload,
                model_id=model,
                input_tokens=generation.input_tokens,
                output_tokens=generation.output_tokens,
                attempts=attempt,
            )

        logger.error(
            "stage_generation_exhausted",
            stage=stage.value,
            model=model,
            attempts=self.max_attempts,
        )
        raise GenerationExhausted(stage.value, self.max_attempts, last_error) from last_error
