"""Unit tests for the stage executor retry loop."""

import pytest

from bizforge.errors import GenerationExhausted, SchemaViolation
from bizforge.models import PipelineStage
from bizforge.pipeline.contracts import StrategyContract
from bizforge.pipeline.executor import StageExecutor, build_prompt

from ..fakes import STAGE_PAYLOADS, ScriptedProvider

STRATEGY = STAGE_PAYLOADS[PipelineStage.STRATEGY]
CONTEXT = {"idea": "coffee subscription"}


class TestBuildPrompt:
    def test_is_deterministic(self):
        a = build_prompt(PipelineStage.BRAND, {"idea": "x", "strategy": {"b": 1, "a": 2}})
        b = build_prompt(PipelineStage.BRAND, {"strategy": {"a": 2, "b": 1}, "idea": "x"})

        assert a == b

    def test_names_stage_and_idea(self):
        prompt = build_prompt(PipelineStage.STRATEGY, CONTEXT)

        assert "Stage: Strategy blueprint." in prompt
        assert "Idea: coffee subscription." in prompt


class TestStageExecutor:
    @pytest.mark.asyncio
    async def test_first_attempt_success(self):
        provider = ScriptedProvider([STRATEGY], input_tokens=10, output_tokens=20)
        executor = StageExecutor(provider)

        result = await executor.execute(PipelineStage.STRATEGY, CONTEXT, "model-a")

        assert result.payload == STRATEGY
        assert result.attempts == 1
        assert (result.input_tokens, result.output_tokens) == (10, 20)
        assert provider.calls[0]["model"] == "model-a"
        assert provider.calls[0]["contract"] is StrategyContract

    @pytest.mark.asyncio
    async def test_retries_after_provider_error_and_schema_violation(self):
        provider = ScriptedProvider([RuntimeError("timeout"), {"niche": "only"}, STRATEGY])
        executor = StageExecutor(provider)

        result = await executor.execute(PipelineStage.STRATEGY, CONTEXT, "model-a")

        assert result.attempts == 3
        assert len(provider.calls) == 3
        # Every attempt sends the same prompt
        assert len({c["prompt"] for c in provider.calls}) == 1

    @pytest.mark.asyncio
    async def test_exhaustion_after_max_attempts(self):
        provider = ScriptedProvider([{"bad": 1}, {"bad": 2}, {"bad": 3}, STRATEGY])
        executor = StageExecutor(provider, max_attempts=3)

        with pytest.raises(GenerationExhausted) as exc_info:
            await executor.execute(PipelineStage.STRATEGY, CONTEXT, "model-a")

        assert exc_info.value.attempts == 3
        assert exc_info.value.stage == "Strategy blueprint"
        assert isinstance(exc_info.value.last_error, SchemaViolation)
        assert len(provider.calls) == 3

    @pytest.mark.asyncio
    async def test_usage_missing_is_passed_through_as_none(self):
        executor = StageExecutor(ScriptedProvider([STRATEGY]))

        result = await executor.execute(PipelineStage.STRATEGY, CONTEXT, "model-a")

        assert result.input_tokens is None
        assert result.output_tokens is None

    def test_max_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            StageExecutor(ScriptedProvider(), max_attempts=0)
