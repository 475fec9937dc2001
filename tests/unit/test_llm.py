from unittest.mock import AsyncMock, MagicMock, patch

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
import pytest

from bizforge.clients.llm import (
    OPENROUTER_BASE_URL,
    ChatModelProvider,
    LLMFactory,
    _strip_code_fence,
)
from bizforge.errors import ConfigurationError
from bizforge.pipeline.contracts import StrategyContract


class TestLLMFactory:
    def test_requires_api_key(self):
        with pytest.raises(ConfigurationError):
            LLMFactory.create_llm("google/gemini-2.5-pro", api_key="")

    def test_creates_openrouter_model(self):
        with patch("bizforge.clients.llm.ChatOpenAI") as chat_openai:
            LLMFactory.create_llm("google/gemini-2.5-pro", api_key="sk-test", temperature=0.2)

        kwargs = chat_openai.call_args.kwargs
        assert kwargs["base_url"] == OPENROUTER_BASE_URL
        assert kwargs["model"] == "google/gemini-2.5-pro"
        assert kwargs["temperature"] == 0.2  # noqa: PLR2004


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('{"a": 1}', '{"a": 1}'),
        ('```json\n{"a": 1}\n```', '{"a": 1}'),
        ('  ```\n{"a": 1}```  ', '{"a": 1}'),
    ],
)
def test_strip_code_fence(text, expected):
    assert _strip_code_fence(text) == expected


class TestChatModelProvider:
    @pytest.fixture
    def runnable(self):
        runnable = MagicMock()
        runnable.ainvoke = AsyncMock(
            return_value=AIMessage(
                content='```json\n{"niche": "coffee"}\n```',
                usage_metadata={"input_tokens": 150, "output_tokens": 90, "total_tokens": 240},
            )
        )
        return runnable

    @pytest.fixture
    def provider(self, runnable):
        provider = ChatModelProvider(api_key="sk-test")
        provider._runnables["model-a"] = runnable
        return provider

    @pytest.mark.asyncio
    async def test_generate_parses_json_and_usage(self, provider):
        generation = await provider.generate("model-a", "prompt text", StrategyContract)

        assert generation.payload == {"niche": "coffee"}
        assert generation.input_tokens == 150  # noqa: PLR2004
        assert generation.output_tokens == 90  # noqa: PLR2004

    @pytest.mark.asyncio
    async def test_generate_sends_schema_and_prompt(self, provider, runnable):
        await provider.generate("model-a", "prompt text", StrategyContract)

        system, human = runnable.ainvoke.call_args.args[0]
        assert isinstance(system, SystemMessage)
        assert "valueProp" in system.content
        assert isinstance(human, HumanMessage)
        assert human.content == "prompt text"

    @pytest.mark.asyncio
    async def test_missing_usage_is_none(self, provider, runnable):
        runnable.ainvoke.return_value = AIMessage(content='{"niche": "coffee"}')

        generation = await provider.generate("model-a", "prompt", StrategyContract)

        assert generation.input_tokens is None
        assert generation.output_tokens is None

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, provider, runnable):
        runnable.ainvoke.return_value = AIMessage(content="not json")

        with pytest.raises(ValueError):
            await provider.generate("model-a", "prompt", StrategyContract)

    def test_runnable_is_cached_per_model(self):
        provider = ChatModelProvider(api_key="sk-test")
        with patch("bizforge.clients.llm.ChatOpenAI") as chat_openai:
            first = provider._get_runnable("model-b")
            second = provider._get_runnable("model-b")

        assert first is second
        chat_openai.assert_called_once()
