"""Generative-content provider backed by LangChain chat models.

Models are reached through OpenRouter, which exposes the OpenAI chat API for
every supported vendor, so a single ``ChatOpenAI`` configuration covers both
the reasoning and the standard tier.
"""

from dataclasses import dataclass
import json
from typing import Any, Protocol

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI
from pydantic import BaseModel
import structlog

from ..errors import ConfigurationError

logger = structlog.get_logger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


@dataclass(frozen=True)
class Generation:
    """Raw provider output plus reported token usage (None when not reported)."""

    payload: Any
    input_tokens: int | None = None
    output_tokens: int | None = None


class GenerativeProvider(Protocol):
    async def generate(
        self, model: str, prompt: str, output_contract: type[BaseModel]
    ) -> Generation: ...


class LLMFactory:
    """Creates chat model instances for a model identifier."""

    @staticmethod
    def create_llm(
        model_id: str,
        api_key: str,
        temperature: float = 0.7,
        app_name: str = "bizforge",
    ) -> ChatOpenAI:
        """Create an OpenRouter-backed chat model.

        Raises:
            ConfigurationError: If no API key is configured.
        """
        if not api_key:
            raise ConfigurationError("OPEN_ROUTER_KEY is not configured")

        logger.info("llm_created", model=model_id, temperature=temperature)
        return ChatOpenAI(
            base_url=OPENROUTER_BASE_URL,
            api_key=api_key,
            model=model_id,
            temperature=temperature,
            default_headers={"X-Title": app_name},
        )


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0]
    return text.strip()


class ChatModelProvider:
    """``GenerativeProvider`` that asks a chat model for a JSON object.

    The output contract is rendered as JSON schema into the system message and
    the request is sent in JSON mode. Validation against the contract is left to
    the caller.
    """

    def __init__(self, api_key: str, temperature: float = 0.7):
        self.api_key = api_key
        self.temperature = temperature
        self._runnables: dict[str, Runnable] = {}

    def _get_runnable(self, model: str) -> Runnable:
        if model not in self._runnables:
            llm = LLMFactory.create_llm(model, self.api_key, self.temperature)
            self._runnables[model] = llm.bind(response_format={"type": "json_object"})
        return self._runnables[model]

    async def generate(
        self, model: str, prompt: str, output_contract: type[BaseModel]
    ) -> Generation:
        schema = json.dumps(output_contract.model_json_schema(), sort_keys=True)
        messages = [
            SystemMessage(
                content=(
                    "Respond with a single JSON object that conforms to this JSON schema:\n"
                    f"{schema}"
                )
            ),
            HumanMessage(content=prompt),
        ]
        response = await self._get_runnable(model).ainvoke(messages)

        content = response.content if isinstance(response.content, str) else ""
        payload = json.loads(_strip_code_fence(content) or "{}")

        usage = getattr(response, "usage_metadata", None) or {}
        return Generation(
            payload=payload,
            input_tokens=usage.get("input_tokens"),
            output_tokens=usage.get("output_tokens"),
        )
