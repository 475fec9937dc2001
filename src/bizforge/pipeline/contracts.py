"""Structural contracts for stage payloads.

Each stage's provider output must validate against its contract model. Only
fields the pipeline depends on are required; anything else the provider
returns is kept as-is.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError

from ..errors import SchemaViolation


class StageContract(BaseModel):
    """Base contract: extra fields are allowed and preserved."""

    model_config = ConfigDict(extra="allow")


class StrategyContract(StageContract):
    niche: str
    icp: str
    offer: str
    valueProp: str  # noqa: N815
    pricing: str | None = None


class ColorPalette(StageContract):
    primary: str | None = None
    background: str | None = None


class FontPair(StageContract):
    heading: str | None = None
    body: str | None = None


class BrandContract(StageContract):
    name: str
    tagline: str | None = None
    colors: ColorPalette
    fonts: FontPair


class StructureContract(StageContract):
    pages: list[Any]


class AssetsContract(StageContract):
    landingPageCopy: str  # noqa: N815
    socialPack: list[Any]  # noqa: N815


class AgentContract(StageContract):
    persona: str
    guardrails: str | list[str]


class ValidationContract(StageContract):
    isValid: StrictBool  # noqa: N815
    score: float = Field(ge=0.0, le=1.0)
    errors: list[str] = []


def validate_payload(contract: type[StageContract], payload: Any) -> dict[str, Any]:
    """Validate ``payload`` against ``contract`` and return it as a plain dict.

    Raises:
        SchemaViolation: payload is not an object or misses required fields.
    """
    if not isinstance(payload, dict):
        raise SchemaViolation(f"Expected a JSON object, got {type(payload).__name__}")
    try:
        model = contract.model_validate(payload)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise SchemaViolation(
            f"{contract.__name__} violated: {', '.join(fields)}"
        ) from e
    return model.model_dump(mode="json", exclude_unset=True)
