"""Pydantic schemas for caller-supplied options."""

from __future__ import annotations

from typing import Any, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from design2code import settings
from design2code.errors import ValidationError
from design2code.models import PromptStrategy


DEFAULT_INCLUDE_TYPES = ["COMPONENT", "INSTANCE", "FRAME", "TEXT"]
DEFAULT_EXCLUDE_TYPES = ["SLICE", "VECTOR", "BOOLEAN_OPERATION", "LINE", "REGULAR_POLYGON", "STAR"]


class FindOptions(BaseModel):
    """Tree walker filter."""
    include_types: List[str] = Field(default_factory=lambda: list(DEFAULT_INCLUDE_TYPES))
    exclude_types: List[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE_TYPES))
    min_size: float = Field(default=20, ge=0)
    max_size: float = Field(default=2000, gt=0)
    max_depth: int = Field(default=3, ge=0)
    max_components: int = Field(default=50, ge=1)

    @field_validator("include_types", "exclude_types")
    @classmethod
    def normalize_types(cls, types: List[str]) -> List[str]:
        return [str(t).strip().upper() for t in types if str(t).strip()]

    @model_validator(mode="after")
    def check_size_range(self) -> "FindOptions":
        if self.min_size > self.max_size:
            raise ValueError(f"min_size ({self.min_size}) exceeds max_size ({self.max_size})")
        return self


class SimplifyOptions(BaseModel):
    """Metadata simplifier bounds."""
    max_depth: int = Field(default=2, ge=0)
    max_children: int = Field(default=3, ge=0)
    include_detailed_text: bool = True
    include_effects: bool = True
    include_constraints: bool = False
    token_budget: int = Field(default=1000, ge=1)


class GenerationParams(BaseModel):
    """Per-call generation parameters."""
    strategy: PromptStrategy = PromptStrategy.DETAILED
    temperature: float = Field(default=settings.GENERATION_TEMPERATURE, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=settings.GENERATION_MAX_OUTPUT_TOKENS, ge=1)
    token_budget: int = Field(default=settings.PAGE_PROMPT_TOKEN_BUDGET, ge=1)
    strict_budget: bool = Field(
        default=False,
        description="Raise TokenBudgetExceededError instead of dispatching an over-budget last-resort prompt",
    )
    max_siblings: int = Field(default=3, ge=0)
    timeout: Optional[float] = Field(default=None, gt=0)


class StrategyRung(BaseModel):
    """One configuration on the strategy fallback ladder."""
    strategy: PromptStrategy
    token_budget: int = Field(..., ge=1)
    temperature: float = Field(default=settings.GENERATION_TEMPERATURE, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=settings.GENERATION_MAX_OUTPUT_TOKENS, ge=1)


_M = TypeVar("_M", bound=BaseModel)


def coerce_options(model: Type[_M], value: Union[_M, dict, None]) -> _M:
    """Accept a model instance, a plain dict or None (defaults).

    Pydantic failures are re-raised as the package ValidationError.
    """
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value or {})
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {model.__name__}: {_summarize(e)}") from e


def _summarize(error: PydanticValidationError) -> str:
    parts: List[str] = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "value"
        parts.append(f"{loc}: {item.get('msg', 'invalid')}")
    return "; ".join(parts)


def coerce_ladder(rungs: Any) -> List[StrategyRung]:
    if not rungs:
        raise ValidationError("Strategy ladder must contain at least one rung")
    return [coerce_options(StrategyRung, r) for r in rungs]
