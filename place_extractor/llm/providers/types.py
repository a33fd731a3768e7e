"""Type definitions for LLM providers."""

import copy
from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel, Field, field_validator


@dataclass
class GenerateConfig:
    """Configuration for generation requests."""

    temperature: float = 0.2
    max_tokens: int | None = None
    format: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not 0 <= self.temperature <= 1:
            raise ValueError("Temperature must be between 0 and 1")
        if self.max_tokens is not None and self.max_tokens < 1:
            raise ValueError("Max tokens must be positive")


class LLMResponse(BaseModel):
    """Standard response format for LLM generations."""

    text: str = Field(description="Generated text content")
    model: str = Field(description="Name of the model used")
    usage: dict[str, int] = Field(
        default_factory=dict, description="Token usage statistics"
    )
    parsed: Any | None = Field(
        default=None, description="Parsed structured output if format was specified"
    )

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        """Validate model field."""
        if not v or v.isspace():
            raise ValueError("Model name cannot be empty")
        return v

    @field_validator("usage", mode="before")
    @classmethod
    def validate_usage(cls, v: dict[str, Any] | None) -> dict[str, int]:
        """Coerce usage counters to non-negative integers."""
        result: dict[str, int] = {}
        for key, value in (v or {}).items():
            if not isinstance(value, int | float) or float(value) != int(value):
                raise ValueError("Usage values must be integers")
            if value < 0:
                raise ValueError("Usage values must be non-negative")
            result[key] = int(value)
        return result

    def model_post_init(self, _: Any) -> None:
        """Detach parsed output from the raw client response."""
        if self.parsed:
            self.parsed = copy.deepcopy(self.parsed)

    @property
    def content(self) -> str:
        """Get the generated text content."""
        return self.text

    def __str__(self) -> str:
        return self.text


LLMInput = Union[str, list[dict[str, Any]]]  # Text or chat messages
