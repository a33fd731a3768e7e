"""LLM configuration."""

from typing import Any

from place_extractor.llm.base import BaseModelConfig


class LLMConfig(BaseModelConfig):
    """Configuration for LLM providers"""

    def __init__(
        self,
        model_name: str,
        temperature: float = 0.2,
        max_tokens: int | None = None,
        timeout: int = 60,
        supports_structured: bool = False,
        **kwargs: Any,
    ) -> None:
        """Initialize LLM config.

        Args:
            model_name: Name of the model to use
            temperature: Temperature for sampling (0-1)
            max_tokens: Maximum tokens to generate (>0)
            timeout: Request timeout in seconds (>0)
            supports_structured: Whether the model supports structured output
            **kwargs: Additional configuration parameters

        Raises:
            ValueError: If any parameters are invalid
        """
        if not model_name:
            raise ValueError("model_name is required")
        if timeout <= 0:
            raise ValueError("Timeout must be positive")

        super().__init__(
            context_length=128000,
            max_tokens=max_tokens,
            default_temp=temperature,
            supports_json=True,
            supports_structured=supports_structured,
        )
        self.model_name = model_name
        self.temperature = temperature
        self.timeout = timeout
