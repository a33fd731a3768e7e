"""LLM provider layer backing the place services."""

from place_extractor.llm.config import LLMConfig
from place_extractor.llm.providers.base import BaseLLMProvider
from place_extractor.llm.providers.openai import OpenAIConfig, OpenAIProvider

__all__ = [
    "LLMConfig",
    "BaseLLMProvider",
    "OpenAIConfig",
    "OpenAIProvider",
]
