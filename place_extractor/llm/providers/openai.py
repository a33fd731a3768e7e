"""OpenAI-compatible provider with structured output support.

Requests go through an OpenAI-compatible endpoint (OpenRouter by default),
which lets the same client reach Gemini, GPT and other models.
"""

import json
import os
import re
from typing import Any, cast

from openai import AsyncOpenAI
from openai._exceptions import OpenAIError
from openai.types.chat.chat_completion import ChatCompletion
from openai.types.completion_usage import CompletionUsage

from place_extractor.core.config import settings
from place_extractor.core.logging import get_logger
from place_extractor.llm.config import LLMConfig
from place_extractor.llm.providers.base import BaseLLMProvider
from place_extractor.llm.providers.types import GenerateConfig, LLMInput, LLMResponse

logger = get_logger().bind(module="openai_provider")

_PLACEHOLDER_KEYS = ("", "sk-", "your_api_key_here")


def _extract_error_message(error: Any) -> str:
    """Pull a readable message out of an API error payload.

    OpenRouter nests the upstream provider error as a JSON string under
    ``metadata.raw``; plain OpenAI errors carry ``message`` directly or
    inside an ``error`` object.

    Args:
        error: API error response

    Returns:
        str: Error message
    """
    if not isinstance(error, dict):
        return str(error)

    metadata = error.get("metadata")
    raw = metadata.get("raw") if isinstance(metadata, dict) else None
    if raw:
        try:
            upstream = json.loads(raw)
            return str(upstream["error"]["message"])
        except (json.JSONDecodeError, KeyError, TypeError):
            logger.debug("Could not parse upstream error payload", raw=raw)

    if "message" in error:
        return str(error["message"])
    nested = error.get("error")
    if isinstance(nested, dict) and "message" in nested:
        return str(nested["message"])
    return str(error)


def _extract_json_from_markdown(text: str) -> str:
    """Extract JSON content from a markdown code block, if there is one."""
    json_block_match = re.search(r"```(?:json)?\s*\n(.*?)\n```", text, re.DOTALL)
    if json_block_match:
        return json_block_match.group(1).strip()
    return text


def _validate_usage(usage: CompletionUsage | dict[str, Any] | None) -> dict[str, int]:
    if usage is None:
        return {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
    if isinstance(usage, CompletionUsage):
        usage = usage.model_dump()
    return {
        "prompt_tokens": int(usage.get("prompt_tokens") or 0),
        "completion_tokens": int(usage.get("completion_tokens") or 0),
        "total_tokens": int(usage.get("total_tokens") or 0),
    }


def json_schema_format(name: str, schema: dict[str, Any]) -> dict[str, Any]:
    """Wrap a JSON schema in the structured-output envelope."""
    return {
        "type": "json_schema",
        "json_schema": {"name": name, "schema": schema, "strict": True},
    }


class OpenAIConfig(LLMConfig):
    """Configuration for OpenAI provider"""

    def __init__(
        self,
        model_name: str,
        temperature: float = 0.2,
        max_tokens: int | None = None,
    ) -> None:
        super().__init__(
            model_name=model_name,
            temperature=temperature,
            max_tokens=max_tokens,
            supports_structured=True,
        )


class OpenAIProvider(BaseLLMProvider[AsyncOpenAI, OpenAIConfig]):
    """OpenAI-compatible chat completion provider"""

    def __init__(
        self,
        config: OpenAIConfig,
        api_key: str | None = None,
        base_url: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize the provider

        Args:
            config: Provider configuration
            api_key: API key for authentication
            base_url: Base URL for API endpoint
            headers: Additional HTTP headers
        """
        self.config = config
        self._client: AsyncOpenAI | None = None
        super().__init__(
            model_name=config.model_name,
            api_key=api_key,
            base_url=base_url or settings.LLM_BASE_URL,
            headers=headers or {"X-Title": settings.app_name},
        )

    def _init_config(self, **kwargs: Any) -> OpenAIConfig:
        return self.config

    @property
    def environment_key(self) -> str:
        return "OPENROUTER_API_KEY"

    @property
    def api_key(self) -> str | None:
        """Get the API key from explicit argument, settings or environment."""
        if self._api_key is not None:
            return self._api_key
        api_key = settings.OPENROUTER_API_KEY
        if api_key and api_key not in _PLACEHOLDER_KEYS:
            return api_key
        return os.environ.get(self.environment_key)

    @property
    def model(self) -> AsyncOpenAI:
        """Get or create the OpenAI client instance."""
        if self._client is None:
            api_key = self.api_key
            if not api_key:
                raise ValueError("API key is required")
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=self.base_url,
                default_headers=self.headers,
                timeout=self.config.timeout,
            )
        return self._client

    def _build_api_params(
        self,
        prompt: LLMInput,
        config: GenerateConfig | None = None,
        format: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Build parameters for the chat completion call.

        Args:
            prompt: Text prompt or chat messages
            config: Generation configuration
            format: Optional structured-output envelope from ``json_schema_format``

        Returns:
            dict[str, Any]: API parameters
        """
        messages = (
            [{"role": "user", "content": prompt}] if isinstance(prompt, str) else prompt
        )
        params: dict[str, Any] = {
            "model": self.config.model_name,
            "messages": messages,
            "temperature": config.temperature if config else self.config.temperature,
        }
        max_tokens = (config.max_tokens if config else None) or self.config.max_tokens
        if max_tokens is not None:
            params["max_tokens"] = max_tokens

        schema_format = format or (config.format if config else None)
        if schema_format and schema_format.get("type") == "json_schema":
            json_schema = schema_format.get("json_schema", {})
            if "schema" not in json_schema:
                raise ValueError("Invalid JSON schema: missing 'schema' field")
            params["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": json_schema.get("name", "response"),
                    "schema": json_schema["schema"],
                    "strict": json_schema.get("strict", True),
                },
            }
        return params

    def _process_api_response(
        self, result: ChatCompletion, structured: bool
    ) -> LLMResponse:
        error = getattr(result, "error", None)
        if error:
            raise ValueError(f"Error generating completion: {_extract_error_message(error)}")

        if not result.choices or not result.choices[0].message:
            raise ValueError("Error generating completion: Empty response from model")

        content = _extract_json_from_markdown(
            str(result.choices[0].message.content or "")
        ).strip()
        parsed = None
        if structured and content:
            try:
                parsed = json.loads(content)
            except json.JSONDecodeError:
                logger.warning("Model returned invalid JSON", content=content[:200])

        return LLMResponse(
            text=content,
            model=self.config.model_name,
            usage=_validate_usage(result.usage),
            parsed=parsed,
        )

    async def generate(
        self,
        prompt: LLMInput,
        config: GenerateConfig | None = None,
        format: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate a completion.

        Args:
            prompt: The prompt to generate from
            config: Generation configuration
            format: Structured-output envelope; when given, ``parsed`` holds
                the decoded JSON (None if the model returned invalid JSON)
            **kwargs: Unused

        Returns:
            LLMResponse: The generated response

        Raises:
            ValueError: If the request fails or the model returns nothing
        """
        params = self._build_api_params(prompt, config, format)
        logger.debug(
            "Making API request",
            base_url=self.base_url,
            params=json.dumps({k: v for k, v in params.items() if k != "messages"}),
        )
        try:
            result = cast(
                ChatCompletion, await self.model.chat.completions.create(**params)
            )
        except OpenAIError as e:
            logger.error("Error in API call", exc_info=e)
            raise ValueError(f"Error generating completion: {e}") from e

        return self._process_api_response(result, "response_format" in params)
