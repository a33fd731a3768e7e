"""Unit tests for OpenAI provider."""

import json
from unittest.mock import AsyncMock, MagicMock, PropertyMock, patch

import pytest
from openai import OpenAIError
from openai.types.completion_usage import CompletionUsage

from place_extractor.llm.providers.openai import (
    OpenAIConfig,
    OpenAIProvider,
    _extract_error_message,
    _extract_json_from_markdown,
    json_schema_format,
)
from place_extractor.llm.providers.types import GenerateConfig
from place_extractor.places.prompts import PLACE_DETAILS_SCHEMA


@pytest.fixture
def openai_provider() -> OpenAIProvider:
    """Create OpenAI provider with test config."""
    return OpenAIProvider(
        OpenAIConfig(model_name="google/gemini-2.5-flash"),
        api_key="test-api-key-123",
        base_url="https://openrouter.ai/api/v1",
        headers={"X-Title": "Japan Place Extractor"},
    )


@pytest.fixture
def mock_openai_client() -> MagicMock:
    """Create a mock OpenAI client."""
    mock_client = MagicMock()
    mock_client.chat = MagicMock()
    mock_client.chat.completions = MagicMock()
    return mock_client


def make_completion(content: str | None, error: object = None) -> MagicMock:
    mock_response = MagicMock()
    mock_response.choices = [MagicMock(message=MagicMock(content=content))]
    mock_response.error = error
    mock_response.usage = CompletionUsage(
        prompt_tokens=10, completion_tokens=5, total_tokens=15
    )
    return mock_response


def test_openai_config_defaults() -> None:
    """Test OpenAI config defaults."""
    config = OpenAIConfig(model_name="google/gemini-2.5-flash")
    assert config.model_name == "google/gemini-2.5-flash"
    assert config.temperature == 0.2
    assert config.max_tokens is None
    assert config.supports_structured is True


def test_openai_config_rejects_bad_temperature() -> None:
    with pytest.raises(ValueError):
        OpenAIConfig(model_name="google/gemini-2.5-flash", temperature=1.5)


def test_openai_provider_init(openai_provider: OpenAIProvider) -> None:
    """Test OpenAI provider initialization."""
    assert openai_provider.model_name == "google/gemini-2.5-flash"
    assert openai_provider.api_key == "test-api-key-123"
    assert openai_provider.base_url == "https://openrouter.ai/api/v1"
    assert openai_provider.headers["X-Title"] == "Japan Place Extractor"
    assert openai_provider.supports_structured_output()


def test_missing_api_key_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    provider = OpenAIProvider(OpenAIConfig(model_name="google/gemini-2.5-flash"))

    with patch("place_extractor.llm.providers.openai.settings") as mock_settings:
        mock_settings.OPENROUTER_API_KEY = None
        with pytest.raises(ValueError, match="API key is required"):
            _ = provider.model


def test_api_key_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENROUTER_API_KEY", "env-key")
    provider = OpenAIProvider(OpenAIConfig(model_name="google/gemini-2.5-flash"))

    with patch("place_extractor.llm.providers.openai.settings") as mock_settings:
        mock_settings.OPENROUTER_API_KEY = "your_api_key_here"
        assert provider.api_key == "env-key"


@pytest.mark.asyncio
async def test_openai_generate_text(
    openai_provider: OpenAIProvider, mock_openai_client: MagicMock
) -> None:
    """Test text generation with mocked API."""
    mock_openai_client.chat.completions.create = AsyncMock(
        return_value=make_completion("Konnichiwa!")
    )

    with patch.object(OpenAIProvider, "model", new_callable=PropertyMock) as mock_model:
        mock_model.return_value = mock_openai_client

        response = await openai_provider.generate("Say hello in Japanese.")

    assert response.text == "Konnichiwa!"
    assert response.parsed is None
    assert response.usage == {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}
    params = mock_openai_client.chat.completions.create.call_args.kwargs
    assert params["messages"] == [{"role": "user", "content": "Say hello in Japanese."}]
    assert "response_format" not in params


@pytest.mark.asyncio
async def test_openai_generate_structured(
    openai_provider: OpenAIProvider, mock_openai_client: MagicMock
) -> None:
    """Test structured output generation with mocked API."""
    payload = {
        "name_en": "Aso Shrine",
        "name_ja": "阿蘇神社",
        "mapcode": "256 345 678*12",
        "telephone": "",
        "address": "Aso, Kumamoto",
        "error": "",
    }
    mock_openai_client.chat.completions.create = AsyncMock(
        return_value=make_completion(json.dumps(payload, ensure_ascii=False))
    )

    with patch.object(OpenAIProvider, "model", new_callable=PropertyMock) as mock_model:
        mock_model.return_value = mock_openai_client

        response = await openai_provider.generate(
            "Details please",
            config=GenerateConfig(temperature=0.1),
            format=json_schema_format("place_details", PLACE_DETAILS_SCHEMA),
        )

    assert response.parsed == payload
    params = mock_openai_client.chat.completions.create.call_args.kwargs
    assert params["temperature"] == 0.1
    assert params["response_format"]["json_schema"]["name"] == "place_details"
    assert params["response_format"]["json_schema"]["strict"] is True


@pytest.mark.asyncio
async def test_openai_generate_structured_from_config(
    openai_provider: OpenAIProvider, mock_openai_client: MagicMock
) -> None:
    """Test structured output generation with format in config."""
    mock_openai_client.chat.completions.create = AsyncMock(
        return_value=make_completion('```json\n{"matches": [], "error": "none"}\n```')
    )

    with patch.object(OpenAIProvider, "model", new_callable=PropertyMock) as mock_model:
        mock_model.return_value = mock_openai_client

        response = await openai_provider.generate(
            "Find places",
            config=GenerateConfig(
                format=json_schema_format("place_matches", {"type": "object"})
            ),
        )

    assert response.parsed == {"matches": [], "error": "none"}


@pytest.mark.asyncio
async def test_invalid_json_leaves_parsed_empty(
    openai_provider: OpenAIProvider, mock_openai_client: MagicMock
) -> None:
    mock_openai_client.chat.completions.create = AsyncMock(
        return_value=make_completion("I could not find that place.")
    )

    with patch.object(OpenAIProvider, "model", new_callable=PropertyMock) as mock_model:
        mock_model.return_value = mock_openai_client

        response = await openai_provider.generate(
            "Find places", format=json_schema_format("place_matches", {"type": "object"})
        )

    assert response.parsed is None
    assert response.text == "I could not find that place."


@pytest.mark.asyncio
async def test_schema_without_body_is_rejected(openai_provider: OpenAIProvider) -> None:
    with pytest.raises(ValueError, match="missing 'schema'"):
        await openai_provider.generate(
            "Find places", format={"type": "json_schema", "json_schema": {"name": "x"}}
        )


@pytest.mark.asyncio
async def test_api_error_becomes_value_error(
    openai_provider: OpenAIProvider, mock_openai_client: MagicMock
) -> None:
    mock_openai_client.chat.completions.create = AsyncMock(
        side_effect=OpenAIError("rate limited")
    )

    with patch.object(OpenAIProvider, "model", new_callable=PropertyMock) as mock_model:
        mock_model.return_value = mock_openai_client

        with pytest.raises(ValueError, match="Error generating completion: rate limited"):
            await openai_provider.generate("Test")


@pytest.mark.asyncio
async def test_error_payload_in_response(
    openai_provider: OpenAIProvider, mock_openai_client: MagicMock
) -> None:
    upstream = json.dumps({"error": {"message": "Provider overloaded"}})
    mock_openai_client.chat.completions.create = AsyncMock(
        return_value=make_completion(None, error={"metadata": {"raw": upstream}})
    )

    with patch.object(OpenAIProvider, "model", new_callable=PropertyMock) as mock_model:
        mock_model.return_value = mock_openai_client

        with pytest.raises(ValueError, match="Provider overloaded"):
            await openai_provider.generate("Test")


@pytest.mark.asyncio
async def test_empty_response(
    openai_provider: OpenAIProvider, mock_openai_client: MagicMock
) -> None:
    mock_response = make_completion(None)
    mock_response.choices = []
    mock_openai_client.chat.completions.create = AsyncMock(return_value=mock_response)

    with patch.object(OpenAIProvider, "model", new_callable=PropertyMock) as mock_model:
        mock_model.return_value = mock_openai_client

        with pytest.raises(ValueError, match="Empty response"):
            await openai_provider.generate("Test")


@pytest.mark.parametrize(
    "error,expected",
    [
        ({"message": "Bad request"}, "Bad request"),
        ({"error": {"message": "Invalid key"}}, "Invalid key"),
        ({"metadata": {"raw": "not json"}, "message": "Fallback"}, "Fallback"),
        ("plain text", "plain text"),
    ],
)
def test_extract_error_message(error: object, expected: str) -> None:
    assert _extract_error_message(error) == expected


def test_extract_json_from_markdown() -> None:
    assert _extract_json_from_markdown('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert _extract_json_from_markdown('{"a": 1}') == '{"a": 1}'
