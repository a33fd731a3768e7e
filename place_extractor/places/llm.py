"""Place services answered by an LLM with structured JSON output."""

from typing import Any

from pydantic import ValidationError

from place_extractor.core.config import Settings
from place_extractor.core.logging import get_logger
from place_extractor.llm.providers.base import BaseLLMProvider
from place_extractor.llm.providers.openai import (
    OpenAIConfig,
    OpenAIProvider,
    json_schema_format,
)
from place_extractor.llm.providers.types import GenerateConfig
from place_extractor.models import Candidate, EnrichedDetails, LookupResult
from place_extractor.places.prompts import (
    FIND_MATCHES_SCHEMA,
    PLACE_DETAILS_SCHEMA,
    find_matches_prompt,
    place_details_prompt,
)
from place_extractor.places.service import PlaceServiceError

logger = get_logger().bind(module="llm_place_service")

MAX_DETAIL_ERROR_LENGTH = 100


class LLMPlaceService:
    """Implements the place lookup and detail contract on top of an LLM."""

    def __init__(
        self,
        provider: BaseLLMProvider[Any, Any],
        max_matches: int = 3,
        temperature: float = 0.2,
    ) -> None:
        self.provider = provider
        self.max_matches = max_matches
        self.generate_config = GenerateConfig(temperature=temperature)

    async def _generate_json(
        self, prompt: str, name: str, schema: dict[str, Any]
    ) -> dict[str, Any]:
        """Run a structured prompt and return the decoded object.

        Raises:
            PlaceServiceError: If the call fails or the reply is not a JSON object
        """
        try:
            response = await self.provider.generate(
                prompt,
                config=self.generate_config,
                format=json_schema_format(name, schema),
            )
        except ValueError as e:
            raise PlaceServiceError(str(e)) from e
        if not isinstance(response.parsed, dict):
            raise PlaceServiceError("Model did not return a JSON object.")
        return response.parsed

    async def find_matches(self, candidate: Candidate) -> LookupResult:
        """Look up up to ``max_matches`` places for a candidate."""
        try:
            data = await self._generate_json(
                find_matches_prompt(candidate, self.max_matches),
                "place_matches",
                FIND_MATCHES_SCHEMA,
            )
            if data.get("error"):
                raise PlaceServiceError(str(data["error"]))
            result = LookupResult(matches=data.get("matches") or [])
        except (PlaceServiceError, ValidationError) as e:
            logger.error(
                "Finding place matches failed",
                main_name=candidate.main_name,
                hint_city=candidate.hint_city,
                error=str(e),
            )
            return LookupResult(error=str(e) or "Failed to find candidates.")

        if not result.matches:
            return LookupResult(error="No places found.")
        return LookupResult(matches=result.matches[: self.max_matches])

    async def get_details(self, external_id: str, context_name: str) -> EnrichedDetails:
        """Fetch names, mapcode, telephone and address for one place."""
        try:
            data = await self._generate_json(
                place_details_prompt(external_id, context_name),
                "place_details",
                PLACE_DETAILS_SCHEMA,
            )
            details = EnrichedDetails.model_validate(data)
            if details.error:
                raise PlaceServiceError(details.error)
        except (PlaceServiceError, ValidationError) as e:
            logger.error(
                "Enriching place failed", external_id=external_id, error=str(e)
            )
            message = str(e) or "An unknown error occurred during enrichment."
            return EnrichedDetails(error=message[:MAX_DETAIL_ERROR_LENGTH])
        return details


def build_place_service(config: Settings) -> LLMPlaceService:
    """Create the place service configured by ``LLM_PROVIDER``.

    Raises:
        ValueError: If the provider is not supported
    """
    if config.LLM_PROVIDER != "openai":
        raise ValueError(
            f"Unsupported LLM provider: {config.LLM_PROVIDER}. "
            "Supported providers: openai"
        )
    provider = OpenAIProvider(
        OpenAIConfig(
            model_name=config.LLM_MODEL_NAME,
            temperature=config.LLM_TEMPERATURE,
            max_tokens=config.LLM_MAX_TOKENS,
        ),
        base_url=config.LLM_BASE_URL,
    )
    return LLMPlaceService(
        provider,
        max_matches=config.LOOKUP_MAX_MATCHES,
        temperature=config.LLM_TEMPERATURE,
    )
