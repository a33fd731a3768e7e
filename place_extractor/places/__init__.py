"""External place lookup and detail services."""

from place_extractor.places.llm import LLMPlaceService, build_place_service
from place_extractor.places.service import PlaceService, PlaceServiceError

__all__ = [
    "LLMPlaceService",
    "PlaceService",
    "PlaceServiceError",
    "build_place_service",
]
