"""Contract of the external place-lookup and place-detail services."""

from typing import Protocol, runtime_checkable

from place_extractor.models import Candidate, EnrichedDetails, LookupResult


class PlaceServiceError(Exception):
    """Raised when a place service response cannot be used."""


@runtime_checkable
class PlaceService(Protocol):
    """Resolves candidates to external places and fetches their details.

    Implementations report failures through the ``error`` field of their
    results instead of raising.
    """

    async def find_matches(self, candidate: Candidate) -> LookupResult:
        """Look up places matching ``candidate.main_name`` near ``hint_city``."""
        ...

    async def get_details(self, external_id: str, context_name: str) -> EnrichedDetails:
        """Fetch names, mapcode, telephone and address for one match."""
        ...
