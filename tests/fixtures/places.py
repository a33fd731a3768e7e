"""Place service and row store test fixtures."""

import asyncio

import pytest

from place_extractor.models import (
    Candidate,
    EnrichedDetails,
    ExternalMatch,
    LookupResult,
)
from place_extractor.rows.persistence import MemoryPersistence
from place_extractor.rows.store import RowStore


def make_match(external_id: str, name: str = "", address: str = "") -> ExternalMatch:
    return ExternalMatch(
        external_id=external_id,
        name=name or f"Place {external_id}",
        address=address or f"{external_id} Street, Japan",
    )


def make_details(
    name_en: str = "Hotel New Tsuruta",
    name_ja: str = "ホテルニューツルタ",
    mapcode: str = "46 554 152*06",
    telephone: str = "+81 977-22-0111",
    address: str = "1-4 Kitahama, Beppu, Oita, Japan",
) -> EnrichedDetails:
    return EnrichedDetails(
        name_en=name_en,
        name_ja=name_ja,
        mapcode=mapcode,
        telephone=telephone,
        address=address,
    )


class FakePlaceService:
    """Scripted place service that records every call.

    Lookups are keyed by candidate main name, details by external id.
    ``delays`` (seconds, keyed the same way) reorders completion.
    """

    def __init__(
        self,
        matches: dict[str, list[ExternalMatch]] | None = None,
        details: dict[str, EnrichedDetails] | None = None,
        lookup_errors: dict[str, str] | None = None,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.matches = matches or {}
        self.details = details or {}
        self.lookup_errors = lookup_errors or {}
        self.delays = delays or {}
        self.lookup_calls: list[Candidate] = []
        self.detail_calls: list[str] = []

    async def find_matches(self, candidate: Candidate) -> LookupResult:
        self.lookup_calls.append(candidate)
        await asyncio.sleep(self.delays.get(candidate.main_name, 0))
        if candidate.main_name in self.lookup_errors:
            return LookupResult(error=self.lookup_errors[candidate.main_name])
        return LookupResult(matches=self.matches.get(candidate.main_name, []))

    async def get_details(self, external_id: str, context_name: str) -> EnrichedDetails:
        self.detail_calls.append(external_id)
        await asyncio.sleep(self.delays.get(external_id, 0))
        if external_id in self.details:
            return self.details[external_id]
        return EnrichedDetails(error=f"Unknown place {external_id}. Try again.")


@pytest.fixture
def fake_places() -> FakePlaceService:
    """Empty scripted place service; tests fill in matches and details."""
    return FakePlaceService()


@pytest.fixture
def memory_persistence() -> MemoryPersistence:
    return MemoryPersistence()


@pytest.fixture
def row_store(memory_persistence: MemoryPersistence) -> RowStore:
    """Row store backed by in-memory persistence."""
    return RowStore(memory_persistence)
