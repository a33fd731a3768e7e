"""Session cache for place detail lookups."""

import asyncio
from collections.abc import Awaitable, Callable

from place_extractor.core.logging import get_logger
from place_extractor.models import EnrichedDetails

logger = get_logger().bind(module="enrichment_cache")

DetailsFetcher = Callable[[], Awaitable[EnrichedDetails]]


class EnrichmentCache:
    """Memoizes place details by external match id.

    Entries live for the whole session; detail records are treated as
    static, so there is no TTL or invalidation. Only successful fetches are
    stored, so a failed id is fetched again the next time it comes up.
    A request for an id that is already being fetched waits for that fetch
    instead of starting another one.
    """

    def __init__(self) -> None:
        self._entries: dict[str, EnrichedDetails] = {}
        self._in_flight: dict[str, asyncio.Future[EnrichedDetails]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, external_id: str) -> EnrichedDetails | None:
        return self._entries.get(external_id)

    async def get_or_fetch(
        self, external_id: str, fetch: DetailsFetcher
    ) -> EnrichedDetails:
        """Return cached details for ``external_id`` or fetch and store them.

        Args:
            external_id: Match identifier from the lookup service
            fetch: Zero-argument coroutine factory performing the detail call

        Returns:
            The details, possibly carrying an ``error``
        """
        cached = self._entries.get(external_id)
        if cached is not None:
            self.hits += 1
            logger.debug("Enrichment cache hit", external_id=external_id)
            return cached

        in_flight = self._in_flight.get(external_id)
        if in_flight is not None:
            self.hits += 1
            logger.debug("Joining in-flight enrichment", external_id=external_id)
            return await asyncio.shield(in_flight)

        self.misses += 1
        future = asyncio.ensure_future(fetch())
        self._in_flight[external_id] = future
        try:
            details = await future
        finally:
            self._in_flight.pop(external_id, None)

        if not details.error:
            self._entries[external_id] = details
        return details

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, external_id: object) -> bool:
        return external_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
