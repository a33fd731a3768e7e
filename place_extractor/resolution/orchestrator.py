"""Concurrent resolution of candidates into enriched rows.

Each candidate goes through the same steps:

    pending -> enriching -> lookup
        one match       -> enrichment -> complete | error
        several matches -> disambiguation (paused until a match is selected)
        no match/error  -> error

A fixed number of worker tasks pull candidates from a shared queue. All row
changes happen between awaits, so no locking is needed: the queue pop is
synchronous and each row is owned by one worker at a time.
"""

import asyncio
from typing import Any

from place_extractor.core.config import settings
from place_extractor.core.logging import get_run_logger
from place_extractor.core.mapcode import normalise_mapcode, validate_mapcode
from place_extractor.models import (
    Candidate,
    CompleteState,
    DisambiguationState,
    EnrichedDetails,
    EnrichingState,
    ErrorState,
    ExternalMatch,
    Row,
    RowStatus,
)
from place_extractor.places.service import PlaceService
from place_extractor.resolution.cache import EnrichmentCache
from place_extractor.rows.store import RowStore

NO_MATCHES_MESSAGE = "No potential places found."


class SelectionError(Exception):
    """Raised when a disambiguation choice cannot be applied."""


def derive_row_fields(details: EnrichedDetails, candidate: Candidate) -> dict[str, Any]:
    """Map successful place details onto row fields.

    Args:
        details: Details returned by the place-detail service
        candidate: Candidate the details were fetched for

    Returns:
        Row field changes, including the mapcode validity flag
    """
    if details.name_en and details.name_ja:
        display_name = f"{details.name_en} ({details.name_ja})"
    else:
        display_name = details.name_en or details.name_ja or candidate.main_name

    mapcode = normalise_mapcode(details.mapcode)
    return {
        "name_en": details.name_en,
        "name_ja": details.name_ja,
        "display_name": display_name,
        "mapcode": mapcode,
        "telephone": details.telephone,
        "address": details.address,
        "is_mapcode_invalid": not validate_mapcode(mapcode),
    }


class ResolutionOrchestrator:
    """Drives candidates through lookup, disambiguation and enrichment."""

    def __init__(
        self,
        store: RowStore,
        places: PlaceService,
        cache: EnrichmentCache | None = None,
        concurrency: int | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Row collection to write results into
            places: Lookup and detail service
            cache: Detail cache shared across runs (default: a new one)
            concurrency: Number of workers (default: RESOLUTION_CONCURRENCY)
        """
        self.store = store
        self.places = places
        self.cache = cache if cache is not None else EnrichmentCache()
        self.concurrency = (
            settings.RESOLUTION_CONCURRENCY if concurrency is None else concurrency
        )
        if self.concurrency < 1:
            raise ValueError("Concurrency must be at least 1")
        self._selections: dict[str, asyncio.Future[str]] = {}
        self._resumptions: dict[str, asyncio.Task[None]] = {}

    @property
    def awaiting_selection(self) -> list[str]:
        """Ids of rows paused with a live selection future."""
        return list(self._selections)

    async def run(self, candidates: list[Candidate]) -> int:
        """Resolve a fresh list of candidates.

        Replaces the current rows, so results still in flight from an earlier
        run are discarded when they land. Returns once every candidate is
        complete, failed, or paused for disambiguation.

        Args:
            candidates: Candidates in position order

        Returns:
            Generation of the run
        """
        self._abandon_selections()
        generation = self.store.reset(candidates)
        log = get_run_logger(generation).bind(module="resolution_orchestrator")

        queue: asyncio.Queue[Candidate] = asyncio.Queue()
        for candidate in candidates:
            queue.put_nowait(candidate)

        worker_count = min(self.concurrency, len(candidates))
        log.info(
            "Starting resolution run",
            candidates=len(candidates),
            workers=worker_count,
        )
        await asyncio.gather(
            *(self._worker(queue, generation) for _ in range(worker_count))
        )
        log.info(
            "Resolution run finished",
            awaiting_selection=len(self._selections),
            cache_hits=self.cache.hits,
            cache_misses=self.cache.misses,
        )
        return generation

    def reset(self) -> None:
        """Drop all rows and any pending disambiguation."""
        self._abandon_selections()
        self.store.clear()

    async def _worker(self, queue: asyncio.Queue[Candidate], generation: int) -> None:
        while generation == self.store.generation:
            try:
                candidate = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            await self._process_candidate(candidate, generation)

    async def _process_candidate(self, candidate: Candidate, generation: int) -> None:
        row_id = str(candidate.position)
        log = get_run_logger(generation).bind(
            module="resolution_orchestrator", row_id=row_id
        )
        if self.store.update(row_id, generation, state=EnrichingState()) is None:
            return

        try:
            result = await self.places.find_matches(candidate)
        except Exception as e:
            log.exception("Place lookup raised", main_name=candidate.main_name)
            self._fail(row_id, generation, str(e) or type(e).__name__)
            return

        if result.error:
            log.warning("Place lookup failed", error=result.error)
            self._fail(row_id, generation, result.error)
        elif len(result.matches) == 1:
            await self._enrich(candidate, result.matches[0].external_id, generation)
        elif len(result.matches) > 1:
            self._pause_for_selection(candidate, result.matches, generation)
            log.info("Waiting for match selection", matches=len(result.matches))
        else:
            log.warning("Place lookup returned no matches")
            self._fail(row_id, generation, NO_MATCHES_MESSAGE)

    def _pause_for_selection(
        self, candidate: Candidate, matches: list[ExternalMatch], generation: int
    ) -> None:
        row_id = str(candidate.position)
        row = self.store.update(
            row_id, generation, state=DisambiguationState(matches=matches)
        )
        if row is None:
            return
        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self._selections[row_id] = future
        self._resumptions[row_id] = asyncio.create_task(
            self._resume_after_selection(candidate, future, generation)
        )

    async def _resume_after_selection(
        self, candidate: Candidate, future: asyncio.Future[str], generation: int
    ) -> None:
        external_id = await future
        await self._enrich(candidate, external_id, generation)

    async def select_match(self, row_id: str, external_id: str) -> Row | None:
        """Resume a paused row with the match the user picked.

        Rows restored from the persisted working set have no live pause and
        are enriched directly.

        Args:
            row_id: Row in disambiguation
            external_id: Id of one of the row's pending matches

        Returns:
            The row after enrichment, or None if it vanished meanwhile

        Raises:
            SelectionError: If the row is not awaiting this selection
        """
        row = self.store.get(row_id)
        if row is None:
            raise SelectionError(f"Row {row_id} does not exist")
        if row.status != RowStatus.DISAMBIGUATION:
            raise SelectionError(
                f"Row {row_id} is not awaiting a selection (status: {row.status.value})"
            )
        if external_id not in {m.external_id for m in row.pending_matches}:
            raise SelectionError(f"{external_id} is not a match for row {row_id}")

        # Leaving disambiguation synchronously makes a second selection fail
        generation = self.store.generation
        self.store.update(row_id, generation, state=EnrichingState())

        future = self._selections.pop(row_id, None)
        task = self._resumptions.pop(row_id, None)
        if future is not None and task is not None:
            future.set_result(external_id)
            await task
        else:
            await self._enrich(row.candidate, external_id, generation)
        return self.store.get(row_id)

    async def _enrich(
        self, candidate: Candidate, external_id: str, generation: int
    ) -> None:
        row_id = str(candidate.position)
        log = get_run_logger(generation).bind(
            module="resolution_orchestrator", row_id=row_id, external_id=external_id
        )
        if self.store.update(
            row_id, generation, state=EnrichingState(), external_id=external_id
        ) is None:
            return

        try:
            details = await self.cache.get_or_fetch(
                external_id,
                lambda: self.places.get_details(external_id, candidate.main_name),
            )
        except Exception as e:
            log.exception("Place detail lookup raised")
            self._fail(row_id, generation, str(e) or type(e).__name__)
            return

        if details.error:
            log.warning("Place detail lookup failed", error=details.error)
            self._fail(row_id, generation, details.error)
            return

        row = self.store.update(
            row_id,
            generation,
            state=CompleteState(),
            **derive_row_fields(details, candidate),
        )
        if row is None:
            log.info("Discarded details for a row that is gone")
        elif row.is_mapcode_invalid:
            log.info("Fetched mapcode failed validation", mapcode=row.mapcode)

    def _fail(self, row_id: str, generation: int, message: str) -> None:
        self.store.update(row_id, generation, state=ErrorState(message=message))

    def _abandon_selections(self) -> None:
        for task in self._resumptions.values():
            task.cancel()
        self._selections.clear()
        self._resumptions.clear()
