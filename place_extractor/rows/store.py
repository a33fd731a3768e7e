"""The mutable working set of result rows."""

from collections.abc import Iterator
from typing import Any

from place_extractor.core.logging import get_logger
from place_extractor.core.mapcode import normalise_mapcode
from place_extractor.models import (
    OVERRIDE_FIELDS,
    Candidate,
    RemovedRow,
    Row,
    WorkingSet,
)
from place_extractor.rows.persistence import (
    MemoryPersistence,
    PersistenceError,
    RowPersistence,
)

logger = get_logger().bind(module="row_store")


class RowNotFoundError(KeyError):
    """Raised when a user operation targets a row that does not exist."""


class RowStore:
    """Single owner of the row collection.

    Rows are kept in candidate order. Every mutation goes through this class
    and is saved to the persistence backend together with the one-slot undo
    buffer; a failing backend is logged and the store carries on in memory.

    ``generation`` identifies the current extraction run. Writers that
    started under an older generation pass it to :meth:`update` and their
    changes are discarded.
    """

    def __init__(self, persistence: RowPersistence | None = None) -> None:
        self.persistence = persistence or MemoryPersistence()
        self.generation = 0
        working_set = self._load()
        self._rows: list[Row] = [_with_mapcode_validity(row) for row in working_set.rows]
        self._last_removed: RemovedRow | None = working_set.last_removed

    def _load(self) -> WorkingSet:
        try:
            return self.persistence.load()
        except PersistenceError as e:
            logger.warning("Failed to load rows, starting empty", error=str(e))
            return WorkingSet()

    def _save(self) -> None:
        working_set = WorkingSet(rows=self._rows, last_removed=self._last_removed)
        try:
            self.persistence.save(working_set)
        except PersistenceError as e:
            logger.warning("Failed to save rows", error=str(e))

    def _index(self, row_id: str) -> int | None:
        for index, row in enumerate(self._rows):
            if row.id == row_id:
                return index
        return None

    @property
    def rows(self) -> list[Row]:
        return list(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(list(self._rows))

    def get(self, row_id: str) -> Row | None:
        index = self._index(row_id)
        return None if index is None else self._rows[index]

    def reset(self, candidates: list[Candidate]) -> int:
        """Start a new run with one pending row per candidate.

        Returns:
            The generation of the new run
        """
        self.generation += 1
        self._rows = [Row.from_candidate(c) for c in candidates]
        self._last_removed = None
        self._save()
        return self.generation

    def clear(self) -> None:
        self.generation += 1
        self._rows = []
        self._last_removed = None
        self._save()

    def update(
        self, row_id: str, generation: int | None = None, **changes: Any
    ) -> Row | None:
        """Apply field changes to a row.

        Args:
            row_id: Row to change
            generation: Run the change belongs to; stale runs are ignored
            **changes: Row fields to replace

        Returns:
            The updated row, or None when the row or its run is gone
        """
        if generation is not None and generation != self.generation:
            logger.debug(
                "Discarding update from stale run",
                row_id=row_id,
                generation=generation,
                current=self.generation,
            )
            return None

        index = self._index(row_id)
        if index is None:
            logger.debug("Discarding update for missing row", row_id=row_id)
            return None

        row = _with_mapcode_validity(self._rows[index].model_copy(update=changes))
        self._rows[index] = row
        self._save()
        return row

    def apply_overrides(self, row_id: str, **overrides: str | None) -> Row:
        """Merge manual overrides into a row.

        A mapcode override is stored in normalized form and the mapcode flag
        is recomputed straight away.

        Raises:
            RowNotFoundError: If the row does not exist
            ValueError: If a field cannot be overridden
        """
        unknown = set(overrides) - set(OVERRIDE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot override fields: {sorted(unknown)}")

        index = self._index(row_id)
        if index is None:
            raise RowNotFoundError(row_id)

        if "mapcode" in overrides:
            overrides["mapcode"] = normalise_mapcode(overrides["mapcode"])

        current = self._rows[index]
        merged = {**current.manual_overrides, **overrides}
        row = _with_mapcode_validity(current.model_copy(update={"manual_overrides": merged}))
        self._rows[index] = row
        self._save()
        return row

    def remove(self, row_id: str) -> Row | None:
        """Remove a row, keeping it in the one-slot undo buffer."""
        index = self._index(row_id)
        if index is None:
            return None
        row = self._rows.pop(index)
        self._last_removed = RemovedRow(row=row, index=index)
        self._save()
        return row

    @property
    def can_restore(self) -> bool:
        return self._last_removed is not None

    def restore(self) -> Row | None:
        """Put the last removed row back at its former position."""
        if self._last_removed is None:
            return None
        row, index = self._last_removed.row, self._last_removed.index
        self._last_removed = None
        self._rows.insert(min(index, len(self._rows)), row)
        self._save()
        return row

    def invalid_mapcode_rows(self) -> list[Row]:
        return [row for row in self._rows if row.is_mapcode_invalid]

    def first_invalid_row_id(self) -> str | None:
        invalid = self.invalid_mapcode_rows()
        return invalid[0].id if invalid else None


def _with_mapcode_validity(row: Row) -> Row:
    """Recompute the invalid-mapcode flag from the effective mapcode."""
    invalid = row.has_invalid_mapcode()
    if invalid == row.is_mapcode_invalid:
        return row
    return row.model_copy(update={"is_mapcode_invalid": invalid})
