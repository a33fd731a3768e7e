"""Backends that keep the working set of rows between sessions.

The working set (rows plus the undo slot) is stored as one JSON document,
either in a local file or under a single Redis key.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError
from redis import Redis, RedisError

from place_extractor.core.config import Settings
from place_extractor.models import WorkingSet


class PersistenceError(Exception):
    """Raised when the working set cannot be loaded or saved."""


def working_set_to_json(working_set: WorkingSet) -> str:
    return working_set.model_dump_json()


def working_set_from_json(payload: str | bytes) -> WorkingSet:
    """Parse a stored working set.

    Raises:
        PersistenceError: If the payload is not a valid working set
    """
    try:
        return WorkingSet.model_validate_json(payload)
    except ValidationError as e:
        raise PersistenceError(f"Stored working set is invalid: {e}") from e


class RowPersistence(ABC):
    """Storage for the working set."""

    @abstractmethod
    def load(self) -> WorkingSet:
        """Return the stored working set, or an empty one when nothing is stored."""
        raise NotImplementedError

    @abstractmethod
    def save(self, working_set: WorkingSet) -> None:
        """Replace the stored working set."""
        raise NotImplementedError


class MemoryPersistence(RowPersistence):
    """Keeps the serialized working set in memory."""

    def __init__(self) -> None:
        self.payload: str | None = None

    def load(self) -> WorkingSet:
        if self.payload is None:
            return WorkingSet()
        return working_set_from_json(self.payload)

    def save(self, working_set: WorkingSet) -> None:
        self.payload = working_set_to_json(working_set)


class JsonFilePersistence(RowPersistence):
    """Stores the working set in a JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> WorkingSet:
        if not self.path.exists():
            return WorkingSet()
        try:
            payload = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Failed to read {self.path}: {e}") from e
        return working_set_from_json(payload)

    def save(self, working_set: WorkingSet) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(working_set_to_json(working_set), encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Failed to write {self.path}: {e}") from e


class RedisPersistence(RowPersistence):
    """Stores the working set under a single Redis key."""

    def __init__(self, client: Redis, key: str) -> None:
        self.client = client
        self.key = key

    def load(self) -> WorkingSet:
        try:
            payload = self.client.get(self.key)
        except (RedisError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Failed to read key {self.key}: {e}") from e
        if payload is None:
            return WorkingSet()
        return working_set_from_json(payload)

    def save(self, working_set: WorkingSet) -> None:
        try:
            self.client.set(self.key, working_set_to_json(working_set))
        except RedisError as e:
            raise PersistenceError(f"Failed to write key {self.key}: {e}") from e


def build_persistence(config: Settings) -> RowPersistence:
    """Create the backend selected by ``ROW_STORE_BACKEND``."""
    if config.ROW_STORE_BACKEND == "redis":
        return RedisPersistence(
            Redis.from_url(config.REDIS_URL, decode_responses=True),
            config.ROW_STORE_KEY,
        )
    if config.ROW_STORE_BACKEND == "memory":
        return MemoryPersistence()
    return JsonFilePersistence(config.ROW_STORE_PATH)
