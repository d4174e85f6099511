"""Storage provider interface shared by all backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Mapping

from pydantic import BaseModel

from caretrack.core.errors import StorageError
from caretrack.db.enums import Collection
from caretrack.db.models import COLLECTION_MODELS, BaseRecord
from caretrack.storage.query import QueryOptions

Predicate = Callable[[Any], bool]


class StorageStats(BaseModel):
    """Aggregate counts reported by ``get_stats``."""

    total_records: int
    records_by_collection: dict[str, int]
    total_size_bytes: int = 0
    last_backup: str | None = None


def resolve_collection(collection: Collection | str) -> Collection:
    """Coerce a collection name into the closed ``Collection`` set."""
    try:
        return Collection(collection)
    except ValueError:
        raise ValueError(f"Unknown collection: {collection}") from None


def check_record_type(collection: Collection, record: BaseRecord) -> None:
    """
    Reject a record that is not the model registered for ``collection``.

    Raises:
        TypeError: If the record belongs to a different collection.
    """
    expected = COLLECTION_MODELS[collection]
    if not isinstance(record, expected):
        raise TypeError(
            f"Collection '{collection.value}' stores {expected.__name__} records, "
            f"got {type(record).__name__}"
        )


class StorageProvider(ABC):
    """
    Keyed record collections with filtering, backup and restore.

    Every method except ``initialize`` fails with ``STORAGE_NOT_INITIALIZED``
    until ``initialize`` has completed. Records handed out are copies: mutating
    them has no effect on stored data.
    """

    def __init__(self) -> None:
        self._initialized = False

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StorageError(
                "Storage is not initialized; call initialize() first",
                "STORAGE_NOT_INITIALIZED",
            )

    @property
    def initialized(self) -> bool:
        return self._initialized

    @abstractmethod
    async def initialize(self) -> None:
        """Create the backing store for every collection. Idempotent."""

    @abstractmethod
    async def read(self, collection: Collection | str, record_id: str) -> BaseRecord | None:
        """Return the record or None when the id is absent."""

    @abstractmethod
    async def write(self, collection: Collection | str, record: BaseRecord) -> None:
        """Insert or replace ``record`` by id."""

    @abstractmethod
    async def delete(self, collection: Collection | str, record_id: str) -> bool:
        """Hard delete. Returns whether a record existed."""

    @abstractmethod
    async def list(
        self,
        collection: Collection | str,
        filter: Mapping[str, Any] | None = None,
        options: QueryOptions | None = None,
    ) -> list[BaseRecord]:
        """Exact-match filtered, sorted and paginated records."""

    @abstractmethod
    async def find(
        self,
        collection: Collection | str,
        predicate: Predicate,
        options: QueryOptions | None = None,
    ) -> list[BaseRecord]:
        """Records for which ``predicate`` is true, sorted and paginated like ``list``."""

    async def count(self, collection: Collection | str, filter: Mapping[str, Any] | None = None) -> int:
        return len(await self.list(collection, filter))

    async def exists(self, collection: Collection | str, record_id: str) -> bool:
        return await self.read(collection, record_id) is not None

    @abstractmethod
    async def create_backup(self) -> str:
        """Snapshot every collection. Returns the backup identifier."""

    @abstractmethod
    async def restore_backup(self, backup_id: str) -> None:
        """Replace every collection with the snapshot and drop cached reads."""

    @abstractmethod
    async def list_backups(self) -> list[str]:
        """Known backup identifiers, newest first."""

    @abstractmethod
    async def get_stats(self) -> StorageStats:
        """Record counts per collection."""

    @abstractmethod
    async def close(self) -> None:
        """Release in-memory resources. ``initialize`` must be called again."""
