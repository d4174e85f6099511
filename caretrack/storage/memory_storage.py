"""In-memory storage backend.

Same contract as ``JsonStorage`` without any files: used by tests and by
``STORAGE_TYPE=memory`` for throwaway instances. Backups are deep-copied
snapshots held by the instance.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import anyio

from caretrack.core.errors import StorageError
from caretrack.core.structured_logging import build_log_context
from caretrack.db.enums import Collection
from caretrack.db.models import BaseRecord
from caretrack.storage.base import (
    Predicate,
    StorageProvider,
    StorageStats,
    check_record_type,
    resolve_collection,
)
from caretrack.storage.query import QueryOptions, apply_query, matches_filter
from caretrack.utils.dates import utcnow

logger = logging.getLogger(__name__)


class InMemoryStorage(StorageProvider):
    """Dict-backed storage with per-collection write locks."""

    def __init__(self) -> None:
        super().__init__()
        self._data: dict[Collection, dict[str, BaseRecord]] = {}
        self._locks: dict[Collection, anyio.Lock] = {}
        self._backups: dict[str, dict[Collection, list[BaseRecord]]] = {}

    async def initialize(self) -> None:
        for collection in Collection:
            self._data.setdefault(collection, {})
            self._locks.setdefault(collection, anyio.Lock())
        self._initialized = True

    async def close(self) -> None:
        self._locks.clear()
        self._initialized = False

    async def read(self, collection: Collection | str, record_id: str) -> BaseRecord | None:
        self._require_initialized()
        record = self._data[resolve_collection(collection)].get(record_id)
        return record.model_copy(deep=True) if record is not None else None

    async def write(self, collection: Collection | str, record: BaseRecord) -> None:
        self._require_initialized()
        name = resolve_collection(collection)
        check_record_type(name, record)
        async with self._locks[name]:
            # Replacing an existing key keeps its position
            self._data[name][record.id] = record.model_copy(deep=True)
        logger.debug(
            "Record written",
            extra=build_log_context(collection=name.value, record_id=record.id, operation="write"),
        )

    async def delete(self, collection: Collection | str, record_id: str) -> bool:
        self._require_initialized()
        name = resolve_collection(collection)
        async with self._locks[name]:
            return self._data[name].pop(record_id, None) is not None

    def _snapshot(self, collection: Collection) -> list[BaseRecord]:
        return [record.model_copy(deep=True) for record in self._data[collection].values()]

    async def list(
        self,
        collection: Collection | str,
        filter: Mapping[str, Any] | None = None,
        options: QueryOptions | None = None,
    ) -> list[BaseRecord]:
        self._require_initialized()
        records = self._snapshot(resolve_collection(collection))
        return apply_query(records, lambda record: matches_filter(record, filter), options)

    async def find(
        self,
        collection: Collection | str,
        predicate: Predicate,
        options: QueryOptions | None = None,
    ) -> list[BaseRecord]:
        self._require_initialized()
        return apply_query(self._snapshot(resolve_collection(collection)), predicate, options)

    async def create_backup(self) -> str:
        self._require_initialized()
        backup_id = utcnow().isoformat().replace(":", "-").replace(".", "-")
        if backup_id in self._backups:
            backup_id = f"{backup_id}-{len(self._backups)}"
        self._backups[backup_id] = {
            collection: self._snapshot(collection) for collection in Collection
        }
        logger.info("Backup created", extra=build_log_context(record_id=backup_id, operation="backup"))
        return backup_id

    async def restore_backup(self, backup_id: str) -> None:
        self._require_initialized()
        snapshot = self._backups.get(backup_id)
        if snapshot is None:
            raise StorageError(f"Backup not found: {backup_id}", "BACKUP_NOT_FOUND")
        for collection in Collection:
            async with self._locks[collection]:
                self._data[collection] = {
                    record.id: record.model_copy(deep=True) for record in snapshot[collection]
                }
        logger.info("Backup restored", extra=build_log_context(record_id=backup_id, operation="restore"))

    async def list_backups(self) -> list[str]:
        self._require_initialized()
        return sorted(self._backups, reverse=True)

    async def get_stats(self) -> StorageStats:
        self._require_initialized()
        by_collection = {collection.value: len(self._data[collection]) for collection in Collection}
        backups = sorted(self._backups, reverse=True)
        return StorageStats(
            total_records=sum(by_collection.values()),
            records_by_collection=by_collection,
            last_backup=backups[0] if backups else None,
        )
