"""JSON file storage backend.

One envelope file per collection under ``data_dir``::

    {"version": "1.0.0", "last_updated": "<iso timestamp>", "records": [...]}

Writes run a locked read-modify-write cycle:

1. In-process ``anyio.Lock`` for the collection (bounded wait).
2. Exclusive ``fcntl.flock`` on the ``<collection>.json.lock`` sidecar,
   retried with exponential backoff so other processes are serialized too.
3. Fresh read of the file, mutation, then temp file + fsync + ``os.replace``.
4. Both locks released on every exit path; cache updated only on success.

``read`` may be answered from the cache; ``list``/``find``/``count`` always
re-read the file. Entries cached by ``read`` are not invalidated when another
process rewrites the file directly.
"""

from __future__ import annotations

import contextlib
import fcntl
import json
import logging
import os
import shutil
import tempfile
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any, Mapping

import anyio
from pydantic import ValidationError as PydanticValidationError

from caretrack.core.config import Settings
from caretrack.core.errors import StorageError
from caretrack.core.structured_logging import build_log_context
from caretrack.db.enums import Collection
from caretrack.db.models import COLLECTION_MODELS, BaseRecord
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

ENVELOPE_VERSION = "1.0.0"


# =============================================================================
# Blocking file helpers (run in worker threads via anyio.to_thread)
# =============================================================================

def _atomic_write_json(path: Path, payload: dict[str, Any]) -> None:
    """Write JSON to a temp file in the same directory, fsync, then replace."""
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_path)
        raise


def _read_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as handle:
        return json.load(handle)


def _try_flock(lock_path: Path) -> int | None:
    """Non-blocking exclusive lock. Returns the fd, or None if already held."""
    fd = os.open(str(lock_path), os.O_RDWR | os.O_CREAT, 0o644)
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        os.close(fd)
        return None
    except BaseException:
        os.close(fd)
        raise
    return fd


def _release_flock(fd: int) -> None:
    try:
        fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)


def _copy_file(source: Path, target: Path) -> None:
    shutil.copy2(source, target)


def _backup_dir_name() -> str:
    return utcnow().isoformat().replace(":", "-").replace(".", "-")


class JsonStorage(StorageProvider):
    """File-per-collection storage with advisory locking and atomic rewrites."""

    def __init__(
        self,
        data_dir: str | Path,
        *,
        backup_dir: str | Path | None = None,
        enable_cache: bool = True,
        lock_retries: int = 5,
        lock_min_timeout: float = 0.1,
        lock_max_timeout: float = 1.0,
    ) -> None:
        super().__init__()
        self.data_dir = Path(data_dir)
        self.backup_dir = Path(backup_dir) if backup_dir else self.data_dir / "backups"
        self.enable_cache = enable_cache
        self.lock_retries = lock_retries
        self.lock_min_timeout = lock_min_timeout
        self.lock_max_timeout = lock_max_timeout
        self._cache: dict[Collection, dict[str, BaseRecord]] = {}
        # Bumped on every mutation; a read only caches what it loaded if
        # the collection did not change meanwhile
        self._generations: dict[Collection, int] = {}
        self._locks: dict[Collection, anyio.Lock] = {}
        self._last_backup: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "JsonStorage":
        return cls(
            settings.data_path,
            backup_dir=settings.backup_path,
            enable_cache=settings.ENABLE_CACHE,
            lock_retries=settings.LOCK_RETRIES,
            lock_min_timeout=settings.LOCK_MIN_TIMEOUT,
            lock_max_timeout=settings.LOCK_MAX_TIMEOUT,
        )

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    def collection_path(self, collection: Collection) -> Path:
        return self.data_dir / f"{collection.value}.json"

    def _lock_path(self, collection: Collection) -> Path:
        return self.data_dir / f"{collection.value}.json.lock"

    @property
    def _lock_wait_timeout(self) -> float:
        # Upper bound for waiting on the in-process lock: enough for several
        # full retry cycles of the current holder.
        retry_budget = sum(
            min(self.lock_min_timeout * 2 ** attempt, self.lock_max_timeout)
            for attempt in range(self.lock_retries)
        )
        return max(retry_budget * 4, 5.0)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        try:
            await anyio.Path(self.data_dir).mkdir(parents=True, exist_ok=True)
            await anyio.Path(self.backup_dir).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(
                "Could not create data directory", "STORAGE_INIT_FAILED", cause=exc
            ) from exc

        for collection in Collection:
            self._locks.setdefault(collection, anyio.Lock())
            self._cache.setdefault(collection, {})
            self._generations.setdefault(collection, 0)

        # Flag first so the locked helpers below are usable
        self._initialized = True
        try:
            for collection in Collection:
                path = self.collection_path(collection)
                if await anyio.Path(path).exists():
                    continue
                async with self._collection_lock(collection):
                    if not await anyio.Path(path).exists():
                        await self._save(collection, [])
                        logger.info(
                            "Created empty collection",
                            extra=build_log_context(collection=collection.value, operation="initialize"),
                        )
        except BaseException:
            self._initialized = False
            raise

    async def close(self) -> None:
        self._cache.clear()
        self._generations.clear()
        self._locks.clear()
        self._initialized = False

    # -------------------------------------------------------------------------
    # Locking
    # -------------------------------------------------------------------------

    @contextlib.asynccontextmanager
    async def _collection_lock(self, collection: Collection) -> AsyncIterator[None]:
        """Hold the in-process and cross-process locks for ``collection``."""
        lock = self._locks[collection]
        try:
            with anyio.fail_after(self._lock_wait_timeout):
                await lock.acquire()
        except TimeoutError as exc:
            logger.warning(
                "Timed out waiting for collection lock",
                extra=build_log_context(collection=collection.value, operation="lock", code="LOCK_TIMEOUT"),
            )
            raise StorageError(
                f"Timed out waiting for lock on collection '{collection.value}'",
                "LOCK_TIMEOUT",
                cause=exc,
            ) from exc
        try:
            fd = await self._acquire_file_lock(collection)
            try:
                yield
            finally:
                await anyio.to_thread.run_sync(_release_flock, fd)
        finally:
            lock.release()

    async def _acquire_file_lock(self, collection: Collection) -> int:
        lock_path = self._lock_path(collection)
        for attempt in range(self.lock_retries + 1):
            try:
                fd = await anyio.to_thread.run_sync(_try_flock, lock_path)
            except OSError as exc:
                raise StorageError(
                    f"Could not open lock file for collection '{collection.value}'",
                    "LOCK_FAILED",
                    cause=exc,
                ) from exc
            if fd is not None:
                return fd
            if attempt == self.lock_retries:
                break
            delay = min(self.lock_min_timeout * 2 ** attempt, self.lock_max_timeout)
            logger.warning(
                "Collection file is locked, retrying",
                extra=build_log_context(collection=collection.value, operation="lock"),
            )
            await anyio.sleep(delay)
        raise StorageError(
            f"Could not acquire lock on collection '{collection.value}' "
            f"after {self.lock_retries} retries",
            "LOCK_TIMEOUT",
        )

    @contextlib.asynccontextmanager
    async def _all_collection_locks(self) -> AsyncIterator[None]:
        """Lock every collection in a fixed order."""
        async with contextlib.AsyncExitStack() as stack:
            for collection in Collection:
                await stack.enter_async_context(self._collection_lock(collection))
            yield

    # -------------------------------------------------------------------------
    # File access
    # -------------------------------------------------------------------------

    async def _load_envelope(self, path: Path, collection: Collection) -> dict[str, Any]:
        try:
            payload = await anyio.to_thread.run_sync(_read_json, path)
        except FileNotFoundError as exc:
            raise StorageError(
                f"Collection file missing for '{collection.value}'",
                "COLLECTION_MISSING",
                cause=exc,
            ) from exc
        except json.JSONDecodeError as exc:
            logger.error(
                "Collection file is not valid JSON",
                extra=build_log_context(collection=collection.value, operation="read", code="CORRUPT_COLLECTION"),
            )
            raise StorageError(
                f"Collection '{collection.value}' is corrupt",
                "CORRUPT_COLLECTION",
                cause=exc,
            ) from exc
        except OSError as exc:
            raise StorageError(
                f"Could not read collection '{collection.value}'",
                "READ_FAILED",
                cause=exc,
            ) from exc

        if not isinstance(payload, dict) or not isinstance(payload.get("records"), list):
            logger.error(
                "Collection file has an invalid envelope",
                extra=build_log_context(collection=collection.value, operation="read", code="CORRUPT_COLLECTION"),
            )
            raise StorageError(
                f"Collection '{collection.value}' has an invalid envelope",
                "CORRUPT_COLLECTION",
            )
        return payload

    def _parse_records(self, collection: Collection, raw_records: list[Any]) -> list[BaseRecord]:
        model = COLLECTION_MODELS[collection]
        try:
            return [model.model_validate(item) for item in raw_records]
        except PydanticValidationError as exc:
            logger.error(
                "Collection file contains invalid records",
                extra=build_log_context(collection=collection.value, operation="read", code="CORRUPT_COLLECTION"),
            )
            raise StorageError(
                f"Collection '{collection.value}' contains invalid records",
                "CORRUPT_COLLECTION",
                cause=exc,
            ) from exc

    async def _load(self, collection: Collection) -> list[BaseRecord]:
        """Full contents of the collection file, bypassing the cache."""
        envelope = await self._load_envelope(self.collection_path(collection), collection)
        return self._parse_records(collection, envelope["records"])

    async def _save(self, collection: Collection, records: list[BaseRecord]) -> None:
        payload = {
            "version": ENVELOPE_VERSION,
            "last_updated": utcnow().isoformat(),
            "records": [record.model_dump(mode="json") for record in records],
        }
        try:
            await anyio.to_thread.run_sync(_atomic_write_json, self.collection_path(collection), payload)
        except OSError as exc:
            raise StorageError(
                f"Could not write collection '{collection.value}'",
                "WRITE_FAILED",
                cause=exc,
            ) from exc

    # -------------------------------------------------------------------------
    # Record operations
    # -------------------------------------------------------------------------

    async def read(self, collection: Collection | str, record_id: str) -> BaseRecord | None:
        self._require_initialized()
        name = resolve_collection(collection)
        if self.enable_cache:
            cached = self._cache[name].get(record_id)
            if cached is not None:
                return cached.model_copy(deep=True)

        generation = self._generations[name]
        for record in await self._load(name):
            if record.id == record_id:
                if self.enable_cache and self._generations[name] == generation:
                    self._cache[name][record_id] = record.model_copy(deep=True)
                return record
        return None

    def _mutated(self, collection: Collection) -> None:
        self._generations[collection] += 1

    async def write(self, collection: Collection | str, record: BaseRecord) -> None:
        self._require_initialized()
        name = resolve_collection(collection)
        check_record_type(name, record)
        stored = record.model_copy(deep=True)

        async with self._collection_lock(name):
            records = await self._load(name)
            for index, existing in enumerate(records):
                if existing.id == stored.id:
                    records[index] = stored
                    break
            else:
                records.append(stored)
            await self._save(name, records)
            self._mutated(name)
            if self.enable_cache:
                self._cache[name][stored.id] = stored

        logger.debug(
            "Record written",
            extra=build_log_context(collection=name.value, record_id=stored.id, operation="write"),
        )

    async def delete(self, collection: Collection | str, record_id: str) -> bool:
        self._require_initialized()
        name = resolve_collection(collection)

        async with self._collection_lock(name):
            records = await self._load(name)
            remaining = [record for record in records if record.id != record_id]
            existed = len(remaining) != len(records)
            if existed:
                await self._save(name, remaining)
            self._mutated(name)
            self._cache[name].pop(record_id, None)

        if existed:
            logger.debug(
                "Record deleted",
                extra=build_log_context(collection=name.value, record_id=record_id, operation="delete"),
            )
        return existed

    async def list(
        self,
        collection: Collection | str,
        filter: Mapping[str, Any] | None = None,
        options: QueryOptions | None = None,
    ) -> list[BaseRecord]:
        self._require_initialized()
        name = resolve_collection(collection)
        records = await self._load(name)
        return apply_query(records, lambda record: matches_filter(record, filter), options)

    async def find(
        self,
        collection: Collection | str,
        predicate: Predicate,
        options: QueryOptions | None = None,
    ) -> list[BaseRecord]:
        self._require_initialized()
        name = resolve_collection(collection)
        records = await self._load(name)
        return apply_query(records, predicate, options)

    async def exists(self, collection: Collection | str, record_id: str) -> bool:
        self._require_initialized()
        name = resolve_collection(collection)
        if self.enable_cache and record_id in self._cache[name]:
            return True
        return any(record.id == record_id for record in await self._load(name))

    # -------------------------------------------------------------------------
    # Backup / restore
    # -------------------------------------------------------------------------

    async def _claim_backup_dir(self) -> Path:
        """Create a fresh timestamped backup directory, suffixing on collision."""
        await anyio.Path(self.backup_dir).mkdir(parents=True, exist_ok=True)
        base = _backup_dir_name()
        target = self.backup_dir / base
        suffix = 1
        while True:
            try:
                # mkdir without exist_ok claims the name, also against other processes
                await anyio.Path(target).mkdir()
                return target
            except FileExistsError:
                target = self.backup_dir / f"{base}-{suffix}"
                suffix += 1

    async def create_backup(self) -> str:
        self._require_initialized()
        async with self._all_collection_locks():
            try:
                target = await self._claim_backup_dir()
                for collection in Collection:
                    await anyio.to_thread.run_sync(
                        _copy_file,
                        self.collection_path(collection),
                        target / f"{collection.value}.json",
                    )
            except OSError as exc:
                raise StorageError("Could not create backup", "BACKUP_FAILED", cause=exc) from exc

        self._last_backup = target.name
        logger.info("Backup created", extra=build_log_context(record_id=target.name, operation="backup"))
        return target.name

    async def restore_backup(self, backup_id: str) -> None:
        self._require_initialized()
        source = self.backup_dir / backup_id
        if (
            backup_id in ("", ".", "..")
            or source.parent != self.backup_dir
            or not await anyio.Path(source).is_dir()
        ):
            raise StorageError(f"Backup not found: {backup_id}", "BACKUP_NOT_FOUND")

        # Validate every snapshot before touching live files
        snapshots: dict[Collection, list[BaseRecord]] = {}
        for collection in Collection:
            path = source / f"{collection.value}.json"
            if not await anyio.Path(path).exists():
                raise StorageError(
                    f"Backup {backup_id} is incomplete: missing '{collection.value}'",
                    "BACKUP_NOT_FOUND",
                )
            envelope = await self._load_envelope(path, collection)
            snapshots[collection] = self._parse_records(collection, envelope["records"])

        async with self._all_collection_locks():
            for collection, records in snapshots.items():
                await self._save(collection, records)
                self._mutated(collection)
            for cached in self._cache.values():
                cached.clear()

        logger.info("Backup restored", extra=build_log_context(record_id=backup_id, operation="restore"))

    async def list_backups(self) -> list[str]:
        self._require_initialized()
        if not await anyio.Path(self.backup_dir).exists():
            return []
        names = [
            path.name
            async for path in anyio.Path(self.backup_dir).iterdir()
            if await path.is_dir()
        ]
        return sorted(names, reverse=True)

    async def get_stats(self) -> StorageStats:
        self._require_initialized()
        by_collection: dict[str, int] = {}
        total_size = 0
        for collection in Collection:
            by_collection[collection.value] = len(await self._load(collection))
            stat = await anyio.Path(self.collection_path(collection)).stat()
            total_size += stat.st_size

        last_backup = self._last_backup
        if last_backup is None:
            backups = await self.list_backups()
            last_backup = backups[0] if backups else None

        return StorageStats(
            total_records=sum(by_collection.values()),
            records_by_collection=by_collection,
            total_size_bytes=total_size,
            last_backup=last_backup,
        )
