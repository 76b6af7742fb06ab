"""Byte-budgeted vector cache on SQLite.

Vectors are L2-normalized before they are written, so similarity at read time
is a plain dot product. Every read refreshes ``last_access`` and eviction drops
the least recently accessed rows first until the cache fits ``max_bytes``.
"""

from __future__ import annotations

import asyncio
import bisect
import json
import logging
import sqlite3
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import aiosqlite
import numpy as np

from vectorrecall.config import MB, RecallConfig
from vectorrecall.errors import StorageError
from vectorrecall.memory.db import init_db
from vectorrecall.vectors import byte_size, from_bytes, normalize, overlap_dot, to_bytes

LOG = logging.getLogger("vectorrecall.store")

DEFAULT_TOP_K = 12
DEFAULT_MIN_SIMILARITY = 0.18
# Storage name that opts out of persistence: the store reports supported=False.
DISABLED_STORAGE_NAME = ":none:"


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class StoreStats:
    entry_count: int = 0
    total_bytes: int = 0
    supported: bool = True

    def describe(self, max_bytes: int) -> str:
        if not self.supported:
            return "Vector cache unavailable in this environment."
        size_mb = self.total_bytes / MB
        limit_mb = max_bytes / MB
        return f"Vector cache: {size_mb:.1f} MB of {limit_mb:.0f} MB • {self.entry_count} entries"


@dataclass(frozen=True)
class VectorMatch:
    id: str
    vector: np.ndarray = field(repr=False)
    metadata: Any
    similarity: float


StatsListener = Callable[[StoreStats], Any]


class VectorStore:
    """Durable id -> normalized vector cache with LRU eviction under a byte budget.

    All operations are coroutines and are serialized by an internal lock, one
    SQLite transaction each. When storage is disabled the store reports
    ``supported=False`` and every operation is a no-op.
    """

    def __init__(
        self,
        storage_name: Path | str | None = None,
        max_bytes: int | None = None,
        config: RecallConfig | None = None,
        clock: Callable[[], int] = _now_ms,
    ):
        self._config = config or RecallConfig.from_env()
        self.storage_name = storage_name
        self.max_bytes = max_bytes
        self._clock = clock
        self._conn: aiosqlite.Connection | None = None
        self._supported = not self._config.storage_disabled and str(storage_name) != DISABLED_STORAGE_NAME
        self._lock = asyncio.Lock()
        self._listeners: list[StatsListener] = []
        self._entries = 0
        self._bytes = 0
        self._dirty = True

    @property
    def supported(self) -> bool:
        return self._supported

    def _ready(self) -> bool:
        return self._supported and self._conn is not None

    # -- lifecycle ---------------------------------------------------------

    async def open(
        self,
        storage_name: Path | str | None = None,
        max_bytes: int | None = None,
    ) -> StoreStats:
        """Open (creating if absent) the backing database. Idempotent."""
        if storage_name is not None and self._conn is None:
            self.storage_name = storage_name
        if str(self.storage_name) == DISABLED_STORAGE_NAME:
            self._supported = False
        if not self._supported:
            return StoreStats(0, 0, supported=False)
        if self._conn is not None:
            return await self.size()
        if max_bytes is not None:
            self.max_bytes = max_bytes
        if self.max_bytes is None:
            self.max_bytes = self._config.max_bytes
        async with self._lock:
            # Another open() may have finished while this one waited.
            if self._conn is not None:
                if self._dirty:
                    await self._compute_stats()
                return self._snapshot()
            self.storage_name = self.storage_name or self._config.db_path
            try:
                self._conn = await init_db(self.storage_name)
            except (sqlite3.Error, OSError) as exc:
                raise StorageError(f"Failed to open vector cache at {self.storage_name}: {exc}") from exc
            LOG.debug("open %s -> ok", self.storage_name)
            self._dirty = True
            await self._compute_stats()
            await self._evict_locked()
            stats = self._snapshot()
        self._notify(stats)
        return stats

    async def close(self) -> None:
        async with self._lock:
            if self._conn is not None:
                await self._conn.close()
                self._conn = None
            self._dirty = True

    def subscribe(self, listener: StatsListener) -> Callable[[], None]:
        """Register a stats listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, stats: StoreStats) -> None:
        for listener in list(self._listeners):
            try:
                listener(stats)
            except Exception:
                LOG.exception("Vector cache stats listener failed")

    # -- stats -------------------------------------------------------------

    def _snapshot(self) -> StoreStats:
        return StoreStats(self._entries, self._bytes, supported=self._supported)

    async def _compute_stats(self) -> None:
        assert self._conn is not None
        try:
            async with self._conn.execute("SELECT COUNT(*), COALESCE(SUM(bytes), 0) FROM vectors") as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read vector cache stats: {exc}") from exc
        self._entries = int(row[0]) if row else 0
        self._bytes = int(row[1]) if row else 0
        self._dirty = False

    async def size(self) -> StoreStats:
        if not self._ready():
            return StoreStats(0, 0, supported=self._supported)
        async with self._lock:
            if self._dirty:
                await self._compute_stats()
            return self._snapshot()

    # -- reads -------------------------------------------------------------

    async def get(
        self,
        query_vector: Any,
        top_k: int = DEFAULT_TOP_K,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
    ) -> list[VectorMatch]:
        """Linear scan for the ``top_k`` most similar vectors at or above ``min_similarity``.

        Every scanned row has its ``last_access`` refreshed, matched or not.
        """
        if not self._ready():
            return []
        query = normalize(query_vector)
        if query is None:
            return []
        assert self._conn is not None
        matches: list[VectorMatch] = []
        async with self._lock:
            now = self._clock()
            try:
                async with self._conn.execute("SELECT rowid, id, emb, meta FROM vectors ORDER BY rowid") as cursor:
                    last_rowid = 0
                    async for rowid, record_id, blob, meta in cursor:
                        last_rowid = rowid
                        vector = from_bytes(blob)
                        similarity = overlap_dot(query, vector)
                        # NaN never passes.
                        if not similarity >= min_similarity:
                            continue
                        match = VectorMatch(record_id, vector, _load_meta(meta), similarity)
                        bisect.insort(matches, match, key=lambda m: -m.similarity)
                        if len(matches) > top_k:
                            matches.pop()
                # Reads count as accesses for every row scanned.
                await self._conn.execute(
                    "UPDATE vectors SET last_access = ? WHERE rowid <= ?",
                    (now, last_rowid),
                )
                await self._conn.commit()
            except sqlite3.Error as exc:
                await self._rollback()
                raise StorageError(f"Vector cache scan failed: {exc}") from exc
        hits = len(matches)
        LOG.debug("hits: %s, misses: %s, topK: %s", hits, max(0, top_k - hits), top_k)
        return matches

    async def get_many(self, ids: Iterable[str]) -> dict[str, VectorMatch]:
        """Exact lookup by id. Found rows count as accessed."""
        if not self._ready():
            return {}
        wanted = list(dict.fromkeys(str(i) for i in ids if i))
        if not wanted:
            return {}
        assert self._conn is not None
        found: dict[str, VectorMatch] = {}
        placeholders = ",".join("?" * len(wanted))
        async with self._lock:
            now = self._clock()
            try:
                async with self._conn.execute(
                    f"SELECT id, emb, meta FROM vectors WHERE id IN ({placeholders})",
                    wanted,
                ) as cursor:
                    async for record_id, blob, meta in cursor:
                        found[record_id] = VectorMatch(record_id, from_bytes(blob), _load_meta(meta), 1.0)
                if found:
                    await self._conn.executemany(
                        "UPDATE vectors SET last_access = ? WHERE id = ?",
                        [(now, record_id) for record_id in found],
                    )
                    await self._conn.commit()
            except sqlite3.Error as exc:
                await self._rollback()
                raise StorageError(f"Vector cache lookup failed: {exc}") from exc
        return found

    # -- writes ------------------------------------------------------------

    async def put_many(self, entries: Iterable[Mapping[str, Any]]) -> int:
        """Write entries ``{id, embedding, metadata?}`` as one batch, then evict.

        Entries without an id or with an unusable embedding are skipped. The
        batch is all-or-nothing. Returns the number of rows written.
        """
        if not self._ready():
            return 0
        entries = list(entries or [])
        if not entries:
            return 0
        assert self._conn is not None
        async with self._lock:
            now = self._clock()
            rows = []
            for entry in entries:
                if not isinstance(entry, Mapping):
                    continue
                record_id = entry.get("id")
                if not record_id:
                    continue
                vector = normalize(entry.get("embedding"))
                if vector is None:
                    continue
                metadata = entry.get("metadata", entry.get("meta"))
                rows.append(
                    (str(record_id), to_bytes(vector), int(vector.size), _dump_meta(metadata), now, byte_size(vector))
                )
            if rows:
                try:
                    await self._conn.executemany(
                        "INSERT OR REPLACE INTO vectors (id, emb, dim, meta, last_access, bytes) "
                        "VALUES (?, ?, ?, ?, ?, ?)",
                        rows,
                    )
                    await self._conn.commit()
                except sqlite3.Error as exc:
                    await self._rollback()
                    raise StorageError(f"Vector cache write failed: {exc}") from exc
            self._dirty = True
            await self._evict_locked()
            stats = self._snapshot()
        self._notify(stats)
        return len(rows)

    async def evict_if_needed(self) -> int:
        if not self._ready():
            return 0
        async with self._lock:
            removed = await self._evict_locked()
            stats = self._snapshot()
        if removed:
            self._notify(stats)
        return removed

    async def _evict_locked(self) -> int:
        assert self._conn is not None
        if self._dirty:
            await self._compute_stats()
        max_bytes = self.max_bytes if self.max_bytes is not None else self._config.max_bytes
        if self._bytes <= max_bytes:
            return 0
        before = self._bytes
        victims: list[str] = []
        try:
            async with self._conn.execute(
                "SELECT id, bytes FROM vectors ORDER BY last_access ASC, rowid ASC"
            ) as cursor:
                async for record_id, size in cursor:
                    # A single oversized row is kept rather than emptying the cache.
                    if self._bytes <= max_bytes or self._entries <= 1:
                        break
                    victims.append(record_id)
                    self._bytes = max(0, self._bytes - int(size or 0))
                    self._entries = max(0, self._entries - 1)
            await self._conn.executemany("DELETE FROM vectors WHERE id = ?", [(v,) for v in victims])
            await self._conn.commit()
        except sqlite3.Error as exc:
            await self._rollback()
            self._dirty = True
            raise StorageError(f"Vector cache eviction failed: {exc}") from exc
        self._dirty = True
        await self._compute_stats()
        LOG.debug(
            "evict: MB before=%.2f after=%.2f, removed: %s",
            before / MB,
            self._bytes / MB,
            len(victims),
        )
        return len(victims)

    async def _rollback(self) -> None:
        if self._conn is None:
            return
        try:
            await self._conn.rollback()
        except sqlite3.Error:
            LOG.warning("Vector cache rollback failed", exc_info=True)


def _dump_meta(metadata: Any) -> str | None:
    if metadata is None:
        return None
    return json.dumps(metadata, default=str)


def _load_meta(raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return None
