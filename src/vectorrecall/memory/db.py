"""SQLite schema and connection setup for the vector cache."""

from __future__ import annotations

from pathlib import Path

import aiosqlite

MEMORY_DB = ":memory:"


async def init_db(db_path: Path | str) -> aiosqlite.Connection:
    path = str(db_path)
    if path != MEMORY_DB:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = await aiosqlite.connect(path)
    try:
        await conn.execute("PRAGMA journal_mode=WAL")
        # One row per cached vector; emb is little-endian float32, dim * 4 == bytes.
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS vectors (
                id TEXT PRIMARY KEY,
                emb BLOB NOT NULL,
                dim INTEGER NOT NULL,
                meta TEXT,
                last_access INTEGER NOT NULL,
                bytes INTEGER NOT NULL
            )
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_vectors_last_access
            ON vectors (last_access)
        """)
        await conn.commit()
    except BaseException:
        await conn.close()
        raise
    return conn
