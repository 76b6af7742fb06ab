"""Embed chunks one by one with a lexical fallback, optionally persisting them."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any

from vectorrecall.memory.lexical import lexical_embedding
from vectorrecall.memory.store import VectorStore
from vectorrecall.vectors import is_vector

LOG = logging.getLogger("vectorrecall.embedder")

Embedder = Callable[[str, dict[str, Any]], Any]
LexicalEmbedder = Callable[[str], list[float]]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def embed_and_store(
    chunks: Any,
    embedder: Embedder | None = None,
    lexical_embedder: LexicalEmbedder | None = lexical_embedding,
    register_embedding: Callable[..., Any] | None = None,
    after_each: Callable[..., Any] | None = None,
    source_id: str = "chunk",
) -> list[dict[str, Any]]:
    """Return enriched copies of ``chunks`` with an ``embedding`` on each.

    Chunks that are not mappings or whose ``content`` is not a string are
    dropped. A failing or empty primary embedding falls back to
    ``lexical_embedder(content)``; the primary is never retried. Callbacks run
    in order (register, then after_each) and complete before the next chunk
    starts; ``index`` is the position in the input.
    """
    if not isinstance(chunks, list):
        return []
    if not chunks:
        return chunks
    results: list[dict[str, Any]] = []
    for index, chunk in enumerate(chunks):
        if not isinstance(chunk, Mapping) or not isinstance(chunk.get("content"), str):
            continue
        content = chunk["content"]
        vector: Any = None
        if embedder is not None:
            try:
                vector = await _maybe_await(embedder(content, {"source_id": source_id, "index": index}))
            except Exception as exc:
                LOG.debug("Embedding failed for %s[%s], using lexical fallback: %s", source_id, index, exc)
                vector = None
        if not is_vector(vector):
            vector = lexical_embedder(content) if lexical_embedder is not None else []
        else:
            vector = [float(x) for x in vector]
        enriched = {**chunk, "embedding": vector}
        if register_embedding is not None:
            await _maybe_await(register_embedding(source_id, index, vector, enriched))
        if after_each is not None:
            await _maybe_await(after_each(enriched, index))
        results.append(enriched)
    return results


async def embed_into_store(
    chunks: Any,
    store: VectorStore,
    embedder: Embedder | None = None,
    source_id: str = "chunk",
    lexical_embedder: LexicalEmbedder | None = lexical_embedding,
    after_each: Callable[..., Any] | None = None,
) -> list[dict[str, Any]]:
    """Embed ``chunks`` and write every resolved vector to ``store`` in one batch."""
    pending: list[dict[str, Any]] = []

    def register(source: str, index: int, vector: list[float], enriched: dict[str, Any]) -> None:
        chunk_id = enriched.get("id", index)
        metadata = {k: v for k, v in enriched.items() if k != "embedding"}
        pending.append({"id": f"{source}:{chunk_id}", "embedding": vector, "metadata": metadata})

    enriched = await embed_and_store(
        chunks,
        embedder=embedder,
        lexical_embedder=lexical_embedder,
        register_embedding=register,
        after_each=after_each,
        source_id=source_id,
    )
    if pending:
        written = await store.put_many(pending)
        LOG.info("Stored %s of %s chunk vectors for %s", written, len(pending), source_id)
    return enriched
