"""Text-keyed embedding cache kept in the vector store."""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from vectorrecall.embeddings.client import EmbeddingClient
from vectorrecall.errors import RecallError
from vectorrecall.memory.store import VectorStore
from vectorrecall.vectors import normalize

LOG = logging.getLogger("vectorrecall.embeddings.cache")


def text_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class EmbeddingCache:
    """Serve embeddings from the store when present, otherwise ask the provider and store the result."""

    def __init__(self, store: VectorStore, client: EmbeddingClient):
        self.store = store
        self.client = client

    async def cache_key(self, text: str) -> str:
        selection = await self.client.selection()
        return f"emb:{selection.provider.value}:{self.client.model}:{text_hash(text)}"

    async def embed(self, texts: list[str]) -> list[list[float] | None]:
        """One vector per text, ``None`` where the provider could not produce one."""
        if not texts:
            return []
        keys = [await self.cache_key(text) for text in texts]
        cached = await self.store.get_many(keys)
        results: list[list[float] | None] = []
        fresh: list[dict[str, Any]] = []
        for text, key in zip(texts, keys):
            hit = cached.get(key)
            if hit is not None:
                results.append([float(x) for x in hit.vector])
                continue
            try:
                vector = await self.client.embed(text)
            except RecallError as exc:
                LOG.warning("Embedding request failed: %s", exc)
                results.append(None)
                continue
            # Same scale as a cache hit.
            scaled = normalize(vector)
            if scaled is None:
                LOG.warning("Provider returned an unusable vector for %s", key)
                results.append(None)
                continue
            results.append([float(x) for x in scaled])
            fresh.append({"id": key, "embedding": scaled, "metadata": {"model": self.client.model}})
        if fresh:
            await self.store.put_many(fresh)
        LOG.debug("embedding cache hits: %s, misses: %s", len(cached), len(texts) - len(cached))
        return results
