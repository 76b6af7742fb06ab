"""Hybrid ranking: 0.8 vector similarity + 0.2 lexical overlap."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from vectorrecall.config import RecallConfig
from vectorrecall.memory.lexical import lexical_overlap
from vectorrecall.vectors import cosine_similarity, is_vector

LOG = logging.getLogger("vectorrecall.retriever")

T = TypeVar("T")

VECTOR_WEIGHT = 0.8
LEXICAL_WEIGHT = 0.2
DEFAULT_RETRIEVAL_COUNT = 5


@dataclass(frozen=True)
class ScoredCandidate(Generic[T]):
    entry: T
    score: float
    vector_score: float | None
    lexical_score: float


def combine_scores(vector_score: float | None, lexical_score: float) -> float:
    if vector_score is None:
        return lexical_score
    return vector_score * VECTOR_WEIGHT + lexical_score * LEXICAL_WEIGHT


async def score_candidates(
    candidates: Sequence[T],
    limit: int = 0,
    use_embeddings: bool = False,
    query_vector: Sequence[float] | None = None,
    ensure_embedding: Callable[[T], Awaitable[Any] | Any] | None = None,
    lexical_scorer: Callable[[T], float] | None = None,
    similarity: Callable[[Any, Any], float] | None = None,
    debug_hook: Callable[[BaseException, T], Any] | None = None,
) -> list[ScoredCandidate[T]]:
    """Rank ``candidates`` by combined score, dropping anything not above zero.

    A candidate's vector score is only attempted when embeddings are enabled
    and a query vector, resolver and similarity function are all given. A
    resolver error leaves that candidate lexical-only.
    """
    vectors_enabled = (
        use_embeddings
        and query_vector is not None
        and is_vector(query_vector)
        and ensure_embedding is not None
        and similarity is not None
    )
    scored: list[ScoredCandidate[T]] = []
    for entry in candidates or []:
        lexical_score = float(lexical_scorer(entry)) if lexical_scorer is not None else 0.0
        vector_score: float | None = None
        if vectors_enabled:
            try:
                vector = ensure_embedding(entry)
                if inspect.isawaitable(vector):
                    vector = await vector
                if is_vector(vector):
                    vector_score = float(similarity(query_vector, vector))
            except Exception as exc:
                vector_score = None
                if debug_hook is not None:
                    debug_hook(exc, entry)
        combined = combine_scores(vector_score, lexical_score)
        if combined > 0:
            scored.append(ScoredCandidate(entry, combined, vector_score, lexical_score))
    # list.sort is stable: exact ties keep input order.
    scored.sort(key=lambda item: -item.score)
    return scored[:limit] if limit > 0 else scored


EmbedTexts = Callable[[list[str]], Awaitable[list[Any]]]


class Retriever:
    """Rank memory candidates (chunk dicts) for a prompt."""

    def __init__(
        self,
        embed: EmbedTexts | None = None,
        use_embeddings: bool = True,
        config: RecallConfig | None = None,
    ):
        self.embed = embed
        self.use_embeddings = use_embeddings and embed is not None
        self.default_limit = config.retrieval_count if config is not None else DEFAULT_RETRIEVAL_COUNT

    async def _embed_one(self, text: str) -> Any:
        assert self.embed is not None
        vectors = await self.embed([text])
        return vectors[0] if vectors else None

    async def _query_vector(self, prompt: str) -> Any:
        if not self.use_embeddings:
            return None
        try:
            return await self._embed_one(prompt)
        except Exception:
            LOG.warning("Failed to embed retrieval query", exc_info=True)
            return None

    async def _ensure_embedding(self, entry: dict[str, Any]) -> Any:
        existing = entry.get("embedding")
        if is_vector(existing):
            return existing
        vector = await self._embed_one(str(entry.get("content", "")))
        entry["embedding"] = vector
        return vector

    @staticmethod
    def _log_failure(error: BaseException, entry: dict[str, Any]) -> None:
        LOG.warning("Failed to embed memory entry %s: %s", entry.get("id"), error)

    async def retrieve(
        self,
        prompt: str,
        candidates: list[dict[str, Any]],
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        if not candidates:
            return []
        if limit is None:
            limit = self.default_limit
        query_vector = await self._query_vector(prompt)
        results = await score_candidates(
            candidates,
            limit=limit,
            use_embeddings=is_vector(query_vector),
            query_vector=query_vector,
            ensure_embedding=self._ensure_embedding,
            lexical_scorer=lambda entry: lexical_overlap(prompt, str(entry.get("content", ""))),
            similarity=cosine_similarity,
            debug_hook=self._log_failure,
        )
        LOG.debug("Retrieved %s of %s candidates", len(results), len(candidates))
        return [item.entry for item in results]
