from __future__ import annotations

import asyncio

import pytest

from vectorrecall.config import RecallConfig
from vectorrecall.memory.retriever import Retriever, ScoredCandidate, combine_scores, score_candidates
from vectorrecall.vectors import cosine_similarity


def test_combined_score_weights() -> None:
    assert combine_scores(0.9, 0.5) == pytest.approx(0.82)
    assert combine_scores(None, 0.4) == pytest.approx(0.4)


def test_vector_and_lexical_blend() -> None:
    candidates = [{"id": "a"}]

    result = asyncio.run(
        score_candidates(
            candidates,
            use_embeddings=True,
            query_vector=[1.0, 0.0],
            ensure_embedding=lambda entry: [1.0, 0.0],
            lexical_scorer=lambda entry: 0.5,
            similarity=lambda q, v: 0.9,
        )
    )
    assert result == [ScoredCandidate(entry=candidates[0], score=pytest.approx(0.82), vector_score=0.9, lexical_score=0.5)]
    assert result[0].entry is candidates[0]


def test_failed_resolution_with_zero_lexical_is_excluded() -> None:
    errors: list[tuple[str, str]] = []

    async def ensure(entry):
        raise RuntimeError(f"cannot embed {entry}")

    result = asyncio.run(
        score_candidates(
            ["x", "y"],
            use_embeddings=True,
            query_vector=[1.0],
            ensure_embedding=ensure,
            lexical_scorer=lambda entry: 0.3 if entry == "y" else 0.0,
            similarity=cosine_similarity,
            debug_hook=lambda error, entry: errors.append((str(error), entry)),
        )
    )
    assert [(r.entry, r.vector_score, r.score) for r in result] == [("y", None, pytest.approx(0.3))]
    assert errors == [("cannot embed x", "x"), ("cannot embed y", "y")]


def test_vector_scoring_requires_all_inputs() -> None:
    calls = 0

    def ensure(entry):
        nonlocal calls
        calls += 1
        return [1.0]

    for kwargs in (
        {"use_embeddings": False, "query_vector": [1.0], "similarity": cosine_similarity},
        {"use_embeddings": True, "query_vector": None, "similarity": cosine_similarity},
        {"use_embeddings": True, "query_vector": [1.0], "similarity": None},
    ):
        result = asyncio.run(score_candidates(["a"], ensure_embedding=ensure, lexical_scorer=lambda e: 0.2, **kwargs))
        assert result[0].vector_score is None
    assert calls == 0


def test_empty_resolved_vector_is_lexical_only() -> None:
    result = asyncio.run(
        score_candidates(
            ["a"],
            use_embeddings=True,
            query_vector=[1.0],
            ensure_embedding=lambda entry: [],
            lexical_scorer=lambda entry: 0.25,
            similarity=cosine_similarity,
        )
    )
    assert result[0].vector_score is None
    assert result[0].score == pytest.approx(0.25)


def test_negative_scores_excluded_sorted_stable_and_limited() -> None:
    scores = {"a": 0.2, "b": 0.5, "c": 0.2, "d": -0.1, "e": 0.0, "f": 0.5}
    result = asyncio.run(score_candidates(list(scores), lexical_scorer=scores.get))
    assert [r.entry for r in result] == ["b", "f", "a", "c"]

    limited = asyncio.run(score_candidates(list(scores), lexical_scorer=scores.get, limit=3))
    assert [r.entry for r in limited] == ["b", "f", "a"]


def test_no_lexical_scorer_means_zero() -> None:
    assert asyncio.run(score_candidates(["a", "b"])) == []


def test_retriever_blends_and_writes_back_embeddings() -> None:
    vectors = {
        "where is the launch": [1.0, 0.0],
        "launch is on friday": [0.9, 0.1],
        "lunch menu": [0.0, 1.0],
    }
    requested: list[str] = []

    async def embed(texts: list[str]):
        requested.extend(texts)
        return [vectors.get(t) for t in texts]

    candidates = [
        {"id": "m1", "content": "lunch menu"},
        {"id": "m2", "content": "launch is on friday"},
        {"id": "m3", "content": "unrelated", "embedding": [0.0, -1.0]},
    ]
    ranked = asyncio.run(Retriever(embed).retrieve("where is the launch", candidates, limit=5))
    assert [c["id"] for c in ranked] == ["m2"]
    assert candidates[0]["embedding"] == [0.0, 1.0]
    assert "unrelated" not in requested


def test_retriever_without_embeddings_is_lexical() -> None:
    candidates = [{"id": "m1", "content": "budget review"}, {"id": "m2", "content": "launch review notes"}]
    ranked = asyncio.run(Retriever(None).retrieve("launch review", candidates))
    assert [c["id"] for c in ranked] == ["m2", "m1"]


def test_retriever_query_embedding_failure_falls_back_to_lexical() -> None:
    async def embed(texts):
        raise RuntimeError("provider offline")

    ranked = asyncio.run(Retriever(embed).retrieve("launch", [{"id": "m1", "content": "launch day"}]))
    assert [c["id"] for c in ranked] == ["m1"]


def test_retriever_default_limit_comes_from_config() -> None:
    candidates = [{"id": f"m{i}", "content": f"launch item {i}"} for i in range(8)]
    ranked = asyncio.run(Retriever(None, config=RecallConfig(retrieval_count=2)).retrieve("launch", candidates))
    assert [c["id"] for c in ranked] == ["m0", "m1"]


def test_retriever_default_limit_without_config_is_five() -> None:
    candidates = [{"id": f"m{i}", "content": f"launch item {i}"} for i in range(8)]
    ranked = asyncio.run(Retriever(None).retrieve("launch", candidates))
    assert len(ranked) == 5
