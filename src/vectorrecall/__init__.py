"""vectorrecall: agent long-term recall over a byte-budgeted vector cache."""

from vectorrecall.errors import (
    InvalidInput,
    ProviderEmpty,
    ProviderError,
    ProviderHttpError,
    RecallError,
    StorageError,
)
from vectorrecall.memory import (
    Retriever,
    ScoredCandidate,
    StoreStats,
    VectorMatch,
    VectorStore,
    apply_board_embeddings,
    board_entries_to_chunks,
    embed_and_store,
    embed_into_store,
    score_candidates,
)

__all__ = [
    "InvalidInput",
    "ProviderEmpty",
    "ProviderError",
    "ProviderHttpError",
    "RecallError",
    "StorageError",
    "Retriever",
    "ScoredCandidate",
    "StoreStats",
    "VectorMatch",
    "VectorStore",
    "apply_board_embeddings",
    "board_entries_to_chunks",
    "embed_and_store",
    "embed_into_store",
    "score_candidates",
]
