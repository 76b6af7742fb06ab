"""Memory: SQLite vector cache, chunk embedding and hybrid retrieval."""

from vectorrecall.memory.chunks import Chunk, apply_board_embeddings, board_entries_to_chunks
from vectorrecall.memory.embedder import embed_and_store, embed_into_store
from vectorrecall.memory.lexical import lexical_embedding, lexical_overlap, tokenize
from vectorrecall.memory.retriever import Retriever, ScoredCandidate, score_candidates
from vectorrecall.memory.store import StoreStats, VectorMatch, VectorStore

__all__ = [
    "Chunk",
    "apply_board_embeddings",
    "board_entries_to_chunks",
    "embed_and_store",
    "embed_into_store",
    "lexical_embedding",
    "lexical_overlap",
    "tokenize",
    "Retriever",
    "ScoredCandidate",
    "score_candidates",
    "StoreStats",
    "VectorMatch",
    "VectorStore",
]
