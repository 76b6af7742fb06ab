"""Embedding providers: selection, requests and the store-backed cache."""

from vectorrecall.embeddings.cache import EmbeddingCache
from vectorrecall.embeddings.client import EmbeddingClient, request_vector
from vectorrecall.embeddings.providers import (
    EmbeddingProvider,
    ProviderResolver,
    ProviderSelection,
    ResolveState,
    normalize_base_url,
    resolve_provider,
)

__all__ = [
    "EmbeddingCache",
    "EmbeddingClient",
    "request_vector",
    "EmbeddingProvider",
    "ProviderResolver",
    "ProviderSelection",
    "ResolveState",
    "normalize_base_url",
    "resolve_provider",
]
