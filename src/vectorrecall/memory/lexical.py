"""Token-overlap scoring and the deterministic lexical embedding fallback."""

from __future__ import annotations

import hashlib
import re

import numpy as np

from vectorrecall.vectors import normalize

LEXICAL_DIMS = 256

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


def tokenize(text: str) -> list[str]:
    if not text:
        return []
    return [t for t in _TOKEN_SPLIT.split(str(text).lower()) if t]


def lexical_overlap(a: str, b: str) -> float:
    """Shared-token ratio: |A & B| / max(|A|, |B|) over token sets."""
    if not a or not b:
        return 0.0
    tokens_a = set(tokenize(a))
    tokens_b = set(tokenize(b))
    if not tokens_a or not tokens_b:
        return 0.0
    overlap = len(tokens_a & tokens_b)
    return overlap / max(len(tokens_a), len(tokens_b))


def _bucket(token: str, dims: int) -> tuple[int, float]:
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    value = int.from_bytes(digest, "little")
    sign = 1.0 if value & 1 else -1.0
    return (value >> 1) % dims, sign


def lexical_embedding(text: str, dims: int = LEXICAL_DIMS) -> list[float]:
    """Signed feature-hashing of tokens into ``dims`` buckets, unit length.

    Pure and deterministic across processes (blake2b, not ``hash()``). Text
    without tokens maps to the zero vector.
    """
    vector = np.zeros(dims, dtype=np.float32)
    for token in tokenize(text):
        index, sign = _bucket(token, dims)
        vector[index] += sign
    scaled = normalize(vector)
    return [float(x) for x in (scaled if scaled is not None else vector)]
