"""Float32 vector helpers shared by the store, embedder and retriever."""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any

import numpy as np

# Stored element type: little-endian float32, 4 bytes per component.
DTYPE = np.dtype("<f4")
ELEMENT_BYTES = DTYPE.itemsize


def as_array(vector: Any) -> np.ndarray | None:
    """Coerce a list/tuple/ndarray of numbers to a 1-d float32 array, or None."""
    if vector is None or isinstance(vector, (str, bytes, dict)):
        return None
    if not isinstance(vector, (Sequence, np.ndarray)):
        return None
    try:
        array = np.asarray(vector, dtype=DTYPE)
    except (TypeError, ValueError):
        return None
    if array.ndim != 1 or array.size == 0:
        return None
    return array


def is_vector(value: Any) -> bool:
    return as_array(value) is not None


def normalize(vector: Any) -> np.ndarray | None:
    """Scale to unit L2 length.

    All-zero vectors are returned unscaled. Returns None when the input is not
    a non-empty numeric sequence or its norm is not finite (NaN/inf components).
    """
    array = as_array(vector)
    if array is None:
        return None
    wide = array.astype(np.float64)
    norm = float(np.dot(wide, wide))
    if not math.isfinite(norm):
        return None
    if norm == 0:
        return array
    length = math.sqrt(norm)
    if length == 0:
        return array
    return (wide * (1.0 / length)).astype(DTYPE)


def to_bytes(vector: np.ndarray) -> bytes:
    return np.ascontiguousarray(vector, dtype=DTYPE).tobytes()


def from_bytes(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=DTYPE).copy()


def byte_size(vector: np.ndarray) -> int:
    return int(vector.size) * ELEMENT_BYTES


def overlap_dot(a: np.ndarray, b: np.ndarray) -> float:
    """Dot product over the shared leading dimensions; mismatched lengths are not an error."""
    n = min(a.size, b.size)
    if n == 0:
        return 0.0
    return float(np.dot(a[:n].astype(np.float64), b[:n].astype(np.float64)))


def cosine_similarity(a: Any, b: Any) -> float:
    """Cosine similarity; 0.0 for empty, zero-norm or differently sized vectors."""
    va = as_array(a)
    vb = as_array(b)
    if va is None or vb is None or va.size != vb.size:
        return 0.0
    wa = va.astype(np.float64)
    wb = vb.astype(np.float64)
    na = float(np.dot(wa, wa))
    nb = float(np.dot(wb, wb))
    if na == 0 or nb == 0:
        return 0.0
    return float(np.dot(wa, wb)) / (math.sqrt(na) * math.sqrt(nb))
