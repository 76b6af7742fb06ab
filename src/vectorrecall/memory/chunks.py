"""Chunk shape and helpers for board/transcript entries."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypedDict


class Chunk(TypedDict, total=False):
    id: str
    content: str
    round: int
    turn: int
    agent_id: str
    ts: Any
    summary: str | None
    embedding: list[float] | None


def _pick(entry: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = entry.get(key)
        if value is not None:
            return value
    return default


def board_entries_to_chunks(entries: Any) -> list[Chunk]:
    """Convert raw board entries to chunks, filling a synthetic id and turn when absent."""
    if not isinstance(entries, list):
        return []
    chunks: list[Chunk] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            entry = {}
        chunks.append(
            {
                "id": _pick(entry, "id", default=f"board-{index}"),
                "content": _pick(entry, "content", default=""),
                "round": _pick(entry, "round", default=0),
                "turn": _pick(entry, "turn", default=index + 1),
                "agent_id": _pick(entry, "agent_id", "agentId", default="unknown"),
                "ts": _pick(entry, "ts"),
                "summary": _pick(entry, "summary"),
            }
        )
    return chunks


def apply_board_embeddings(chunks: Any, embeddings: Any) -> Any:
    """Attach ``embeddings[i]`` to ``chunks[i]``; keep the prior embedding where none is given."""
    if not isinstance(chunks, list) or not isinstance(embeddings, list):
        return chunks
    merged = []
    for index, chunk in enumerate(chunks):
        replacement = embeddings[index] if index < len(embeddings) else None
        if isinstance(replacement, list):
            embedding = replacement
        else:
            embedding = chunk.get("embedding")
        merged.append({**chunk, "embedding": embedding})
    return merged
