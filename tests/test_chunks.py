from __future__ import annotations

from vectorrecall.memory.chunks import apply_board_embeddings, board_entries_to_chunks


def test_board_entry_defaults() -> None:
    chunks = board_entries_to_chunks([{"content": "hi"}])
    assert chunks == [
        {
            "id": "board-0",
            "content": "hi",
            "round": 0,
            "turn": 1,
            "agent_id": "unknown",
            "ts": None,
            "summary": None,
        }
    ]


def test_board_entries_keep_given_fields() -> None:
    entries = [
        {"id": "m1", "content": "first", "round": 2, "turn": 7, "agentId": "A", "ts": 123, "summary": "s"},
        {"content": None, "agent_id": "B"},
    ]
    first, second = board_entries_to_chunks(entries)
    assert first == {
        "id": "m1",
        "content": "first",
        "round": 2,
        "turn": 7,
        "agent_id": "A",
        "ts": 123,
        "summary": "s",
    }
    assert second["id"] == "board-1"
    assert second["turn"] == 2
    assert second["content"] == ""
    assert second["agent_id"] == "B"


def test_board_entries_non_list_is_empty() -> None:
    assert board_entries_to_chunks(None) == []
    assert board_entries_to_chunks({"content": "hi"}) == []


def test_apply_board_embeddings_by_position() -> None:
    chunks = [
        {"id": "a", "content": "x", "embedding": [0.5]},
        {"id": "b", "content": "y"},
        {"id": "c", "content": "z", "embedding": [0.1]},
    ]
    merged = apply_board_embeddings(chunks, [[1.0, 2.0], None])
    assert [c["embedding"] for c in merged] == [[1.0, 2.0], None, [0.1]]
    assert chunks[0]["embedding"] == [0.5]
    assert merged[0] is not chunks[0]


def test_apply_board_embeddings_non_list_returns_input() -> None:
    chunks = [{"id": "a"}]
    assert apply_board_embeddings(chunks, None) is chunks
    assert apply_board_embeddings("nope", []) == "nope"
