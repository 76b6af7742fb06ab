"""Index a board transcript into the vector cache, query it, or show cache stats."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from vectorrecall.config import RecallConfig
from vectorrecall.embeddings.client import EmbeddingClient
from vectorrecall.errors import RecallError
from vectorrecall.memory.chunks import board_entries_to_chunks
from vectorrecall.memory.embedder import embed_into_store
from vectorrecall.memory.lexical import lexical_embedding
from vectorrecall.memory.store import VectorStore

LOG = logging.getLogger("vectorrecall.recall")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vectorrecall-recall", description=__doc__)
    sub = parser.add_subparsers(dest="command", required=True)

    index = sub.add_parser("index", help="Embed board entries from a JSON file into the cache.")
    index.add_argument("board", type=Path, help="JSON file holding a list of board entries.")
    index.add_argument("--source-id", default="board")
    index.add_argument("--lexical-only", action="store_true", help="Skip the embedding provider.")

    query = sub.add_parser("query", help="Print the cached entries most similar to TEXT.")
    query.add_argument("text")
    query.add_argument("--limit", type=int, default=0, help="Max results (default: VECTORRECALL_TOP_K).")
    query.add_argument("--lexical-only", action="store_true", help="Skip the embedding provider.")

    sub.add_parser("stats", help="Print vector cache size.")
    return parser


async def _index(config: RecallConfig, store: VectorStore, args: argparse.Namespace) -> int:
    entries = json.loads(args.board.read_text(encoding="utf-8"))
    chunks = board_entries_to_chunks(entries)
    embedder = None if args.lexical_only else EmbeddingClient(config).embed
    enriched = await embed_into_store(chunks, store, embedder=embedder, source_id=args.source_id)
    print(f"Indexed {len(enriched)} chunks from {args.board}.")
    return 0


async def _query(config: RecallConfig, store: VectorStore, args: argparse.Namespace) -> int:
    vector: list[float] | None = None
    if not args.lexical_only:
        try:
            vector = await EmbeddingClient(config).embed(args.text)
        except RecallError as exc:
            LOG.warning("Query embedding failed, using lexical vector: %s", exc)
    if vector is None:
        vector = lexical_embedding(args.text)
    top_k = args.limit if args.limit > 0 else config.top_k
    matches = await store.get(vector, top_k=top_k, min_similarity=config.min_similarity)
    if not matches:
        print("No matches.")
        return 0
    for match in matches:
        content = ""
        if isinstance(match.metadata, dict):
            content = str(match.metadata.get("content", ""))[:120]
        print(f"{match.similarity:.3f}  {match.id}  {content}")
    return 0


async def _run(args: argparse.Namespace) -> int:
    config = RecallConfig.from_env()
    store = VectorStore(config=config)
    await store.open()
    try:
        if args.command == "index":
            return await _index(config, store, args)
        if args.command == "query":
            return await _query(config, store, args)
        stats = await store.size()
        print(stats.describe(store.max_bytes or config.max_bytes))
        return 0
    finally:
        await store.close()


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=RecallConfig.from_env().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except (RecallError, OSError, json.JSONDecodeError) as e:
        print("Error:", e, file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
