"""Configuration helpers for vectorrecall."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

MB = 1024 * 1024
DEFAULT_MAX_MB = 100
DEFAULT_EMBED_MODEL = "text-embedding-3-small"


def _get_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str(name: str, default: str = "") -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip() or default


def get_db_path() -> Path:
    path = os.environ.get("VECTORRECALL_DB_PATH", "")
    if path:
        return Path(path)
    # Default: project root / data / vectorrecall.db
    root = Path(__file__).resolve().parents[2]
    return root / "data" / "vectorrecall.db"


def _resolve_embed_model() -> str:
    model = _get_str("VECTORRECALL_EMBED_MODEL")
    if model:
        return model
    legacy = _get_str("OPENAI_EMBEDDING_MODEL")
    if legacy:
        logging.getLogger("vectorrecall.config").warning(
            "Deprecated env OPENAI_EMBEDDING_MODEL in use. Set VECTORRECALL_EMBED_MODEL instead."
        )
        return legacy
    return DEFAULT_EMBED_MODEL


@dataclass(frozen=True)
class RecallConfig:
    db_path: Path = Path("data/vectorrecall.db")
    max_mb: int = DEFAULT_MAX_MB
    storage_disabled: bool = False
    embed_provider: str = "auto"
    embed_endpoint: str = ""
    model_endpoint: str = ""
    embed_model: str = DEFAULT_EMBED_MODEL
    openai_api_key: str = ""
    embed_timeout_seconds: float = 30.0
    probe_timeout_seconds: float = 2.0
    top_k: int = 12
    min_similarity: float = 0.18
    retrieval_count: int = 5
    log_level: str = "INFO"

    @property
    def max_bytes(self) -> int:
        return self.max_mb * MB

    @classmethod
    def from_env(cls) -> "RecallConfig":
        return cls(
            db_path=get_db_path(),
            max_mb=_get_int("VECTORRECALL_MAX_MB", DEFAULT_MAX_MB),
            storage_disabled=_get_bool("VECTORRECALL_STORAGE_DISABLED", False),
            embed_provider=_get_str("VECTORRECALL_EMBED_PROVIDER", "auto").lower(),
            embed_endpoint=_get_str("VECTORRECALL_EMBED_ENDPOINT"),
            model_endpoint=_get_str("VECTORRECALL_MODEL_ENDPOINT"),
            embed_model=_resolve_embed_model(),
            openai_api_key=_get_str("OPENAI_API_KEY"),
            embed_timeout_seconds=_get_float("VECTORRECALL_EMBED_TIMEOUT", 30.0),
            probe_timeout_seconds=_get_float("VECTORRECALL_PROBE_TIMEOUT", 2.0),
            top_k=_get_int("VECTORRECALL_TOP_K", 12),
            min_similarity=_get_float("VECTORRECALL_MIN_SIMILARITY", 0.18),
            retrieval_count=_get_int("VECTORRECALL_RETRIEVAL_COUNT", 5),
            log_level=_get_str("VECTORRECALL_LOG_LEVEL", "INFO").upper(),
        )
