"""Embedding provider selection: forced by config or detected by probing local servers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

import httpx

LOG = logging.getLogger("vectorrecall.embeddings")

DEFAULT_LM_STUDIO_BASE = "http://localhost:1234"
DEFAULT_OLLAMA_BASE = "http://localhost:11434"


class EmbeddingProvider(str, Enum):
    AUTO = "auto"
    OPENAI = "openai"
    LM_STUDIO = "lmstudio"
    OLLAMA = "ollama"

    @classmethod
    def from_str(cls, value: str | None) -> "EmbeddingProvider":
        key = (value or "").strip().lower().replace("_", "-")
        aliases = {
            "": cls.AUTO,
            "remote": cls.OPENAI,
            "local-a": cls.LM_STUDIO,
            "lm-studio": cls.LM_STUDIO,
            "local-b": cls.OLLAMA,
            "ollama-local": cls.OLLAMA,
        }
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            LOG.warning("Unknown embedding provider: %s. Using auto detection.", value)
            return cls.AUTO


@dataclass(frozen=True)
class ProviderSelection:
    provider: EmbeddingProvider
    base_url: str = ""


def normalize_base_url(candidate: str | None) -> str:
    """Reduce an endpoint to its origin (scheme://host[:port]), no trailing slash."""
    if not candidate:
        return ""
    text = str(candidate).strip().split("?")[0].split("#")[0]
    if "://" in text:
        parts = urlsplit(text)
        if parts.scheme and parts.netloc:
            return f"{parts.scheme}://{parts.netloc}"
        protocol, rest = text.split("://", 1)
        return f"{protocol}://{rest.split('/')[0]}".rstrip("/")
    return text.split("/")[0]


def candidate_bases(embedding_endpoint: str = "", model_endpoint: str = "") -> list[str]:
    """Probe order: configured embedding endpoint, model endpoint, LM Studio, Ollama."""
    bases = [
        normalize_base_url(embedding_endpoint),
        normalize_base_url(model_endpoint),
        DEFAULT_LM_STUDIO_BASE,
        DEFAULT_OLLAMA_BASE,
    ]
    return [b for b in dict.fromkeys(bases) if b]


class ResolveState(Enum):
    FORCED_REMOTE = "forced_remote"
    FORCED_LM_STUDIO = "forced_lmstudio"
    FORCED_OLLAMA = "forced_ollama"
    PROBING_LM_STUDIO = "probing_lmstudio"
    PROBING_OLLAMA = "probing_ollama"
    FALLBACK_REMOTE = "fallback_remote"


# Listing endpoints that answer 2xx when the server is up.
PROBE_PATHS = {
    EmbeddingProvider.LM_STUDIO: "/api/models",
    EmbeddingProvider.OLLAMA: "/api/tags",
}


class ProviderResolver:
    """Walks the detection states in a fixed order; each probe is bounded by ``probe_timeout``."""

    def __init__(
        self,
        preference: EmbeddingProvider | str = EmbeddingProvider.AUTO,
        embedding_endpoint: str = "",
        model_endpoint: str = "",
        client: httpx.AsyncClient | None = None,
        probe_timeout: float = 2.0,
    ):
        if not isinstance(preference, EmbeddingProvider):
            preference = EmbeddingProvider.from_str(preference)
        self.preference = preference
        self.embedding_endpoint = embedding_endpoint
        self.model_endpoint = model_endpoint
        self.client = client
        self.probe_timeout = probe_timeout
        self.candidates = candidate_bases(embedding_endpoint, model_endpoint)
        self.visited: list[tuple[ResolveState, str]] = []

    def initial_state(self) -> ResolveState:
        if self.preference is EmbeddingProvider.OPENAI:
            return ResolveState.FORCED_REMOTE
        if self.preference is EmbeddingProvider.LM_STUDIO:
            return ResolveState.FORCED_LM_STUDIO
        if self.preference is EmbeddingProvider.OLLAMA:
            return ResolveState.FORCED_OLLAMA
        return ResolveState.PROBING_LM_STUDIO if self.candidates else ResolveState.FALLBACK_REMOTE

    async def _probe(self, client: httpx.AsyncClient, provider: EmbeddingProvider, base: str) -> bool:
        target = f"{base}{PROBE_PATHS[provider]}"
        try:
            response = await client.get(target, timeout=self.probe_timeout)
        except httpx.HTTPError as exc:
            LOG.debug("Local probe skipped: %s (%s)", target, exc)
            return False
        if not response.is_success:
            LOG.debug("Local probe skipped: %s -> %s", target, response.status_code)
            return False
        return True

    async def resolve(self) -> ProviderSelection:
        if self.client is not None:
            return await self._run(self.client)
        async with httpx.AsyncClient(timeout=self.probe_timeout) as client:
            return await self._run(client)

    async def _run(self, client: httpx.AsyncClient) -> ProviderSelection:
        state = self.initial_state()
        index = 0
        while True:
            base = self.candidates[index] if index < len(self.candidates) else ""
            self.visited.append((state, base))
            if state is ResolveState.FORCED_REMOTE:
                return self._select(EmbeddingProvider.OPENAI, normalize_base_url(self.embedding_endpoint), "forced")
            if state is ResolveState.FORCED_LM_STUDIO:
                forced = normalize_base_url(self.embedding_endpoint or self.model_endpoint or DEFAULT_LM_STUDIO_BASE)
                return self._select(EmbeddingProvider.LM_STUDIO, forced)
            if state is ResolveState.FORCED_OLLAMA:
                forced = normalize_base_url(self.embedding_endpoint or self.model_endpoint or DEFAULT_OLLAMA_BASE)
                return self._select(EmbeddingProvider.OLLAMA, forced)
            if state is ResolveState.PROBING_LM_STUDIO:
                if await self._probe(client, EmbeddingProvider.LM_STUDIO, base):
                    return self._select(EmbeddingProvider.LM_STUDIO, base)
                state = ResolveState.PROBING_OLLAMA
                continue
            if state is ResolveState.PROBING_OLLAMA:
                if await self._probe(client, EmbeddingProvider.OLLAMA, base):
                    return self._select(EmbeddingProvider.OLLAMA, base)
                index += 1
                state = ResolveState.PROBING_LM_STUDIO if index < len(self.candidates) else ResolveState.FALLBACK_REMOTE
                continue
            if state is ResolveState.FALLBACK_REMOTE:
                return self._select(EmbeddingProvider.OPENAI, normalize_base_url(self.embedding_endpoint), "remote")
            raise AssertionError(f"unhandled resolve state {state}")

    @staticmethod
    def _select(provider: EmbeddingProvider, base_url: str, label: str = "") -> ProviderSelection:
        LOG.info("Embedding provider = %s (%s)", provider.value, label or base_url)
        return ProviderSelection(provider, base_url)


async def resolve_provider(
    preference: EmbeddingProvider | str = EmbeddingProvider.AUTO,
    embedding_endpoint: str = "",
    model_endpoint: str = "",
    client: httpx.AsyncClient | None = None,
    probe_timeout: float = 2.0,
) -> ProviderSelection:
    resolver = ProviderResolver(preference, embedding_endpoint, model_endpoint, client, probe_timeout)
    return await resolver.resolve()
