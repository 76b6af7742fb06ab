from __future__ import annotations

import asyncio

import httpx
import pytest

from vectorrecall.embeddings.providers import (
    EmbeddingProvider,
    ProviderResolver,
    ProviderSelection,
    ResolveState,
    candidate_bases,
    normalize_base_url,
    resolve_provider,
)


def _client(alive: set[str], seen: list[str] | None = None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if seen is not None:
            seen.append(url)
        if url in alive:
            return httpx.Response(200, json={"models": []})
        if "unreachable" in url:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(404)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _resolve(preference, alive: set[str], seen: list[str] | None = None, **kwargs) -> ProviderSelection:
    async def run() -> ProviderSelection:
        async with _client(alive, seen) as client:
            return await resolve_provider(preference, client=client, **kwargs)

    return asyncio.run(run())


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("http://localhost:1234/v1/embeddings", "http://localhost:1234"),
        ("https://api.openai.com/v1/embeddings?x=1#frag", "https://api.openai.com"),
        ("http://127.0.0.1:11434/", "http://127.0.0.1:11434"),
        ("localhost:1234/api", "localhost:1234"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_base_url(raw, expected) -> None:
    assert normalize_base_url(raw) == expected


def test_candidate_bases_dedupes_in_order() -> None:
    assert candidate_bases("http://localhost:11434/api/embed", "http://gpu-box:8080/v1") == [
        "http://localhost:11434",
        "http://gpu-box:8080",
        "http://localhost:1234",
    ]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("auto", EmbeddingProvider.AUTO),
        ("remote", EmbeddingProvider.OPENAI),
        ("OpenAI", EmbeddingProvider.OPENAI),
        ("local-a", EmbeddingProvider.LM_STUDIO),
        ("lmstudio", EmbeddingProvider.LM_STUDIO),
        ("local-b", EmbeddingProvider.OLLAMA),
        ("ollama_local", EmbeddingProvider.OLLAMA),
        ("something-else", EmbeddingProvider.AUTO),
        (None, EmbeddingProvider.AUTO),
    ],
)
def test_provider_from_str(raw, expected) -> None:
    assert EmbeddingProvider.from_str(raw) is expected


def test_forced_providers_do_not_probe() -> None:
    seen: list[str] = []
    assert _resolve("openai", set(), seen, embedding_endpoint="https://proxy.example/v1/embeddings") == ProviderSelection(
        EmbeddingProvider.OPENAI, "https://proxy.example"
    )
    assert _resolve("lmstudio", set(), seen) == ProviderSelection(EmbeddingProvider.LM_STUDIO, "http://localhost:1234")
    assert _resolve("ollama", set(), seen, model_endpoint="http://gpu-box:11434/api/chat") == ProviderSelection(
        EmbeddingProvider.OLLAMA, "http://gpu-box:11434"
    )
    assert seen == []


def test_auto_prefers_lm_studio_on_first_live_base() -> None:
    selection = _resolve("auto", {"http://localhost:1234/api/models"})
    assert selection == ProviderSelection(EmbeddingProvider.LM_STUDIO, "http://localhost:1234")


def test_auto_probes_lm_studio_then_ollama_per_base() -> None:
    seen: list[str] = []
    selection = _resolve(
        "auto",
        {"http://localhost:11434/api/tags"},
        seen,
        embedding_endpoint="http://unreachable:9999/v1/embeddings",
    )
    assert selection == ProviderSelection(EmbeddingProvider.OLLAMA, "http://localhost:11434")
    assert seen == [
        "http://unreachable:9999/api/models",
        "http://unreachable:9999/api/tags",
        "http://localhost:1234/api/models",
        "http://localhost:1234/api/tags",
        "http://localhost:11434/api/models",
        "http://localhost:11434/api/tags",
    ]


def test_auto_falls_back_to_remote() -> None:
    async def run():
        async with _client(set()) as client:
            resolver = ProviderResolver("auto", client=client)
            return await resolver.resolve(), resolver.visited

    selection, visited = asyncio.run(run())
    assert selection == ProviderSelection(EmbeddingProvider.OPENAI, "")
    assert [state for state, _ in visited] == [
        ResolveState.PROBING_LM_STUDIO,
        ResolveState.PROBING_OLLAMA,
        ResolveState.PROBING_LM_STUDIO,
        ResolveState.PROBING_OLLAMA,
        ResolveState.FALLBACK_REMOTE,
    ]
