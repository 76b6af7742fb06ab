"""Embedding requests shaped per provider.

Remote embeddings go through the OpenAI SDK; LM Studio and Ollama are plain
JSON-over-HTTP calls made with httpx.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError

from vectorrecall.config import RecallConfig
from vectorrecall.embeddings.providers import (
    DEFAULT_LM_STUDIO_BASE,
    DEFAULT_OLLAMA_BASE,
    EmbeddingProvider,
    ProviderSelection,
    normalize_base_url,
    resolve_provider,
)
from vectorrecall.errors import InvalidInput, ProviderEmpty, ProviderError, ProviderHttpError

LOG = logging.getLogger("vectorrecall.embeddings")

DEFAULT_MODEL = "text-embedding-3-small"


def _vector_from(candidate: Any) -> list[float] | None:
    if not isinstance(candidate, list) or not candidate:
        return None
    vector = []
    for value in candidate:
        try:
            vector.append(float(value))
        except (TypeError, ValueError):
            vector.append(0.0)
    return vector


def _extract_vector(data: Any) -> list[float] | None:
    if not isinstance(data, dict):
        return None
    embeddings = data.get("embeddings")
    if isinstance(embeddings, list) and embeddings:
        vector = _vector_from(embeddings[0])
        if vector:
            return vector
    vector = _vector_from(data.get("embedding"))
    if vector:
        return vector
    items = data.get("data")
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return _vector_from(items[0].get("embedding"))
    return None


async def _post_json(
    client: httpx.AsyncClient,
    provider: EmbeddingProvider,
    url: str,
    payload: dict[str, Any],
    timeout: float,
) -> list[float]:
    try:
        response = await client.post(url, json=payload, timeout=timeout)
    except httpx.HTTPError as exc:
        raise ProviderError(f"{provider.value} embedding request to {url} failed: {exc}") from exc
    if not response.is_success:
        raise ProviderHttpError(provider.value, response.status_code, url)
    content_type = response.headers.get("content-type", "")
    if "json" not in content_type.lower():
        raise ProviderEmpty(f"Unexpected content-type from {url}: {content_type}")
    try:
        data = response.json()
    except ValueError as exc:
        raise ProviderEmpty(f"Invalid JSON from {url}") from exc
    vector = _extract_vector(data)
    if not vector:
        raise ProviderEmpty(f"{provider.value} embedding missing")
    LOG.debug("%s embedding ok: %s status=%s dim=%s", provider.value, url, response.status_code, len(vector))
    return vector


async def _request_openai(
    selection: ProviderSelection,
    text: str,
    model: str,
    api_key: str,
    timeout: float,
    openai_client: AsyncOpenAI | None,
) -> list[float]:
    try:
        if openai_client is None:
            kwargs: dict[str, Any] = {"timeout": timeout, "max_retries": 0}
            if api_key:
                kwargs["api_key"] = api_key
            if selection.base_url:
                kwargs["base_url"] = f"{selection.base_url}/v1"
            openai_client = AsyncOpenAI(**kwargs)
        response = await openai_client.embeddings.create(model=model, input=[text])
    except APIStatusError as exc:
        raise ProviderHttpError(EmbeddingProvider.OPENAI.value, exc.status_code) from exc
    except APIConnectionError as exc:
        raise ProviderError(f"Remote embedding request failed: {exc}") from exc
    except OpenAIError as exc:
        raise ProviderError(f"Remote embedding unavailable: {exc}") from exc
    data = getattr(response, "data", None) or []
    vector = _vector_from(list(data[0].embedding)) if data else None
    if not vector:
        raise ProviderEmpty("Remote embedding missing")
    return vector


async def request_vector(
    selection: ProviderSelection,
    text: str,
    model: str = DEFAULT_MODEL,
    api_key: str = "",
    client: httpx.AsyncClient | None = None,
    openai_client: AsyncOpenAI | None = None,
    timeout: float = 30.0,
) -> list[float]:
    """Request one embedding vector for ``text`` from the selected provider."""
    if not isinstance(text, str) or not text.strip():
        raise InvalidInput("Embedding text must be a non-empty string")
    trimmed = text.strip()
    provider = selection.provider

    if provider is EmbeddingProvider.OPENAI:
        return await _request_openai(selection, trimmed, model, api_key, timeout, openai_client)

    if provider is EmbeddingProvider.LM_STUDIO:
        base = normalize_base_url(selection.base_url or DEFAULT_LM_STUDIO_BASE)
        url = f"{base}/v1/embeddings"
    elif provider is EmbeddingProvider.OLLAMA:
        base = normalize_base_url(selection.base_url or DEFAULT_OLLAMA_BASE)
        url = f"{base}/api/embed"
    else:
        raise InvalidInput(f"Provider {provider.value} must be resolved before requesting vectors")

    payload = {"model": model, "input": trimmed}
    if client is not None:
        return await _post_json(client, provider, url, payload, timeout)
    async with httpx.AsyncClient(timeout=timeout) as owned:
        return await _post_json(owned, provider, url, payload, timeout)


class EmbeddingClient:
    """Resolves the provider once per session and embeds text with it."""

    def __init__(
        self,
        config: RecallConfig | None = None,
        selection: ProviderSelection | None = None,
        client: httpx.AsyncClient | None = None,
        openai_client: AsyncOpenAI | None = None,
    ):
        self.config = config or RecallConfig.from_env()
        self._selection = selection
        self._client = client
        self._openai_client = openai_client

    @property
    def model(self) -> str:
        return self.config.embed_model

    async def selection(self) -> ProviderSelection:
        if self._selection is None:
            self._selection = await resolve_provider(
                self.config.embed_provider,
                embedding_endpoint=self.config.embed_endpoint,
                model_endpoint=self.config.model_endpoint,
                client=self._client,
                probe_timeout=self.config.probe_timeout_seconds,
            )
        return self._selection

    async def embed(self, text: str, context: dict[str, Any] | None = None) -> list[float]:
        """Embed one text; signature matches the chunk embedder callback."""
        selection = await self.selection()
        return await request_vector(
            selection,
            text,
            model=self.config.embed_model,
            api_key=self.config.openai_api_key,
            client=self._client,
            openai_client=self._openai_client,
            timeout=self.config.embed_timeout_seconds,
        )
