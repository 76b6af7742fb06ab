"""Error types raised by the recall subsystem."""

from __future__ import annotations


class RecallError(Exception):
    """Base class for every error raised by vectorrecall."""


class InvalidInput(RecallError, ValueError):
    """Empty or malformed text/vector handed to an operation."""


class ProviderError(RecallError):
    """An embedding request failed."""


class ProviderHttpError(ProviderError):
    def __init__(self, provider: str, status: int, endpoint: str = ""):
        self.provider = provider
        self.status = status
        self.endpoint = endpoint
        super().__init__(f"{provider} embedding HTTP {status}" + (f" ({endpoint})" if endpoint else ""))


class ProviderEmpty(ProviderError):
    """The provider answered but no vector could be extracted."""


class StorageError(RecallError):
    """The durable vector backend failed."""
