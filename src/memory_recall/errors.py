"""
Error taxonomy shared by providers, the embedding service and the stream.

Provider-level failures (ProviderUnavailable, ProviderError) are recovered
inside EmbeddingService by walking the fallback chain; only
AllProvidersExhausted reaches the caller.
"""
from __future__ import annotations

from typing import List, Tuple


class MemoryRecallError(Exception):
    """Base class for every error raised by memory_recall."""


class ProviderUnavailable(MemoryRecallError):
    """Auth, network, quota or timeout failure. Transient; triggers fallback."""

    def __init__(self, provider: str, reason: str = "unavailable"):
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


class ProviderError(MemoryRecallError):
    """Malformed or unexpected provider response. Triggers fallback."""

    def __init__(self, provider: str, reason: str = "bad response"):
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


class AllProvidersExhausted(MemoryRecallError):
    def __init__(self, attempts: List[Tuple[str, str]]):
        tried = ", ".join(f"{name} ({why})" for name, why in attempts) or "none"
        super().__init__(f"all embedding providers failed: {tried}")
        self.attempts = list(attempts)


class DimensionMismatch(MemoryRecallError, ValueError):
    def __init__(self, left: int, right: int):
        super().__init__(f"dim mismatch: {left} != {right}")
        self.left = left
        self.right = right


class UnknownProvider(MemoryRecallError, KeyError):
    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"unknown embedding provider: {self.name!r}"


class OutOfOrderObservation(MemoryRecallError, ValueError):
    def __init__(self, timestamp: float, newest: float):
        super().__init__(
            f"timestamp {timestamp} is older than the newest memory ({newest}); "
            "the stream is append-only"
        )
        self.timestamp = timestamp
        self.newest = newest
