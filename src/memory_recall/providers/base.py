"""
Embedding provider capability.

A provider is anything with ``name``, ``model``, ``dimension``,
``cost_per_token``, ``is_available()`` and ``embed(texts)``. The variants
(fake, local, remote) share this shape and nothing else; EmbeddingService
treats them uniformly, including the offline fallback. A provider may set
``blocking = False`` to be called inline instead of on a worker pool.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Protocol, Sequence

import numpy as np


@dataclass(frozen=True)
class ProviderSpec:
    name: str
    model: str
    dimension: int
    cost_per_token: float  # USD


# Known providers and their default models (dimension, pricing per token).
PROVIDER_SPECS: Dict[str, ProviderSpec] = {
    "openai": ProviderSpec("openai", "text-embedding-3-small", 1536, 0.02 / 1_000_000),
    "voyage": ProviderSpec("voyage", "voyage-2", 1024, 0.12 / 1_000_000),
    "ollama": ProviderSpec("ollama", "nomic-embed-text", 768, 0.0),
    "local": ProviderSpec("local", "sentence-transformers/all-MiniLM-L6-v2", 384, 0.0),
    "fake": ProviderSpec("fake", "heuristic-hash", 256, 0.0),
}


@dataclass(frozen=True)
class EmbeddingBatch:
    vectors: List[np.ndarray]
    tokens: int = 0


class EmbeddingProvider(Protocol):
    name: str
    model: str
    dimension: int
    cost_per_token: float

    def is_available(self) -> bool:
        ...

    def embed(self, texts: Sequence[str]) -> EmbeddingBatch:
        ...


def approx_tokens(texts: Sequence[str]) -> int:
    # whitespace word count, used when a backend reports no usage
    return sum(len((t or "").split()) for t in texts)
