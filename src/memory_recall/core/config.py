from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

# Canonical provider order, also used by EmbeddingService.cycle_provider().
PROVIDER_NAMES: Tuple[str, ...] = ("openai", "voyage", "ollama", "local", "fake")

DEFAULT_FALLBACK_CHAIN: Tuple[str, ...] = ("openai", "ollama", "fake")

_ENV_PREFIX = "MEMORY_RECALL_"


def _env_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ScoreWeights:
    recency: float = 1.0
    importance: float = 1.0
    relevance: float = 1.0

    def __post_init__(self) -> None:
        for name in ("recency", "importance", "relevance"):
            v = float(getattr(self, name))
            if v < 0.0 or v != v:
                raise ValueError(f"weight '{name}' must be >= 0, got {v}")
            object.__setattr__(self, name, v)

    def as_dict(self) -> Dict[str, float]:
        return {
            "recency": self.recency,
            "importance": self.importance,
            "relevance": self.relevance,
        }


@dataclass(frozen=True)
class EmbeddingConfig:
    # provider selection
    provider: str = "fake"
    fallback_chain: Tuple[str, ...] = DEFAULT_FALLBACK_CHAIN
    # offline provider
    fake_dimension: int = 256
    # cache
    enable_cache: bool = True
    max_cache_size: int = 10000
    normalize_cache_keys: bool = False
    # calls
    request_timeout: float = 30.0
    batch_size: int = 32
    max_workers: int = 4
    # local sentence-transformers model
    local_model: str = "sentence-transformers/all-MiniLM-L6-v2"

    def __post_init__(self) -> None:
        object.__setattr__(self, "fallback_chain", tuple(self.fallback_chain))
        if int(self.fake_dimension) <= 0:
            raise ValueError("fake_dimension must be > 0")
        if int(self.max_cache_size) <= 0:
            raise ValueError("max_cache_size must be > 0")
        if int(self.batch_size) <= 0:
            raise ValueError("batch_size must be > 0")
        if int(self.max_workers) <= 0:
            raise ValueError("max_workers must be > 0")
        if float(self.request_timeout) <= 0.0:
            raise ValueError("request_timeout must be > 0")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EmbeddingConfig":
        env = os.environ if environ is None else environ

        def get(name: str, default: str) -> str:
            return env.get(_ENV_PREFIX + name, default)

        chain_raw = get("FALLBACK_CHAIN", ",".join(DEFAULT_FALLBACK_CHAIN))
        chain = tuple(p.strip() for p in chain_raw.split(",") if p.strip())

        return cls(
            provider=get("PROVIDER", "fake").strip(),
            fallback_chain=chain,
            fake_dimension=int(get("FAKE_DIMENSION", "256")),
            enable_cache=_env_bool(get("ENABLE_CACHE", "true")),
            max_cache_size=int(get("MAX_CACHE_SIZE", "10000")),
            normalize_cache_keys=_env_bool(get("NORMALIZE_CACHE_KEYS", "false")),
            request_timeout=float(get("REQUEST_TIMEOUT", "30")),
            batch_size=int(get("BATCH_SIZE", "32")),
            max_workers=int(get("MAX_WORKERS", "4")),
            local_model=get("LOCAL_MODEL", "sentence-transformers/all-MiniLM-L6-v2"),
        )
