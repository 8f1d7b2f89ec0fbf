from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..errors import MemoryRecallError, ProviderError, ProviderUnavailable, UnknownProvider
from .base import PROVIDER_SPECS, EmbeddingBatch, approx_tokens

# texts -> vectors, or texts -> (vectors, tokens_used)
EmbedFn = Callable[[List[str]], Union[Sequence[Any], Tuple[Sequence[Any], int]]]


class CallableEmbeddingProvider:
    """
    Adapter for a network-backed vendor client (openai, voyage, ollama).

    The vendor call itself is injected as ``embed_fn``; this class only
    supplies the provider identity, pricing and error mapping. Exceptions
    that are not already ProviderUnavailable/ProviderError are reported as
    ProviderUnavailable so the service falls back instead of crashing.
    """

    def __init__(
        self,
        name: str,
        embed_fn: EmbedFn,
        model: Optional[str] = None,
        dimension: Optional[int] = None,
        cost_per_token: Optional[float] = None,
        health_check: Optional[Callable[[], bool]] = None,
    ) -> None:
        spec = PROVIDER_SPECS.get(name)
        if spec is None and (model is None or dimension is None):
            raise UnknownProvider(name)
        self.name = name
        self.model = model or spec.model
        self.dimension = int(dimension or spec.dimension)
        if cost_per_token is None:
            cost_per_token = spec.cost_per_token if spec is not None else 0.0
        self.cost_per_token = float(cost_per_token)
        self._embed_fn = embed_fn
        self._health_check = health_check

    def is_available(self) -> bool:
        if self._health_check is None:
            return True
        try:
            return bool(self._health_check())
        except Exception:
            return False

    def embed(self, texts: Sequence[str]) -> EmbeddingBatch:
        batch = list(texts)
        try:
            out = self._embed_fn(batch)
        except MemoryRecallError:
            raise
        except Exception as e:
            raise ProviderUnavailable(self.name, f"{type(e).__name__}: {e}") from e

        tokens: Optional[int] = None
        if isinstance(out, tuple) and len(out) == 2 and isinstance(out[1], int):
            out, tokens = out
        try:
            vectors = [np.asarray(v, dtype=np.float32).reshape(-1) for v in out]
        except (TypeError, ValueError) as e:
            raise ProviderError(self.name, f"unparseable embedding payload: {e}") from e

        return EmbeddingBatch(vectors=vectors, tokens=approx_tokens(batch) if tokens is None else int(tokens))
