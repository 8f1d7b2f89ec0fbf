from __future__ import annotations

from typing import Sequence

import numpy as np

from ..core.similarity import tokenize
from ..utils.hashing import stable_seed, token_bucket
from .base import PROVIDER_SPECS, EmbeddingBatch, approx_tokens

STOP_WORDS = frozenset(
    """
    a an the and or but of to in on at by for from with into onto about as
    is are was were be been being am it its this that these those there here
    i me my we our you your he she they them their his her
    do does did have has had can could will would should may might must
    not no so very just some any all
    """.split()
)


class FakeEmbeddingProvider:
    """
    Offline, deterministic embeddings. Never fails.

    Signed feature hashing of word tokens (stop words dropped) into
    ``dimension`` buckets, L2-normalized. Texts sharing words get positive
    cosine similarity, identical texts get bit-identical vectors. Text with
    no usable tokens falls back to a unit vector drawn from a SHA-256-seeded
    generator, so the output is never the zero vector.
    """

    # pure CPU work that cannot hang; EmbeddingService calls it inline
    blocking = False

    def __init__(self, dimension: int = PROVIDER_SPECS["fake"].dimension) -> None:
        if int(dimension) <= 0:
            raise ValueError("dimension must be > 0")
        self.name = "fake"
        self.model = PROVIDER_SPECS["fake"].model
        self.dimension = int(dimension)
        self.cost_per_token = 0.0

    def is_available(self) -> bool:
        return True

    def text_to_vector(self, text: str) -> np.ndarray:
        v = np.zeros(self.dimension, dtype=np.float64)
        for tok in tokenize(text):
            if tok in STOP_WORDS:
                continue
            idx, sign = token_bucket(tok, self.dimension)
            v[idx] += sign

        norm = float(np.linalg.norm(v))
        if norm == 0.0:
            rng = np.random.default_rng(stable_seed(text or ""))
            v = rng.standard_normal(self.dimension)
            norm = float(np.linalg.norm(v))
        return (v / norm).astype(np.float32)

    def embed(self, texts: Sequence[str]) -> EmbeddingBatch:
        return EmbeddingBatch(
            vectors=[self.text_to_vector(t) for t in texts],
            tokens=approx_tokens(texts),
        )
