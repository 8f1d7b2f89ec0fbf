from __future__ import annotations

import importlib.util
import logging
import threading
from typing import Any, Optional, Sequence

import numpy as np

from ..errors import ProviderUnavailable
from .base import PROVIDER_SPECS, EmbeddingBatch, approx_tokens

logger = logging.getLogger(__name__)


class SentenceTransformerProvider:
    """
    Local embeddings via sentence-transformers.

    The model is loaded on first use, so constructing the provider is cheap
    and does not require the library to be installed. ``is_available()``
    only checks that the library can be imported.
    """

    def __init__(self, model_name: Optional[str] = None, dimension: Optional[int] = None) -> None:
        spec = PROVIDER_SPECS["local"]
        self.name = "local"
        self.model = model_name or spec.model
        self.dimension = int(dimension or spec.dimension)
        self.cost_per_token = 0.0
        self._model: Any = None
        self._lock = threading.Lock()

    def is_available(self) -> bool:
        return importlib.util.find_spec("sentence_transformers") is not None

    def _load(self) -> Any:
        with self._lock:
            if self._model is not None:
                return self._model
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as e:
                raise ProviderUnavailable(self.name, "sentence-transformers is not installed") from e

            logger.info(f"Embeddings: loading local model {self.model}")
            model = SentenceTransformer(self.model)
            model_dim = int(model.get_sentence_embedding_dimension())
            if model_dim != self.dimension:
                logger.info(f"Embeddings: local model reports dim {model_dim} (configured {self.dimension})")
                self.dimension = model_dim
            self._model = model
            return model

    def embed(self, texts: Sequence[str]) -> EmbeddingBatch:
        model = self._load()
        emb = model.encode(
            list(texts), convert_to_numpy=True, normalize_embeddings=True, show_progress_bar=False
        ).astype(np.float32)
        return EmbeddingBatch(vectors=[row for row in emb], tokens=approx_tokens(texts))
