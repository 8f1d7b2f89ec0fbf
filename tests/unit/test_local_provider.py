from __future__ import annotations

import numpy as np
import pytest

from memory_recall.core.config import EmbeddingConfig
from memory_recall.core.embedding_service import EmbeddingService
from memory_recall.providers import SentenceTransformerProvider


def test_construction_is_lazy():
    p = SentenceTransformerProvider(model_name="not-a-real/model")
    assert p.name == "local"
    assert p.model == "not-a-real/model"
    assert p.dimension == 384
    assert p.cost_per_token == 0.0


@pytest.mark.embeddings
def test_local_embeddings_are_normalized_and_ranked():
    p = SentenceTransformerProvider()
    batch = p.embed(["I am hungry and need food", "Looking for something to eat", "The stairs go down"])
    v = np.stack(batch.vectors)
    assert v.shape == (3, p.dimension)
    assert np.allclose(np.linalg.norm(v, axis=1), 1.0, atol=1e-4)
    assert float(v[0] @ v[1]) > float(v[0] @ v[2])


@pytest.mark.embeddings
def test_service_with_local_primary():
    cfg = EmbeddingConfig(provider="local", fallback_chain=("local", "fake"))
    with EmbeddingService(cfg) as svc:
        vec = svc.generate_embedding("hello world")
        assert svc.get_current_provider() == "local"
        assert vec.shape[0] == svc.get_current_dimension()
