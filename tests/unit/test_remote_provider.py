from __future__ import annotations

import numpy as np
import pytest

from memory_recall.errors import ProviderError, ProviderUnavailable, UnknownProvider
from memory_recall.providers import CallableEmbeddingProvider


def test_known_name_takes_preset_model_and_pricing():
    p = CallableEmbeddingProvider("voyage", lambda texts: [])
    assert p.model == "voyage-2"
    assert p.dimension == 1024
    assert p.cost_per_token == pytest.approx(0.12 / 1_000_000)

    ollama = CallableEmbeddingProvider("ollama", lambda texts: [])
    assert ollama.cost_per_token == 0.0


def test_unknown_name_needs_model_and_dimension():
    with pytest.raises(UnknownProvider):
        CallableEmbeddingProvider("cohere", lambda texts: [])

    p = CallableEmbeddingProvider("cohere", lambda texts: [], model="embed-v3", dimension=16)
    assert (p.model, p.dimension, p.cost_per_token) == ("embed-v3", 16, 0.0)


def test_embed_counts_words_when_backend_reports_no_usage():
    p = CallableEmbeddingProvider("openai", lambda texts: [[0.5] * 3 for _ in texts], dimension=3)
    batch = p.embed(["two words", "and three words"])
    assert len(batch.vectors) == 2
    assert batch.vectors[0].dtype == np.float32
    assert batch.tokens == 5


def test_embed_uses_reported_usage():
    p = CallableEmbeddingProvider("openai", lambda texts: ([[0.5] * 3 for _ in texts], 42), dimension=3)
    assert p.embed(["x"]).tokens == 42


def test_backend_exceptions_become_unavailable():
    def boom(texts):
        raise ConnectionError("network unreachable")

    p = CallableEmbeddingProvider("openai", boom)
    with pytest.raises(ProviderUnavailable) as ei:
        p.embed(["x"])
    assert "ConnectionError" in ei.value.reason


def test_garbage_payload_is_provider_error():
    p = CallableEmbeddingProvider("openai", lambda texts: [object() for _ in texts], dimension=3)
    with pytest.raises(ProviderError):
        p.embed(["x"])


def test_health_check():
    assert CallableEmbeddingProvider("openai", lambda t: []).is_available() is True
    assert CallableEmbeddingProvider("openai", lambda t: [], health_check=lambda: False).is_available() is False

    def broken():
        raise RuntimeError("dns failure")

    assert CallableEmbeddingProvider("openai", lambda t: [], health_check=broken).is_available() is False
