from __future__ import annotations

import math

import pytest

from memory_recall.core.config import DEFAULT_FALLBACK_CHAIN, EmbeddingConfig, ScoreWeights


def test_defaults():
    cfg = EmbeddingConfig()
    assert cfg.provider == "fake"
    assert cfg.fallback_chain == DEFAULT_FALLBACK_CHAIN
    assert cfg.fallback_chain[-1] == "fake"
    assert cfg.enable_cache is True
    assert cfg.max_cache_size == 10000
    assert cfg.normalize_cache_keys is False


def test_from_env_reads_prefixed_variables():
    env = {
        "MEMORY_RECALL_PROVIDER": "openai",
        "MEMORY_RECALL_FALLBACK_CHAIN": "openai, voyage ,fake",
        "MEMORY_RECALL_FAKE_DIMENSION": "64",
        "MEMORY_RECALL_ENABLE_CACHE": "no",
        "MEMORY_RECALL_MAX_CACHE_SIZE": "5",
        "MEMORY_RECALL_NORMALIZE_CACHE_KEYS": "1",
        "MEMORY_RECALL_REQUEST_TIMEOUT": "2.5",
        "MEMORY_RECALL_BATCH_SIZE": "8",
        "MEMORY_RECALL_MAX_WORKERS": "2",
    }
    cfg = EmbeddingConfig.from_env(env)
    assert cfg.provider == "openai"
    assert cfg.fallback_chain == ("openai", "voyage", "fake")
    assert cfg.fake_dimension == 64
    assert cfg.enable_cache is False
    assert cfg.max_cache_size == 5
    assert cfg.normalize_cache_keys is True
    assert cfg.request_timeout == 2.5
    assert (cfg.batch_size, cfg.max_workers) == (8, 2)


def test_from_env_empty_mapping_gives_defaults():
    assert EmbeddingConfig.from_env({}) == EmbeddingConfig()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"fake_dimension": 0},
        {"max_cache_size": 0},
        {"batch_size": -1},
        {"max_workers": 0},
        {"request_timeout": 0.0},
    ],
)
def test_invalid_config_rejected(kwargs):
    with pytest.raises(ValueError):
        EmbeddingConfig(**kwargs)


def test_weights_validate_and_coerce():
    w = ScoreWeights(recency=1, importance=0, relevance=2)
    assert w.as_dict() == {"recency": 1.0, "importance": 0.0, "relevance": 2.0}
    with pytest.raises(ValueError):
        ScoreWeights(recency=-0.1)
    with pytest.raises(ValueError):
        ScoreWeights(relevance=math.nan)
