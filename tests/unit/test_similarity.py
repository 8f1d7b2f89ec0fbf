import numpy as np
import pytest

from memory_recall.core.similarity import cosine_similarity, tokenize
from memory_recall.errors import DimensionMismatch


def test_cosine_self_is_one():
    v = np.array([0.3, -1.2, 4.0, 0.0], dtype=np.float32)
    assert cosine_similarity(v, v) == pytest.approx(1.0)


def test_cosine_symmetric_and_bounded():
    rng = np.random.default_rng(7)
    for _ in range(20):
        a = rng.standard_normal(16)
        b = rng.standard_normal(16)
        ab = cosine_similarity(a, b)
        assert ab == pytest.approx(cosine_similarity(b, a))
        assert -1.0 <= ab <= 1.0


def test_cosine_opposite_and_orthogonal():
    assert cosine_similarity([1.0, 0.0], [-2.0, 0.0]) == pytest.approx(-1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 5.0]) == pytest.approx(0.0)


def test_cosine_zero_and_empty_vectors_return_zero():
    assert cosine_similarity([0.0, 0.0, 0.0], [1.0, 2.0, 3.0]) == 0.0
    assert cosine_similarity([], []) == 0.0


def test_cosine_dimension_mismatch_is_usage_error():
    with pytest.raises(DimensionMismatch):
        cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])
    # also a ValueError for callers that don't know the taxonomy
    with pytest.raises(ValueError):
        cosine_similarity(np.ones(3), np.ones(4))


def test_tokenize_lowercases_and_splits():
    assert tokenize("Food, WATER & navigation_2!") == ["food", "water", "navigation_2"]
    assert tokenize("") == []
