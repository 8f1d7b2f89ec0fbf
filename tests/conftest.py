from __future__ import annotations

import importlib.util
import pytest

from memory_recall.core.config import EmbeddingConfig
from memory_recall.core.embedding_service import EmbeddingService


def _has_sentence_transformers() -> bool:
    return importlib.util.find_spec("sentence_transformers") is not None


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "embeddings: tests that need sentence-transformers/torch (install with: pip install -e '.[embeddings]')",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if _has_sentence_transformers():
        return

    skip = pytest.mark.skip(
        reason="sentence-transformers missing. Install: pip install -e '.[embeddings]'"
    )
    for item in items:
        if "embeddings" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def fake_service():
    svc = EmbeddingService(
        EmbeddingConfig(provider="fake", fallback_chain=("fake",), fake_dimension=256)
    )
    yield svc
    svc.close()
