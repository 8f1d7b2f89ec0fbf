from .errors import (
    AllProvidersExhausted,
    DimensionMismatch,
    MemoryRecallError,
    OutOfOrderObservation,
    ProviderError,
    ProviderUnavailable,
    UnknownProvider,
)
from .core.config import PROVIDER_NAMES, EmbeddingConfig, ScoreWeights
from .core.similarity import cosine_similarity
from .models import EmbeddingStatistics, Memory, RetrievedMemory
from .providers import (
    PROVIDER_SPECS,
    CallableEmbeddingProvider,
    EmbeddingBatch,
    FakeEmbeddingProvider,
    SentenceTransformerProvider,
)
from .core.cache import CacheKey, EmbeddingCache
from .core.embedding_service import EmbeddingService
from .core.memory_stream import MemoryStream
from .core.retrieval import MemoryRetrieval

__version__ = "2026.1.0"

__all__ = [
    "AllProvidersExhausted",
    "DimensionMismatch",
    "MemoryRecallError",
    "OutOfOrderObservation",
    "ProviderError",
    "ProviderUnavailable",
    "UnknownProvider",
    "PROVIDER_NAMES",
    "EmbeddingConfig",
    "ScoreWeights",
    "cosine_similarity",
    "EmbeddingStatistics",
    "Memory",
    "RetrievedMemory",
    "PROVIDER_SPECS",
    "CallableEmbeddingProvider",
    "EmbeddingBatch",
    "FakeEmbeddingProvider",
    "SentenceTransformerProvider",
    "CacheKey",
    "EmbeddingCache",
    "EmbeddingService",
    "MemoryStream",
    "MemoryRetrieval",
]
