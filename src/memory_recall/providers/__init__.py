from .base import PROVIDER_SPECS, EmbeddingBatch, EmbeddingProvider, ProviderSpec
from .fake import FakeEmbeddingProvider
from .local import SentenceTransformerProvider
from .remote import CallableEmbeddingProvider

__all__ = [
    "PROVIDER_SPECS",
    "EmbeddingBatch",
    "EmbeddingProvider",
    "ProviderSpec",
    "FakeEmbeddingProvider",
    "SentenceTransformerProvider",
    "CallableEmbeddingProvider",
]
