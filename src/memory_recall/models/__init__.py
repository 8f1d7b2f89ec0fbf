from .memory import MEMORY_TYPES, Memory
from .retrieval import RetrievedMemory
from .stats import EmbeddingStatistics

__all__ = ["MEMORY_TYPES", "Memory", "RetrievedMemory", "EmbeddingStatistics"]
