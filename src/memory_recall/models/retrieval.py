from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .memory import Memory


@dataclass(frozen=True)
class RetrievedMemory:
    memory: Memory
    # raw cosine; None when the memory had no usable embedding
    similarity: Optional[float]

    recency: float
    importance: float
    relevance: float
    retrieval_score: float

    @property
    def content(self) -> str:
        return self.memory.content

    def to_dict(self) -> Dict[str, Any]:
        m = self.memory
        return {
            "id": m.id,
            "content": m.content,
            "created_at": m.created_at,
            "importance": m.importance,
            "memory_type": m.memory_type,
            "tags": list(m.tags),
            "similarity": self.similarity,
            "scores": {
                "recency": self.recency,
                "importance": self.importance,
                "relevance": self.relevance,
            },
            "retrieval_score": self.retrieval_score,
        }
