"""
Three-factor memory retrieval: recency, importance and relevance.

    retrieval_score = w.recency * recency + w.importance * importance
                      + w.relevance * relevance

Each component is normalized to [0, 1] against the whole stream before
weighting:

- recency:    (created_at - oldest) / (newest - oldest), 1.0 if the span is 0
- importance: min-max over the stream, 1.0 if every importance is equal
- relevance:  (cosine(query, memory) + 1) / 2; 0.0 for a memory without an
              embedding (or with one from a provider of another dimension)

With no query, relevance is 0.0 for every memory and nothing is embedded, so
a recency and importance ranking (e.g. all plans of one type) works offline.

Ranking is total: score desc, then created_at desc, then sequence asc.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol, Sequence

import numpy as np

from ..models.memory import Memory
from ..models.retrieval import RetrievedMemory
from .config import ScoreWeights
from .memory_stream import MemoryStream
from .similarity import cosine_similarity

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    def generate_embedding(self, text: str) -> np.ndarray:
        ...

    def generate_embeddings_batch(self, texts: Sequence[str]) -> List[np.ndarray]:
        ...


def _norm_recency(created_at: float, oldest: float, newest: float) -> float:
    span = float(newest) - float(oldest)
    if span <= 0.0:
        return 1.0
    return float((float(created_at) - float(oldest)) / span)


def _norm_importance(importance: float, lo: float, hi: float) -> float:
    if hi <= lo:
        return 1.0
    return float((float(importance) - lo) / (hi - lo))


def _relevance(query_vec: np.ndarray, mem: Memory) -> Optional[float]:
    emb = mem.embedding
    if emb is None or emb.size == 0:
        return None
    if emb.shape[0] != query_vec.shape[0]:
        return None
    return cosine_similarity(query_vec, emb)


class MemoryRetrieval:
    def __init__(
        self,
        stream: MemoryStream,
        embeddings: Embedder,
        weights: Optional[ScoreWeights] = None,
    ) -> None:
        self.stream = stream
        self.embeddings = embeddings
        self.weights = weights or ScoreWeights()

    def set_weights(self, recency: float, importance: float, relevance: float) -> None:
        self.weights = ScoreWeights(recency=recency, importance=importance, relevance=relevance)
        logger.info(f"Retrieval: weights set to {self.weights.as_dict()}")

    def get_weights(self) -> Dict[str, float]:
        return self.weights.as_dict()

    def generate_missing_embeddings(self) -> int:
        """Embed every memory that has no embedding yet. Returns how many were filled."""
        todo = self.stream.get_memories_needing_embeddings()
        if not todo:
            return 0

        logger.info(f"Retrieval: generating embeddings for {len(todo)} memories")
        vectors = self.embeddings.generate_embeddings_batch([m.content for m in todo])
        filled = 0
        for mem, vec in zip(todo, vectors):
            if self.stream.set_memory_embedding(mem.id, vec):
                filled += 1
        return filled

    def get_recent_memories(self, k: int) -> List[Memory]:
        return self.stream.get_recent_observations(k)

    def get_important_memories(self, k: int) -> List[Memory]:
        k = int(k)
        if k <= 0:
            return []
        items = self.stream.get_all_memories()
        items.sort(key=lambda m: (-m.importance, -m.created_at, -m.sequence))
        return items[:k]

    def retrieve_memories(
        self,
        query: Optional[str],
        k: int = 10,
        weights: Optional[ScoreWeights] = None,
        memory_type: Optional[str] = None,
    ) -> List[RetrievedMemory]:
        k = int(k)
        items = self.stream.get_all_memories()
        if k <= 0 or not items:
            return []

        w = weights or self.weights
        qv = None
        if query is not None:
            qv = np.asarray(self.embeddings.generate_embedding(query), dtype=np.float32).reshape(-1)

        oldest = items[0].created_at
        newest = items[-1].created_at
        imp_lo = min(m.importance for m in items)
        imp_hi = max(m.importance for m in items)

        scored: List[RetrievedMemory] = []
        skipped = 0
        for mem in items:
            if memory_type is not None and mem.memory_type != memory_type:
                continue
            rec = _norm_recency(mem.created_at, oldest, newest)
            imp = _norm_importance(mem.importance, imp_lo, imp_hi)
            sim = _relevance(qv, mem) if qv is not None else None
            if sim is None:
                if qv is not None:
                    skipped += 1
                rel = 0.0
            else:
                rel = (sim + 1.0) / 2.0

            score = float(w.recency * rec + w.importance * imp + w.relevance * rel)
            scored.append(
                RetrievedMemory(
                    memory=mem,
                    similarity=sim,
                    recency=float(rec),
                    importance=float(imp),
                    relevance=float(rel),
                    retrieval_score=score,
                )
            )

        if skipped:
            logger.warning(f"Retrieval: {skipped} memories without a usable embedding scored with relevance 0")

        scored.sort(key=lambda r: (-r.retrieval_score, -r.memory.created_at, r.memory.sequence))
        return scored[:k]

    def get_statistics(self) -> Dict[str, object]:
        stats = self.stream.get_statistics()
        total = int(stats["total"])
        with_emb = int(stats["with_embeddings"])
        get_cache_stats = getattr(self.embeddings, "get_cache_stats", None)
        return {
            "total_memories": total,
            "with_embeddings": with_emb,
            "without_embeddings": total - with_emb,
            "cache_stats": get_cache_stats() if callable(get_cache_stats) else {},
        }
