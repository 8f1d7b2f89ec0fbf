from __future__ import annotations
import logging
import os
import time
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Response
from pydantic import BaseModel, Field
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from memory_recall import __version__
from memory_recall.core.config import EmbeddingConfig, ScoreWeights
from memory_recall.core.embedding_service import EmbeddingService
from memory_recall.core.memory_stream import MemoryStream
from memory_recall.core.retrieval import MemoryRetrieval
from memory_recall.errors import AllProvidersExhausted, OutOfOrderObservation
from memory_recall.metrics import LAT, mark
from memory_recall.models import Memory

logger = logging.getLogger(__name__)


class ObservationRequest(BaseModel):
    content: str
    timestamp: Optional[float] = None
    importance: float = Field(default=1.0, ge=0.0)
    memory_type: str = "observation"
    tags: List[str] = Field(default_factory=list)


class MemoryOut(BaseModel):
    id: str
    sequence: int
    content: str
    created_at: float
    importance: float
    memory_type: str
    tags: List[str]
    has_embedding: bool


class WeightsIn(BaseModel):
    recency: float = Field(default=1.0, ge=0.0)
    importance: float = Field(default=1.0, ge=0.0)
    relevance: float = Field(default=1.0, ge=0.0)


class RetrieveRequest(BaseModel):
    # omit to rank by recency and importance only, without embedding a query
    query: Optional[str] = None
    k: int = Field(default=10, ge=0)
    weights: Optional[WeightsIn] = None
    memory_type: Optional[str] = None


class RetrievedOut(BaseModel):
    memory: MemoryOut
    similarity: Optional[float]
    recency: float
    importance: float
    relevance: float
    retrieval_score: float


class ProviderRequest(BaseModel):
    name: str


def _memory_out(m: Memory) -> MemoryOut:
    return MemoryOut(
        id=m.id,
        sequence=m.sequence,
        content=m.content,
        created_at=m.created_at,
        importance=m.importance,
        memory_type=m.memory_type,
        tags=list(m.tags),
        has_embedding=m.has_embedding,
    )


def build_components():
    config = EmbeddingConfig.from_env()
    weights = ScoreWeights(
        recency=float(os.environ.get("MEMORY_RECALL_W_RECENCY", "1.0")),
        importance=float(os.environ.get("MEMORY_RECALL_W_IMPORTANCE", "1.0")),
        relevance=float(os.environ.get("MEMORY_RECALL_W_RELEVANCE", "1.0")),
    )
    service = EmbeddingService(config)
    stream = MemoryStream()
    retrieval = MemoryRetrieval(stream, service, weights)
    logger.info(f"API: session ready (provider={service.get_current_provider()}, weights={weights.as_dict()})")
    return retrieval, service, stream


def create_app(
    retrieval: Optional[MemoryRetrieval] = None,
    service: Optional[EmbeddingService] = None,
) -> FastAPI:
    """One agent session per process: a single stream and embedding service."""
    if retrieval is None or service is None:
        retrieval, service, _ = build_components()
    stream = retrieval.stream

    app = FastAPI(
        title="memory-recall",
        description="Weighted recency / importance / relevance retrieval over an agent's memory stream.",
        version=__version__,
    )

    def _timed(endpoint: str):
        mark(endpoint)
        return endpoint, time.perf_counter()

    def _done(token) -> None:
        endpoint, t0 = token
        LAT.labels(endpoint=endpoint).observe((time.perf_counter() - t0) * 1000.0)

    @app.post("/observations", response_model=MemoryOut)
    def add_observation(req: ObservationRequest):
        tok = _timed("observations")
        try:
            adders = {
                "observation": stream.add_observation,
                "reflection": stream.add_reflection,
                "plan": stream.add_plan,
            }
            add = adders.get(req.memory_type)
            if add is None:
                raise HTTPException(status_code=422, detail=f"unknown memory type: {req.memory_type}")
            try:
                mem = add(req.content, timestamp=req.timestamp, importance=req.importance, tags=req.tags)
            except OutOfOrderObservation as e:
                raise HTTPException(status_code=409, detail=str(e))
            except ValueError as e:
                raise HTTPException(status_code=422, detail=str(e))
            return _memory_out(mem)
        finally:
            _done(tok)

    @app.post("/retrieve", response_model=List[RetrievedOut])
    def retrieve(req: RetrieveRequest):
        tok = _timed("retrieve")
        try:
            weights = ScoreWeights(**req.weights.model_dump()) if req.weights else None
            try:
                results = retrieval.retrieve_memories(
                    req.query, k=req.k, weights=weights, memory_type=req.memory_type
                )
            except AllProvidersExhausted as e:
                raise HTTPException(status_code=503, detail=str(e))
            return [
                RetrievedOut(
                    memory=_memory_out(r.memory),
                    similarity=r.similarity,
                    recency=r.recency,
                    importance=r.importance,
                    relevance=r.relevance,
                    retrieval_score=r.retrieval_score,
                )
                for r in results
            ]
        finally:
            _done(tok)

    @app.get("/memories/recent", response_model=List[MemoryOut])
    def recent(k: int = 10):
        mark("recent")
        return [_memory_out(m) for m in retrieval.get_recent_memories(k)]

    @app.get("/memories/important", response_model=List[MemoryOut])
    def important(k: int = 10):
        mark("important")
        return [_memory_out(m) for m in retrieval.get_important_memories(k)]

    @app.post("/embeddings/backfill")
    def backfill():
        tok = _timed("backfill")
        try:
            try:
                filled = retrieval.generate_missing_embeddings()
            except AllProvidersExhausted as e:
                raise HTTPException(status_code=503, detail=str(e))
            return {"status": "ok", "generated": filled}
        finally:
            _done(tok)

    @app.post("/provider")
    def set_provider(req: ProviderRequest):
        mark("provider")
        ok = service.set_provider(req.name)
        return {
            "status": "ok" if ok else "unavailable",
            "provider": service.get_current_provider(),
            "model": service.get_current_model(),
        }

    @app.get("/stats")
    def stats():
        mark("stats")
        return {
            "embeddings": service.get_statistics().to_dict(),
            "retrieval": retrieval.get_statistics(),
            "stream": stream.get_statistics(),
            "weights": retrieval.get_weights(),
        }

    @app.get("/health")
    def health():
        return {"status": "ok", "version": __version__, "provider": service.get_current_provider()}

    @app.get("/metrics")
    def metrics():
        data = generate_latest()
        return Response(content=data, media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
