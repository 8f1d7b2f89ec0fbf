from __future__ import annotations
from prometheus_client import Counter, Histogram

EMBEDDINGS = Counter("memory_recall_embeddings_total", "Embeddings generated by a provider", ["provider"])
CACHE_LOOKUPS = Counter("memory_recall_cache_lookups_total", "Embedding cache lookups", ["result"])
PROVIDER_ERRORS = Counter(
    "memory_recall_provider_errors_total", "Failed provider attempts", ["provider", "kind"]
)
PROVIDER_LAT = Histogram("memory_recall_provider_latency_ms", "Provider call latency ms", ["provider"])

REQS = Counter("memory_recall_requests_total", "Total requests", ["endpoint"])
LAT = Histogram("memory_recall_request_latency_ms", "Latency ms", ["endpoint"])


def mark(endpoint: str) -> None:
    REQS.labels(endpoint=endpoint).inc()
