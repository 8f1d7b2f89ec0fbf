from __future__ import annotations

import json
import logging
import platform
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np

from memory_recall import __version__
from memory_recall.core.config import EmbeddingConfig, ScoreWeights
from memory_recall.core.embedding_service import EmbeddingService
from memory_recall.core.memory_stream import MemoryStream
from memory_recall.core.retrieval import MemoryRetrieval
from memory_recall.errors import ProviderUnavailable
from memory_recall.providers import CallableEmbeddingProvider, FakeEmbeddingProvider, SentenceTransformerProvider
from memory_recall.utils.hashing import sha256_hex

logger = logging.getLogger(__name__)

SAMPLE_MEMORIES = [
    ("Found food rations in the storage room", 6.0),
    ("The water fountain near the east wall still works", 5.0),
    ("Mapped the corridor leading north to a dead end", 3.0),
    ("Heard a trap click under the floor tiles", 9.0),
    ("Ate dried berries, food is running low", 7.0),
    ("Filled the canteen with clean water", 4.0),
    ("Marked the junction with chalk for navigation", 2.0),
    ("A collapsing ceiling nearly crushed me, danger", 8.0),
]


@dataclass
class CheckResult:
    name: str
    ok: bool
    details: Dict[str, Any]


def _now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def _write(path: str, s: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(s)


def _always_down(texts: List[str]):
    raise ProviderUnavailable("openai", "doctor: simulated outage")


def _ranking_signature(retrieval: MemoryRetrieval, query: str, weights: ScoreWeights) -> str:
    out = retrieval.retrieve_memories(query, k=5, weights=weights)
    parts = [f"{r.memory.sequence}:{r.retrieval_score:.6f}" for r in out]
    return sha256_hex("|".join(parts))[:16]


def run_doctor(
    dimension: int,
    runs: int,
    report_out: Optional[str],
    strict: bool,
) -> int:
    env: Dict[str, Any] = {
        "timestamp_utc": _now_iso(),
        "os": f"{platform.system()} {platform.release()} ({platform.machine()})",
        "python": platform.python_version(),
        "numpy": np.__version__,
        "fake_dimension": int(dimension),
        "runs": int(runs),
    }

    checks: List[CheckResult] = []

    local = SentenceTransformerProvider()
    local_ok = local.is_available()
    checks.append(
        CheckResult(
            "local_provider_available",
            (local_ok if strict else True),
            {"installed": local_ok, "mode": ("strict" if strict else ("ok" if local_ok else "degraded_offline_only"))},
        )
    )

    # identical text must give bit-identical vectors across provider instances
    a = FakeEmbeddingProvider(dimension).text_to_vector("doctor determinism probe")
    b = FakeEmbeddingProvider(dimension).text_to_vector("doctor determinism probe")
    checks.append(
        CheckResult("fake_provider_deterministic", bool(np.array_equal(a, b)), {"dim": int(a.shape[0])})
    )

    config = EmbeddingConfig(provider="fake", fallback_chain=("fake",), fake_dimension=dimension)
    with EmbeddingService(config) as service:
        service.generate_embedding("cache probe")
        service.generate_embedding("cache probe")
        st = service.get_statistics()
        checks.append(
            CheckResult(
                "cache_hit_on_repeat",
                bool(st.cache_hits == 1 and st.cache_misses == 1 and st.total_generated == 1),
                {"hits": st.cache_hits, "misses": st.cache_misses, "generated": st.total_generated},
            )
        )

        texts = [f"batch probe {i}" for i in range(10)]
        batch = service.generate_embeddings_batch(texts)
        singles = [service.generate_embedding(t) for t in texts]
        checks.append(
            CheckResult(
                "batch_matches_single",
                bool(len(batch) == len(texts) and all(np.array_equal(x, y) for x, y in zip(batch, singles))),
                {"n": len(batch)},
            )
        )

        stream = MemoryStream()
        for i, (content, importance) in enumerate(SAMPLE_MEMORIES):
            stream.add_observation(content, timestamp=float(i), importance=importance)
        retrieval = MemoryRetrieval(stream, service)
        retrieval.generate_missing_embeddings()

        weights = ScoreWeights(recency=0.1, importance=0.1, relevance=0.8)
        sigs = {_ranking_signature(retrieval, "running low on food", weights) for _ in range(max(1, int(runs)))}
        top = retrieval.retrieve_memories("running low on food", k=1, weights=weights)
        checks.append(
            CheckResult(
                "strict_determinism_ranking",
                bool(len(sigs) == 1 and top and "food" in top[0].memory.content),
                {"signatures": sorted(sigs), "top": top[0].memory.content if top else None},
            )
        )

    openai_down = CallableEmbeddingProvider("openai", _always_down)
    chain_cfg = EmbeddingConfig(provider="openai", fallback_chain=("openai", "fake"), fake_dimension=dimension)
    with EmbeddingService(chain_cfg, providers=[openai_down]) as service:
        vec = service.generate_embedding("fallback probe")
        checks.append(
            CheckResult(
                "fallback_to_offline",
                bool(service.get_current_provider() == "fake" and vec.shape[0] == dimension),
                {"provider": service.get_current_provider(), "errors": service.get_statistics().errors},
            )
        )

    ok_all = all(c.ok for c in checks)
    summary = {"memory_recall_version": __version__, "timestamp_utc": _now_iso(), "ok": bool(ok_all)}

    body = {
        "summary": summary,
        "environment": env,
        "checks": [{"name": c.name, "ok": c.ok, "details": c.details} for c in checks],
    }
    blob = json.dumps(body, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    summary["report_signature"] = sha256_hex(blob)[:16]

    text = json.dumps(body, indent=2, ensure_ascii=False)
    if report_out:
        _write(report_out, text)
        logger.info(f"doctor: report written to {report_out}")
    else:
        print(text)

    for c in checks:
        if not c.ok:
            logger.error(f"doctor: check {c.name} failed: {c.details}")
    return 0 if ok_all else 1
