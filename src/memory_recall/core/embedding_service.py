"""
Embedding service: provider selection, ordered fallback, caching, batching
and cost/latency accounting.

Calls to a blocking provider run on that provider's own worker pool and are
awaited with ``EmbeddingConfig.request_timeout``; a timeout counts as
ProviderUnavailable. A provider whose workers are all stuck in
timed-out calls is reported unavailable without queueing, so a hung vendor
never delays the rest of the chain. Non-blocking providers (the offline
fake) run inline.

When the current provider fails, the fallback chain is walked in order and
the provider that succeeds becomes the current provider for the rest of the
session. The active provider is an immutable snapshot swapped under a lock,
so readers always see a matching (name, model, dimension) triple.
"""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..errors import (
    AllProvidersExhausted,
    ProviderError,
    ProviderUnavailable,
    UnknownProvider,
)
from ..metrics.prom import CACHE_LOOKUPS, EMBEDDINGS, PROVIDER_ERRORS, PROVIDER_LAT
from ..models.stats import EmbeddingStatistics
from ..providers.base import EmbeddingBatch, EmbeddingProvider
from ..providers.fake import FakeEmbeddingProvider
from ..providers.local import SentenceTransformerProvider
from .cache import EmbeddingCache
from .config import PROVIDER_NAMES, EmbeddingConfig
from .similarity import Vector, cosine_similarity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActiveProvider:
    name: str
    model: str
    dimension: int


def _snapshot(provider: EmbeddingProvider) -> ActiveProvider:
    return ActiveProvider(provider.name, provider.model, int(provider.dimension))


class EmbeddingService:
    def __init__(
        self,
        config: Optional[EmbeddingConfig] = None,
        providers: Optional[Iterable[EmbeddingProvider]] = None,
        cache: Optional[EmbeddingCache] = None,
    ) -> None:
        self.config = config or EmbeddingConfig()
        self._providers: Dict[str, EmbeddingProvider] = {}
        for p in providers or ():
            self._providers[p.name] = p

        # offline variants need no credentials and are created on demand
        if "fake" not in self._providers:
            self._providers["fake"] = FakeEmbeddingProvider(self.config.fake_dimension)
        wants_local = self.config.provider == "local" or "local" in self.config.fallback_chain
        if wants_local and "local" not in self._providers:
            self._providers["local"] = SentenceTransformerProvider(self.config.local_model)

        primary = self._providers.get(self.config.provider)
        if primary is None:
            raise UnknownProvider(self.config.provider)

        self.fallback_chain: Tuple[str, ...] = tuple(self.config.fallback_chain)

        if cache is not None:
            self.cache: Optional[EmbeddingCache] = cache
        elif self.config.enable_cache:
            self.cache = EmbeddingCache(
                max_entries=self.config.max_cache_size,
                normalize_text=self.config.normalize_cache_keys,
            )
        else:
            self.cache = None

        self._state_lock = threading.Lock()
        self._active = _snapshot(primary)

        self._stats_lock = threading.Lock()
        self._total_generated = 0
        self._cache_hits = 0
        self._cache_misses = 0
        self._total_cost = 0.0
        self._latency_sum_ms = 0.0
        self._latency_count = 0
        self._errors = 0

        # one pool per blocking provider; guarded by _state_lock
        self._pools: Dict[str, ThreadPoolExecutor] = {}
        self._abandoned: Dict[str, int] = {}
        self._closed = False

        logger.info(
            f"EmbeddingService initialized (primary: {self._active.name}, "
            f"fallback: {' -> '.join(self.fallback_chain) or 'none'})"
        )

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        with self._state_lock:
            self._closed = True
            pools = list(self._pools.values())
            self._pools.clear()
        for pool in pools:
            pool.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "EmbeddingService":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def register_provider(self, provider: EmbeddingProvider) -> None:
        with self._state_lock:
            self._providers[provider.name] = provider
            if self._active.name == provider.name:
                self._active = _snapshot(provider)

    # ------------------------------------------------------------------
    # active provider
    # ------------------------------------------------------------------
    def _current(self) -> ActiveProvider:
        with self._state_lock:
            return self._active

    def _activate(self, provider: EmbeddingProvider) -> ActiveProvider:
        snap = _snapshot(provider)
        with self._state_lock:
            previous = self._active
            self._active = snap
        if previous.name != snap.name:
            logger.info(f"Embeddings: switched provider {previous.name} -> {snap.name} ({snap.model})")
        return snap

    def get_current_provider(self) -> str:
        return self._current().name

    def get_current_model(self) -> str:
        return self._current().model

    def get_current_dimension(self) -> int:
        return self._current().dimension

    def set_provider(self, name: str) -> bool:
        provider = self._providers.get(name)
        if provider is None:
            logger.warning(f"Embeddings: provider {name} is not registered")
            return False
        if not provider.is_available():
            logger.warning(f"Embeddings: provider {name} not available")
            return False
        self._activate(provider)
        return True

    def cycle_provider(self) -> str:
        """Switch to the next available provider in canonical order."""
        current = self._current().name
        order = list(PROVIDER_NAMES) + [n for n in self._providers if n not in PROVIDER_NAMES]
        start = order.index(current) + 1 if current in order else 0
        for i in range(len(order)):
            name = order[(start + i) % len(order)]
            if name != current and self.set_provider(name):
                return name
        return current

    def get_provider_status(self) -> Dict[str, bool]:
        status = {name: False for name in PROVIDER_NAMES}
        for name, p in list(self._providers.items()):
            status[name] = bool(p.is_available())
        return status

    # ------------------------------------------------------------------
    # statistics
    # ------------------------------------------------------------------
    def _record_lookup(self, hit: bool) -> None:
        with self._stats_lock:
            if hit:
                self._cache_hits += 1
            else:
                self._cache_misses += 1
        CACHE_LOOKUPS.labels(result="hit" if hit else "miss").inc()

    def _record_success(self, provider: EmbeddingProvider, count: int, tokens: int, latency_ms: float) -> None:
        with self._stats_lock:
            self._total_generated += int(count)
            self._total_cost += float(tokens) * float(provider.cost_per_token)
            self._latency_sum_ms += float(latency_ms)
            self._latency_count += 1
        EMBEDDINGS.labels(provider=provider.name).inc(count)
        PROVIDER_LAT.labels(provider=provider.name).observe(latency_ms)

    def _record_error(self, name: str, kind: str) -> None:
        with self._stats_lock:
            self._errors += 1
        PROVIDER_ERRORS.labels(provider=name, kind=kind).inc()

    def get_statistics(self) -> EmbeddingStatistics:
        active = self._current()
        availability = self.get_provider_status()
        with self._stats_lock:
            avg = self._latency_sum_ms / self._latency_count if self._latency_count else 0.0
            return EmbeddingStatistics(
                provider=active.name,
                model=active.model,
                dimension=active.dimension,
                total_generated=self._total_generated,
                cache_hits=self._cache_hits,
                cache_misses=self._cache_misses,
                total_cost=self._total_cost,
                avg_latency_ms=float(avg),
                errors=self._errors,
                availability=availability,
            )

    def get_cache_stats(self) -> Dict[str, int]:
        if self.cache is None:
            return {"size": 0, "max_size": 0, "hits": 0, "misses": 0, "evictions": 0}
        return self.cache.stats()

    # ------------------------------------------------------------------
    # provider calls
    # ------------------------------------------------------------------
    def _acquire_worker(self, name: str) -> ThreadPoolExecutor:
        limit = int(self.config.max_workers)
        with self._state_lock:
            if self._closed:
                raise ProviderUnavailable(name, "service is closed")
            if self._abandoned.get(name, 0) >= limit:
                raise ProviderUnavailable(name, f"all {limit} workers stuck in timed-out calls")
            pool = self._pools.get(name)
            if pool is None:
                pool = ThreadPoolExecutor(max_workers=limit, thread_name_prefix=f"embed-{name}")
                self._pools[name] = pool
            return pool

    def _abandon(self, name: str, fut: Future) -> None:
        with self._state_lock:
            self._abandoned[name] = self._abandoned.get(name, 0) + 1
        fut.add_done_callback(lambda _f: self._reclaim(name))

    def _reclaim(self, name: str) -> None:
        with self._state_lock:
            self._abandoned[name] = max(0, self._abandoned.get(name, 0) - 1)

    def _call_provider(
        self, provider: EmbeddingProvider, texts: List[str]
    ) -> Tuple[List[np.ndarray], int, float]:
        timeout = float(self.config.request_timeout)
        t0 = time.perf_counter()
        try:
            if not getattr(provider, "blocking", True):
                batch = provider.embed(texts)
            else:
                pool = self._acquire_worker(provider.name)
                started = threading.Event()

                def run() -> EmbeddingBatch:
                    started.set()
                    return provider.embed(texts)

                fut = pool.submit(run)
                # the timeout covers the call itself, not time spent queued
                if not started.wait(timeout) and fut.cancel():
                    raise ProviderUnavailable(provider.name, f"no free worker within {timeout:.1f}s")
                t0 = time.perf_counter()
                try:
                    batch = fut.result(timeout=timeout)
                except FuturesTimeout as e:
                    self._abandon(provider.name, fut)
                    raise ProviderUnavailable(provider.name, f"timed out after {timeout:.1f}s") from e
        except (ProviderUnavailable, ProviderError):
            raise
        except Exception as e:
            raise ProviderError(provider.name, f"{type(e).__name__}: {e}") from e
        latency_ms = (time.perf_counter() - t0) * 1000.0

        vectors = self._validate(provider, texts, batch.vectors)
        return vectors, int(batch.tokens or 0), latency_ms

    @staticmethod
    def _validate(provider: EmbeddingProvider, texts: Sequence[str], raw: Sequence) -> List[np.ndarray]:
        if raw is None or len(raw) != len(texts):
            got = 0 if raw is None else len(raw)
            raise ProviderError(provider.name, f"expected {len(texts)} vectors, got {got}")
        dim = int(provider.dimension)
        out: List[np.ndarray] = []
        for v in raw:
            arr = np.asarray(v, dtype=np.float32).reshape(-1)
            if arr.shape[0] != dim:
                raise ProviderError(provider.name, f"expected dim {dim}, got {arr.shape[0]}")
            if not np.isfinite(arr).all():
                raise ProviderError(provider.name, "non-finite values in embedding")
            out.append(arr)
        return out

    def _generate(self, texts: List[str]) -> Tuple[ActiveProvider, List[np.ndarray]]:
        """Embed ``texts`` with the current provider, walking the fallback chain on failure."""
        current = self._current()
        order = list(dict.fromkeys([current.name, *self.fallback_chain]))
        attempts: List[Tuple[str, str]] = []

        for name in order:
            provider = self._providers.get(name)
            if provider is None:
                attempts.append((name, "not registered"))
                continue
            try:
                vectors, tokens, latency_ms = self._call_provider(provider, texts)
            except (ProviderUnavailable, ProviderError) as e:
                kind = "unavailable" if isinstance(e, ProviderUnavailable) else "error"
                self._record_error(name, kind)
                logger.warning(f"Embeddings: {name} failed ({e.reason}), trying next provider")
                attempts.append((name, e.reason))
                continue

            self._record_success(provider, len(texts), tokens, latency_ms)
            # a lazily loaded model may only learn its real dimension on first use
            if name != current.name or int(provider.dimension) != current.dimension:
                return self._activate(provider), vectors
            return current, vectors

        logger.error(f"Embeddings: all providers failed for {len(texts)} text(s)")
        raise AllProvidersExhausted(attempts)

    def _fan_out(self, texts: List[str]) -> List[Tuple[ActiveProvider, List[str], List[np.ndarray]]]:
        bs = int(self.config.batch_size)
        chunks = [texts[i : i + bs] for i in range(0, len(texts), bs)]
        if len(chunks) == 1:
            used, vectors = self._generate(chunks[0])
            return [(used, chunks[0], vectors)]

        workers = min(int(self.config.max_workers), len(chunks))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="embed-batch") as ex:
            futs = [ex.submit(self._generate, c) for c in chunks]
            out = []
            for chunk, fut in zip(chunks, futs):
                used, vectors = fut.result()
                out.append((used, chunk, vectors))
        return out

    # ------------------------------------------------------------------
    # public generation API
    # ------------------------------------------------------------------
    def _cache_get(self, active: ActiveProvider, text: str, record: bool = True) -> Optional[np.ndarray]:
        vec = None
        if self.cache is not None:
            vec = self.cache.get(self.cache.make_key(active.name, active.model, text))
        if record:
            self._record_lookup(vec is not None)
        return vec

    def _cache_put(self, active: ActiveProvider, text: str, vec: np.ndarray) -> np.ndarray:
        out = np.array(vec, dtype=np.float32)
        out.setflags(write=False)
        if self.cache is not None:
            self.cache.put(self.cache.make_key(active.name, active.model, text), out)
        return out

    def generate_embedding(self, text: str) -> np.ndarray:
        return self.generate_embeddings_batch([text])[0]

    def generate_embeddings_batch(self, texts: Sequence[str]) -> List[np.ndarray]:
        """
        Embed every text, preserving input order.

        Cached texts are served without touching a provider; identical
        uncached texts are generated once. If fallback changes the provider
        part-way through, positions produced by another provider are redone
        with the final one so every returned vector has the same dimension.
        Returned arrays are read-only.
        """
        items = [str(t) for t in texts]
        n = len(items)
        if n == 0:
            return []

        results: List[Optional[np.ndarray]] = [None] * n
        produced_by: List[Optional[str]] = [None] * n

        for round_no in range(len(self._providers) + 1):
            target = self._current()
            stale = [i for i in range(n) if produced_by[i] != target.name]
            if not stale:
                return [r for r in results if r is not None]

            # only the first round counts toward hit/miss statistics; later
            # rounds re-key texts for the provider fallback switched to
            pending: Dict[str, List[int]] = {}
            for i in stale:
                vec = self._cache_get(target, items[i], record=round_no == 0)
                if vec is not None:
                    results[i] = vec
                    produced_by[i] = target.name
                else:
                    pending.setdefault(items[i], []).append(i)

            if not pending:
                continue
            for used, chunk, vectors in self._fan_out(list(pending)):
                for text, vec in zip(chunk, vectors):
                    stored = self._cache_put(used, text, vec)
                    for i in pending[text]:
                        results[i] = stored
                        produced_by[i] = used.name

        final = self._current().name
        if all(p == final for p in produced_by):
            return [r for r in results if r is not None]
        raise ProviderError(final, "provider kept switching during batch generation")

    def self_check(self, text: str = "Test embedding") -> bool:
        try:
            vec = self.generate_embedding(text)
        except AllProvidersExhausted as e:
            logger.error(f"Embeddings: self check failed: {e}")
            return False
        active = self._current()
        logger.info(f"Embeddings: self check ok ({vec.shape[0]}D, {active.name}/{active.model})")
        return True

    @staticmethod
    def cosine_similarity(a: Vector, b: Vector) -> float:
        return cosine_similarity(a, b)
