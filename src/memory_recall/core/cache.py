from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Dict, NamedTuple, Optional

import numpy as np

logger = logging.getLogger(__name__)


class CacheKey(NamedTuple):
    provider: str
    model: str
    text: str


def normalize_text(text: str) -> str:
    return " ".join((text or "").split()).casefold()


class EmbeddingCache:
    """
    Bounded LRU map of CacheKey -> vector.

    Keys are exact (case and whitespace sensitive) unless ``normalize_text``
    is set. When full, the least recently used entry is evicted silently.
    Stored vectors are read-only so a caller cannot corrupt a cached entry.
    """

    def __init__(self, max_entries: int = 10000, normalize_text: bool = False) -> None:
        if int(max_entries) <= 0:
            raise ValueError("max_entries must be > 0")
        self.max_entries = int(max_entries)
        self.normalize_text = bool(normalize_text)
        self._lock = threading.Lock()
        self._data: "OrderedDict[CacheKey, np.ndarray]" = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def make_key(self, provider: str, model: str, text: str) -> CacheKey:
        if self.normalize_text:
            text = normalize_text(text)
        return CacheKey(provider, model, text)

    def get(self, key: CacheKey) -> Optional[np.ndarray]:
        with self._lock:
            vec = self._data.get(key)
            if vec is None:
                self.misses += 1
                return None
            self._data.move_to_end(key)
            self.hits += 1
            return vec

    def put(self, key: CacheKey, vec: np.ndarray) -> None:
        v = np.array(vec, dtype=np.float32).reshape(-1)
        v.setflags(write=False)
        with self._lock:
            # last write wins for concurrent fills of the same key
            self._data[key] = v
            self._data.move_to_end(key)
            while len(self._data) > self.max_entries:
                old, _ = self._data.popitem(last=False)
                self.evictions += 1
                logger.debug(f"Cache: evicted {old.provider}/{old.model} entry")

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "size": len(self._data),
                "max_size": self.max_entries,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
            }
