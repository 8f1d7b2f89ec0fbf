from __future__ import annotations

import logging
import math
import threading
import time
import uuid
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

import numpy as np

from ..errors import OutOfOrderObservation
from ..models.memory import MEMORY_TYPES, Memory

logger = logging.getLogger(__name__)


class MemoryStream:
    """
    Append-only log of one agent's memories.

    Insertion order is authoritative and matches non-decreasing
    ``created_at``; nothing is reordered, merged or removed. Readers get
    list snapshots, so a retrieval pass is unaffected by concurrent appends.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: List[Memory] = []
        self._by_id: Dict[str, Memory] = {}

    def _append(
        self,
        content: str,
        timestamp: Optional[float],
        importance: float,
        memory_type: str,
        tags: Iterable[str],
    ) -> Memory:
        if memory_type not in MEMORY_TYPES:
            raise ValueError(f"unknown memory type: {memory_type!r}")
        imp = float(importance)
        if imp < 0.0 or imp != imp:
            raise ValueError(f"importance must be >= 0, got {importance}")
        if timestamp is not None and not math.isfinite(float(timestamp)):
            raise ValueError(f"timestamp must be a finite number, got {timestamp}")

        with self._lock:
            newest = self._items[-1].created_at if self._items else None
            if timestamp is None:
                ts = time.time()
                if newest is not None and ts < newest:
                    ts = newest
            else:
                ts = float(timestamp)
                if newest is not None and ts < newest:
                    raise OutOfOrderObservation(ts, newest)

            mem = Memory(
                id=uuid.uuid4().hex,
                sequence=len(self._items),
                content=str(content),
                created_at=ts,
                importance=imp,
                memory_type=memory_type,
                tags=tuple(tags),
            )
            self._items.append(mem)
            self._by_id[mem.id] = mem

        logger.debug(f"MemoryStream: added {memory_type} #{mem.sequence} (importance={imp})")
        return mem

    def add_observation(
        self,
        content: str,
        timestamp: Optional[float] = None,
        importance: float = 1.0,
        tags: Sequence[str] = (),
    ) -> Memory:
        return self._append(content, timestamp, importance, "observation", tags)

    def add_reflection(
        self,
        content: str,
        timestamp: Optional[float] = None,
        importance: float = 1.0,
        tags: Sequence[str] = (),
        based_on: Sequence[str] = (),
    ) -> Memory:
        """Higher-level insight; ``based_on`` lists the ids it was derived from."""
        extra = ["reflection"]
        if based_on:
            extra.append("based_on:" + ",".join(based_on))
        return self._append(content, timestamp, importance, "reflection", [*tags, *extra])

    def add_plan(
        self,
        content: str,
        timestamp: Optional[float] = None,
        importance: float = 1.0,
        tags: Sequence[str] = (),
    ) -> Memory:
        return self._append(content, timestamp, importance, "plan", [*tags, "plan"])

    # --- reads ---------------------------------------------------------

    def get_all_memories(self) -> List[Memory]:
        with self._lock:
            return list(self._items)

    def get_recent_observations(self, n: int) -> List[Memory]:
        """Last ``n`` memories by insertion order, most recent first."""
        n = int(n)
        if n <= 0:
            return []
        with self._lock:
            return list(reversed(self._items[-n:]))

    def get_memory(self, memory_id: str) -> Optional[Memory]:
        with self._lock:
            return self._by_id.get(memory_id)

    def get_memories_by_type(self, memory_type: str) -> List[Memory]:
        return [m for m in self.get_all_memories() if m.memory_type == memory_type]

    def get_memories_by_tag(self, tag: str) -> List[Memory]:
        return [m for m in self.get_all_memories() if tag in m.tags]

    def get_memories_in_time_range(self, start: float, end: float) -> List[Memory]:
        return [m for m in self.get_all_memories() if start <= m.created_at <= end]

    def get_memories_needing_embeddings(self) -> List[Memory]:
        return [m for m in self.get_all_memories() if not m.has_embedding]

    def set_memory_embedding(self, memory_id: str, vec: np.ndarray) -> bool:
        with self._lock:
            mem = self._by_id.get(memory_id)
            if mem is None:
                return False
            # first writer wins; later fills are ignored
            return mem.set_embedding(vec)

    def get_statistics(self) -> Dict[str, object]:
        items = self.get_all_memories()
        by_type = {t: 0 for t in MEMORY_TYPES}
        for m in items:
            by_type[m.memory_type] += 1
        avg = sum(m.importance for m in items) / len(items) if items else 0.0
        return {
            "total": len(items),
            "by_type": by_type,
            "with_embeddings": sum(1 for m in items if m.has_embedding),
            "avg_importance": round(avg, 1),
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[Memory]:
        return iter(self.get_all_memories())
