from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class EmbeddingStatistics:
    provider: str
    model: str
    dimension: int
    total_generated: int
    cache_hits: int
    cache_misses: int
    total_cost: float  # USD
    avg_latency_ms: float
    errors: int
    availability: Dict[str, bool]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
