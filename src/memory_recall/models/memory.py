from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

MEMORY_TYPES = ("observation", "reflection", "plan")


@dataclass(eq=False)
class Memory:
    id: str
    sequence: int  # insertion index within the stream (deterministic)
    content: str
    created_at: float
    importance: float
    memory_type: str = "observation"
    tags: Tuple[str, ...] = ()
    _embedding: Optional[np.ndarray] = field(default=None, repr=False)

    @property
    def embedding(self) -> Optional[np.ndarray]:
        return self._embedding

    @property
    def has_embedding(self) -> bool:
        return self._embedding is not None and self._embedding.size > 0

    def set_embedding(self, vec: np.ndarray) -> bool:
        """Attach an embedding once. Returns False if one was already set."""
        if self.has_embedding:
            return False
        v = np.array(vec, dtype=np.float32).reshape(-1)
        v.setflags(write=False)
        self._embedding = v
        return True
