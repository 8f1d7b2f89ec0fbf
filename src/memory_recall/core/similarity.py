from __future__ import annotations

import re
from typing import List, Sequence, Union

import numpy as np

from ..errors import DimensionMismatch

_WORD = re.compile(r"[A-Za-zÁÉÍÓÚÜÑáéíóúüñ0-9_]+")

Vector = Union[np.ndarray, Sequence[float]]


def tokenize(text: str) -> List[str]:
    return [t.lower() for t in _WORD.findall(text or "")]


def cosine_similarity(a: Vector, b: Vector) -> float:
    """dot(a, b) / (|a| * |b|).

    Returns 0.0 for empty or zero-norm vectors. Raises DimensionMismatch when
    the lengths differ; vectors are never truncated or padded.
    """
    va = np.asarray(a, dtype=np.float64).reshape(-1)
    vb = np.asarray(b, dtype=np.float64).reshape(-1)
    if va.shape[0] != vb.shape[0]:
        raise DimensionMismatch(int(va.shape[0]), int(vb.shape[0]))
    if va.size == 0:
        return 0.0
    na = float(np.linalg.norm(va))
    nb = float(np.linalg.norm(vb))
    if na == 0.0 or nb == 0.0:
        return 0.0
    sim = float(np.dot(va, vb) / (na * nb))
    # float noise can push |sim| slightly past 1
    return max(-1.0, min(1.0, sim))
