"""Vector operations for embedding comparison."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the cosine similarity of two vectors in [-1, 1].

    Returns 0.0 for empty input, mismatched lengths, or a zero-norm vector.
    """
    if len(a) == 0 or len(a) != len(b):
        return 0.0

    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)

    norm_a = float(np.linalg.norm(vec_a))
    norm_b = float(np.linalg.norm(vec_b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    similarity = float(np.dot(vec_a, vec_b) / (norm_a * norm_b))
    return max(-1.0, min(1.0, similarity))


def normalize(v: Sequence[float]) -> list[float]:
    """Return a unit-length copy of `v`, or an unchanged copy if its norm is zero."""
    vec = np.asarray(v, dtype=np.float64)
    norm = float(np.linalg.norm(vec)) if vec.size else 0.0
    if norm == 0.0:
        return [float(x) for x in v]
    return (vec / norm).tolist()
