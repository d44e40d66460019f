"""Vector similarity helpers."""

import math
from typing import Sequence

import numpy as np


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """Cosine similarity between two vectors.

    Returns a value in [-1, 1]. A zero-magnitude vector yields NaN; callers
    ranking by similarity must treat NaN as lowest.

    Raises:
        ValueError: If the vectors differ in length.
    """
    a = np.asarray(vec1, dtype=np.float64)
    b = np.asarray(vec2, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError(f"Vector length mismatch: {a.shape[0]} != {b.shape[0]}")

    denominator = np.linalg.norm(a) * np.linalg.norm(b)
    if denominator == 0:
        return math.nan
    return float(np.dot(a, b) / denominator)


def cosine_similarity_matrix(query: Sequence[float], matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of ``query`` against every row of ``matrix``.

    Rows (or a query) with zero magnitude score NaN.
    """
    q = np.asarray(query, dtype=np.float64)
    m = np.asarray(matrix, dtype=np.float64)
    if m.ndim != 2 or m.shape[1] != q.shape[0]:
        raise ValueError(f"Matrix shape {m.shape} does not match query length {q.shape[0]}")

    norms = np.linalg.norm(m, axis=1) * np.linalg.norm(q)
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = (m @ q) / norms
    scores[norms == 0] = np.nan
    return scores


def rank_by_score(scores: np.ndarray) -> np.ndarray:
    """Indices ordered by descending score, NaN last, ties in input order."""
    # Stable sort on negated scores; NaN is mapped to +inf so it sorts last
    keys = np.where(np.isnan(scores), np.inf, -scores)
    return np.argsort(keys, kind="stable")
