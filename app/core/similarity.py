"""
Vector similarity scoring.

Pure numeric helpers on top of externally produced embeddings:
1. cosine_similarity - score a pair of vectors
2. rank - score many candidates against one query vector and sort them

Degenerate input (zero vector, mismatched length, NaN) scores 0.0 instead of
raising, so one bad embedding can never abort a ranking.

Usage:
    from app.core.similarity import cosine_similarity, rank

    ranked = rank(query_vec, [("a", vec_a), ("b", vec_b)])
    best_id, best_score = ranked[0]
"""

import math
from collections.abc import Hashable, Sequence

import numpy as np

Vector = Sequence[float] | np.ndarray


def cosine_similarity(a: Vector, b: Vector) -> float:
    """
    Compute cosine similarity between two vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        dot(a, b) / (|a| * |b|), or 0.0 when either vector has zero
        magnitude, the lengths differ, or the result is not finite
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    score = float(np.dot(va, vb) / (norm_a * norm_b))
    if not math.isfinite(score):
        return 0.0

    # Guard against floating drift just outside [-1, 1]
    return max(-1.0, min(1.0, score))


def rank(
    query: Vector,
    candidates: Sequence[tuple[Hashable, Vector]],
) -> list[tuple[Hashable, float]]:
    """
    Score candidates against a query vector and sort by score descending.

    Python's sort is stable, so candidates with equal scores keep their input
    order and the ranking is deterministic for a fixed input.

    Args:
        query: Query embedding
        candidates: (id, embedding) pairs

    Returns:
        (id, score) pairs sorted by score descending
    """
    scored = [(cid, cosine_similarity(query, vec)) for cid, vec in candidates]
    scored.sort(key=lambda x: x[1], reverse=True)
    return scored
