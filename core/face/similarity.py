# core/face/similarity.py
"""
Vector similarity primitives for face embeddings.

Convention used across FaceRecall: similarity() returns cosine similarity
mapped to [0, 1] via (cos + 1) / 2. Every configured threshold
(auto-accept, review floor) is expressed on this scale.
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np

from core.errors import DimensionMismatch

Vector = Union[np.ndarray, Sequence[float]]


def as_vector(v: Vector) -> np.ndarray:
    """Coerce a list/array into a 1D float64 numpy vector for scoring."""
    arr = np.asarray(v, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError("Embeddings must be 1D vectors")
    return arr


def cosine_similarity(a: Vector, b: Vector) -> float:
    """
    Compute raw cosine similarity in [-1, 1].

    Inputs do not need to be pre-normalized; each call normalizes its own
    inputs. A zero vector has similarity 0.0 with everything.
    """
    a = as_vector(a)
    b = as_vector(b)
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatch(a.shape[0], b.shape[0])

    denom = float(np.linalg.norm(a)) * float(np.linalg.norm(b))
    if denom == 0.0:
        return 0.0

    if np.array_equal(a, b):
        return 1.0

    cos = float(np.dot(a, b)) / denom
    # Rounding can push |cos| slightly above 1.
    return max(-1.0, min(1.0, cos))


def similarity(a: Vector, b: Vector) -> float:
    """Cosine similarity mapped to [0, 1]. Zero vectors score 0.0."""
    a = as_vector(a)
    b = as_vector(b)
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatch(a.shape[0], b.shape[0])
    if not np.any(a) or not np.any(b):
        return 0.0
    return (cosine_similarity(a, b) + 1.0) / 2.0


def similarity_to_many(query: Vector, samples: Sequence[Vector]) -> np.ndarray:
    """
    Vectorized similarity() of one query against several samples.

    Returns a float64 array with one [0, 1] score per sample.
    """
    q = as_vector(query)
    if len(samples) == 0:
        return np.zeros(0, dtype=np.float64)

    rows = [as_vector(s) for s in samples]
    for row in rows:
        if row.shape[0] != q.shape[0]:
            raise DimensionMismatch(q.shape[0], row.shape[0])
    mat = np.stack(rows, axis=0)

    q_norm = float(np.linalg.norm(q))
    mat_norms = np.linalg.norm(mat, axis=1)
    if q_norm == 0.0:
        return np.zeros(mat.shape[0], dtype=np.float64)

    dots = mat @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        cos = np.where(mat_norms > 0, dots / (mat_norms * q_norm), 0.0)
    cos = np.clip(cos, -1.0, 1.0)
    # Identical vectors score exactly 1.0, not 1.0 minus rounding.
    cos = np.where(np.all(mat == q, axis=1), 1.0, cos)
    return np.where(mat_norms > 0, (cos + 1.0) / 2.0, 0.0)
