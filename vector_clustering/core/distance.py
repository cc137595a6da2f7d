"""
Cosine distance primitives.

The metric is total: a zero-norm vector has similarity 0 with anything,
so its distance to any vector is exactly 1 instead of NaN.
"""

from typing import Sequence, Union

import numpy as np
from sklearn.metrics.pairwise import cosine_distances

ArrayLike = Union[Sequence[float], np.ndarray]


def cosine_similarity(a: ArrayLike, b: ArrayLike) -> float:
    """
    Cosine similarity of two equal-length vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        dot(a, b) / (|a| * |b|), or 0.0 if either norm is zero
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


def cosine_distance(a: ArrayLike, b: ArrayLike) -> float:
    """Cosine distance, 1 - cosine_similarity(a, b)."""
    return 1.0 - cosine_similarity(a, b)


def pairwise_cosine_distances(vectors: np.ndarray) -> np.ndarray:
    """
    Build the N x N cosine distance matrix for a vector batch.

    sklearn leaves zero-norm rows at zero after normalisation, which gives
    the same "similarity 0" convention as cosine_similarity above.

    Args:
        vectors: Validated vectors (N x D), N >= 1

    Returns:
        Symmetric float64 matrix with zero diagonal and values in [0, 2]
    """
    vectors = np.asarray(vectors, dtype=np.float64)
    if vectors.ndim != 2 or vectors.shape[0] == 0:
        raise ValueError(f"Expected a non-empty 2-D array, got shape {vectors.shape}")

    # O(N^2) memory; callers keep N bounded by the partition size
    distances = cosine_distances(vectors)

    # Symmetrise against float round-off so linkage is order independent
    distances = (distances + distances.T) / 2.0
    np.fill_diagonal(distances, 0.0)
    return distances
