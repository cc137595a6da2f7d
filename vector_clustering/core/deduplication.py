"""
Near-duplicate removal across chunk medoids.

When an oversized K-means partition is split into fixed-size chunks, one
true cluster can yield a medoid in several chunks. This pass keeps the
first of every group of candidates whose pairwise cosine similarity
exceeds the threshold.
"""

import logging
from typing import List, Sequence

import numpy as np
from sklearn.preprocessing import normalize

logger = logging.getLogger(__name__)


def remove_near_duplicates(
    vectors: np.ndarray,
    ids: Sequence[str],
    threshold: float,
) -> List[str]:
    """
    Drop candidates that are too similar to an earlier kept candidate.

    Candidates are scanned in order; for each candidate i that is still
    kept, every later candidate j with similarity(i, j) > threshold is
    removed. The earlier candidate always survives.

    Args:
        vectors: Candidate vectors (M x D)
        ids: Identifier of each candidate, same order as vectors
        threshold: Cosine similarity above which two candidates are duplicates

    Returns:
        Identifiers of the kept candidates, in input order
    """
    vectors = np.asarray(vectors, dtype=np.float64)
    if len(vectors) != len(ids):
        raise ValueError(f"Got {len(vectors)} vectors but {len(ids)} ids")
    if len(ids) == 0:
        return []

    # Zero rows stay zero, giving similarity 0 against everything
    unit_vectors = normalize(vectors, norm="l2")
    similarities = unit_vectors @ unit_vectors.T

    n = len(ids)
    removed = np.zeros(n, dtype=bool)
    for i in range(n):
        if removed[i]:
            continue
        duplicates = similarities[i, i + 1:] > threshold
        removed[i + 1:] |= duplicates

    kept = [ids[i] for i in range(n) if not removed[i]]
    logger.debug(f"Removed {n - len(kept)} similar vectors out of {n}")
    return kept
