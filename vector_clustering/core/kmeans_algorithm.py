"""
K-Means Pre-Clustering Implementation.

Coarse partitioning of large vector batches so that exact hierarchical
clustering only ever runs on bounded-size groups.

Cosine distance is obtained by running K-Means on L2-normalised rows: on
the unit sphere squared Euclidean distance equals 2 * (1 - cosine
similarity), so nearest-centroid assignment is by cosine distance.
"""

import logging
import math
from typing import List, Optional

import numpy as np
from sklearn.cluster import KMeans
from sklearn.preprocessing import normalize

from vector_clustering.core.base_clustering import KMEANS_MAX_ITER, PARTITION_SIZE
from vector_clustering.utils.error_handling import ComputationError

logger = logging.getLogger(__name__)


class KMeansPreClusterer:
    """
    K-Means pre-clusterer targeting a fixed number of points per partition.

    Partition sizes are not guaranteed to respect the target; callers must
    split oversized partitions themselves.
    """

    def __init__(
        self,
        partition_size: int = PARTITION_SIZE,
        max_iter: int = KMEANS_MAX_ITER,
        random_state: Optional[int] = None,
    ):
        """
        Initialize the pre-clusterer.

        Args:
            partition_size: Target number of points per partition
            max_iter: Maximum K-Means iterations
            random_state: Seed for k-means++ initialisation (None = random)
        """
        self.partition_size = partition_size
        self.max_iter = max_iter
        self.random_state = random_state

    def n_partitions(self, n_vectors: int) -> int:
        """ceil(n / partition_size), at least 1 and at most n."""
        n_clusters = math.ceil(n_vectors / self.partition_size)
        return max(1, min(n_clusters, n_vectors))

    def partition(self, vectors: np.ndarray) -> List[np.ndarray]:
        """
        Partition vectors into coarse cosine clusters.

        Args:
            vectors: Validated vectors (N x D)

        Returns:
            One array of row indices per K-Means cluster, in cluster order.
            Entries may be empty.

        Raises:
            ComputationError: On any failure inside K-Means
        """
        vectors = np.asarray(vectors, dtype=np.float64)
        if len(vectors) == 0:
            return []

        n_clusters = self.n_partitions(len(vectors))
        logger.debug(f"Using {n_clusters} K-means clusters for pre-clustering of {len(vectors)} points")

        try:
            unit_vectors = normalize(vectors, norm="l2")
            clusterer = KMeans(
                n_clusters=n_clusters,
                init="k-means++",
                n_init=1,
                max_iter=self.max_iter,
                random_state=self.random_state,
            )
            labels = clusterer.fit_predict(unit_vectors)
        except Exception as e:
            logger.error(f"K-means clustering failed: {e}", exc_info=True)
            raise ComputationError(
                f"K-means clustering failed: {e}",
                details={"n_vectors": len(vectors), "n_clusters": n_clusters},
            ) from e

        labels = np.asarray(labels)
        if labels.shape != (len(vectors),):
            raise ComputationError(
                "K-means returned an unexpected label shape",
                details={"labels_shape": list(labels.shape), "n_vectors": len(vectors)},
            )

        n_iter = getattr(clusterer, "n_iter_", None)
        if n_iter is not None and n_iter >= self.max_iter:
            logger.debug(f"K-means stopped at the iteration cap ({self.max_iter}) without converging")

        partitions = [np.flatnonzero(labels == label) for label in range(n_clusters)]
        logger.debug(
            f"K-means produced partition sizes {[len(p) for p in partitions]} "
            f"after {n_iter} iterations"
        )
        return partitions
