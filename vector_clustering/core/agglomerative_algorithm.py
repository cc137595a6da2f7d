"""
Agglomerative Hierarchical Clustering Algorithm Implementation.

Threshold-stopped agglomerative clustering over cosine distance:
- sklearn AgglomerativeClustering builds the merge tree on a precomputed
  cosine distance matrix
- Merges are kept until the closest pair is farther apart than the
  threshold, or one cluster remains
- Supports single, complete and average linkage
- Each surviving cluster is summarised by its medoid

Suitable for small to medium batches only: the distance matrix is O(n²)
memory.
"""

import logging
import math
from typing import Dict, List, Union

import numpy as np
from sklearn.cluster import AgglomerativeClustering

from vector_clustering.core.base_clustering import ClusterNode, parse_linkage
from vector_clustering.core.distance import pairwise_cosine_distances
from vector_clustering.schemas.data_models import LinkageMethod
from vector_clustering.utils.error_handling import ComputationError, ValidationError

logger = logging.getLogger(__name__)


class AgglomerativeAlgorithm:
    """
    Agglomerative hierarchical clustering with a distance threshold.

    The cosine distance matrix is computed once at construction and reused
    by every fit() and medoid lookup on this instance.

    Usage:
        hac = AgglomerativeAlgorithm(vectors)
        clusters = hac.fit(LinkageMethod.COMPLETE, 0.5)
        medoids = [hac.get_cluster_medoid(c) for c in clusters]
    """

    def __init__(self, vectors: Union[np.ndarray, List[List[float]]]):
        """
        Compute the pairwise cosine distance matrix.

        Args:
            vectors: Validated vectors (N x D), N >= 1

        Raises:
            ValidationError: If the vector set is empty
        """
        vectors = np.asarray(vectors, dtype=np.float64)
        if vectors.ndim != 2 or vectors.shape[0] == 0 or vectors.shape[1] == 0:
            raise ValidationError(
                "Input data cannot be empty",
                details={"shape": list(vectors.shape)},
            )

        self.n_samples, self.n_features = vectors.shape
        self.distance_matrix = pairwise_cosine_distances(vectors)

    def fit(
        self,
        linkage: Union[str, LinkageMethod] = LinkageMethod.COMPLETE,
        threshold: float = 0.5,
    ) -> List[ClusterNode]:
        """
        Merge clusters bottom-up until the threshold stops it.

        sklearn builds the merge tree on the precomputed distance matrix;
        merges are then replayed in order for as long as their linkage
        distance is at or below the threshold. A pair exactly at the
        threshold is merged.

        Args:
            linkage: Linkage method
            threshold: Distance threshold - merging stops once the closest
                pair of clusters is farther apart than this value

        Returns:
            Clusters present at termination

        Raises:
            ValidationError: If threshold is negative or not a number
            ComputationError: If sklearn fails or yields a non-finite merge distance
        """
        linkage = parse_linkage(linkage)
        if threshold is None or math.isnan(threshold) or threshold < 0:
            raise ValidationError(
                f"Distance threshold must be non-negative, got: {threshold}",
                details={"threshold": threshold},
            )

        n = self.n_samples
        nodes: Dict[int, ClusterNode] = {i: ClusterNode.leaf(i) for i in range(n)}
        if n == 1:
            return list(nodes.values())

        # sklearn stops at distances >= distance_threshold, so nudge the
        # cutoff up by one ulp to keep pairs at exactly the threshold
        clusterer = AgglomerativeClustering(
            n_clusters=None,
            distance_threshold=float(np.nextafter(threshold, np.inf)),
            metric="precomputed",
            linkage=linkage.value,
            compute_full_tree=True,
        )
        try:
            clusterer.fit(self.distance_matrix)
        except Exception as e:
            raise ComputationError(
                f"Agglomerative clustering failed: {e}",
                details={"n_samples": n, "linkage": linkage.value},
            ) from e

        for step, ((left, right), distance) in enumerate(zip(clusterer.children_, clusterer.distances_)):
            distance = float(distance)
            if not math.isfinite(distance):
                raise ComputationError(
                    f"Non-finite linkage distance at merge {step}",
                    details={"distance": distance, "active_clusters": len(nodes)},
                )
            if distance > threshold:
                break
            # Tree ids follow sklearn: merge k creates node n + k
            merged = ClusterNode.merge(n + step, nodes.pop(int(left)), nodes.pop(int(right)), distance)
            nodes[merged.node_id] = merged

        clusters = list(nodes.values())
        logger.debug(
            f"Agglomerative ({linkage.value}, threshold={threshold}) reduced "
            f"{n} points to {len(clusters)} clusters"
        )
        return clusters

    def get_cluster_medoid(self, cluster: ClusterNode) -> int:
        """
        Get the member with minimum total distance to the other members.

        Ties resolve to the first such member in the cluster's member order.

        Args:
            cluster: Cluster returned by fit()

        Returns:
            Row index of the medoid
        """
        if cluster.size == 1:
            return cluster.members[0]

        members = np.asarray(cluster.members, dtype=np.intp)
        # Zero diagonal, so each row sum is the distance to the other members
        totals = self.distance_matrix[np.ix_(members, members)].sum(axis=1)
        return int(members[int(np.argmin(totals))])

    def fit_medoids(
        self,
        linkage: Union[str, LinkageMethod] = LinkageMethod.COMPLETE,
        threshold: float = 0.5,
    ) -> List[int]:
        """Run fit() and return the medoid row index of every cluster."""
        return [self.get_cluster_medoid(cluster) for cluster in self.fit(linkage, threshold)]

    def get_labels(self, clusters: List[ClusterNode]) -> np.ndarray:
        """
        Convert clusters to a label array.

        Args:
            clusters: Clusters returned by fit()

        Returns:
            Integer label per row; the label is the cluster's position in
            the given list
        """
        labels = np.full(self.n_samples, -1, dtype=np.int32)
        for cluster_id, cluster in enumerate(clusters):
            labels[list(cluster.members)] = cluster_id
        return labels
