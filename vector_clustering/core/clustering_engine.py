"""
Clustering Engine - Orchestrates representative selection.

Main entry point for clustering functionality. Validates the batch,
selects a strategy from its size, drives K-means pre-partitioning and
hierarchical clustering, and returns one representative identifier per
surviving cluster.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np

from vector_clustering.core.agglomerative_algorithm import AgglomerativeAlgorithm
from vector_clustering.core.base_clustering import (
    KMEANS_MAX_ITER,
    LARGE_DATASET_CUTOFF,
    PARTITION_SIZE,
    ClusteringConfig,
)
from vector_clustering.core.deduplication import remove_near_duplicates
from vector_clustering.core.kmeans_algorithm import KMeansPreClusterer
from vector_clustering.core.validation import validate_vectors
from vector_clustering.schemas.data_models import (
    ClusteringStrategy,
    LinkageMethod,
    RepresentativeSummary,
)
from vector_clustering.utils.advanced_logging import PerformanceLogger, get_logger
from vector_clustering.utils.error_handling import ComputationError, ValidationError

logger = logging.getLogger(__name__)
perf_logger = get_logger(__name__)


class ClusteringEngine:
    """
    Two-phase vector clustering engine.

    Stateless apart from its immutable configuration, so one instance can
    serve concurrent calls from several threads.

    Usage:
        engine = ClusteringEngine(threshold=0.3)
        representatives = engine.cluster_and_get_representatives({"a": [1.0, 0.0], ...})
    """

    def __init__(
        self,
        threshold: float,
        linkage: Union[str, LinkageMethod] = LinkageMethod.COMPLETE,
        *,
        large_dataset_cutoff: int = LARGE_DATASET_CUTOFF,
        partition_size: int = PARTITION_SIZE,
        kmeans_max_iter: int = KMEANS_MAX_ITER,
        random_state: Optional[int] = None,
    ):
        """
        Initialize clustering engine.

        Args:
            threshold: Similarity/distance threshold in [0, 1]
            linkage: Linkage method for hierarchical clustering
            large_dataset_cutoff: Batches larger than this use K-means pre-partitioning
            partition_size: Target K-means partition size and hierarchical chunk size
            kmeans_max_iter: K-means iteration cap
            random_state: K-means seed (None = randomized initialisation)

        Raises:
            ValidationError: If threshold is outside [0, 1] or another value is invalid
        """
        self.config = ClusteringConfig(
            threshold=threshold,
            linkage=linkage,
            large_dataset_cutoff=large_dataset_cutoff,
            partition_size=partition_size,
            kmeans_max_iter=kmeans_max_iter,
            random_state=random_state,
        )
        logger.debug(
            f"Initialized ClusteringEngine: threshold={self.config.threshold}, "
            f"linkage={self.config.linkage.value}"
        )

    @classmethod
    def from_settings(cls, settings: Any) -> "ClusteringEngine":
        """
        Build an engine from loaded settings.

        Args:
            settings: Settings object or its clustering section

        Returns:
            Configured ClusteringEngine
        """
        clustering = getattr(settings, "clustering", settings)
        return cls(
            threshold=clustering.threshold,
            linkage=clustering.linkage,
            large_dataset_cutoff=clustering.large_dataset_cutoff,
            partition_size=clustering.partition_size,
            kmeans_max_iter=clustering.kmeans_max_iter,
            random_state=clustering.random_state,
        )

    @property
    def threshold(self) -> float:
        return self.config.threshold

    @property
    def linkage(self) -> LinkageMethod:
        return self.config.linkage

    def select_strategy(self, n_vectors: int) -> ClusteringStrategy:
        """
        Choose the clustering strategy for a batch size.

        Args:
            n_vectors: Number of vectors in the batch

        Returns:
            DIRECT up to the large-dataset cutoff, TWO_PHASE above it
        """
        if n_vectors > self.config.large_dataset_cutoff:
            return ClusteringStrategy.TWO_PHASE
        return ClusteringStrategy.DIRECT

    def cluster_and_get_representatives(
        self,
        vectors: Optional[Mapping[str, Sequence[float]]],
    ) -> List[str]:
        """
        Cluster vectors and return one representative identifier per cluster.

        Args:
            vectors: Mapping of identifier to vector; None or empty is allowed

        Returns:
            Representative identifiers (order carries no meaning)

        Raises:
            ValidationError: If the batch is malformed
            ComputationError: If a fallback path fails as well
        """
        if not vectors:
            return []

        ids, matrix = validate_vectors(vectors)

        if len(ids) == 1:
            return [ids[0]]

        strategy = self.select_strategy(len(ids))
        logger.debug(f"Starting {strategy.value} clustering for {len(ids)} vectors")

        with PerformanceLogger(
            "cluster_and_get_representatives",
            logger=perf_logger,
            item_count=len(ids),
            strategy=strategy.value,
        ):
            if strategy is ClusteringStrategy.TWO_PHASE:
                representatives = self._cluster_two_phase(matrix, ids)
            else:
                representatives = [ids[k] for k in self._block_medoids(matrix)]

        logger.debug(
            f"Clustering completed: {len(ids)} input vectors -> "
            f"{len(representatives)} representatives"
        )
        return representatives

    def summarize(
        self,
        vectors: Optional[Mapping[str, Sequence[float]]],
        include_labels: bool = False,
    ) -> RepresentativeSummary:
        """
        Cluster vectors and wrap the result in a RepresentativeSummary.

        Args:
            vectors: Mapping of identifier to vector
            include_labels: Also compute per-identifier cluster labels
                (direct-strategy batches only)

        Returns:
            RepresentativeSummary
        """
        n_vectors = len(vectors) if vectors else 0
        labels = self.assign_labels(vectors) if include_labels else None
        representatives = self.cluster_and_get_representatives(vectors)

        return RepresentativeSummary(
            input_count=n_vectors,
            representative_count=len(representatives),
            strategy=self.select_strategy(n_vectors) if n_vectors > 1 else None,
            threshold=self.threshold,
            linkage=self.linkage,
            representatives=representatives,
            labels=labels,
        )

    def assign_labels(
        self,
        vectors: Optional[Mapping[str, Sequence[float]]],
    ) -> Dict[str, int]:
        """
        Label every identifier with its hierarchical cluster.

        Args:
            vectors: Mapping of identifier to vector

        Returns:
            Mapping of identifier to cluster label

        Raises:
            ValidationError: If the batch is malformed or larger than the
                large-dataset cutoff
        """
        if not vectors:
            return {}

        ids, matrix = validate_vectors(vectors)
        if self.select_strategy(len(ids)) is not ClusteringStrategy.DIRECT:
            raise ValidationError(
                f"Labels are only available for batches of at most "
                f"{self.config.large_dataset_cutoff} vectors, got {len(ids)}",
                details={"n_vectors": len(ids)},
            )

        hac = AgglomerativeAlgorithm(matrix)
        labels = hac.get_labels(hac.fit(self.linkage, self.threshold))
        return {vector_id: int(label) for vector_id, label in zip(ids, labels)}

    # ------------------------------------------------------------------
    # Two-phase path
    # ------------------------------------------------------------------

    def _cluster_two_phase(self, matrix: np.ndarray, ids: List[str]) -> List[str]:
        """K-means pre-partitioning followed by per-partition hierarchical clustering."""
        logger.debug(f"Large dataset detected ({len(ids)}), applying K-means pre-clustering")

        pre_clusterer = KMeansPreClusterer(
            partition_size=self.config.partition_size,
            max_iter=self.config.kmeans_max_iter,
            random_state=self.config.random_state,
        )

        try:
            partitions = pre_clusterer.partition(matrix)
        except ComputationError as e:
            logger.warning(f"K-means clustering failed, falling back to hierarchical clustering only: {e}")
            try:
                return [ids[k] for k in self._block_medoids(matrix)]
            except Exception as fallback_error:
                raise ComputationError(
                    f"Fallback hierarchical clustering failed: {fallback_error}",
                    details={"n_vectors": len(ids)},
                ) from fallback_error

        representatives: List[str] = []
        for partition_idx, members in enumerate(partitions):
            logger.debug(f"Processing K-means cluster {partition_idx} with {len(members)} points")
            representatives.extend(self._cluster_partition(matrix, ids, members))
        return representatives

    def _cluster_partition(
        self,
        matrix: np.ndarray,
        ids: List[str],
        members: np.ndarray,
    ) -> List[str]:
        """Representatives of one K-means partition (row indices into matrix)."""
        if len(members) == 0:
            return []

        if len(members) == 1:
            return [ids[members[0]]]

        if len(members) <= self.config.partition_size:
            local_medoids = self._block_medoids(matrix[members])
            return [ids[members[k]] for k in local_medoids]

        logger.debug(
            f"Partition size {len(members)} exceeds {self.config.partition_size}, "
            "performing chunked clustering"
        )
        candidates: List[int] = []
        for start in range(0, len(members), self.config.partition_size):
            chunk = members[start:start + self.config.partition_size]
            candidates.extend(int(chunk[k]) for k in self._block_medoids(matrix[chunk]))

        return remove_near_duplicates(
            matrix[candidates],
            [ids[k] for k in candidates],
            self.threshold,
        )

    # ------------------------------------------------------------------
    # Hierarchical block
    # ------------------------------------------------------------------

    def _block_medoids(self, block: np.ndarray) -> List[int]:
        """
        Medoid row indices (local to block) of the hierarchical clusters.

        On hierarchical clustering failure the block degrades to its first
        row as sole representative.
        """
        if len(block) == 0:
            return []

        if len(block) == 1:
            return [0]

        try:
            hac = AgglomerativeAlgorithm(block)
            return hac.fit_medoids(self.linkage, self.threshold)
        except Exception as e:
            logger.error(
                f"Hierarchical clustering failed for {len(block)} points, "
                f"using first member as representative: {e}",
                exc_info=True,
            )
            return [0]
