"""
Core clustering module.

Exports:
- ClusteringEngine: Main orchestration class
- AgglomerativeAlgorithm: Threshold-stopped hierarchical clustering
- KMeansPreClusterer: Coarse partitioning for large batches
- ClusteringConfig / ClusterNode: Shared types
- Distance and deduplication helpers
"""

from vector_clustering.core.base_clustering import ClusteringConfig, ClusterNode
from vector_clustering.core.distance import (
    cosine_distance,
    cosine_similarity,
    pairwise_cosine_distances,
)
from vector_clustering.core.agglomerative_algorithm import AgglomerativeAlgorithm
from vector_clustering.core.kmeans_algorithm import KMeansPreClusterer
from vector_clustering.core.deduplication import remove_near_duplicates
from vector_clustering.core.clustering_engine import ClusteringEngine

__all__ = [
    "ClusteringEngine",
    "AgglomerativeAlgorithm",
    "KMeansPreClusterer",
    "ClusteringConfig",
    "ClusterNode",
    "cosine_similarity",
    "cosine_distance",
    "pairwise_cosine_distances",
    "remove_near_duplicates",
]
