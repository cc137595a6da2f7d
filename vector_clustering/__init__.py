"""
Two-phase vector clustering engine.

Collapses a large batch of embedding vectors into a small, diverse set of
representative identifiers.
"""

from vector_clustering.core.clustering_engine import ClusteringEngine
from vector_clustering.schemas.data_models import ClusteringStrategy, LinkageMethod
from vector_clustering.utils.error_handling import ComputationError, ValidationError

__version__ = "1.0.0"

__all__ = [
    "ClusteringEngine",
    "ClusteringStrategy",
    "LinkageMethod",
    "ComputationError",
    "ValidationError",
]
