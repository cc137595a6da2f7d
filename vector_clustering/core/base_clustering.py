"""
Shared clustering types.

Defines the validated engine configuration and the merge-tree node used
by hierarchical clustering.
"""

import numbers
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from vector_clustering.schemas.data_models import LinkageMethod
from vector_clustering.utils.error_handling import ValidationError

# Internal tuning constants (not part of the public contract)
LARGE_DATASET_CUTOFF = 1000
PARTITION_SIZE = 500
KMEANS_MAX_ITER = 300


@dataclass(frozen=True)
class ClusteringConfig:
    """Configuration for the clustering engine."""

    threshold: float
    linkage: LinkageMethod = LinkageMethod.COMPLETE
    large_dataset_cutoff: int = LARGE_DATASET_CUTOFF
    partition_size: int = PARTITION_SIZE
    kmeans_max_iter: int = KMEANS_MAX_ITER
    random_state: Optional[int] = None

    def __post_init__(self):
        threshold = self.threshold
        if isinstance(threshold, bool) or not isinstance(threshold, numbers.Real):
            raise ValidationError(
                f"Clustering threshold must be a number, got: {threshold!r}",
                details={"threshold": repr(threshold)},
            )
        # Chained comparison also rejects NaN
        if not 0.0 <= threshold <= 1.0:
            raise ValidationError(
                f"Clustering threshold must be between 0.0 and 1.0, got: {threshold}",
                details={"threshold": threshold},
            )
        object.__setattr__(self, "threshold", float(threshold))
        object.__setattr__(self, "linkage", parse_linkage(self.linkage))

        for name in ("large_dataset_cutoff", "partition_size", "kmeans_max_iter"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ValidationError(
                    f"{name} must be a positive integer, got: {value!r}",
                    details={name: repr(value)},
                )


def parse_linkage(linkage: Union[str, LinkageMethod]) -> LinkageMethod:
    """Accept a LinkageMethod or its case-insensitive name."""
    if isinstance(linkage, LinkageMethod):
        return linkage
    try:
        return LinkageMethod(str(linkage).lower())
    except ValueError:
        raise ValidationError(
            f"Unsupported linkage '{linkage}'. "
            f"Supported: {[m.value for m in LinkageMethod]}",
            details={"linkage": str(linkage)},
        ) from None


@dataclass(frozen=True, eq=False)
class ClusterNode:
    """
    Node in the agglomerative merge tree.

    A leaf holds one row index. A merged node holds the disjoint union of
    its children's members, in left-then-right order. Nodes compare and
    hash by identity, since a chained tree can be deeper than the
    recursion limit.
    """

    node_id: int
    members: Tuple[int, ...]
    left: Optional["ClusterNode"] = field(default=None, repr=False)
    right: Optional["ClusterNode"] = field(default=None, repr=False)
    merge_distance: float = 0.0

    @classmethod
    def leaf(cls, index: int) -> "ClusterNode":
        return cls(node_id=index, members=(index,))

    @classmethod
    def merge(
        cls,
        node_id: int,
        left: "ClusterNode",
        right: "ClusterNode",
        distance: float,
    ) -> "ClusterNode":
        return cls(
            node_id=node_id,
            members=left.members + right.members,
            left=left,
            right=right,
            merge_distance=distance,
        )

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def is_leaf(self) -> bool:
        return self.left is None
