"""
data_models.py

Enums and Pydantic models shared by the clustering engine, settings and CLI.

Schema Design:
- Input: mapping of record identifier -> embedding vector (produced upstream)
- Output: list of representative identifiers, optionally wrapped in a summary
"""

from typing import Dict, List, Optional
from enum import Enum
from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class LinkageMethod(str, Enum):
    """Rules for turning member-pairwise distances into one cluster distance."""

    SINGLE = "single"  # Minimum distance between clusters
    COMPLETE = "complete"  # Maximum distance between clusters
    AVERAGE = "average"  # Mean distance between clusters


class ClusteringStrategy(str, Enum):
    """How a batch is clustered, chosen from its size."""

    DIRECT = "direct"  # Hierarchical clustering on the whole batch
    TWO_PHASE = "two_phase"  # K-means pre-partitioning, then hierarchical per partition


# =============================================================================
# RESULT MODELS
# =============================================================================


class RepresentativeSummary(BaseModel):
    """Summary of one clustering call, as emitted by the CLI."""

    input_count: int = Field(..., ge=0, description="Number of input vectors")
    representative_count: int = Field(..., ge=0, description="Number of representatives returned")
    strategy: Optional[ClusteringStrategy] = Field(
        default=None, description="Strategy selected for the batch (None for trivial batches)"
    )
    threshold: float = Field(..., ge=0.0, le=1.0, description="Configured similarity/distance threshold")
    linkage: LinkageMethod = Field(..., description="Linkage method used by hierarchical clustering")
    representatives: List[str] = Field(default_factory=list, description="Representative identifiers")
    labels: Optional[Dict[str, int]] = Field(
        default=None, description="Cluster label per identifier (direct strategy diagnostics)"
    )

    @property
    def reduction_ratio(self) -> float:
        """Fraction of the input removed by clustering."""
        if self.input_count == 0:
            return 0.0
        return 1.0 - self.representative_count / self.input_count
