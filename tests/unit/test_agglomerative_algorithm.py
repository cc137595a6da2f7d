"""
Unit tests for Agglomerative clustering algorithm.

Tests the AgglomerativeAlgorithm class including:
- Threshold-stopped merging
- Different linkage methods
- Medoid extraction
- Label conversion and merge-tree bookkeeping
- Failure conditions
"""

import itertools
import sys

import numpy as np
import pytest

from vector_clustering.core.agglomerative_algorithm import AgglomerativeAlgorithm
from vector_clustering.schemas.data_models import LinkageMethod
from vector_clustering.utils.error_handling import ComputationError, ValidationError


def brute_force_linkage(matrix, a, b, linkage):
    """Recompute a linkage distance directly from member pairs."""
    pairs = [matrix[i, j] for i, j in itertools.product(a, b)]
    if linkage is LinkageMethod.SINGLE:
        return min(pairs)
    if linkage is LinkageMethod.COMPLETE:
        return max(pairs)
    return sum(pairs) / len(pairs)


@pytest.mark.unit
class TestAgglomerativeAlgorithm:
    """Test suite for Agglomerative clustering algorithm."""

    def test_init(self, small_vectors):
        """Test initialization computes the distance matrix."""
        hac = AgglomerativeAlgorithm(small_vectors)

        assert hac.n_samples == 10
        assert hac.n_features == 32
        assert hac.distance_matrix.shape == (10, 10)

    def test_empty_input_rejected(self):
        """Empty vector set raises ValidationError."""
        with pytest.raises(ValidationError):
            AgglomerativeAlgorithm(np.empty((0, 4)))

    def test_negative_threshold_rejected(self, small_vectors):
        """Negative threshold raises ValidationError."""
        hac = AgglomerativeAlgorithm(small_vectors)
        with pytest.raises(ValidationError):
            hac.fit(LinkageMethod.COMPLETE, -0.1)

    def test_nan_threshold_rejected(self, small_vectors):
        """NaN threshold raises ValidationError."""
        hac = AgglomerativeAlgorithm(small_vectors)
        with pytest.raises(ValidationError):
            hac.fit(LinkageMethod.COMPLETE, float("nan"))

    def test_unknown_linkage_rejected(self, small_vectors):
        """Unsupported linkage names raise ValidationError."""
        hac = AgglomerativeAlgorithm(small_vectors)
        with pytest.raises(ValidationError):
            hac.fit("ward", 0.5)

    def test_linkage_accepts_names(self, clustered_vectors):
        """Linkage may be given as a case-insensitive string."""
        vectors, _ = clustered_vectors
        hac = AgglomerativeAlgorithm(vectors)

        assert len(hac.fit("COMPLETE", 0.3)) == len(hac.fit(LinkageMethod.COMPLETE, 0.3))

    def test_single_point(self):
        """A single vector is one cluster."""
        hac = AgglomerativeAlgorithm(np.array([[1.0, 2.0, 3.0]]))
        clusters = hac.fit(LinkageMethod.COMPLETE, 0.5)

        assert len(clusters) == 1
        assert clusters[0].members == (0,)
        assert hac.get_cluster_medoid(clusters[0]) == 0

    def test_three_point_scenario(self):
        """A=[1,0,0] and B=[0.9,0.1,0] merge at threshold 0.3, C stays apart."""
        vectors = np.array([[1.0, 0.0, 0.0], [0.9, 0.1, 0.0], [0.0, 0.0, 1.0]])
        hac = AgglomerativeAlgorithm(vectors)
        clusters = hac.fit(LinkageMethod.COMPLETE, 0.3)

        memberships = sorted(sorted(c.members) for c in clusters)
        assert memberships == [[0, 1], [2]]

    def test_clustered_vectors_recovered(self, clustered_vectors):
        """Three tight clusters are recovered by every linkage."""
        vectors, labels = clustered_vectors
        hac = AgglomerativeAlgorithm(vectors)

        for linkage in LinkageMethod:
            clusters = hac.fit(linkage, 0.3)
            assert len(clusters) == 3
            for cluster in clusters:
                assert len(set(labels[list(cluster.members)])) == 1

    def test_threshold_zero_keeps_distinct_points(self):
        """Orthogonal vectors are never merged at threshold 0."""
        hac = AgglomerativeAlgorithm(np.array([[1.0, 0.0], [0.0, 1.0]]))
        assert len(hac.fit(LinkageMethod.COMPLETE, 0.0)) == 2

    def test_threshold_zero_merges_identical_points(self):
        """Identical vectors are at distance 0 and merge even at threshold 0."""
        hac = AgglomerativeAlgorithm(np.array([[1.0, 0.0], [1.0, 0.0], [3.0, 0.0]]))
        assert len(hac.fit(LinkageMethod.COMPLETE, 0.0)) == 1

    def test_large_threshold_yields_single_cluster(self, small_vectors):
        """With a threshold above every distance one cluster remains."""
        hac = AgglomerativeAlgorithm(small_vectors)

        clusters = hac.fit(LinkageMethod.AVERAGE, 2.0)
        assert len(clusters) == 1
        assert sorted(clusters[0].members) == list(range(10))

    def test_merge_distances_respect_threshold(self, small_vectors):
        """Every recorded merge happened at or below the threshold."""
        hac = AgglomerativeAlgorithm(small_vectors)
        threshold = 1.0

        def walk(node):
            if node.is_leaf:
                return
            assert node.merge_distance <= threshold
            walk(node.left)
            walk(node.right)

        for linkage in LinkageMethod:
            for cluster in hac.fit(linkage, threshold):
                walk(cluster)

    def test_final_clusters_are_separated(self, small_vectors):
        """Every pair of surviving clusters is farther apart than the threshold."""
        hac = AgglomerativeAlgorithm(small_vectors)
        threshold = 0.95

        for linkage in LinkageMethod:
            clusters = hac.fit(linkage, threshold)
            for a, b in itertools.combinations(clusters, 2):
                distance = brute_force_linkage(hac.distance_matrix, a.members, b.members, linkage)
                assert distance > threshold

    def test_merge_distance_matches_recomputed_linkage(self, small_vectors):
        """Merge distances equal member-pairwise min/max/mean."""
        hac = AgglomerativeAlgorithm(small_vectors)

        for linkage in LinkageMethod:
            for cluster in hac.fit(linkage, 2.0):
                stack = [cluster]
                while stack:
                    node = stack.pop()
                    if node.is_leaf:
                        continue
                    expected = brute_force_linkage(
                        hac.distance_matrix, node.left.members, node.right.members, linkage
                    )
                    assert node.merge_distance == pytest.approx(expected, abs=1e-9)
                    stack.extend([node.left, node.right])

    def test_single_linkage_chains(self):
        """Single linkage chains points that complete linkage keeps apart."""
        angles = np.radians([0.0, 20.0, 40.0, 60.0])
        vectors = np.column_stack([np.cos(angles), np.sin(angles)])
        hac = AgglomerativeAlgorithm(vectors)

        # Neighbours are ~0.06 apart, the chain ends 0.5 apart
        assert len(hac.fit(LinkageMethod.SINGLE, 0.1)) == 1
        assert len(hac.fit(LinkageMethod.COMPLETE, 0.1)) > 1

    def test_node_ids_and_sizes(self, small_vectors):
        """Merged nodes get ids from N upward and sizes add up."""
        hac = AgglomerativeAlgorithm(small_vectors)
        clusters = hac.fit(LinkageMethod.COMPLETE, 2.0)
        root = clusters[0]

        assert root.node_id == 10 + 9 - 1
        assert root.size == 10
        assert root.left.size + root.right.size == root.size
        assert set(root.left.members).isdisjoint(root.right.members)

    def test_deep_chain_compares_and_hashes_by_identity(self):
        """A single-linkage chain deeper than the recursion limit stays usable."""
        n = sys.getrecursionlimit() + 200
        # Growing gaps make every merge attach one more point to the chain
        angles = np.cumsum(np.linspace(1e-4, 1e-3, n))
        vectors = np.column_stack([np.cos(angles), np.sin(angles)])
        hac = AgglomerativeAlgorithm(vectors)

        first = hac.fit(LinkageMethod.SINGLE, 1.0)
        second = hac.fit(LinkageMethod.SINGLE, 1.0)
        assert len(first) == len(second) == 1

        root = first[0]
        assert root.size == n
        assert root == root
        assert root != second[0]
        assert len({root, second[0]}) == 2
        assert isinstance(hash(root), int)

    def test_fit_is_deterministic(self, small_vectors):
        """Repeated fits produce identical clusters."""
        hac = AgglomerativeAlgorithm(small_vectors)
        first = [c.members for c in hac.fit(LinkageMethod.COMPLETE, 0.9)]
        second = [c.members for c in hac.fit(LinkageMethod.COMPLETE, 0.9)]
        assert first == second

    def test_medoid(self):
        """The medoid minimises the summed distance to other members."""
        angles = np.radians([0.0, 10.0, 20.0, 45.0])
        vectors = np.column_stack([np.cos(angles), np.sin(angles)])
        hac = AgglomerativeAlgorithm(vectors)

        clusters = hac.fit(LinkageMethod.COMPLETE, 2.0)
        assert len(clusters) == 1
        # 20 degrees sits nearest the 45 degree outlier
        assert hac.get_cluster_medoid(clusters[0]) == 2

    def test_fit_medoids(self, clustered_vectors):
        """fit_medoids returns one member index per cluster."""
        vectors, labels = clustered_vectors
        hac = AgglomerativeAlgorithm(vectors)

        medoids = hac.fit_medoids(LinkageMethod.COMPLETE, 0.3)
        assert len(medoids) == 3
        assert sorted(labels[medoids]) == [0, 1, 2]

    def test_get_labels(self, clustered_vectors):
        """Labels assign every row to the position of its cluster."""
        vectors, true_labels = clustered_vectors
        hac = AgglomerativeAlgorithm(vectors)
        clusters = hac.fit(LinkageMethod.COMPLETE, 0.3)

        labels = hac.get_labels(clusters)
        assert labels.shape == (len(vectors),)
        assert set(labels.tolist()) == {0, 1, 2}
        for cluster_id, cluster in enumerate(clusters):
            assert all(labels[m] == cluster_id for m in cluster.members)
        # Same partition as the ground truth
        assert len(set(zip(labels.tolist(), true_labels.tolist()))) == 3

    def test_non_finite_distance_raises_computation_error(self, small_vectors):
        """A corrupted distance matrix surfaces as ComputationError."""
        hac = AgglomerativeAlgorithm(small_vectors)
        hac.distance_matrix[0, 1] = hac.distance_matrix[1, 0] = np.nan

        with pytest.raises(ComputationError):
            hac.fit(LinkageMethod.COMPLETE, 0.5)
