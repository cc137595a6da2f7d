"""
Pytest configuration and shared fixtures for vector clustering tests.

This module provides:
- Seeded vector generators
- Vector batches with clear cluster structure
- Settings cache isolation
"""

import numpy as np
import pytest

from vector_clustering.config.settings_loader import ConfigManager


# =============================================================================
# Test Data Generators
# =============================================================================

@pytest.fixture
def rng():
    """Seeded random generator."""
    return np.random.default_rng(42)


@pytest.fixture
def small_vectors(rng):
    """Generate a small set of unit vectors for quick tests."""
    vectors = rng.standard_normal((10, 32))
    return vectors / np.linalg.norm(vectors, axis=1, keepdims=True)


@pytest.fixture
def clustered_vectors(rng):
    """
    Generate unit vectors with clear cluster structure.

    Creates 3 tight clusters of 20 points around the first three axes of a
    64-dimensional space.
    """
    n_per_cluster = 20
    dim = 64

    vectors = []
    labels = []
    for cluster_id in range(3):
        center = np.zeros(dim)
        center[cluster_id] = 1.0
        vectors.append(center + rng.standard_normal((n_per_cluster, dim)) * 0.01)
        labels.extend([cluster_id] * n_per_cluster)

    vectors = np.vstack(vectors)
    vectors = vectors / np.linalg.norm(vectors, axis=1, keepdims=True)
    return vectors, np.array(labels)


@pytest.fixture
def clustered_batch(clustered_vectors):
    """clustered_vectors as an {id: vector} mapping, ids encode the true cluster."""
    vectors, labels = clustered_vectors
    return {
        f"c{label}-{i:03d}": vector.tolist()
        for i, (vector, label) in enumerate(zip(vectors, labels))
    }


def make_random_batch(n: int, dim: int = 3, seed: int = 7) -> dict:
    """Random non-negative vectors keyed trace0..trace{n-1}."""
    generator = np.random.default_rng(seed)
    vectors = generator.random((n, dim))
    return {f"trace{i}": vectors[i].tolist() for i in range(n)}


@pytest.fixture
def random_batch_factory():
    """Factory for random {id: vector} batches."""
    return make_random_batch


# =============================================================================
# Settings isolation
# =============================================================================

@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Clear cached settings between tests."""
    ConfigManager._settings = None
    yield
    ConfigManager._settings = None
