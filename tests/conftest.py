"""
Pytest configuration and shared fixtures for seqsim tests.
"""

import numpy as np
import pytest

from seqsim.dataset import SpatialDataset
from seqsim.utils import GridSpec, VariogramModel


@pytest.fixture
def sample_data():
    """Generate simple sample data for testing."""
    rng = np.random.default_rng(42)
    n = 40

    x = rng.uniform(0, 20, n)
    y = rng.uniform(0, 20, n)
    values = rng.lognormal(1.0, 0.5, n)

    return {"x": x, "y": y, "values": values}


@pytest.fixture
def simple_grid():
    """Create a simple test grid."""
    return GridSpec(nx=10, ny=8, xmin=0.5, ymin=0.5, xsiz=1.0, ysiz=1.0)


@pytest.fixture
def irregular_grid():
    """Create an irregular (non-square) test grid with odd dimensions."""
    return GridSpec(
        nx=7, ny=5,  # Odd, non-equal dimensions
        xmin=2.5, ymin=5.0,  # Non-standard origins
        xsiz=2.5, ysiz=1.5,  # Non-equal cell sizes
    )


@pytest.fixture
def spherical_variogram():
    """Create a simple spherical variogram model."""
    return VariogramModel.spherical(sill=1.0, range=10.0)


@pytest.fixture
def dataset(sample_data):
    """Conditioning dataset with a fitted normal score transform."""
    return SpatialDataset(sample_data["x"], sample_data["y"], sample_data["values"])


@pytest.fixture
def clustered_data():
    """Generate clustered sample data for declustering tests."""
    rng = np.random.default_rng(123)

    # Create two clusters
    n1, n2 = 80, 20

    # Dense cluster (oversampled high values)
    x1 = rng.normal(25, 5, n1)
    y1 = rng.normal(25, 5, n1)
    v1 = rng.normal(15, 1, n1)  # Higher values

    # Sparse samples (undersampled low values)
    x2 = rng.uniform(0, 100, n2)
    y2 = rng.uniform(0, 100, n2)
    v2 = rng.normal(8, 1, n2)  # Lower values

    return {
        "x": np.concatenate([x1, x2]),
        "y": np.concatenate([y1, y2]),
        "values": np.concatenate([v1, v2]),
    }
