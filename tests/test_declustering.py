"""
Tests for cell declustering.
"""

import numpy as np
import pytest

from seqsim.core import InvalidParameter
from seqsim.declustering import declus
from seqsim.transforms import NormalScoreTransform


class TestDeclus:
    """Tests for declus."""

    def test_clustered_highs_lower_the_mean(self, clustered_data):
        """Oversampled high values get down-weighted."""
        result = declus(
            clustered_data["x"], clustered_data["y"], clustered_data["values"],
            cell_min=5.0, cell_max=50.0,
        )

        assert result.declustered_mean < clustered_data["values"].mean()
        assert 5.0 <= result.optimal_cell_size <= 50.0

    def test_weights_average_one(self, clustered_data):
        result = declus(
            clustered_data["x"], clustered_data["y"], clustered_data["values"],
            cell_min=5.0, cell_max=50.0,
        )

        assert result.weights.shape == clustered_data["values"].shape
        assert result.weights.mean() == pytest.approx(1.0)
        assert np.all(result.weights > 0)

    def test_summary(self, clustered_data):
        """One summary row (cell size, mean) per tested size."""
        result = declus(
            clustered_data["x"], clustered_data["y"], clustered_data["values"],
            cell_min=10.0, cell_max=40.0, n_cells=3,
        )

        np.testing.assert_allclose(result.summary[:, 0], [10.0, 20.0, 30.0, 40.0])
        assert result.declustered_mean == pytest.approx(result.summary[:, 1].min())

    def test_maximize(self, clustered_data):
        low = declus(clustered_data["x"], clustered_data["y"], clustered_data["values"],
                     cell_min=5.0, cell_max=50.0)
        high = declus(clustered_data["x"], clustered_data["y"], clustered_data["values"],
                      cell_min=5.0, cell_max=50.0, minimize=False)

        assert high.declustered_mean >= low.declustered_mean

    def test_regular_data_equal_weights(self):
        """A regular sampling pattern gets uniform weights."""
        X, Y = np.meshgrid(np.arange(0.0, 100.0, 10.0), np.arange(0.0, 100.0, 10.0))
        values = np.arange(100, dtype=float)

        result = declus(X.ravel(), Y.ravel(), values, cell_min=10.0, cell_max=10.0, n_cells=0)

        np.testing.assert_allclose(result.weights, 1.0)
        assert result.declustered_mean == pytest.approx(values.mean())

    def test_dataframe_input(self, clustered_data):
        data = {"east": clustered_data["x"], "north": clustered_data["y"], "au": clustered_data["values"]}

        result = declus(data=data, x_col="east", y_col="north", value_col="au",
                        cell_min=5.0, cell_max=50.0)

        assert result.weights.shape == (100,)

    def test_weights_feed_transform(self, clustered_data):
        """Declustering weights can weight the normal score table."""
        result = declus(clustered_data["x"], clustered_data["y"], clustered_data["values"],
                        cell_min=5.0, cell_max=50.0)

        transform = NormalScoreTransform.fit(clustered_data["values"], weights=result.weights)
        naive = NormalScoreTransform.fit(clustered_data["values"])

        assert transform.forward(12.0) > naive.forward(12.0)

    @pytest.mark.parametrize("kwargs", [
        dict(cell_min=None, cell_max=10.0),
        dict(cell_min=0.0, cell_max=10.0),
        dict(cell_min=20.0, cell_max=10.0),
        dict(cell_min=5.0, cell_max=10.0, anisotropy=0.0),
    ])
    def test_invalid(self, clustered_data, kwargs):
        with pytest.raises(InvalidParameter):
            declus(clustered_data["x"], clustered_data["y"], clustered_data["values"], **kwargs)

    def test_no_samples(self):
        with pytest.raises(InvalidParameter):
            declus([], [], [], cell_min=1.0, cell_max=2.0)
