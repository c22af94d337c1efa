"""
Tests for experimental variograms and distribution diagnostics.
"""

import numpy as np
import pytest

from seqsim.core import InvalidParameter
from seqsim.utils import GridSpec
from seqsim.variogram import GamvDirection, empirical_cdf, gamv, grid_variogram


@pytest.fixture
def line_data():
    """Ten samples along the x axis with a linear trend."""
    x = np.arange(10, dtype=float)
    return {"x": x, "y": np.zeros(10), "values": x.copy()}


class TestGamv:
    """Tests for the scattered-data variogram."""

    def test_linear_trend(self, line_data):
        """gamma(k) = k^2 / 2 for values equal to x."""
        [result] = gamv(line_data["x"], line_data["y"], line_data["values"], nlag=3, lag_distance=1.0)

        assert result.num_pairs[0] == 0
        assert np.isnan(result.gamma[0])
        np.testing.assert_array_equal(result.num_pairs[1:], [9, 8, 7])
        np.testing.assert_allclose(result.gamma[1:], [0.5, 2.0, 4.5])
        np.testing.assert_allclose(result.lag_distances, [0.0, 1.0, 2.0, 3.0])

    def test_head_tail_means(self, line_data):
        [result] = gamv(line_data["x"], line_data["y"], line_data["values"], nlag=1, lag_distance=1.0)

        assert result.tail_mean[1] == pytest.approx(4.0)
        assert result.head_mean[1] == pytest.approx(5.0)

    def test_directional(self, line_data):
        """A north direction sees no east-west pairs."""
        north, east = gamv(
            line_data["x"], line_data["y"], line_data["values"],
            nlag=2, lag_distance=1.0,
            directions=[GamvDirection(0.0, 22.5), GamvDirection(90.0, 22.5)],
        )

        assert north.num_pairs.sum() == 0
        assert north.azimuth == 0.0
        np.testing.assert_array_equal(east.num_pairs, [0, 9, 8])

    def test_bandwidth(self):
        """Pairs offset beyond the bandwidth are excluded."""
        x = np.array([0.0, 5.0, 5.0])
        y = np.array([0.0, 0.0, 3.0])
        v = np.array([0.0, 1.0, 2.0])

        [wide] = gamv(x, y, v, nlag=1, lag_distance=5.0, lag_tolerance=2.5,
                      directions=[GamvDirection(90.0, 45.0, 10.0)])
        [narrow] = gamv(x, y, v, nlag=1, lag_distance=5.0, lag_tolerance=2.5,
                        directions=[GamvDirection(90.0, 45.0, 1.0)])

        assert wide.num_pairs[1] == 2
        assert narrow.num_pairs[1] == 1

    def test_standardize_sill(self, line_data):
        [result] = gamv(line_data["x"], line_data["y"], line_data["values"], nlag=1,
                        lag_distance=1.0, standardize_sill=True)

        assert result.gamma[1] == pytest.approx(0.5 / np.var(line_data["values"]))

    def test_dataframe_input(self, line_data):
        data = {"east": line_data["x"], "north": line_data["y"], "au": line_data["values"]}

        [result] = gamv(data=data, x_col="east", y_col="north", value_col="au", nlag=1, lag_distance=1.0)

        assert result.gamma[1] == pytest.approx(0.5)

    def test_invalid(self, line_data):
        with pytest.raises(InvalidParameter):
            gamv(line_data["x"], line_data["y"], line_data["values"], nlag=0)
        with pytest.raises(InvalidParameter):
            gamv([0.0, 1.0], [0.0, 0.0], [1.0, 1.0], nlag=1, standardize_sill=True)


class TestGridVariogram:
    """Tests for realization variograms along grid axes."""

    @pytest.fixture
    def grid(self):
        return GridSpec(nx=4, ny=3, xmin=0.0, ymin=0.0, xsiz=2.0, ysiz=1.0)

    def test_along_x(self, grid):
        values = np.tile(np.arange(4, dtype=float), 3)  # value = ix

        result = grid_variogram(values, grid, nlag=2, axis="x")

        np.testing.assert_allclose(result.lag_distances, [2.0, 4.0])
        np.testing.assert_allclose(result.gamma, [0.5, 2.0])
        np.testing.assert_array_equal(result.num_pairs, [9, 6])
        assert result.azimuth == 90.0

    def test_along_y(self, grid):
        values = np.tile(np.arange(4, dtype=float), 3)

        result = grid_variogram(values, grid, nlag=5, axis="y")

        assert len(result.gamma) == 2
        np.testing.assert_array_equal(result.gamma, [0.0, 0.0])
        np.testing.assert_array_equal(result.num_pairs, [8, 4])

    def test_nan_skipped(self, grid):
        values = np.tile(np.arange(4, dtype=float), 3)
        values[0] = np.nan

        result = grid_variogram(values, grid, nlag=1, axis="x")

        assert result.num_pairs[0] == 8
        assert result.gamma[0] == pytest.approx(0.5)

    def test_invalid_axis(self, grid):
        with pytest.raises(InvalidParameter):
            grid_variogram(np.zeros(12), grid, nlag=1, axis="z")


class TestEmpiricalCdf:
    """Tests for empirical_cdf."""

    def test_plotting_positions(self):
        values, probs = empirical_cdf([3.0, 1.0, 2.0])

        np.testing.assert_array_equal(values, [1.0, 2.0, 3.0])
        np.testing.assert_allclose(probs, [1 / 6, 0.5, 5 / 6])

    def test_weights_and_nan(self):
        values, probs = empirical_cdf([1.0, np.nan, 2.0], weights=[3.0, 1.0, 1.0])

        np.testing.assert_array_equal(values, [1.0, 2.0])
        np.testing.assert_allclose(probs, [0.375, 0.875])
