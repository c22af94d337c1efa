"""
Tests for utility classes and functions.
"""

import numpy as np
import pytest

from seqsim.core import InvalidParameter
from seqsim.utils import (
    GridSpec,
    VariogramModel,
    VariogramStructure,
    VariogramType,
    anisotropy_matrix,
    deutsch_to_math,
    evaluate_variogram,
    math_to_deutsch,
)


class TestGridSpec:
    """Tests for GridSpec class."""

    def test_shape(self, simple_grid):
        """Test grid shape property."""
        assert simple_grid.shape == (8, 10)

    def test_ncells(self, simple_grid):
        """Test total cell count."""
        assert simple_grid.ncells == 80

    def test_max_coordinates(self, irregular_grid):
        """Test maximum coordinate properties."""
        assert irregular_grid.xmax == pytest.approx(2.5 + 6 * 2.5)
        assert irregular_grid.ymax == pytest.approx(5.0 + 4 * 1.5)

    def test_node_order_x_fastest(self, irregular_grid):
        """Test flat index ix + iy * nx."""
        nodes = irregular_grid.nodes()

        assert nodes.shape == (35, 2)
        np.testing.assert_allclose(nodes[0], [2.5, 5.0])
        np.testing.assert_allclose(nodes[1], [5.0, 5.0])
        np.testing.assert_allclose(nodes[7], [2.5, 6.5])
        np.testing.assert_allclose(nodes[3 + 2 * 7], [2.5 + 3 * 2.5, 5.0 + 2 * 1.5])

    def test_meshgrid_shape(self, irregular_grid):
        """Test meshgrid generation."""
        X, Y = irregular_grid.meshgrid()

        assert X.shape == (5, 7)
        assert Y.shape == (5, 7)

    def test_reshape(self, simple_grid):
        """Test flat vectors reshape to (ny, nx) in node order."""
        flat = np.arange(simple_grid.ncells, dtype=float)

        grid = simple_grid.reshape(flat)

        assert grid.shape == (8, 10)
        assert grid[1, 0] == 10.0
        assert simple_grid.reshape(np.zeros((3, 80))).shape == (3, 8, 10)
        with pytest.raises(InvalidParameter):
            simple_grid.reshape(np.zeros(79))

    def test_contains_point(self, simple_grid):
        """Test point containment check."""
        assert simple_grid.contains_point(5.0, 5.0)
        assert simple_grid.contains_point(0.0, 0.0)
        assert not simple_grid.contains_point(-1.0, 5.0)
        assert not simple_grid.contains_point(5.0, 15.0)

    def test_point_to_index(self, simple_grid):
        """Test coordinate to flat index conversion."""
        assert simple_grid.point_to_index(0.5, 0.5) == 0
        assert simple_grid.point_to_index(9.5, 7.5) == 79
        assert simple_grid.point_to_index(2.4, 1.6) == 2 + 1 * 10
        assert simple_grid.point_to_index(-5.0, 5.0) is None

    def test_from_gslib_text(self):
        """Test the six-scalar description nx ny xsiz ysiz xmin ymin."""
        grid = GridSpec.from_gslib("2 3  # nx ny\n10 5\n0 100\n")

        assert grid == GridSpec(nx=2, ny=3, xmin=0.0, ymin=100.0, xsiz=10.0, ysiz=5.0)
        assert grid.to_gslib() == (2, 3, 10.0, 5.0, 0.0, 100.0)

    def test_from_gslib_sequence(self):
        """Test the description as a sequence round-trips."""
        grid = GridSpec.from_gslib([4, 4, 1.0, 2.0, 0.5, 1.0])

        assert GridSpec.from_gslib(grid.to_gslib()) == grid

    @pytest.mark.parametrize("description", ["2 3 10 5 0", "2 3 ten 5 0 0"])
    def test_from_gslib_invalid(self, description):
        """Test short or non-numeric descriptions fail."""
        with pytest.raises(InvalidParameter):
            GridSpec.from_gslib(description)

    @pytest.mark.parametrize("kwargs", [
        dict(nx=0, ny=2, xmin=0, ymin=0, xsiz=1, ysiz=1),
        dict(nx=2, ny=2, xmin=0, ymin=0, xsiz=0, ysiz=1),
        dict(nx=2, ny=2, xmin=0, ymin=0, xsiz=1, ysiz=-1),
        dict(nx=2.5, ny=2, xmin=0, ymin=0, xsiz=1, ysiz=1),
    ])
    def test_invalid_grid(self, kwargs):
        """Test invalid dimensions fail at construction."""
        with pytest.raises(InvalidParameter):
            GridSpec(**kwargs)

    def test_extent(self, simple_grid):
        """Test cell-edge extent."""
        assert simple_grid.extent == pytest.approx((0.0, 10.0, 0.0, 8.0))


class TestAzimuthConventions:
    """Tests for azimuth conversions."""

    def test_deutsch_to_math(self):
        """North is 90 degrees, east is 0."""
        assert deutsch_to_math(0.0) == 90.0
        assert deutsch_to_math(90.0) == 0.0

    def test_round_trip(self):
        assert math_to_deutsch(deutsch_to_math(37.0)) == pytest.approx(37.0)

    def test_anisotropy_matrix_isotropic_is_rotation(self):
        """With ratio 1 the matrix is orthogonal."""
        A = anisotropy_matrix(30.0, 1.0)

        np.testing.assert_allclose(A @ A.T, np.eye(2), atol=1e-12)

    def test_anisotropy_matrix_axes(self):
        """Major axis maps to unit length, minor axis is stretched by 1/ratio."""
        A = anisotropy_matrix(0.0, 0.5)

        np.testing.assert_allclose(A @ [0.0, 1.0], [1.0, 0.0], atol=1e-12)
        assert np.linalg.norm(A @ [1.0, 0.0]) == pytest.approx(2.0)


class TestVariogramModel:
    """Tests for VariogramModel class."""

    def test_spherical_creation(self):
        """Test spherical model factory."""
        model = VariogramModel.spherical(sill=0.9, range=50.0, nugget=0.1)

        assert model.nugget == 0.1
        assert len(model.structures) == 1
        assert model.structures[0].type == VariogramType.SPHERICAL
        assert model.total_sill == pytest.approx(1.0)

    def test_exponential_creation(self):
        """Test exponential model factory."""
        model = VariogramModel.exponential(sill=1.0, range=100.0)

        assert model.structures[0].type == VariogramType.EXPONENTIAL

    def test_nested_structures(self):
        """Test model with multiple nested structures."""
        model = VariogramModel(nugget=0.1)
        model.add_structure(VariogramType.SPHERICAL, 0.3, 10.0)
        model.add_structure(VariogramType.GAUSSIAN, 0.6, 40.0, azimuth=45.0, anisotropy_ratio=0.5)

        assert len(model.structures) == 2
        assert model.total_sill == pytest.approx(1.0)

    def test_structures_from_dicts(self):
        """Test plain dicts are accepted as structures."""
        model = VariogramModel(structures=[dict(type=2, sill=1.0, range=5.0)])

        assert isinstance(model.structures[0], VariogramStructure)
        assert model.structures[0].type == VariogramType.EXPONENTIAL

    @pytest.mark.parametrize("model", [
        VariogramModel.spherical(sill=1.0, range=10.0),
        VariogramModel.spherical(sill=0.7, range=10.0, nugget=0.3),
        VariogramModel.exponential(sill=2.0, range=5.0, nugget=0.25, azimuth=30.0, anisotropy_ratio=0.4),
        VariogramModel(nugget=0.1).add_structure(3, 0.2, 4.0).add_structure(1, 0.6, 20.0, 120.0, 0.3),
    ])
    def test_covariance_at_zero_is_total_sill(self, model):
        """Covariance at zero separation equals the total sill exactly."""
        assert model.covariance([0.0, 0.0]) == model.total_sill

    def test_covariance_symmetry(self):
        """covariance(h) == covariance(-h) for anisotropic nested models."""
        model = VariogramModel(nugget=0.2)
        model.add_structure(VariogramType.SPHERICAL, 0.5, 30.0, azimuth=60.0, anisotropy_ratio=0.3)
        model.add_structure(VariogramType.EXPONENTIAL, 0.3, 12.0, azimuth=10.0, anisotropy_ratio=0.8)
        h = np.random.default_rng(0).uniform(-40, 40, size=(200, 2))

        np.testing.assert_array_equal(model.covariance(h), model.covariance(-h))

    def test_isotropic_direction_independent(self):
        """Equal-length separations give equal covariance when ratio is 1."""
        model = VariogramModel.spherical(sill=1.0, range=10.0, azimuth=35.0)
        vectors = np.array([[5.0, 0.0], [0.0, 5.0], [3.0, 4.0], [-4.0, -3.0], [0.0, -5.0]])

        cov = model.covariance(vectors)

        np.testing.assert_array_equal(cov, np.full(5, cov[0]))

    def test_spherical_values(self):
        """Test spherical shape at fractions of the range."""
        model = VariogramModel.spherical(sill=1.0, range=10.0)

        assert model.covariance([5.0, 0.0]) == pytest.approx(1.0 - (0.75 - 0.0625))
        assert model.covariance([10.0, 0.0]) == pytest.approx(0.0)
        assert model.covariance([25.0, 0.0]) == 0.0

    def test_exponential_and_gaussian_practical_range(self):
        """Practical range: 95% of the sill reached at the range."""
        for model in (
            VariogramModel.exponential(sill=1.0, range=10.0),
            VariogramModel.gaussian(sill=1.0, range=10.0),
        ):
            assert model.covariance([0.0, 10.0]) == pytest.approx(np.exp(-3.0))

    def test_anisotropy_major_minor(self):
        """Major axis along the azimuth, minor range is ratio * range."""
        north = VariogramModel.spherical(sill=1.0, range=10.0, azimuth=0.0, anisotropy_ratio=0.5)
        east = VariogramModel.spherical(sill=1.0, range=10.0, azimuth=90.0, anisotropy_ratio=0.5)

        assert north.covariance([0.0, 5.0]) == pytest.approx(0.3125)
        assert north.covariance([5.0, 0.0]) == pytest.approx(0.0, abs=1e-12)
        assert east.covariance([5.0, 0.0]) == pytest.approx(0.3125)
        assert east.covariance([0.0, 5.0]) == pytest.approx(0.0, abs=1e-12)

    def test_nugget_only_at_zero(self):
        """The nugget contributes at zero separation only."""
        model = VariogramModel.spherical(sill=1.0, range=10.0, nugget=0.5)

        assert model.covariance([0.0, 0.0]) == 1.5
        assert model.covariance([1e-3, 0.0]) == pytest.approx(1.0, abs=1e-3)
        assert model.covariance([1e-3, 0.0]) < 1.0

    def test_nugget_structure(self):
        """Test a nugget-type nested structure."""
        model = VariogramModel(structures=[dict(type=VariogramType.NUGGET, sill=0.5)])

        assert model.covariance([0.0, 0.0]) == 0.5
        assert model.covariance([1.0, 0.0]) == 0.0

    def test_covariance_shapes(self):
        """Single vector gives a float, stacks give arrays."""
        model = VariogramModel.spherical(sill=1.0, range=10.0)

        assert isinstance(model.covariance([1.0, 1.0]), float)
        assert model.covariance(np.zeros((4, 3, 2))).shape == (4, 3)
        with pytest.raises(InvalidParameter):
            model.covariance([1.0, 2.0, 3.0])

    def test_covariance_matrix(self, spherical_variogram):
        """Test pairwise covariance matrix."""
        coords = np.array([[0.0, 0.0], [3.0, 4.0], [20.0, 0.0]])

        C = spherical_variogram.covariance_matrix(coords)

        assert C.shape == (3, 3)
        np.testing.assert_array_equal(C, C.T)
        np.testing.assert_array_equal(np.diag(C), 1.0)
        assert C[0, 2] == 0.0
        assert spherical_variogram.covariance_matrix(coords, coords[:1]).shape == (3, 1)

    def test_variogram_is_sill_minus_covariance(self, spherical_variogram):
        h = np.array([[2.0, 1.0], [7.0, -3.0]])

        np.testing.assert_allclose(
            spherical_variogram.variogram(h),
            spherical_variogram.total_sill - spherical_variogram.covariance(h),
        )

    @pytest.mark.parametrize("kwargs", [
        dict(type=1, sill=0.0, range=10.0),
        dict(type=1, sill=1.0, range=0.0),
        dict(type=1, sill=1.0, range=10.0, anisotropy_ratio=0.0),
        dict(type=1, sill=1.0, range=10.0, anisotropy_ratio=1.5),
        dict(type=4, sill=1.0, range=10.0),
    ])
    def test_invalid_structure(self, kwargs):
        """Invalid structures fail at construction."""
        with pytest.raises(InvalidParameter):
            VariogramStructure(**kwargs)

    def test_negative_nugget(self):
        with pytest.raises(InvalidParameter):
            VariogramModel(nugget=-0.1)


class TestEvaluateVariogram:
    """Tests for evaluate_variogram."""

    def test_spherical_curve(self, spherical_variogram):
        """Test gamma rises from 0 to the sill at the range."""
        gamma = evaluate_variogram(spherical_variogram, [0.0, 5.0, 10.0, 20.0])

        np.testing.assert_allclose(gamma, [0.0, 0.6875, 1.0, 1.0])

    def test_direction(self):
        """Test directional evaluation on an anisotropic model."""
        model = VariogramModel.spherical(sill=1.0, range=10.0, azimuth=90.0, anisotropy_ratio=0.5)

        along = evaluate_variogram(model, [5.0], azimuth=90.0)
        across = evaluate_variogram(model, [5.0], azimuth=0.0)

        assert along[0] == pytest.approx(0.6875)
        assert across[0] == pytest.approx(1.0)
