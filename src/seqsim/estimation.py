"""
Ordinary kriging: single-target solver and grid estimation.

- KrigingSolver: builds and solves the ordinary kriging system for one target
- krige: ordinary kriging at every node of a grid
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from scipy import linalg
from tqdm.auto import tqdm

from seqsim.core import (
    InsufficientData,
    InvalidParameter,
    SingularSystem,
    validate_non_negative,
    validate_positive,
)
from seqsim.dataset import SpatialDataset
from seqsim.utils import EPSLON, GridSpec, VariogramModel

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)


@dataclass
class KrigingEstimate:
    """Ordinary kriging result at one target."""

    mean: float
    variance: float
    weights: NDArray[np.float64]  # One per neighbour in `used`
    lagrange: float
    used: NDArray[np.intp]  # Neighbourhood indices kept after duplicate removal


@dataclass
class KrigingResult:
    """Result from kriging estimation over a grid, in grid node order."""

    estimate: NDArray[np.float64]
    variance: NDArray[np.float64]
    grid: GridSpec

    def as_grids(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Estimate and variance reshaped to (ny, nx)."""
        return self.grid.reshape(self.estimate), self.grid.reshape(self.variance)


@dataclass
class SearchParameters:
    """Search neighborhood parameters for kriging."""

    max_samples: int = 32
    min_samples: int = 1
    radius: float = np.inf  # Isotropic search radius

    def __post_init__(self) -> None:
        validate_positive(self.max_samples, "max_samples")
        validate_non_negative(self.min_samples, "min_samples")
        validate_positive(self.radius, "radius")
        if self.min_samples > self.max_samples:
            raise InvalidParameter(
                f"min_samples ({self.min_samples}) exceeds max_samples ({self.max_samples})"
            )


def unique_locations(coords: NDArray[np.float64], tol: float = EPSLON) -> NDArray[np.intp]:
    """
    Indices of the first occurrence of each location.

    Points closer than ``tol`` to an earlier point are dropped.
    """
    n = len(coords)
    if n < 2:
        return np.arange(n, dtype=np.intp)
    d = np.linalg.norm(coords[:, None, :] - coords[None, :, :], axis=-1)
    duplicate = np.triu(d < tol, k=1).any(axis=0)
    return np.flatnonzero(~duplicate)


class KrigingSolver:
    """
    Ordinary kriging with a fixed variogram model.

    For ``n`` neighbours the (n+1) x (n+1) system is::

        | C   1 | | w  |   | c |
        | 1'  0 | | mu | = | 1 |

    with ``C[i, j] = cov(x_i - x_j)`` and ``c[i] = cov(x_i - x0)``. The
    estimate is ``sum(w * v)`` and the variance
    ``total_sill - sum(w * c) - mu``, floored at zero.

    Coincident neighbours are reduced to their first occurrence. A
    neighbour on the target itself is returned exactly, with zero variance.
    """

    def __init__(self, model: VariogramModel):
        self.model = model
        self.total_sill = model.total_sill

    def estimate(
        self,
        target: "ArrayLike",
        coords: "ArrayLike",
        values: "ArrayLike",
    ) -> KrigingEstimate:
        """
        Solve the ordinary kriging system at ``target``.

        Args:
            target: (x, y) location to estimate
            coords: (n, 2) neighbour coordinates
            values: (n,) neighbour values

        Raises:
            InsufficientData: If the neighbourhood is empty
            SingularSystem: If the system cannot be solved
        """
        target = np.asarray(target, dtype=np.float64).reshape(2)
        coords = np.asarray(coords, dtype=np.float64).reshape(-1, 2)
        values = np.asarray(values, dtype=np.float64).ravel()
        if len(coords) != len(values):
            raise InvalidParameter(
                f"got {len(coords)} neighbour locations but {len(values)} values"
            )
        if len(coords) == 0:
            raise InsufficientData("kriging neighbourhood is empty")

        used = unique_locations(coords)
        coords = coords[used]
        values = values[used]
        n = len(coords)

        offsets = np.linalg.norm(coords - target, axis=1)
        hits = np.flatnonzero(offsets < EPSLON)
        if hits.size:
            weights = np.zeros(n, dtype=np.float64)
            weights[hits[0]] = 1.0
            return KrigingEstimate(float(values[hits[0]]), 0.0, weights, 0.0, used)

        lhs = np.zeros((n + 1, n + 1), dtype=np.float64)
        lhs[:n, :n] = self.model.covariance_matrix(coords)
        lhs[:n, n] = 1.0
        lhs[n, :n] = 1.0
        rhs = np.ones(n + 1, dtype=np.float64)
        rhs[:n] = self.model.covariance(coords - target)

        try:
            solution = linalg.solve(lhs, rhs, assume_a="sym")
        except linalg.LinAlgError as exc:
            raise SingularSystem(f"kriging system of {n} points is singular: {exc}") from exc
        if not np.all(np.isfinite(solution)):
            raise SingularSystem(f"kriging system of {n} points has no finite solution")

        weights = solution[:n]
        mu = float(solution[n])
        mean = float(weights @ values)
        variance = max(0.0, float(self.total_sill - weights @ rhs[:n] - mu))
        return KrigingEstimate(mean, variance, weights, mu, used)


def krige(
    dataset: SpatialDataset,
    grid: GridSpec,
    variogram: VariogramModel,
    search: SearchParameters | None = None,
    use_scores: bool = False,
    progress: bool = False,
) -> KrigingResult:
    """
    Ordinary kriging at every node of a grid.

    Nodes with fewer than ``search.min_samples`` samples inside the search
    radius are left unestimated (NaN).

    Args:
        dataset: Conditioning samples
        grid: Grid specification for output
        variogram: Variogram model
        search: Search neighborhood parameters
        use_scores: Krige the normal scores instead of the raw values
        progress: Show a tqdm progress bar

    Returns:
        KrigingResult with estimate, variance, and grid spec
    """
    search = search or SearchParameters()
    solver = KrigingSolver(variogram)
    data_values = dataset.scores if use_scores else dataset.values

    nodes = grid.nodes()
    estimate = np.full(grid.ncells, np.nan)
    variance = np.full(grid.ncells, np.nan)

    for k, node in enumerate(tqdm(nodes, disable=not progress, desc="kriging")):
        dist, idx = dataset.nearest_indices(node, search.max_samples)
        idx = idx[dist <= search.radius]
        if len(idx) < max(search.min_samples, 1):
            continue
        result = solver.estimate(node, dataset.coordinates[idx], data_values[idx])
        estimate[k] = result.mean
        variance[k] = result.variance

    n_missing = int(np.isnan(estimate).sum())
    if n_missing:
        logger.warning("%d of %d nodes left unestimated", n_missing, grid.ncells)
    return KrigingResult(estimate=estimate, variance=variance, grid=grid)
