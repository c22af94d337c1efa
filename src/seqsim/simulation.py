"""
Sequential Gaussian simulation.

- SequentialSimulator: random path, sequential conditioning, N realizations
- sgsim: GSLIB-style function wrapping the simulator
"""

from __future__ import annotations

import logging
import math
import threading
import warnings
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np
from tqdm.auto import tqdm

from seqsim.core import (
    ExperimentalWarning,
    InsufficientData,
    InvalidParameter,
    RealizationError,
    SimulationCancelled,
    SingularSystem,
    _extract_points,
    validate_non_negative,
    validate_positive,
)
from seqsim.dataset import SpatialDataset
from seqsim.estimation import KrigingSolver
from seqsim.utils import GridSpec, VariogramModel

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


class RealizationState(Enum):
    """Lifecycle of one realization."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class SimulationResult:
    """
    Result from simulation.

    ``realizations`` has shape (nreal, ncells) in grid node order; failed
    realizations are NaN-filled and listed in ``failures``.
    """

    realizations: NDArray[np.float64]
    grid: GridSpec
    states: list[RealizationState] = field(default_factory=list)
    failures: list[RealizationError] = field(default_factory=list)
    seeds: list[int] = field(default_factory=list)
    back_transformed: bool = False

    def __len__(self) -> int:
        return len(self.realizations)

    @property
    def nodes(self) -> NDArray[np.float64]:
        """Node coordinates matching the realization columns."""
        return self.grid.nodes()

    @property
    def completed(self) -> NDArray[np.bool_]:
        """Boolean mask of realizations that finished."""
        return np.array([s is RealizationState.COMPLETE for s in self.states], dtype=bool)

    def as_grids(self) -> NDArray[np.float64]:
        """Realizations reshaped to (nreal, ny, nx)."""
        return self.realizations.reshape((len(self),) + self.grid.shape)

    def raise_for_failures(self) -> None:
        """Re-raise the first realization failure, if any."""
        if self.failures:
            raise self.failures[0]


class SequentialSimulator:
    """
    Sequential Gaussian simulation with ordinary kriging.

    Each realization visits the grid nodes along its own random path. At
    every node the nearest conditioning points, taken from the samples and
    from nodes already simulated in this realization, are kriged; a value is
    drawn from N(mean, variance) and joins the conditioning set. A node with
    no conditioning point at all is drawn from N(0, total_sill).

    Realization ``r`` uses ``numpy.random.default_rng(seed + r)`` for both
    its path and its draws, so results do not depend on worker count.

    Args:
        grid: Grid to simulate
        dataset: Conditioning data (normal scores are used)
        variogram: Variogram model of the normal scores
        max_neighbors: Maximum conditioning points per kriging system
        max_previously_simulated: Optional cap on simulated nodes among them
        search_radius: Ignore conditioning points farther than this
    """

    def __init__(
        self,
        grid: GridSpec,
        dataset: SpatialDataset,
        variogram: VariogramModel,
        max_neighbors: int = 16,
        max_previously_simulated: int | None = None,
        search_radius: float = np.inf,
    ):
        if not isinstance(grid, GridSpec):
            raise InvalidParameter(f"grid must be a GridSpec, got {type(grid).__name__}")
        if not isinstance(variogram, VariogramModel):
            raise InvalidParameter(f"variogram must be a VariogramModel, got {type(variogram).__name__}")
        validate_positive(max_neighbors, "max_neighbors")
        validate_positive(search_radius, "search_radius")
        if max_previously_simulated is not None:
            validate_non_negative(max_previously_simulated, "max_previously_simulated")
        if not variogram.total_sill > 0:
            raise InvalidParameter("variogram total sill must be positive")

        self.grid = grid
        self.dataset = dataset
        self.variogram = variogram
        self.max_neighbors = int(max_neighbors)
        self.max_previously_simulated = (
            self.max_neighbors if max_previously_simulated is None
            else min(int(max_previously_simulated), self.max_neighbors)
        )
        self.search_radius = float(search_radius)
        self._solver = KrigingSolver(variogram)
        self._nodes = grid.nodes()

    def simulate(
        self,
        n_realizations: int = 1,
        seed: int = 69069,
        back_transform: bool = False,
        n_workers: int = 1,
        progress: bool = False,
        cancel: threading.Event | None = None,
    ) -> SimulationResult:
        """
        Generate ``n_realizations`` realizations.

        A kriging failure aborts only its own realization; it is recorded in
        ``SimulationResult.failures`` and logged.

        Args:
            n_realizations: Number of realizations (0 gives an empty result)
            seed: Base random seed; realization r uses seed + r
            back_transform: Map results to raw units with the dataset transform
            n_workers: Run realizations on a thread pool of this size
            progress: Show a tqdm progress bar over realizations
            cancel: Event checked between nodes; when set, raises SimulationCancelled

        Returns:
            SimulationResult with realizations array
        """
        if int(n_realizations) != n_realizations or n_realizations < 0:
            raise InvalidParameter(f"n_realizations must be a non-negative integer, got {n_realizations}")
        n_realizations = int(n_realizations)
        validate_positive(n_workers, "n_workers")
        if back_transform and self.dataset.transform is None:
            raise InvalidParameter("back_transform requires a dataset with a normal score transform")

        seeds = [int(seed) + r for r in range(n_realizations)]
        realizations = np.full((n_realizations, self.grid.ncells), np.nan)
        states = [RealizationState.NOT_STARTED] * n_realizations
        failures: list[RealizationError] = []

        logger.info(
            "simulating %d realizations on a %dx%d grid with %d samples",
            n_realizations, self.grid.nx, self.grid.ny, len(self.dataset),
        )

        def run(r: int) -> None:
            states[r] = RealizationState.IN_PROGRESS
            try:
                realizations[r] = self.simulate_realization(r, seeds[r], cancel)
            except RealizationError as exc:
                states[r] = RealizationState.FAILED
                failures.append(exc)
                logger.warning("%s", exc)
            else:
                states[r] = RealizationState.COMPLETE
                logger.debug("realization %d complete (seed %d)", r, seeds[r])

        with tqdm(total=n_realizations, disable=not progress, desc="sgsim") as bar:
            if n_workers == 1 or n_realizations < 2:
                for r in range(n_realizations):
                    run(r)
                    bar.update()
            else:
                warnings.warn(
                    "threaded realizations are experimental; results match the serial run",
                    ExperimentalWarning,
                    stacklevel=2,
                )
                with ThreadPoolExecutor(max_workers=int(n_workers)) as executor:
                    futures = [executor.submit(run, r) for r in range(n_realizations)]
                    try:
                        for future in as_completed(futures):
                            future.result()
                            bar.update()
                    except SimulationCancelled:
                        for future in futures:
                            future.cancel()
                        raise

        failures.sort(key=lambda exc: exc.realization)

        if back_transform:
            done = np.array([s is RealizationState.COMPLETE for s in states], dtype=bool)
            realizations[done] = self.dataset.transform.inverse(realizations[done])

        return SimulationResult(
            realizations=realizations,
            grid=self.grid,
            states=states,
            failures=failures,
            seeds=seeds,
            back_transformed=back_transform,
        )

    def simulate_realization(
        self,
        index: int,
        seed: int,
        cancel: threading.Event | None = None,
    ) -> NDArray[np.float64]:
        """
        Simulate one realization in normal-score units.

        Raises:
            RealizationError: If the kriging solve fails at a node
            SimulationCancelled: If ``cancel`` is set
        """
        rng = np.random.default_rng(seed)
        ncells = self.grid.ncells
        path = rng.permutation(ncells)
        path_coords = self._nodes[path]

        simulated = np.empty(ncells, dtype=np.float64)  # path order
        result = np.empty(ncells, dtype=np.float64)  # grid order
        sill = self._solver.total_sill

        for step in range(ncells):
            if cancel is not None and cancel.is_set():
                raise SimulationCancelled(f"realization {index} cancelled at step {step}")

            node = int(path[step])
            location = path_coords[step]
            coords, values = self._neighbourhood(location, path_coords[:step], simulated[:step])
            z = rng.standard_normal()

            if len(values) == 0:
                mean, variance = 0.0, sill
            else:
                try:
                    estimate = self._solver.estimate(location, coords, values)
                except (InsufficientData, SingularSystem) as exc:
                    raise RealizationError(
                        index, node, (float(location[0]), float(location[1])), str(exc)
                    ) from exc
                mean, variance = estimate.mean, estimate.variance

            value = mean + z * math.sqrt(variance)
            simulated[step] = value
            result[node] = value

        return result

    def _neighbourhood(
        self,
        location: NDArray[np.float64],
        sim_coords: NDArray[np.float64],
        sim_values: NDArray[np.float64],
    ) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Nearest samples merged with nearest simulated nodes, capped at max_neighbors."""
        data_dist, data_idx = self.dataset.nearest_indices(location, self.max_neighbors)
        data_coords = self.dataset.coordinates[data_idx]
        data_values = self.dataset.scores[data_idx]

        k = min(self.max_previously_simulated, len(sim_values))
        if k > 0:
            sim_dist = np.hypot(sim_coords[:, 0] - location[0], sim_coords[:, 1] - location[1])
            if k < len(sim_dist):
                nearest = np.argpartition(sim_dist, k - 1)[:k]
            else:
                nearest = np.arange(len(sim_dist))
            nearest = nearest[np.lexsort((nearest, sim_dist[nearest]))]
            sim_dist = sim_dist[nearest]
            sim_coords = sim_coords[nearest]
            sim_values = sim_values[nearest]
        else:
            sim_dist = np.empty(0)
            sim_coords = np.empty((0, 2))
            sim_values = np.empty(0)

        dist = np.concatenate([data_dist, sim_dist])
        coords = np.concatenate([data_coords.reshape(-1, 2), sim_coords])
        values = np.concatenate([data_values, sim_values])

        # Stable sort keeps samples ahead of simulated nodes at equal distance
        order = np.argsort(dist, kind="stable")[: self.max_neighbors]
        order = order[dist[order] <= self.search_radius]
        return coords[order], values[order]


def sgsim(
    x=None,
    y=None,
    values=None,
    grid: GridSpec = None,
    variogram: VariogramModel = None,
    max_neighbors: int = 16,
    nrealizations: int = 1,
    seed: int = 69069,
    max_previously_simulated: int | None = None,
    search_radius: float = np.inf,
    transform: bool = True,
    back_transform: bool = False,
    tmin: float = -1.0e21,
    tmax: float = 1.0e21,
    n_workers: int = 1,
    progress: bool = False,
    *,
    dataset: SpatialDataset | None = None,
    data: Any = None,
    x_col: str = "x",
    y_col: str = "y",
    value_col: str | None = None,
) -> SimulationResult:
    """
    Sequential Gaussian simulation.

    Accepts direct arrays/Series, a DataFrame with column names, or a
    prepared SpatialDataset. Pass no data at all for unconditional
    simulation.

    Args:
        x, y: Conditioning data coordinates
        values: Conditioning data values
        grid: Grid specification for output
        variogram: Variogram model (for normal scores)
        max_neighbors: Maximum conditioning points per node
        nrealizations: Number of realizations to generate
        seed: Random number seed
        max_previously_simulated: Maximum previously simulated nodes to use
        search_radius: Maximum distance of conditioning points
        transform: If True, normal-score transform the values first;
                   if False, values are already normal scores
        back_transform: Return realizations in raw units
        tmin, tmax: Trimming limits
        n_workers: Number of threads for realizations
        progress: Show a progress bar
        dataset: Prepared conditioning data (alternative to x, y, values)
        data: DataFrame or dict with columns (alternative to x, y, values)
        x_col, y_col: Column names for coordinates (default 'x', 'y')
        value_col: Column name for values (required when using data)

    Returns:
        SimulationResult with realizations array

    Examples:
        # Conditional simulation using DataFrame
        result = sgsim(data=df, value_col='grade', grid=grid, variogram=variogram)

        # Unconditional simulation
        result = sgsim(grid=grid, variogram=variogram, nrealizations=10)
    """
    if grid is None or variogram is None:
        raise InvalidParameter("grid and variogram are required")

    if dataset is None:
        if data is None and x is None and values is None:
            dataset = SpatialDataset.empty()
        else:
            x, y, values = _extract_points(x, y, values, data, x_col, y_col, value_col)
            dataset = SpatialDataset(x, y, values, normal_scores=not transform, tmin=tmin, tmax=tmax)

    simulator = SequentialSimulator(
        grid,
        dataset,
        variogram,
        max_neighbors=max_neighbors,
        max_previously_simulated=max_previously_simulated,
        search_radius=search_radius,
    )
    return simulator.simulate(
        nrealizations,
        seed=seed,
        back_transform=back_transform,
        n_workers=n_workers,
        progress=progress,
    )
