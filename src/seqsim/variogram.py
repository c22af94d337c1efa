"""
Experimental variograms and distribution diagnostics.

gamv computes directional experimental semivariograms from scattered
samples; grid_variogram does the same along a grid axis for realizations,
to check that a simulation reproduces its input model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

import numpy as np

from seqsim.core import InvalidParameter, _coerce_array, _extract_points, validate_positive
from seqsim.utils import GridSpec, deutsch_to_math

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


@dataclass
class VariogramResult:
    """Result from variogram calculation for one direction."""

    lag_distances: NDArray[np.float64]
    gamma: NDArray[np.float64]
    num_pairs: NDArray[np.int64]
    tail_mean: NDArray[np.float64]
    head_mean: NDArray[np.float64]
    azimuth: float


@dataclass
class GamvDirection:
    """
    Variogram calculation direction specification.

    Angles follow GSLIB/Deutsch convention: azimuth clockwise from north.
    An azimuth tolerance of 90 degrees makes the direction omnidirectional.
    """

    azimuth: float = 0.0
    azimuth_tolerance: float = 90.0
    bandwidth: float = 1.0e21


def gamv(
    x=None,
    y=None,
    values=None,
    nlag: int = 10,
    lag_distance: float = 1.0,
    lag_tolerance: float | None = None,
    directions: list[GamvDirection] | None = None,
    standardize_sill: bool = False,
    *,
    data=None,
    x_col: str = "x",
    y_col: str = "y",
    value_col: str | None = None,
) -> list[VariogramResult]:
    """
    Experimental semivariogram of scattered data.

    Lag ``k`` (0..nlag) collects pairs whose separation lies within
    ``lag_tolerance`` of ``k * lag_distance``; coincident pairs are ignored.
    Reported lag distances are the mean separation of the pairs in each
    lag (the nominal lag when empty). Empty lags have NaN gamma.

    Args:
        x, y: Sample coordinates
        values: Sample values
        nlag: Number of lags
        lag_distance: Lag separation distance
        lag_tolerance: Lag tolerance (default: lag_distance / 2)
        directions: Directions to compute (default: one omnidirectional)
        standardize_sill: Divide gamma by the sample variance
        data: DataFrame or dict with columns (alternative to x, y, values)
        x_col, y_col: Column names for coordinates
        value_col: Column name for values (required when using data)

    Returns:
        One VariogramResult per direction
    """
    x, y, values = _extract_points(x, y, values, data, x_col, y_col, value_col)
    validate_positive(nlag, "nlag")
    validate_positive(lag_distance, "lag_distance")
    if lag_tolerance is None:
        lag_tolerance = lag_distance / 2.0
    validate_positive(lag_tolerance, "lag_tolerance")
    directions = directions or [GamvDirection()]

    i, j = np.triu_indices(len(x), k=1)
    dx = x[j] - x[i]
    dy = y[j] - y[i]
    dist = np.hypot(dx, dy)
    sq_diff = (values[j] - values[i]) ** 2
    valid = dist > 0

    variance = float(np.var(values)) if standardize_sill else 1.0
    if standardize_sill and variance == 0:
        raise InvalidParameter("cannot standardize the sill of constant data")

    results = []
    for direction in directions:
        mask = valid.copy()
        if direction.azimuth_tolerance < 90.0:
            theta = np.radians(deutsch_to_math(direction.azimuth))
            ux, uy = np.cos(theta), np.sin(theta)
            along = dx * ux + dy * uy
            across = np.abs(-dx * uy + dy * ux)
            with np.errstate(invalid="ignore", divide="ignore"):
                cos_angle = np.abs(along) / dist
            mask &= cos_angle >= np.cos(np.radians(direction.azimuth_tolerance))
            mask &= across <= direction.bandwidth

        lags = np.zeros(nlag + 1)
        gamma = np.full(nlag + 1, np.nan)
        npairs = np.zeros(nlag + 1, dtype=np.int64)
        tail = np.full(nlag + 1, np.nan)
        head = np.full(nlag + 1, np.nan)

        for k in range(nlag + 1):
            in_lag = mask & (np.abs(dist - k * lag_distance) <= lag_tolerance)
            count = int(in_lag.sum())
            npairs[k] = count
            if count == 0:
                lags[k] = k * lag_distance
                continue
            lags[k] = dist[in_lag].mean()
            gamma[k] = 0.5 * sq_diff[in_lag].mean() / variance
            tail[k] = values[i[in_lag]].mean()
            head[k] = values[j[in_lag]].mean()

        results.append(VariogramResult(
            lag_distances=lags,
            gamma=gamma,
            num_pairs=npairs,
            tail_mean=tail,
            head_mean=head,
            azimuth=direction.azimuth,
        ))

    return results


def grid_variogram(
    values: "ArrayLike",
    grid: GridSpec,
    nlag: int,
    axis: Literal["x", "y"] = "x",
) -> VariogramResult:
    """
    Experimental semivariogram of a gridded realization along one axis.

    Args:
        values: Flat realization in grid node order (NaNs are skipped)
        grid: Grid of the realization
        nlag: Number of lags (in grid steps)
        axis: 'x' (azimuth 90) or 'y' (azimuth 0)
    """
    if axis not in ("x", "y"):
        raise InvalidParameter(f"axis must be 'x' or 'y', got {axis!r}")
    arr = grid.reshape(values)
    step = grid.xsiz if axis == "x" else grid.ysiz
    n_along = grid.nx if axis == "x" else grid.ny
    nlag = min(int(nlag), n_along - 1)

    lags = np.arange(1, nlag + 1) * step
    gamma = np.full(nlag, np.nan)
    npairs = np.zeros(nlag, dtype=np.int64)
    tail = np.full(nlag, np.nan)
    head = np.full(nlag, np.nan)

    for k in range(1, nlag + 1):
        if axis == "x":
            t, h = arr[:, :-k], arr[:, k:]
        else:
            t, h = arr[:-k, :], arr[k:, :]
        ok = np.isfinite(t) & np.isfinite(h)
        npairs[k - 1] = int(ok.sum())
        if npairs[k - 1]:
            gamma[k - 1] = 0.5 * np.mean((h[ok] - t[ok]) ** 2)
            tail[k - 1] = t[ok].mean()
            head[k - 1] = h[ok].mean()

    return VariogramResult(
        lag_distances=lags,
        gamma=gamma,
        num_pairs=npairs,
        tail_mean=tail,
        head_mean=head,
        azimuth=90.0 if axis == "x" else 0.0,
    )


def empirical_cdf(
    values: "ArrayLike",
    weights: "ArrayLike | None" = None,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Sorted finite values and their plotting-position probabilities."""
    values = _coerce_array(values)
    weights = np.ones(len(values)) if weights is None else _coerce_array(weights)
    ok = np.isfinite(values)
    values, weights = values[ok], weights[ok]
    order = np.argsort(values, kind="stable")
    w = weights[order] / weights.sum()
    return values[order], np.cumsum(w) - 0.5 * w
