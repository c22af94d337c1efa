"""
Gaussian anamorphosis transforms: nscore and backtr.

- NormalScoreTransform: fitted forward/inverse mapping
- nscore: Normal score transform (forward), GSLIB-style function
- backtr: Back-transform (reverse), GSLIB-style function
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

import numpy as np
from scipy.stats import norm

from seqsim.core import EmptyInput, InvalidParameter, _coerce_array

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


TailOption = Literal["clamp", "linear"]


@dataclass(frozen=True, eq=False)
class NormalScoreTransform:
    """
    Rank-based monotone mapping between raw values and standard normal scores.

    The table pairs each distinct sorted raw value with the normal quantile
    of its plotting position ``(rank - 0.5) / n`` (with weights: cumulative
    weight minus half the own weight, over the total weight). Tied raw values
    collapse into a single entry whose score is the mean of their quantiles,
    so ``inverse(forward(v)) == v`` holds exactly at every table value.

    Outside the table, ``tail`` decides: ``"clamp"`` holds the end values,
    ``"linear"`` extends the first/last table segment.
    """

    values: NDArray[np.float64]
    scores: NDArray[np.float64]
    tail: TailOption = "clamp"

    def __post_init__(self) -> None:
        if self.tail not in ("clamp", "linear"):
            raise InvalidParameter(f"tail must be 'clamp' or 'linear', got {self.tail!r}")
        if len(self.values) == 0:
            raise EmptyInput("transform table is empty")
        if len(self.values) != len(self.scores):
            raise InvalidParameter("table values and scores must have the same length")
        if not (np.all(np.isfinite(self.values)) and np.all(np.isfinite(self.scores))):
            raise InvalidParameter("table values and scores must be finite")
        if np.any(np.diff(self.values) < 0) or np.any(np.diff(self.scores) < 0):
            raise InvalidParameter("table values and scores must be sorted in non-decreasing order")

    @classmethod
    def fit(
        cls,
        values: "ArrayLike",
        weights: "ArrayLike | None" = None,
        tmin: float = -1.0e21,
        tmax: float = 1.0e21,
        tail: TailOption = "clamp",
    ) -> "NormalScoreTransform":
        """
        Build the transform table from sample values.

        Args:
            values: Raw sample values
            weights: Optional declustering weights (same length as values);
                zero-weight samples are left out of the table
            tmin, tmax: Trimming limits; values outside are ignored
            tail: Extrapolation policy outside the table

        Raises:
            EmptyInput: If no value survives trimming
        """
        values_arr = _coerce_array(values)
        if weights is None:
            weights_arr = np.ones(len(values_arr), dtype=np.float64)
        else:
            weights_arr = _coerce_array(weights)
            if len(weights_arr) != len(values_arr):
                raise InvalidParameter(
                    f"weights length ({len(weights_arr)}) must match values length ({len(values_arr)})"
                )
            if np.any(weights_arr < 0):
                raise InvalidParameter("weights must be non-negative")

        keep = (values_arr >= tmin) & (values_arr <= tmax) & np.isfinite(values_arr)
        values_arr = values_arr[keep]
        weights_arr = weights_arr[keep]
        if len(values_arr) == 0:
            raise EmptyInput("no values to build a normal score transform from")

        # zero-weight samples carry no probability mass
        positive = weights_arr > 0
        if not positive.any():
            raise InvalidParameter("weights must not all be zero")
        values_arr = values_arr[positive]
        weights_arr = weights_arr[positive]
        total = weights_arr.sum()

        order = np.argsort(values_arr, kind="stable")
        sorted_values = values_arr[order]
        sorted_weights = weights_arr[order] / total
        probabilities = np.cumsum(sorted_weights) - 0.5 * sorted_weights
        quantiles = norm.ppf(probabilities)

        table_values, inverse = np.unique(sorted_values, return_inverse=True)
        table_scores = np.bincount(inverse, weights=quantiles) / np.bincount(inverse)

        return cls(values=table_values, scores=table_scores, tail=tail)

    @property
    def table(self) -> NDArray[np.float64]:
        """Two-column (value, score) transformation table."""
        return np.column_stack([self.values, self.scores])

    def forward(self, raw: "ArrayLike") -> float | NDArray[np.float64]:
        """Map raw values to normal scores."""
        return self._interpolate(raw, self.values, self.scores)

    def inverse(self, score: "ArrayLike") -> float | NDArray[np.float64]:
        """Map normal scores back to raw units."""
        return self._interpolate(score, self.scores, self.values)

    def _interpolate(self, x: "ArrayLike", xp: NDArray, fp: NDArray) -> float | NDArray[np.float64]:
        x_arr = np.asarray(x, dtype=np.float64)
        result = np.interp(x_arr, xp, fp)

        if self.tail == "linear" and len(xp) > 1:
            low = x_arr < xp[0]
            high = x_arr > xp[-1]
            slope_low = (fp[1] - fp[0]) / (xp[1] - xp[0])
            slope_high = (fp[-1] - fp[-2]) / (xp[-1] - xp[-2])
            result = np.where(low, fp[0] + (x_arr - xp[0]) * slope_low, result)
            result = np.where(high, fp[-1] + (x_arr - xp[-1]) * slope_high, result)

        if result.ndim == 0:
            return float(result)
        return result


def nscore(
    values: "ArrayLike | None" = None,
    weights: "ArrayLike | None" = None,
    tmin: float = -1.0e21,
    tmax: float = 1.0e21,
    *,
    data: Any | None = None,
    value_col: str = "value",
    weight_col: str | None = None,
) -> tuple["NDArray[np.float64]", "NDArray[np.float64]"]:
    """
    Apply normal score transform to data.

    Two input patterns are supported:

    1. Direct arrays/Series::

        nscore(df.grade, weights=df.wt)

    2. DataFrame with column names::

        nscore(data=df, value_col='grade', weight_col='wt')

    Args:
        values: Input data values (1D array-like)
        weights: Optional declustering weights (same length as values)
        tmin: Minimum trimming limit (values below are excluded from the table)
        tmax: Maximum trimming limit (values above are excluded from the table)
        data: DataFrame or dict containing the data columns
        value_col: Column name for values when using data= parameter
        weight_col: Column name for weights when using data= parameter

    Returns:
        Tuple of (transformed_data, transform_table) where:
        - transformed_data: Normal scores (same length as input)
        - transform_table: 2-column array (original_value, normal_score)
                          for use with backtr
    """
    if data is not None:
        values_arr = _coerce_array(data[value_col])
        weights_arr = _coerce_array(data[weight_col]) if weight_col is not None else None
    else:
        if values is None:
            raise InvalidParameter("values is required when not using data= parameter")
        values_arr = _coerce_array(values)
        weights_arr = _coerce_array(weights) if weights is not None else None

    transform = NormalScoreTransform.fit(values_arr, weights_arr, tmin=tmin, tmax=tmax)
    transformed = np.asarray(transform.forward(values_arr), dtype=np.float64)
    return transformed, transform.table


# Scores at which explicit zmin/zmax tails are anchored
_TAIL_SCORE = 5.0


def backtr(
    values: "ArrayLike",
    transform_table: "ArrayLike",
    zmin: float | None = None,
    zmax: float | None = None,
) -> "NDArray[np.float64]":
    """
    Back-transform normal scores to original distribution.

    Between table entries the mapping is linear. Below/above the table the
    result is linearly interpolated towards ``zmin``/``zmax``, reached at a
    score of -5/+5 and held beyond. With no limits given, ``zmin``/``zmax``
    default to the table extremes, which clamps the tails.

    Args:
        values: Normal score values to back-transform
        transform_table: Transform table from nscore (2 columns: value, nscore)
        zmin: Minimum allowable output value
        zmax: Maximum allowable output value

    Returns:
        Back-transformed data in original units
    """
    values_arr = _coerce_array(values)
    table = np.asarray(transform_table, dtype=np.float64)
    if table.ndim != 2 or table.shape[1] < 2:
        raise InvalidParameter("transform_table must have at least 2 columns")
    if len(table) == 0:
        raise EmptyInput("transform_table is empty")

    table = table[np.argsort(table[:, 1], kind="stable")]
    table_values, table_scores = table[:, 0], table[:, 1]

    if zmin is None:
        zmin = float(table_values.min())
    if zmax is None:
        zmax = float(table_values.max())
    if zmin > table_values[0] or zmax < table_values[-1]:
        raise InvalidParameter("zmin/zmax must enclose the transform table values")

    low_score = min(-_TAIL_SCORE, table_scores[0])
    high_score = max(_TAIL_SCORE, table_scores[-1])
    xp = np.concatenate([[low_score], table_scores, [high_score]])
    fp = np.concatenate([[zmin], table_values, [zmax]])
    # np.interp needs strictly increasing anchors for the tail points
    if xp[0] == xp[1]:
        xp, fp = xp[1:], fp[1:]
    if xp[-1] == xp[-2]:
        xp, fp = xp[:-1], fp[:-1]
    return np.interp(values_arr, xp, fp)
