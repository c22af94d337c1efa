"""
Conditioning data: samples, their normal scores, and neighbour search.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator

import numpy as np
from scipy.spatial import cKDTree

from seqsim.core import (
    AsciiIO,
    DuplicateLocationWarning,
    EmptyInput,
    InvalidParameter,
    _extract_points,
)
from seqsim.transforms import NormalScoreTransform

if TYPE_CHECKING:
    import pandas as pd
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Sample:
    """One conditioning datum: location, raw value and normal score."""

    x: float
    y: float
    value: float
    nscore: float

    @property
    def location(self) -> tuple[float, float]:
        return (self.x, self.y)


class SpatialDataset:
    """
    Sample locations with raw and normal-score values.

    Unless ``normal_scores=True``, a :class:`NormalScoreTransform` is fitted
    on the values (or the given ``transform`` is applied). Samples outside
    the trimming limits or with non-finite values are dropped; EmptyInput is
    raised when samples were given but none survive. The dataset is
    read-only after construction, so it can be shared between realizations.

    Args:
        x, y: Sample coordinates
        values: Sample values (raw units, or normal scores with normal_scores=True)
        transform: Pre-fitted transform to apply instead of fitting one
        normal_scores: Values are already normal scores; keep them as they are
        tmin, tmax: Trimming limits
    """

    def __init__(
        self,
        x: "ArrayLike",
        y: "ArrayLike",
        values: "ArrayLike",
        transform: NormalScoreTransform | None = None,
        normal_scores: bool = False,
        tmin: float = -1.0e21,
        tmax: float = 1.0e21,
    ):
        x, y, values = _extract_points(x, y, values, None, "x", "y", None)

        keep = (values >= tmin) & (values <= tmax) & np.isfinite(values)
        keep &= np.isfinite(x) & np.isfinite(y)
        if not keep.all():
            logger.debug("dropping %d samples outside trimming limits", int((~keep).sum()))
        self._coords = np.column_stack([x[keep], y[keep]])
        self._values = values[keep]
        if len(self._values) == 0 and (len(values) > 0 or not normal_scores):
            raise EmptyInput(f"none of {len(values)} samples survive trimming to [{tmin}, {tmax}]")

        if normal_scores:
            self._scores = self._values.copy()
            self.transform = transform
        else:
            self.transform = transform if transform is not None else NormalScoreTransform.fit(self._values)
            self._scores = np.asarray(self.transform.forward(self._values), dtype=np.float64).reshape(-1)

        for arr in (self._coords, self._values, self._scores):
            arr.setflags(write=False)

        self._tree = cKDTree(self._coords) if len(self._coords) else None

        if len(self._coords) > 1:
            n_unique = len(np.unique(self._coords, axis=0))
            if n_unique < len(self._coords):
                warnings.warn(
                    f"{len(self._coords) - n_unique} samples share a location with an earlier "
                    "sample; kriging keeps only the first of each",
                    DuplicateLocationWarning,
                    stacklevel=2,
                )

    @classmethod
    def empty(cls) -> "SpatialDataset":
        """Dataset without samples, for unconditional simulation."""
        return cls([], [], [], normal_scores=True)

    @classmethod
    def from_dataframe(
        cls,
        data: "pd.DataFrame | dict",
        x_col: str = "x",
        y_col: str = "y",
        value_col: str = "value",
        **kwargs: Any,
    ) -> "SpatialDataset":
        """Build a dataset from a DataFrame (or dict) with named columns."""
        x, y, values = _extract_points(None, None, None, data, x_col, y_col, value_col)
        return cls(x, y, values, **kwargs)

    @classmethod
    def read_csv(
        cls,
        filepath: Path | str,
        x_col: str = "X",
        y_col: str = "Y",
        value_col: str = "value",
        **kwargs: Any,
    ) -> "SpatialDataset":
        """Load samples from a header-named CSV file."""
        import pandas as pd

        df = pd.read_csv(filepath)
        missing = [c for c in (x_col, y_col, value_col) if c not in df.columns]
        if missing:
            raise InvalidParameter(f"columns {missing} not found in {filepath}. Available: {list(df.columns)}")
        return cls.from_dataframe(df, x_col, y_col, value_col, **kwargs)

    @classmethod
    def read_gslib(
        cls,
        filepath: Path | str,
        x_col: int | str = 0,
        y_col: int | str = 1,
        value_col: int | str = 2,
        **kwargs: Any,
    ) -> "SpatialDataset":
        """Load samples from a GSLIB ASCII data file (columns by name or 0-based index)."""
        names, data = AsciiIO.read_data(filepath)
        x, y, values = (AsciiIO.select_column(names, data, col) for col in (x_col, y_col, value_col))
        return cls(x, y, values, **kwargs)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Sample]:
        for i in range(len(self)):
            yield self.sample(i)

    def sample(self, index: int) -> Sample:
        x, y = self._coords[index]
        return Sample(float(x), float(y), float(self._values[index]), float(self._scores[index]))

    @property
    def coordinates(self) -> NDArray[np.float64]:
        """(n, 2) sample coordinates (read-only)."""
        return self._coords

    @property
    def values(self) -> NDArray[np.float64]:
        """Raw sample values (read-only)."""
        return self._values

    @property
    def scores(self) -> NDArray[np.float64]:
        """Normal-score sample values (read-only)."""
        return self._scores

    def nearest_indices(
        self,
        location: "ArrayLike",
        k: int,
    ) -> tuple[NDArray[np.float64], NDArray[np.intp]]:
        """
        Distances and indices of the ``k`` samples closest to ``location``.

        Sorted by ascending distance, ties by sample order.
        """
        if self._tree is None or k <= 0:
            return np.empty(0, dtype=np.float64), np.empty(0, dtype=np.intp)

        k = min(int(k), len(self))
        dist, idx = self._tree.query(np.asarray(location, dtype=np.float64), k=k)
        dist = np.atleast_1d(dist)
        idx = np.atleast_1d(idx).astype(np.intp)
        order = np.lexsort((idx, dist))
        return dist[order], idx[order]

    def nearest(self, location: "ArrayLike", k: int) -> list[Sample]:
        """The ``k`` samples closest to ``location``, nearest first."""
        _, idx = self.nearest_indices(location, k)
        return [self.sample(i) for i in idx]

    def nearest_k(self, location: "ArrayLike", k: int, max_count: int) -> list[Sample]:
        """Nearest samples, at most ``min(k, max_count)`` of them."""
        return self.nearest(location, min(k, max_count))

    def __repr__(self) -> str:
        return f"SpatialDataset(n={len(self)}, transformed={self.transform is not None})"
