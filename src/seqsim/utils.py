"""
Utility classes and functions for seqsim.

- GridSpec: 2D grid definition and node ordering
- VariogramModel: nested, anisotropic variogram/covariance model
- Azimuth convention conversions
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Sequence

import numpy as np

from seqsim.core import (
    InvalidParameter,
    validate_non_negative,
    validate_positive,
)

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


# Separations shorter than this count as zero (nugget contribution)
EPSLON: float = 1.0e-10


class VariogramType(IntEnum):
    """GSLIB variogram model types."""

    SPHERICAL = 1
    EXPONENTIAL = 2
    GAUSSIAN = 3
    NUGGET = 6


@dataclass
class GridSpec:
    """
    2D grid specification.

    Nodes are ordered the GSLIB way: x fastest, then y. The flat index of
    node (ix, iy) is ``ix + iy * nx``, and every realization vector uses this
    order.

    Attributes:
        nx, ny: Number of nodes in each direction
        xmin, ymin: Coordinates of the first node (cell center)
        xsiz, ysiz: Node spacing
    """

    nx: int
    ny: int
    xmin: float
    ymin: float
    xsiz: float
    ysiz: float

    def __post_init__(self) -> None:
        if int(self.nx) != self.nx or int(self.ny) != self.ny:
            raise InvalidParameter(f"nx and ny must be integers, got {self.nx}, {self.ny}")
        self.nx = int(self.nx)
        self.ny = int(self.ny)
        validate_positive(self.nx, "nx")
        validate_positive(self.ny, "ny")
        validate_positive(self.xsiz, "xsiz")
        validate_positive(self.ysiz, "ysiz")
        self.xmin = float(self.xmin)
        self.ymin = float(self.ymin)
        self.xsiz = float(self.xsiz)
        self.ysiz = float(self.ysiz)

    @classmethod
    def from_gslib(cls, description: str | Sequence[float]) -> "GridSpec":
        """
        Build a grid from a GSLIB/Geo-DAS style description.

        The description is the six scalars ``nx ny xsiz ysiz xmin ymin``,
        either as a sequence or as text (``#`` starts a comment).
        """
        if isinstance(description, str):
            tokens = []
            for line in description.splitlines():
                tokens.extend(line.split("#", 1)[0].split())
        else:
            tokens = list(description)

        if len(tokens) < 6:
            raise InvalidParameter(
                f"grid description needs 6 values (nx ny xsiz ysiz xmin ymin), got {len(tokens)}"
            )
        try:
            nx, ny = int(float(tokens[0])), int(float(tokens[1]))
            xsiz, ysiz, xmin, ymin = (float(t) for t in tokens[2:6])
        except ValueError as exc:
            raise InvalidParameter(f"invalid grid description: {exc}") from exc
        return cls(nx=nx, ny=ny, xmin=xmin, ymin=ymin, xsiz=xsiz, ysiz=ysiz)

    def to_gslib(self) -> tuple[int, int, float, float, float, float]:
        """Grid as the six-scalar tuple (nx, ny, xsiz, ysiz, xmin, ymin)."""
        return (self.nx, self.ny, self.xsiz, self.ysiz, self.xmin, self.ymin)

    @property
    def shape(self) -> tuple[int, int]:
        """Grid shape as (ny, nx)."""
        return (self.ny, self.nx)

    @property
    def ncells(self) -> int:
        """Total number of nodes."""
        return self.nx * self.ny

    @property
    def xmax(self) -> float:
        """Maximum x coordinate (cell center)."""
        return self.xmin + (self.nx - 1) * self.xsiz

    @property
    def ymax(self) -> float:
        """Maximum y coordinate (cell center)."""
        return self.ymin + (self.ny - 1) * self.ysiz

    @property
    def cell_size(self) -> tuple[float, float]:
        return (self.xsiz, self.ysiz)

    @property
    def extent(self) -> tuple[float, float, float, float]:
        """Cell-edge bounds (xmin, xmax, ymin, ymax), e.g. for imshow."""
        return (
            self.xmin - self.xsiz / 2,
            self.xmax + self.xsiz / 2,
            self.ymin - self.ysiz / 2,
            self.ymax + self.ysiz / 2,
        )

    def cell_centers(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """
        Get cell center coordinates.

        Returns:
            Tuple of (x, y) 1D arrays of cell centers
        """
        x = self.xmin + np.arange(self.nx) * self.xsiz
        y = self.ymin + np.arange(self.ny) * self.ysiz
        return x, y

    def meshgrid(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """
        Get 2D meshgrid of cell centers.

        Returns:
            Tuple of (X, Y) arrays with shape (ny, nx)
        """
        x, y = self.cell_centers()
        X, Y = np.meshgrid(x, y, indexing="xy")
        return X, Y

    def nodes(self) -> NDArray[np.float64]:
        """Node coordinates as an (ncells, 2) array in grid order."""
        X, Y = self.meshgrid()
        return np.column_stack([X.ravel(), Y.ravel()])

    def reshape(self, values: "ArrayLike") -> NDArray[np.float64]:
        """Reshape flat node vectors (..., ncells) to (..., ny, nx)."""
        arr = np.asarray(values, dtype=np.float64)
        if arr.shape[-1] != self.ncells:
            raise InvalidParameter(f"expected last axis of {self.ncells}, got {arr.shape[-1]}")
        return arr.reshape(arr.shape[:-1] + self.shape)

    def contains_point(self, x: float, y: float) -> bool:
        """Check if a point falls within the grid extent."""
        x0, x1, y0, y1 = self.extent
        return x0 <= x <= x1 and y0 <= y <= y1

    def point_to_index(self, x: float, y: float) -> int | None:
        """
        Convert point coordinates to a flat node index.

        Returns:
            ``ix + iy * nx``, or None if outside grid
        """
        if not self.contains_point(x, y):
            return None

        ix = int(round((x - self.xmin) / self.xsiz))
        iy = int(round((y - self.ymin) / self.ysiz))

        ix = max(0, min(ix, self.nx - 1))
        iy = max(0, min(iy, self.ny - 1))

        return ix + iy * self.nx


# ============================================================================
# Azimuth conventions
# ============================================================================

def deutsch_to_math(azimuth: float) -> float:
    """
    Convert a Deutsch (GSLIB) azimuth to a mathematical angle.

    Deutsch: clockwise from north (y axis), degrees.
    Mathematical: counter-clockwise from east (x axis), degrees.
    """
    return 90.0 - azimuth


def math_to_deutsch(alpha: float) -> float:
    """Convert a mathematical angle back to a Deutsch azimuth."""
    return 90.0 - alpha


def anisotropy_matrix(azimuth: float, ratio: float) -> NDArray[np.float64]:
    """
    Matrix taking world-frame separations into the isotropic frame.

    The first row projects onto the major axis (along ``azimuth``); the
    second projects onto the minor axis and divides by ``ratio``, so a
    minor-axis separation of ``ratio * range`` maps to ``range``.

    Args:
        azimuth: Major axis direction, degrees clockwise from north
        ratio: Minor/major range ratio in (0, 1]

    Returns:
        2x2 matrix ``A`` such that ``h_iso = A @ h``
    """
    theta = np.radians(deutsch_to_math(azimuth))
    cos_t, sin_t = np.cos(theta), np.sin(theta)
    return np.array([
        [cos_t, sin_t],
        [-sin_t / ratio, cos_t / ratio],
    ], dtype=np.float64)


# ============================================================================
# Variogram model
# ============================================================================

@dataclass
class VariogramStructure:
    """
    Single nested variogram structure.

    Attributes:
        type: Shape family
        sill: Partial sill (contribution) of this structure
        range: Range along the major axis (azimuth direction)
        azimuth: Major axis direction, degrees clockwise from north
        anisotropy_ratio: Minor/major range ratio in (0, 1]
    """

    type: int | VariogramType
    sill: float
    range: float = 1.0
    azimuth: float = 0.0
    anisotropy_ratio: float = 1.0

    def __post_init__(self) -> None:
        try:
            self.type = VariogramType(int(self.type))
        except ValueError:
            raise InvalidParameter(f"unknown variogram type {self.type!r}") from None
        validate_positive(self.sill, "sill")
        validate_positive(self.range, "range")
        if not 0.0 < self.anisotropy_ratio <= 1.0:
            raise InvalidParameter(
                f"anisotropy_ratio must be in (0, 1], got {self.anisotropy_ratio}"
            )
        self._rotation = anisotropy_matrix(self.azimuth, self.anisotropy_ratio)

    def reduced_distance(self, h: NDArray[np.float64]) -> NDArray[np.float64]:
        """Anisotropic distance divided by the range, for (..., 2) separations."""
        if self.anisotropy_ratio == 1.0:
            return np.linalg.norm(h, axis=-1) / self.range
        return np.linalg.norm(h @ self._rotation.T, axis=-1) / self.range

    def semivariance(self, h: NDArray[np.float64]) -> NDArray[np.float64]:
        """Semivariance of this structure for (..., 2) separations."""
        if self.type == VariogramType.NUGGET:
            return np.where(np.linalg.norm(h, axis=-1) < EPSLON, 0.0, self.sill)

        d = self.reduced_distance(h)
        if self.type == VariogramType.SPHERICAL:
            return np.where(d < 1.0, self.sill * (1.5 * d - 0.5 * d**3), self.sill)
        if self.type == VariogramType.EXPONENTIAL:
            return self.sill * (1.0 - np.exp(-3.0 * d))
        return self.sill * (1.0 - np.exp(-3.0 * d**2))

    def covariance(self, h: NDArray[np.float64]) -> NDArray[np.float64]:
        return self.sill - self.semivariance(h)


@dataclass
class VariogramModel:
    """
    Complete variogram model specification.

    A variogram model consists of a nugget effect plus one or more
    nested structures (spherical, exponential, Gaussian, nugget). The
    nugget only contributes to the covariance at zero separation.

    Azimuths follow the GSLIB/Deutsch convention: clockwise from north.
    """

    nugget: float = 0.0
    structures: list[VariogramStructure] = field(default_factory=list)

    def __post_init__(self) -> None:
        validate_non_negative(self.nugget, "nugget")
        self.structures = [
            s if isinstance(s, VariogramStructure) else VariogramStructure(**s)
            for s in self.structures
        ]

    @classmethod
    def spherical(
        cls,
        sill: float,
        range: float,
        nugget: float = 0.0,
        azimuth: float = 0.0,
        anisotropy_ratio: float = 1.0,
    ) -> "VariogramModel":
        """Create a single-structure spherical model."""
        return cls(nugget=nugget).add_structure(
            VariogramType.SPHERICAL, sill, range, azimuth, anisotropy_ratio
        )

    @classmethod
    def exponential(
        cls,
        sill: float,
        range: float,
        nugget: float = 0.0,
        azimuth: float = 0.0,
        anisotropy_ratio: float = 1.0,
    ) -> "VariogramModel":
        """Create a single-structure exponential model."""
        return cls(nugget=nugget).add_structure(
            VariogramType.EXPONENTIAL, sill, range, azimuth, anisotropy_ratio
        )

    @classmethod
    def gaussian(
        cls,
        sill: float,
        range: float,
        nugget: float = 0.0,
        azimuth: float = 0.0,
        anisotropy_ratio: float = 1.0,
    ) -> "VariogramModel":
        """Create a single-structure Gaussian model."""
        return cls(nugget=nugget).add_structure(
            VariogramType.GAUSSIAN, sill, range, azimuth, anisotropy_ratio
        )

    def add_structure(
        self,
        vtype: int | VariogramType,
        sill: float,
        range: float = 1.0,
        azimuth: float = 0.0,
        anisotropy_ratio: float = 1.0,
    ) -> "VariogramModel":
        """Add a nested structure to the model."""
        self.structures.append(
            VariogramStructure(vtype, sill, range, azimuth, anisotropy_ratio)
        )
        return self

    @property
    def total_sill(self) -> float:
        """Total sill (nugget + all structure contributions)."""
        # Same summation order as covariance() so covariance(0) == total_sill
        return sum(s.sill for s in self.structures) + self.nugget

    def covariance(self, h: "ArrayLike") -> float | NDArray[np.float64]:
        """
        Covariance for separation vectors.

        Args:
            h: Separation vector(s), shape (2,) or (..., 2)

        Returns:
            A float for a single vector, else an array of shape h.shape[:-1]
        """
        h = np.asarray(h, dtype=np.float64)
        if h.shape[-1:] != (2,):
            raise InvalidParameter(f"separation vectors must have 2 components, got shape {h.shape}")

        cov = np.zeros(h.shape[:-1], dtype=np.float64)
        for structure in self.structures:
            cov = cov + structure.covariance(h)
        cov = cov + np.where(np.linalg.norm(h, axis=-1) < EPSLON, self.nugget, 0.0)

        if cov.ndim == 0:
            return float(cov)
        return cov

    def variogram(self, h: "ArrayLike") -> float | NDArray[np.float64]:
        """Semivariance for separation vectors: ``total_sill - covariance(h)``."""
        return self.total_sill - self.covariance(h)

    def covariance_matrix(
        self,
        a: "ArrayLike",
        b: "ArrayLike | None" = None,
    ) -> NDArray[np.float64]:
        """
        Pairwise covariances between two coordinate sets.

        Args:
            a: (n, 2) coordinates
            b: (m, 2) coordinates; defaults to ``a``

        Returns:
            (n, m) covariance matrix
        """
        a = np.asarray(a, dtype=np.float64).reshape(-1, 2)
        b = a if b is None else np.asarray(b, dtype=np.float64).reshape(-1, 2)
        h = a[:, None, :] - b[None, :, :]
        return np.asarray(self.covariance(h), dtype=np.float64).reshape(len(a), len(b))


def evaluate_variogram(
    model: VariogramModel,
    distances: "ArrayLike",
    azimuth: float = 0.0,
) -> NDArray[np.float64]:
    """
    Evaluate a variogram model at given lag distances along one direction.

    Args:
        model: Variogram model specification
        distances: Array of lag distances to evaluate
        azimuth: Direction of the lags, degrees clockwise from north

    Returns:
        Array of gamma values at each distance
    """
    distances = np.asarray(distances, dtype=np.float64)
    theta = np.radians(deutsch_to_math(azimuth))
    direction = np.array([np.cos(theta), np.sin(theta)])
    h = distances[..., None] * direction
    return np.asarray(model.variogram(h), dtype=np.float64)
