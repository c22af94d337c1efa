"""
Core functionality for seqsim: exceptions and GSLIB file I/O.

This module provides:
- The exception taxonomy shared by every other module
- Binary serialization/deserialization of numpy arrays
- Reading and writing of classic GSLIB ASCII data and gridded files
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


# ============================================================================
# Exceptions and warnings
# ============================================================================

class SeqsimError(Exception):
    """Base exception for seqsim errors."""


class InvalidParameter(SeqsimError, ValueError):
    """Bad grid, variogram or search argument, detected at construction."""


class EmptyInput(SeqsimError, ValueError):
    """No samples to transform or simulate against."""


class InsufficientData(SeqsimError):
    """No usable conditioning point at a kriging step."""


class SingularSystem(SeqsimError):
    """Kriging matrix is singular even after dropping duplicate locations."""


class ParFileError(SeqsimError, ValueError):
    """Malformed or incomplete parameter file."""


class SimulationCancelled(SeqsimError):
    """Simulation stopped through its cancellation event."""


class RealizationError(SeqsimError):
    """
    A realization failed at one node.

    Attributes:
        realization: Index of the failed realization
        node: Flat grid index of the node being simulated
        location: (x, y) coordinates of that node
    """

    def __init__(self, realization: int, node: int, location: tuple[float, float], reason: str):
        self.realization = realization
        self.node = node
        self.location = location
        self.reason = reason
        super().__init__(
            f"realization {realization} failed at node {node} "
            f"(x={location[0]:g}, y={location[1]:g}): {reason}"
        )


class ExperimentalWarning(UserWarning):
    """Warning for features that work but are not yet fully validated."""


class DuplicateLocationWarning(UserWarning):
    """Warning for coincident sample locations."""


def _coerce_array(arr: "ArrayLike", dtype: type = np.float64) -> "NDArray":
    """Coerce array-like input (ndarray, Series, list) to a flat numpy array."""
    return np.asarray(arr, dtype=dtype).ravel()


def _extract_points(
    x: Any,
    y: Any,
    values: Any,
    data: Any,
    x_col: str,
    y_col: str,
    value_col: str | None,
) -> tuple["NDArray[np.float64]", "NDArray[np.float64]", "NDArray[np.float64]"]:
    """
    Resolve the two input patterns (direct arrays or DataFrame + column names).

    Returns:
        Tuple of (x, y, values) float64 arrays of equal length
    """
    if data is not None:
        if value_col is None:
            raise InvalidParameter("value_col is required when using data=")
        x = data[x_col]
        y = data[y_col]
        values = data[value_col]
    elif x is None or y is None or values is None:
        raise InvalidParameter("x, y and values are required when not using data=")

    x = _coerce_array(x)
    y = _coerce_array(y)
    values = _coerce_array(values)

    n = len(x)
    if not (len(y) == len(values) == n):
        raise InvalidParameter(
            f"x, y and values must have the same length, got {n}, {len(y)}, {len(values)}"
        )
    return x, y, values


class BinaryIO:
    """
    Binary I/O for realization arrays.

    Layout: int32 ndim, int32 shape, then float64 data. Arrays are written
    in C order so a flat realization keeps the grid's node order.
    """

    @staticmethod
    def write_array(
        array: NDArray[np.floating],
        filepath: Path | str,
    ) -> Path:
        """Write a numpy array with a shape header."""
        filepath = Path(filepath)
        arr = np.ascontiguousarray(array, dtype=np.float64)

        with open(filepath, "wb") as f:
            np.array([arr.ndim], dtype=np.int32).tofile(f)
            np.array(arr.shape, dtype=np.int32).tofile(f)
            arr.tofile(f)
        return filepath

    @staticmethod
    def read_array(filepath: Path | str) -> NDArray[np.float64]:
        """Read an array written by :meth:`write_array`."""
        filepath = Path(filepath)

        with open(filepath, "rb") as f:
            ndim = np.fromfile(f, dtype=np.int32, count=1)[0]
            shape = tuple(int(s) for s in np.fromfile(f, dtype=np.int32, count=ndim))
            data = np.fromfile(f, dtype=np.float64)

        return data.reshape(shape)


class AsciiIO:
    """
    ASCII I/O utilities for classic GSLIB file format.

    GSLIB ASCII format:
    - Line 1: Title/description
    - Line 2: Number of variables (nvars)
    - Lines 3 to 3+nvars: Variable names
    - Remaining lines: Data (space-separated values)
    """

    @staticmethod
    def write_data(
        filepath: Path | str,
        data: dict[str, NDArray[np.floating]],
        title: str = "seqsim output",
    ) -> Path:
        """
        Write data to GSLIB ASCII format.

        Args:
            filepath: Output file path
            data: Dictionary of {column_name: values_array}
            title: Title line for the file
        """
        filepath = Path(filepath)
        names = list(data.keys())
        arrays = [_coerce_array(data[n]) for n in names]

        n = len(arrays[0])
        if not all(len(a) == n for a in arrays):
            raise InvalidParameter("All arrays must have the same length")

        with open(filepath, "w") as f:
            f.write(f"{title}\n")
            f.write(f"{len(names)}\n")
            for name in names:
                f.write(f"{name}\n")
            for i in range(n):
                row = " ".join(f"{a[i]:.10g}" for a in arrays)
                f.write(f"{row}\n")
        return filepath

    @staticmethod
    def read_data(filepath: Path | str) -> tuple[list[str], NDArray[np.float64]]:
        """
        Read data from GSLIB ASCII format.

        Returns:
            Tuple of (column_names, data_array) where data_array has shape (n, nvars)
        """
        filepath = Path(filepath)

        with open(filepath, "r") as f:
            _title = f.readline().strip()
            nvars = int(f.readline().split()[0])
            names = [f.readline().strip() for _ in range(nvars)]

            rows = []
            for line in f:
                line = line.strip()
                if line:
                    rows.append([float(x) for x in line.split()[:nvars]])

        data = np.array(rows, dtype=np.float64).reshape(-1, nvars)
        return names, data

    @staticmethod
    def select_column(
        names: list[str],
        data: NDArray[np.float64],
        column: int | str = 0,
    ) -> NDArray[np.float64]:
        """
        Pick one column of data returned by :meth:`read_data`.

        Args:
            names: Variable names from the file header
            data: Data array from the file
            column: Column index (0-based) or column name
        """
        if isinstance(column, str):
            if column not in names:
                raise InvalidParameter(f"Column '{column}' not found. Available: {names}")
            col_idx = names.index(column)
        else:
            col_idx = column
            if not 0 <= col_idx < len(names):
                raise InvalidParameter(f"Column {column} out of range for {len(names)} variables")

        return data[:, col_idx]

    @staticmethod
    def write_gridded_data(
        filepath: Path | str,
        realizations: NDArray[np.floating],
        grid_info: tuple[int, int, float, float, float, float],
        name: str = "value",
        title: str = "seqsim realizations",
    ) -> Path:
        """
        Write realizations in GSLIB gridded format.

        Realizations are stacked one after the other, each in grid node
        order, in a single column.

        Args:
            filepath: Output file path
            realizations: Array of shape (nreal, ncells)
            grid_info: (nx, ny, xsiz, ysiz, xmin, ymin)
            name: Column name
            title: Title line
        """
        filepath = Path(filepath)
        arr = np.atleast_2d(np.asarray(realizations, dtype=np.float64))
        nx, ny, xsiz, ysiz, xmin, ymin = grid_info

        with open(filepath, "w") as f:
            f.write(f"{title}\n")
            f.write(f"1 {nx} {ny} 1 {xmin:g} {ymin:g} 0.0 {xsiz:g} {ysiz:g} 1.0 {arr.shape[0]}\n")
            f.write(f"{name}\n")
            for value in arr.ravel():
                f.write(f"{value:.10g}\n")
        return filepath

    @staticmethod
    def read_gridded_data(
        filepath: Path | str,
    ) -> tuple[list[str], NDArray[np.float64], dict]:
        """
        Read gridded GSLIB output format.

        Format:
        - Line 1: Title
        - Line 2: nvars nx ny nz xmin ymin zmin xsiz ysiz zsiz [extras]
        - Lines 3+: Column names (nvars of them)
        - Rest: Data values

        Returns:
            Tuple of (column_names, data_array, grid_info) where grid_info
            holds nx, ny, xmin, ymin, xsiz, ysiz and nreal
        """
        filepath = Path(filepath)

        with open(filepath, "r") as f:
            _title = f.readline().strip()

            grid_line = f.readline().split()
            nvars = int(grid_line[0])
            grid_info = {
                "nx": int(grid_line[1]),
                "ny": int(grid_line[2]),
                "xmin": float(grid_line[4]),
                "ymin": float(grid_line[5]),
                "xsiz": float(grid_line[7]),
                "ysiz": float(grid_line[8]),
                "nreal": int(grid_line[10]) if len(grid_line) > 10 else 1,
            }

            names = [f.readline().strip() for _ in range(nvars)]

            rows = []
            for line in f:
                line = line.strip()
                if line:
                    rows.append([float(x) for x in line.split()])

        data = np.array(rows, dtype=np.float64).reshape(-1, nvars)
        return names, data, grid_info


# ============================================================================
# Argument validation
# ============================================================================

def validate_positive(value: float, name: str) -> None:
    """Validate that a value is positive."""
    if not value > 0:
        raise InvalidParameter(f"{name} must be positive, got {value}")


def validate_non_negative(value: float, name: str) -> None:
    """Validate that a value is non-negative."""
    if not value >= 0:
        raise InvalidParameter(f"{name} must be non-negative, got {value}")
