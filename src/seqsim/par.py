"""
Parameter files for seqsim.

Simulations can be described by GSLIB-style parameter files: free text up
to a ``START OF PARAMETERS:`` line, then one parameter group per line with
an optional ``#`` comment after the values. ParFileBuilder writes them,
ParFileReader tokenizes them and SgsimParameters maps them to a run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np

from seqsim.core import ParFileError, SeqsimError
from seqsim.utils import GridSpec, VariogramModel

START_MARKER = "START OF PARAMETERS:"
NO_DATA = "none"


@dataclass
class ParFileBuilder:
    """
    Builder for parameter files.

    Provides a fluent interface for constructing par files with proper
    formatting.
    """

    lines: list[str] = field(default_factory=list)

    def comment(self, text: str) -> "ParFileBuilder":
        """Add a comment line."""
        self.lines.append(f"# {text}")
        return self

    def blank(self) -> "ParFileBuilder":
        """Add a blank line."""
        self.lines.append("")
        return self

    def line(self, *values: Any, comment: str | None = None) -> "ParFileBuilder":
        """
        Add a parameter line with optional inline comment.

        Args:
            *values: Values to write, space-separated
            comment: Optional comment to append after values
        """
        line_str = " ".join(str(v) for v in values)
        if comment:
            line_str = f"{line_str}  # {comment}"
        self.lines.append(line_str)
        return self

    def path(self, filepath: Path | str, comment: str | None = None) -> "ParFileBuilder":
        """Add a file path line."""
        return self.line(str(filepath), comment=comment)

    def grid(self, grid: GridSpec) -> "ParFileBuilder":
        """Add the grid definition (2 lines)."""
        self.line(grid.nx, grid.xmin, grid.xsiz, comment="nx, xmn, xsiz")
        self.line(grid.ny, grid.ymin, grid.ysiz, comment="ny, ymn, ysiz")
        return self

    def variogram_model(self, model: VariogramModel) -> "ParFileBuilder":
        """
        Add variogram model definition.

        One ``nst nugget`` line, then ``type sill azimuth ratio range`` per
        structure (1=sph, 2=exp, 3=gau, 6=nugget).
        """
        self.line(len(model.structures), model.nugget, comment="nst, nugget")
        for s in model.structures:
            self.line(int(s.type), s.sill, s.azimuth, s.anisotropy_ratio, s.range,
                      comment="type, sill, azimuth, ratio, range")
        return self

    def build(self) -> str:
        """Build the complete par file content."""
        return "\n".join(self.lines) + "\n"

    def write(self, filepath: Path | str) -> Path:
        """Write par file to disk."""
        filepath = Path(filepath)
        filepath.write_text(self.build())
        return filepath


class ParFileReader:
    """
    Sequential reader over the parameter lines of a par file.

    Everything before the start marker is ignored, as are blank lines and
    lines starting with ``#``. Inline comments after ``#`` are dropped.
    """

    def __init__(self, text: str, source: str = "<string>"):
        self.source = source
        self._lines: list[tuple[int, list[str]]] = []

        started = False
        for lineno, raw in enumerate(text.splitlines(), start=1):
            if not started:
                started = raw.strip().upper().startswith(START_MARKER)
                continue
            content = raw.split("#", 1)[0].strip()
            if content:
                self._lines.append((lineno, content.split()))

        if not started:
            raise ParFileError(f"{source}: missing '{START_MARKER}' line")
        self._pos = 0
        self._lineno = 0

    @classmethod
    def from_file(cls, filepath: Path | str) -> "ParFileReader":
        filepath = Path(filepath)
        try:
            text = filepath.read_text()
        except OSError as exc:
            raise ParFileError(f"cannot read parameter file {filepath}: {exc}") from exc
        return cls(text, source=str(filepath))

    @property
    def exhausted(self) -> bool:
        return self._pos >= len(self._lines)

    def tokens(self, count: int, what: str) -> list[str]:
        """Next parameter line, which must hold at least ``count`` values."""
        if self.exhausted:
            raise ParFileError(f"{self.source}: unexpected end of file, expected {what}")
        lineno, tokens = self._lines[self._pos]
        if len(tokens) < count:
            raise ParFileError(
                f"{self.source}:{lineno}: expected {count} value(s) for {what}, got {len(tokens)}"
            )
        self._pos += 1
        self._lineno = lineno
        return tokens[:count]

    def _convert(self, token: str, kind: type, what: str) -> Any:
        try:
            if kind is int:
                number = float(token)
                if number != int(number):
                    raise ValueError(token)
                return int(number)
            return kind(token)
        except ValueError:
            raise ParFileError(
                f"{self.source}:{self._lineno}: invalid {kind.__name__} {token!r} for {what}"
            ) from None

    def read(self, what: str, *kinds: type) -> list[Any]:
        """Read the next line and convert its values to ``kinds``."""
        tokens = self.tokens(len(kinds), what)
        return [self._convert(t, k, what) for t, k in zip(tokens, kinds)]

    def read_one(self, what: str, kind: type) -> Any:
        return self.read(what, kind)[0]

    def read_flag(self, what: str) -> bool:
        value = self.read_one(what, int)
        if value not in (0, 1):
            raise ParFileError(f"{self.source}:{self._lineno}: {what} must be 0 or 1, got {value}")
        return bool(value)


def _column(token: str) -> int | str:
    """Column given by 1-based number or by name; returns 0-based index or name."""
    if token.isdigit():
        return int(token) - 1
    return token


@dataclass
class SgsimParameters:
    """
    Everything needed to run a simulation from a parameter file.

    ``data_file`` of None (written as ``none``) runs unconditionally.
    Data columns are 0-based indices (GSLIB files, written 1-based) or
    header names (CSV files and named GSLIB columns).
    """

    grid: GridSpec
    variogram: VariogramModel
    data_file: Path | None = None
    x_col: int | str = 0
    y_col: int | str = 1
    value_col: int | str = 2
    tmin: float = -1.0e21
    tmax: float = 1.0e21
    transform: bool = True
    back_transform: bool = True
    output_file: Path = Path("sgsim.out")
    binary: bool = False
    nrealizations: int = 1
    seed: int = 69069
    max_neighbors: int = 16
    max_previously_simulated: int | None = None
    search_radius: float = np.inf

    @classmethod
    def from_par(cls, filepath: Path | str) -> "SgsimParameters":
        """Read a parameter file written by :meth:`write` or :meth:`template`."""
        filepath = Path(filepath)
        reader = ParFileReader.from_file(filepath)
        base = filepath.parent

        data_token = reader.tokens(1, "data file")[0]
        data_file = None if data_token.lower() == NO_DATA else base / data_token
        columns = reader.tokens(3, "x, y, value columns")
        if "0" in columns:
            raise ParFileError(f"{filepath}: column numbers start at 1")
        x_col, y_col, value_col = (_column(t) for t in columns)
        tmin, tmax = reader.read("trimming limits", float, float)
        transform = reader.read_flag("transform flag")
        back_transform = reader.read_flag("back-transform flag")
        output_file = base / reader.tokens(1, "output file")[0]
        binary = reader.read_flag("binary output flag")
        nrealizations = reader.read_one("number of realizations", int)
        nx, xmin, xsiz = reader.read("nx, xmn, xsiz", int, float, float)
        ny, ymin, ysiz = reader.read("ny, ymn, ysiz", int, float, float)
        seed = reader.read_one("random number seed", int)
        max_neighbors, max_previous = reader.read(
            "max neighbours, max previously simulated", int, int
        )
        search_radius = reader.read_one("search radius", float)

        nst, nugget = reader.read("nst, nugget", int, float)
        if nst < 0:
            raise ParFileError(f"{filepath}: nst must be non-negative, got {nst}")
        structures = []
        for _ in range(nst):
            vtype, sill, azimuth, ratio, a = reader.read(
                "type, sill, azimuth, ratio, range", int, float, float, float, float
            )
            structures.append(dict(
                type=vtype, sill=sill, range=a, azimuth=azimuth, anisotropy_ratio=ratio
            ))

        try:
            grid = GridSpec(nx=nx, ny=ny, xmin=xmin, ymin=ymin, xsiz=xsiz, ysiz=ysiz)
            variogram = VariogramModel(nugget=nugget, structures=structures)
        except SeqsimError as exc:
            raise ParFileError(f"{filepath}: {exc}") from exc

        return cls(
            grid=grid,
            variogram=variogram,
            data_file=data_file,
            x_col=x_col,
            y_col=y_col,
            value_col=value_col,
            tmin=tmin,
            tmax=tmax,
            transform=transform,
            back_transform=back_transform,
            output_file=output_file,
            binary=binary,
            nrealizations=nrealizations,
            seed=seed,
            max_neighbors=max_neighbors,
            max_previously_simulated=max_previous,
            search_radius=np.inf if search_radius <= 0 else search_radius,
        )

    def to_builder(self) -> ParFileBuilder:
        """Parameter file content for these parameters."""

        def col(c: int | str) -> int | str:
            return c + 1 if isinstance(c, int) else c

        max_previous = (
            self.max_neighbors if self.max_previously_simulated is None
            else self.max_previously_simulated
        )
        radius = 0.0 if np.isinf(self.search_radius) else self.search_radius

        par = ParFileBuilder()
        par.comment("Parameters for seqsim")
        par.comment("*********************")
        par.blank()
        par.line(START_MARKER)
        par.path(self.data_file if self.data_file is not None else NO_DATA,
                 comment="data file (none = unconditional)")
        par.line(col(self.x_col), col(self.y_col), col(self.value_col),
                 comment="columns: x, y, value (number or name)")
        par.line(self.tmin, self.tmax, comment="trimming limits")
        par.line(int(self.transform), comment="transform flag (0=data already normal scores)")
        par.line(int(self.back_transform), comment="back-transform realizations (0=no)")
        par.path(self.output_file, comment="output file")
        par.line(int(self.binary), comment="binary output (0=ASCII, 1=binary)")
        par.line(self.nrealizations, comment="number of realizations")
        par.grid(self.grid)
        par.line(self.seed, comment="random number seed")
        par.line(self.max_neighbors, max_previous,
                 comment="max neighbours, max previously simulated nodes")
        par.line(radius, comment="search radius (0=unlimited)")
        par.variogram_model(self.variogram)
        return par

    def write(self, filepath: Path | str) -> Path:
        """Write these parameters to a par file."""
        return self.to_builder().write(filepath)

    @classmethod
    def template(cls) -> "SgsimParameters":
        """Example parameters: one spherical structure on a 50 x 50 grid."""
        return cls(
            grid=GridSpec(nx=50, ny=50, xmin=0.5, ymin=0.5, xsiz=1.0, ysiz=1.0),
            variogram=VariogramModel.spherical(sill=1.0, range=10.0),
            data_file=Path("data.dat"),
            output_file=Path("sgsim.out"),
        )
