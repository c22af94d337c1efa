"""
seqsim command-line interface.

Usage:
    seqsim run params.par [--workers N] [--verbose] [--progress]
    seqsim template out.par
    python -m seqsim <command>  Same as above
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from seqsim.core import AsciiIO, BinaryIO, SeqsimError
from seqsim.dataset import SpatialDataset
from seqsim.par import SgsimParameters
from seqsim.simulation import SequentialSimulator

logger = logging.getLogger(__name__)


def load_dataset(params: SgsimParameters) -> SpatialDataset:
    """Conditioning data named by a parameter file (empty when there is none)."""
    if params.data_file is None:
        return SpatialDataset.empty()

    options = dict(normal_scores=not params.transform, tmin=params.tmin, tmax=params.tmax)
    if params.data_file.suffix.lower() == ".csv":
        import pandas as pd

        df = pd.read_csv(params.data_file)
        x_col, y_col, value_col = (
            df.columns[c] if isinstance(c, int) else c
            for c in (params.x_col, params.y_col, params.value_col)
        )
        return SpatialDataset.from_dataframe(df, x_col, y_col, value_col, **options)

    return SpatialDataset.read_gslib(
        params.data_file, params.x_col, params.y_col, params.value_col, **options
    )


def add_run_parser(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    """Register the ``seqsim run`` subcommand."""
    p = subparsers.add_parser("run", help="Run a simulation described by a parameter file")
    p.add_argument("parfile", type=Path, help="Parameter file")
    p.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of threads running realizations (default: 1)",
    )
    p.add_argument("--verbose", "-v", action="store_true", help="Log progress details")
    p.add_argument("--progress", action="store_true", help="Show a progress bar")
    p.set_defaults(func=run_run)


def run_run(args: argparse.Namespace) -> int:
    """Execute the run subcommand."""
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    try:
        params = SgsimParameters.from_par(args.parfile)
        dataset = load_dataset(params)
        back_transform = params.back_transform and dataset.transform is not None
        if params.back_transform and not back_transform:
            logger.info("no transform fitted, writing normal scores")

        simulator = SequentialSimulator(
            params.grid,
            dataset,
            params.variogram,
            max_neighbors=params.max_neighbors,
            max_previously_simulated=params.max_previously_simulated,
            search_radius=params.search_radius,
        )
        result = simulator.simulate(
            params.nrealizations,
            seed=params.seed,
            back_transform=back_transform,
            n_workers=args.workers,
            progress=args.progress,
        )

        if params.binary:
            BinaryIO.write_array(result.realizations, params.output_file)
        else:
            AsciiIO.write_gridded_data(
                params.output_file,
                result.realizations,
                params.grid.to_gslib(),
                name="value" if back_transform else "nscore",
            )
    except (SeqsimError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    logger.info("wrote %d realizations to %s", len(result), params.output_file)

    for failure in result.failures:
        print(f"Error: {failure}", file=sys.stderr)
    return 1 if result.failures else 0


def add_template_parser(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    """Register the ``seqsim template`` subcommand."""
    p = subparsers.add_parser("template", help="Write an example parameter file")
    p.add_argument("output", type=Path, help="Parameter file to create")
    p.add_argument("--force", action="store_true", help="Overwrite an existing file")
    p.set_defaults(func=run_template)


def run_template(args: argparse.Namespace) -> int:
    """Execute the template subcommand."""
    if args.output.exists() and not args.force:
        print(f"Error: {args.output} exists (use --force to overwrite)", file=sys.stderr)
        return 1
    SgsimParameters.template().write(args.output)
    print(f"Wrote {args.output}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="seqsim",
        description="Sequential Gaussian simulation on 2D grids.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    add_run_parser(subparsers)
    add_template_parser(subparsers)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    result: int = args.func(args)
    return result


__all__ = ["main"]
