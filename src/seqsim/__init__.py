"""
seqsim: conditional sequential Gaussian simulation on 2D grids.

Generates equiprobable realizations of a spatially correlated variable on a
regular grid, honouring sample values and a variogram model. Each node is
estimated by ordinary kriging from nearby samples and previously simulated
nodes, and a value is drawn from the resulting Gaussian.

Key Features:
    - Nested spherical/exponential/Gaussian variograms with 2D anisotropy
    - Normal score transform with exact back-transform at sample values
    - Reproducible realizations: one seeded generator per realization
    - GSLIB-style parameter files and a ``seqsim`` command line

Functions:
    - :func:`sgsim`: Sequential Gaussian simulation
    - :func:`krige`: Ordinary kriging over a grid
    - :func:`nscore`: Normal score transform (Gaussian anamorphosis)
    - :func:`backtr`: Back-transform from normal scores to original distribution
    - :func:`gamv`: Experimental variogram calculation
    - :func:`declus`: Cell declustering for preferential sampling correction

Example:
    >>> import numpy as np
    >>> from seqsim import sgsim, GridSpec, VariogramModel
    >>>
    >>> x = np.array([10.0, 20.0, 30.0, 40.0])
    >>> y = np.array([10.0, 20.0, 30.0, 40.0])
    >>> values = np.array([1.5, 2.0, 2.5, 3.0])
    >>>
    >>> grid = GridSpec(nx=10, ny=10, xmin=2.5, ymin=2.5, xsiz=5, ysiz=5)
    >>> variogram = VariogramModel.spherical(sill=1.0, range=30.0)
    >>>
    >>> result = sgsim(x, y, values, grid, variogram, nrealizations=5,
    ...                back_transform=True)
    >>> result.as_grids().shape
    (5, 10, 10)
"""

import logging

__version__ = "1.0.0"

# Errors and I/O
from seqsim.core import (
    AsciiIO,
    BinaryIO,
    DuplicateLocationWarning,
    EmptyInput,
    ExperimentalWarning,
    InsufficientData,
    InvalidParameter,
    ParFileError,
    RealizationError,
    SeqsimError,
    SimulationCancelled,
    SingularSystem,
)

# Grid and variogram specifications
from seqsim.utils import (
    EPSLON,
    GridSpec,
    VariogramModel,
    VariogramStructure,
    VariogramType,
    anisotropy_matrix,
    deutsch_to_math,
    evaluate_variogram,
    math_to_deutsch,
)

# Data, transforms and algorithms
from seqsim.transforms import NormalScoreTransform, nscore, backtr
from seqsim.dataset import Sample, SpatialDataset
from seqsim.estimation import (
    KrigingEstimate,
    KrigingResult,
    KrigingSolver,
    SearchParameters,
    krige,
)
from seqsim.simulation import (
    RealizationState,
    SequentialSimulator,
    SimulationResult,
    sgsim,
)
from seqsim.variogram import (
    GamvDirection,
    VariogramResult,
    empirical_cdf,
    gamv,
    grid_variogram,
)
from seqsim.declustering import DeclusResult, declus
from seqsim.par import ParFileBuilder, ParFileReader, SgsimParameters

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Version
    "__version__",
    # Errors and warnings
    "SeqsimError",
    "InvalidParameter",
    "EmptyInput",
    "InsufficientData",
    "SingularSystem",
    "RealizationError",
    "SimulationCancelled",
    "ParFileError",
    "ExperimentalWarning",
    "DuplicateLocationWarning",
    # Core I/O
    "BinaryIO",
    "AsciiIO",
    # Grid and variogram specs
    "EPSLON",
    "GridSpec",
    "VariogramModel",
    "VariogramStructure",
    "VariogramType",
    "evaluate_variogram",
    "anisotropy_matrix",
    "deutsch_to_math",
    "math_to_deutsch",
    # Data and transforms
    "NormalScoreTransform",
    "nscore",
    "backtr",
    "Sample",
    "SpatialDataset",
    # Estimation and simulation
    "KrigingSolver",
    "KrigingEstimate",
    "KrigingResult",
    "SearchParameters",
    "krige",
    "SequentialSimulator",
    "RealizationState",
    "SimulationResult",
    "sgsim",
    # Diagnostics
    "gamv",
    "grid_variogram",
    "empirical_cdf",
    "GamvDirection",
    "VariogramResult",
    "declus",
    "DeclusResult",
    # Parameter files
    "ParFileBuilder",
    "ParFileReader",
    "SgsimParameters",
]
