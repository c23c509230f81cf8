"""Fourier-space back-projection and reconstruction of 2D and 3D maps."""

from importlib.metadata import PackageNotFoundError, version

from .backprojector import BackProjector
from .blob import BlobTable
from .config import BackProjectorConfig, Interpolator
from .exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    ReconstructionError,
)
from .grid import GridPair, merge
from .parallel import accumulate_parallel
from .reconstruction import ReconstructionResult, reconstruct
from .symmetry import SymmetryList, cyclic_operators, dihedral_operators
from .transformations import euler_to_matrix

__all__ = [
    "BackProjector",
    "BackProjectorConfig",
    "BlobTable",
    "ConfigurationError",
    "DimensionMismatchError",
    "GridPair",
    "Interpolator",
    "ReconstructionError",
    "ReconstructionResult",
    "SymmetryList",
    "accumulate_parallel",
    "cyclic_operators",
    "dihedral_operators",
    "euler_to_matrix",
    "merge",
    "reconstruct",
]

try:
    __version__ = version("ttrecon")
except PackageNotFoundError:
    __version__ = "uninstalled"
