"""Point-group averaging and Hermitian repair of grid pairs."""

from .hermitian import enforce_hermitian_symmetry
from .symmetrise import symmetrise
from .symmetry_list import SymmetryList, cyclic_operators, dihedral_operators

__all__ = [
    "SymmetryList",
    "cyclic_operators",
    "dihedral_operators",
    "enforce_hermitian_symmetry",
    "symmetrise",
]
