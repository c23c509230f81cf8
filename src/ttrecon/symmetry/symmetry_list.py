"""Ordered lists of point-group rotation operators."""

from dataclasses import dataclass

import torch

from ttrecon.exceptions import DimensionMismatchError
from ttrecon.transformations import Rx, Rz


@dataclass(frozen=True)
class SymmetryList:
    """Rotation operators of a point group.

    The first operator is expected to be the identity. A list with only the
    identity denotes the absence of symmetry.

    Attributes
    ----------
    operators: torch.Tensor
        `(n, d, d)` array of rotation matrices acting on `xyz` (or `xy`) coordinates.
    """

    operators: torch.Tensor

    def __post_init__(self) -> None:
        operators = torch.as_tensor(self.operators)
        if operators.dim() == 2:
            operators = operators[None]
        if operators.dim() != 3 or operators.shape[-1] != operators.shape[-2]:
            raise DimensionMismatchError(
                f"Expected (n, d, d) symmetry operators, got {tuple(operators.shape)}."
            )
        object.__setattr__(self, "operators", operators)

    def __len__(self) -> int:
        return self.operators.shape[0]

    @property
    def order(self) -> int:
        return len(self)

    @property
    def ndim(self) -> int:
        return self.operators.shape[-1]

    @classmethod
    def identity(cls, ndim: int = 3) -> "SymmetryList":
        return cls(torch.eye(ndim)[None])


def cyclic_operators(n: int) -> torch.Tensor:
    """`(n, 3, 3)` operators of the cyclic group Cn around Z."""
    return Rz(torch.arange(n, dtype=torch.float64) * 360.0 / n)


def dihedral_operators(n: int) -> torch.Tensor:
    """`(2n, 3, 3)` operators of the dihedral group Dn, two-fold axes along X."""
    cn = cyclic_operators(n)
    flip = Rx(torch.tensor(180.0, dtype=torch.float64))
    return torch.cat([cn, cn @ flip], dim=0)
