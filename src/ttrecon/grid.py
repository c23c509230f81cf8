"""Half-stored Fourier accumulator and its companion weight accumulator."""

from dataclasses import dataclass
from functools import reduce
from typing import Iterable, Sequence, Tuple

import torch

from .config import COMPLEX_DTYPES
from .exceptions import DimensionMismatchError


@dataclass
class GridPair:
    """Complex `data` grid and real `weight` grid of identical shape.

    Both grids are half-stored along the last dimension and fftshifted along all
    other dimensions. `data / weight` estimates the Fourier coefficient of the
    padded reconstruction at every voxel that received any weight.
    """

    data: torch.Tensor
    weight: torch.Tensor

    def __post_init__(self) -> None:
        if self.data.shape != self.weight.shape:
            raise DimensionMismatchError(
                f"data {tuple(self.data.shape)} and weight "
                f"{tuple(self.weight.shape)} should share their shape."
            )
        if not torch.is_complex(self.data):
            raise DimensionMismatchError("data should be a complex tensor.")
        # scatter operations write through flat views
        self.data = self.data.contiguous()
        self.weight = self.weight.contiguous()

    @classmethod
    def zeros(
        cls,
        shape: Sequence[int],
        dtype: torch.dtype = torch.float32,
        device: torch.device | str | None = None,
    ) -> "GridPair":
        return cls(
            data=torch.zeros(tuple(shape), dtype=COMPLEX_DTYPES[dtype], device=device),
            weight=torch.zeros(tuple(shape), dtype=dtype, device=device),
        )

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(self.data.shape)

    @property
    def ndim(self) -> int:
        return self.data.dim()

    @property
    def pad_size(self) -> int:
        return self.data.shape[0]

    def zero_(self) -> "GridPair":
        self.data.zero_()
        self.weight.zero_()
        return self

    def clone(self) -> "GridPair":
        """Deep copy, no memory is shared with the original."""
        return GridPair(data=self.data.clone(), weight=self.weight.clone())

    def _check_compatible(self, other: "GridPair") -> None:
        if self.shape != other.shape:
            raise DimensionMismatchError(
                f"Cannot merge grids of shape {self.shape} and {other.shape}."
            )

    def add_(self, other: "GridPair") -> "GridPair":
        """Accumulate another grid pair into this one."""
        self._check_compatible(other)
        self.data += other.data
        self.weight += other.weight
        return self

    def __add__(self, other: "GridPair") -> "GridPair":
        self._check_compatible(other)
        return GridPair(data=self.data + other.data, weight=self.weight + other.weight)


def merge(grids: Iterable[GridPair]) -> GridPair:
    """Sum worker-private grid pairs into a new grid pair."""
    grids = list(grids)
    if len(grids) == 0:
        raise ValueError("Provide at least one grid pair to merge.")
    return reduce(lambda a, b: a + b, grids[1:], grids[0].clone())
