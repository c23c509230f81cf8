"""Immutable configuration of a Fourier-space back-projector."""

import enum
from dataclasses import dataclass
from typing import Tuple

import torch

from .exceptions import ConfigurationError

COMPLEX_DTYPES = {
    torch.float32: torch.complex64,
    torch.float64: torch.complex128,
}


class Interpolator(enum.Enum):
    """Scatter kernel used when inserting samples into the Fourier grid."""

    NEAREST_NEIGHBOUR = "nearest_neighbour"
    TRILINEAR = "trilinear"
    BLOB = "blob"


@dataclass(frozen=True)
class BackProjectorConfig:
    """Every option of a reconstruction job, fixed for the job's lifetime.

    Parameters
    ----------
    ori_size: int
        Side length of the unpadded output map.
    ref_dim: int
        Dimensionality of the reconstructed object, 2 or 3.
    data_dim: int
        Dimensionality of the inserted projections, 2 or 3.
    interpolator: Interpolator
        Scatter kernel outside of `r_min_nn`.
    padding_factor: int
        Oversampling of the Fourier grid relative to `ori_size`.
    r_min_nn: int
        Radius in pixels below which nearest-neighbour insertion is forced.
    r_max: int | None, default None
        Maximum radius in pixels taken into account, `ori_size // 2` if None.
    blob_radius: float
        Blob radius in unpadded pixels.
    blob_alpha: float
        Blob shape parameter.
    blob_order: int
        Order of the Bessel function of the blob.
    dtype: torch.dtype
        Real precision of the grids, `torch.float32` or `torch.float64`.
    device: torch.device | str
        Device the grids live on.
    """

    ori_size: int
    ref_dim: int = 3
    data_dim: int = 2
    interpolator: Interpolator = Interpolator.TRILINEAR
    padding_factor: int = 2
    r_min_nn: int = 10
    r_max: int | None = None
    blob_radius: float = 1.9
    blob_alpha: float = 15.0
    blob_order: int = 0
    dtype: torch.dtype = torch.float32
    device: torch.device | str = "cpu"

    def __post_init__(self) -> None:
        if self.ref_dim not in (2, 3):
            raise ConfigurationError(
                f"Dimension of the reference should be 2 or 3, got {self.ref_dim}."
            )
        if self.data_dim not in (2, 3):
            raise ConfigurationError(
                f"Dimension of the data should be 2 or 3, got {self.data_dim}."
            )
        if self.ori_size < 1:
            raise ConfigurationError("ori_size should be a positive integer.")
        if self.padding_factor < 1:
            raise ConfigurationError("padding_factor should be an integer >= 1.")
        if self.r_max is not None and not 0 <= self.r_max <= self.ori_size // 2:
            raise ConfigurationError(
                f"r_max should lie within [0, {self.ori_size // 2}], got {self.r_max}."
            )
        if self.dtype not in COMPLEX_DTYPES:
            raise ConfigurationError(
                f"Unsupported precision {self.dtype}, use torch.float32 or "
                "torch.float64."
            )
        if not isinstance(self.interpolator, Interpolator):
            raise ConfigurationError(f"Unknown interpolator {self.interpolator!r}.")

    @property
    def pad_size(self) -> int:
        """Side length of the oversampled grid."""
        return self.padding_factor * self.ori_size

    @property
    def current_r_max(self) -> int:
        return self.ori_size // 2 if self.r_max is None else self.r_max

    @property
    def complex_dtype(self) -> torch.dtype:
        return COMPLEX_DTYPES[self.dtype]

    @property
    def grid_shape(self) -> Tuple[int, ...]:
        """Shape of the half-stored data and weight grids."""
        pad = self.pad_size
        return (pad,) * (self.ref_dim - 1) + (pad // 2 + 1,)
