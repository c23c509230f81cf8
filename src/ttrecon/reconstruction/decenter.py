"""Conversion between centred and fft-native half-stored grids."""

import torch

from ttrecon.utils import squared_radius


def _fftshifted_dims(grid: torch.Tensor) -> tuple[int, ...]:
    # the half-stored dimension is never shifted
    return tuple(range(grid.dim() - 1))


def decenter(
    grid: torch.Tensor, max_r2: float, dtype: torch.dtype | None = None
) -> torch.Tensor:
    """Copy a centred half-stored grid into the layout expected by `torch.fft`.

    Voxels with a squared radius above `max_r2` are zero in the copy, all others are
    copied exactly, converted to `dtype` if given.

    Parameters
    ----------
    grid: torch.Tensor
        `(d, h, w // 2 + 1)` or `(h, w // 2 + 1)` grid, fftshifted in all but the last
        dimension.
    max_r2: float
        Squared radius in grid voxels.
    dtype: torch.dtype | None, default None
        Precision of the copy, that of `grid` if None.

    Returns
    -------
    decentered: torch.Tensor
        Grid with the zero frequency at index 0 along every dimension.
    """
    dtype = grid.dtype if dtype is None else dtype
    r2 = squared_radius(grid.shape, dtype=torch.float64, device=grid.device)
    inside = r2 <= max_r2
    decentered = torch.zeros(grid.shape, dtype=dtype, device=grid.device)
    decentered[inside] = grid[inside].to(dtype)
    return torch.fft.ifftshift(decentered, dim=_fftshifted_dims(grid))


def recenter(
    grid: torch.Tensor, max_r2: float | None = None, dtype: torch.dtype | None = None
) -> torch.Tensor:
    """Inverse of `decenter`, voxels beyond `max_r2` are zeroed if it is given."""
    dtype = grid.dtype if dtype is None else dtype
    centred = torch.fft.fftshift(grid, dim=_fftshifted_dims(grid)).to(dtype)
    if max_r2 is not None:
        r2 = squared_radius(centred.shape, dtype=torch.float64, device=grid.device)
        centred = torch.where(r2 <= max_r2, centred, torch.zeros_like(centred))
    return centred
