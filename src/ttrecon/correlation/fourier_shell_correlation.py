"""Downsampled averages of grid pairs and their Fourier shell correlation."""

import logging

import torch

from ttrecon.exceptions import DimensionMismatchError
from ttrecon.grid import GridPair
from ttrecon.utils import half_grid_coordinates, logical_to_flat_index

log = logging.getLogger(__name__)


def _round_half_away_from_zero(x: torch.Tensor) -> torch.Tensor:
    return torch.sign(x) * torch.floor(torch.abs(x) + 0.5)


def get_downsampled_average(grid: GridPair, padding_factor: int) -> torch.Tensor:
    """Average `data / weight` of an oversampled grid pair onto the unpadded grid.

    Every padded voxel is assigned to the unpadded voxel nearest to its frequency
    divided by `padding_factor`. Data and weight are summed per unpadded voxel and
    divided, voxels without weight are zero.

    Parameters
    ----------
    grid: GridPair
        `(p, p, p // 2 + 1)` or `(p, p // 2 + 1)` grid pair with
        `p = padding_factor * ori_size`.
    padding_factor: int
        Oversampling of `grid`.

    Returns
    -------
    average: torch.Tensor
        `(n, n, n // 2 + 1)` or `(n, n // 2 + 1)` complex array with
        `n = p // padding_factor`.
    """
    ori_size = grid.pad_size // padding_factor
    shape = (ori_size,) * (grid.ndim - 1) + (ori_size // 2 + 1,)
    coordinates = half_grid_coordinates(
        grid.shape, dtype=torch.float64, device=grid.data.device
    )
    target = _round_half_away_from_zero(coordinates / padding_factor).long()
    flat_index, valid = logical_to_flat_index(target, shape)
    flat_index = flat_index[valid]

    data = torch.zeros(shape, dtype=grid.data.dtype, device=grid.data.device)
    weight = torch.zeros(shape, dtype=grid.weight.dtype, device=grid.weight.device)
    torch.view_as_real(data).view(-1, 2).index_add_(
        0, flat_index, torch.view_as_real(grid.data[valid].contiguous())
    )
    weight.view(-1).index_add_(0, flat_index, grid.weight[valid])
    has_weight = weight > 0
    average = torch.zeros_like(data)
    average[has_weight] = data[has_weight] / weight[has_weight]
    return average


def calculate_downsampled_fourier_shell_correlation(
    average1: torch.Tensor, average2: torch.Tensor
) -> torch.Tensor:
    """Fourier shell correlation between two downsampled averages.

    Voxels are binned into shells by their rounded frequency radius. Shells where
    either map has no power, such as shells beyond the radius a grid pair was
    accumulated to, have a correlation of 0. The zero frequency shell is 1.

    Parameters
    ----------
    average1: torch.Tensor
        `(n, n, n // 2 + 1)` or `(n, n // 2 + 1)` complex array.
    average2: torch.Tensor
        Complex array with the shape of `average1`.

    Returns
    -------
    fsc: torch.Tensor
        `(n // 2 + 1, )` correlation per shell.
    """
    if average1.shape != average2.shape:
        raise DimensionMismatchError(
            f"Cannot correlate maps of shape {tuple(average1.shape)} and "
            f"{tuple(average2.shape)}."
        )
    n_shells = average1.shape[0] // 2 + 1
    coordinates = half_grid_coordinates(
        average1.shape, dtype=torch.float64, device=average1.device
    )
    shell = torch.round(torch.linalg.norm(coordinates, dim=-1)).long()
    in_range = shell < n_shells
    shell = shell[in_range]
    a = average1[in_range].to(torch.complex128)
    b = average2[in_range].to(torch.complex128)

    cross = torch.real(a * torch.conj(b))
    num = torch.bincount(shell, weights=cross, minlength=n_shells)
    power1 = torch.bincount(shell, weights=torch.abs(a) ** 2, minlength=n_shells)
    power2 = torch.bincount(shell, weights=torch.abs(b) ** 2, minlength=n_shells)
    den = torch.sqrt(power1 * power2)
    fsc = torch.zeros(n_shells, dtype=torch.float64, device=average1.device)
    nonzero = den > 0
    fsc[nonzero] = num[nonzero] / den[nonzero]
    fsc[0] = 1.0
    log.debug("fourier shell correlation over %d shells", n_shells)
    return fsc.to(average1.real.dtype)
