"""Exchange of low resolution content between grid pairs.

Two half-sets can be forced to share their low resolution frequencies by extracting
the central part of one grid pair and injecting it into the other.
"""

from typing import Tuple

import torch

from .exceptions import DimensionMismatchError
from .grid import GridPair
from .utils import half_grid_coordinates, logical_to_flat_index


def low_res_shape(
    padding_factor: int, lowres_r_max: int, ndim: int = 3
) -> Tuple[int, ...]:
    """Shape of the half-stored array holding frequencies up to `lowres_r_max`."""
    side = 2 * (padding_factor * lowres_r_max + 1) + 1
    return (side,) * (ndim - 1) + (side // 2 + 1,)


def _low_res_voxels(
    grid: GridPair, padding_factor: int, lowres_r_max: int, r_max: int
) -> Tuple[Tuple[int, ...], torch.BoolTensor, torch.LongTensor]:
    """Shape, mask of copied voxels and their flat index into `grid`."""
    if lowres_r_max > r_max:
        raise DimensionMismatchError(
            f"Low resolution radius {lowres_r_max} exceeds r_max ({r_max})."
        )
    shape = low_res_shape(padding_factor, lowres_r_max, ndim=grid.ndim)
    coordinates = half_grid_coordinates(
        shape, dtype=torch.long, device=grid.data.device
    )
    flat_index, valid = logical_to_flat_index(coordinates, grid.shape)
    r2 = torch.sum(coordinates**2, dim=-1)
    in_sphere = r2 <= (padding_factor * lowres_r_max) ** 2
    copied = in_sphere & valid
    return shape, copied, flat_index[copied]


def get_low_res_data_and_weight(
    grid: GridPair, padding_factor: int, lowres_r_max: int, r_max: int
) -> GridPair:
    """Copy the frequencies of `grid` up to `lowres_r_max` into a small grid pair.

    Parameters
    ----------
    grid: GridPair
        Padded grid pair.
    padding_factor: int
        Oversampling of `grid`.
    lowres_r_max: int
        Radius in unpadded pixels of the copied frequencies.
    r_max: int
        Current maximum radius of `grid` in unpadded pixels.

    Returns
    -------
    low_res: GridPair
        Grid pair of shape `low_res_shape(padding_factor, lowres_r_max)`, zero
        outside of the sphere of copied frequencies.
    """
    shape, copied, flat_index = _low_res_voxels(
        grid, padding_factor, lowres_r_max, r_max
    )
    low_res = GridPair.zeros(shape, dtype=grid.weight.dtype, device=grid.data.device)
    low_res.data[copied] = grid.data.reshape(-1)[flat_index]
    low_res.weight[copied] = grid.weight.reshape(-1)[flat_index]
    return low_res


def set_low_res_data_and_weight(
    grid: GridPair,
    low_res: GridPair,
    padding_factor: int,
    lowres_r_max: int,
    r_max: int,
) -> GridPair:
    """Overwrite the frequencies of `grid` up to `lowres_r_max` from `low_res`.

    `low_res` has to be shaped as returned by `get_low_res_data_and_weight` for the
    same `padding_factor` and `lowres_r_max`. Frequencies outside of the sphere are
    left untouched.
    """
    shape, copied, flat_index = _low_res_voxels(
        grid, padding_factor, lowres_r_max, r_max
    )
    if low_res.shape != shape:
        raise DimensionMismatchError(
            f"Expected low resolution arrays of shape {shape}, got {low_res.shape}."
        )
    grid.data.view(-1)[flat_index] = low_res.data[copied].to(grid.data.dtype)
    grid.weight.view(-1)[flat_index] = low_res.weight[copied].to(grid.weight.dtype)
    return grid
