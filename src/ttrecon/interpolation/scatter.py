"""Scatter complex samples into a half-stored Fourier grid pair."""

import math
from typing import Tuple

import einops
import torch
from torch_image_lerp import insert_into_image_2d, insert_into_image_3d

from ttrecon.blob import BlobTable
from ttrecon.config import Interpolator
from ttrecon.exceptions import ConfigurationError
from ttrecon.grid import GridPair
from ttrecon.utils import logical_to_array_position, logical_to_flat_index


def friedel_mirror(
    coordinates: torch.Tensor, values: torch.Tensor
) -> Tuple[torch.Tensor, torch.Tensor]:
    """Map samples with negative x onto the stored half by conjugate symmetry."""
    negative = coordinates[..., 0] < 0
    coordinates = torch.where(negative[..., None], -coordinates, coordinates)
    values = torch.where(negative, values.conj().resolve_conj(), values)
    return coordinates, values


def _add_to_grid(
    grid: GridPair,
    voxels: torch.LongTensor,
    data_values: torch.Tensor,
    weight_values: torch.Tensor,
) -> None:
    """Add values at integer `xyz` voxels, voxels outside of the grid are skipped."""
    flat_index, valid = logical_to_flat_index(voxels, grid.shape)
    flat_index = flat_index[valid]
    data_values = data_values[valid].to(grid.data.dtype).contiguous()
    weight_values = weight_values[valid].to(grid.weight.dtype)
    data_view = torch.view_as_real(grid.data).view(-1, 2)
    data_view.index_add_(0, flat_index, torch.view_as_real(data_values))
    grid.weight.view(-1).index_add_(0, flat_index, weight_values)


def _insert_nearest(
    grid: GridPair,
    coordinates: torch.Tensor,
    values: torch.Tensor,
    weights: torch.Tensor,
) -> None:
    voxels = torch.round(coordinates).long()
    _add_to_grid(grid, voxels, values * weights, weights)


def _lerp_insert(
    grid_shape: Tuple[int, ...], positions: torch.Tensor, values: torch.Tensor
) -> torch.Tensor:
    """Linear insertion of `values` at `zyx` positions into a zeroed array."""
    device = positions.device
    dtype = torch.complex128 if torch.is_complex(values) else torch.float64
    image = torch.zeros(grid_shape, dtype=dtype, device=device)
    # interpolation weights are tracked in float64 in 3D, in the default dtype in 2D
    if len(grid_shape) == 3:
        tracked = torch.zeros(grid_shape, dtype=torch.float64, device=device)
        image, _ = insert_into_image_3d(
            values.to(dtype), positions, image=image, weights=tracked
        )
    else:
        tracked = torch.zeros(grid_shape, device=device)
        image, _ = insert_into_image_2d(
            values.to(dtype), positions, image=image, weights=tracked
        )
    return image


def _insert_linear(
    grid: GridPair,
    coordinates: torch.Tensor,
    values: torch.Tensor,
    weights: torch.Tensor,
) -> None:
    positions = logical_to_array_position(coordinates, grid.shape)
    data = _lerp_insert(grid.shape, positions, values * weights)
    weight = _lerp_insert(grid.shape, positions, weights)
    grid.data += data.to(grid.data.dtype)
    grid.weight += weight.to(grid.weight.dtype)


def _insert_blob(
    grid: GridPair,
    coordinates: torch.Tensor,
    values: torch.Tensor,
    weights: torch.Tensor,
    blob: BlobTable,
    chunk_size: int = 4096,
) -> None:
    ndim = coordinates.shape[-1]
    reach = int(math.ceil(blob.radius))
    offsets = torch.cartesian_prod(
        *[torch.arange(-reach, reach + 1, device=coordinates.device)] * ndim
    ).reshape(-1, ndim)
    n_neighbours = offsets.shape[0]
    # footprints of all samples at once can exhaust memory
    for start in range(0, coordinates.shape[0], chunk_size):
        chunk = slice(start, start + chunk_size)
        k = coordinates[chunk]
        voxels = torch.round(k).long()[:, None, :] + offsets  # (n, m, d)
        distances = torch.linalg.norm(voxels - k[:, None, :], dim=-1)
        w = blob.footprint(distances)
        # every sample carries unit mass, as with the other kernels
        w = w / torch.sum(w, dim=-1, keepdim=True)
        in_support = w > 0
        sample_values = einops.repeat(
            values[chunk] * weights[chunk], "n -> n m", m=n_neighbours
        )
        sample_weights = einops.repeat(weights[chunk], "n -> n m", m=n_neighbours)
        voxels, w = voxels[in_support], w[in_support]
        sample_values = sample_values[in_support]
        sample_weights = sample_weights[in_support]
        # blob footprints may straddle the x = 0 plane
        voxels, sample_values = friedel_mirror(voxels, sample_values)
        _add_to_grid(grid, voxels, sample_values * w, sample_weights * w)


def insert_into_half_grid(
    grid: GridPair,
    coordinates: torch.Tensor,
    values: torch.Tensor,
    weights: torch.Tensor | None = None,
    interpolator: Interpolator = Interpolator.TRILINEAR,
    force_nearest: torch.Tensor | None = None,
    blob: BlobTable | None = None,
) -> GridPair:
    """Scatter complex samples at arbitrary frequencies into a grid pair.

    The complex value times its weight is added to `grid.data`, the weight itself to
    `grid.weight`, both distributed with identical interpolation weights.

    Parameters
    ----------
    grid: GridPair
        Grid pair that is updated in place.
    coordinates: torch.Tensor
        `(n, d)` frequencies in `xyz` order, in units of grid voxels.
    values: torch.Tensor
        `(n, )` complex samples.
    weights: torch.Tensor | None, default None
        `(n, )` per-sample confidence, 1 if None.
    interpolator: Interpolator
        Kernel for samples that are not forced onto their nearest neighbour.
    force_nearest: torch.Tensor | None, default None
        `(n, )` boolean mask of samples inserted with nearest-neighbour.
    blob: BlobTable | None, default None
        Required for `Interpolator.BLOB`.

    Returns
    -------
    grid: GridPair
        The updated grid pair.
    """
    if coordinates.shape[-1] != grid.ndim:
        raise ConfigurationError(
            f"{coordinates.shape[-1]}D coordinates cannot be inserted into a "
            f"{grid.ndim}D grid."
        )
    if weights is None:
        weights = torch.ones_like(values, dtype=grid.weight.dtype)
    weights = weights.to(grid.weight.dtype)
    coordinates, values = friedel_mirror(coordinates, values)

    if interpolator is Interpolator.NEAREST_NEIGHBOUR:
        nearest = torch.ones(values.shape, dtype=torch.bool, device=values.device)
    elif force_nearest is None:
        nearest = torch.zeros(values.shape, dtype=torch.bool, device=values.device)
    else:
        nearest = force_nearest
    if torch.any(nearest):
        _insert_nearest(grid, coordinates[nearest], values[nearest], weights[nearest])

    rest = torch.logical_not(nearest)
    if not torch.any(rest):
        return grid
    if interpolator is Interpolator.TRILINEAR:
        _insert_linear(grid, coordinates[rest], values[rest], weights[rest])
    elif interpolator is Interpolator.BLOB:
        if blob is None:
            raise ConfigurationError("Blob interpolation requires a BlobTable.")
        _insert_blob(grid, coordinates[rest], values[rest], weights[rest], blob)
    return grid
