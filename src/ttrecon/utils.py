"""Utility functions for ttrecon."""

import math
from contextlib import contextmanager
from typing import Iterator, Sequence, Tuple

import torch
from torch_grid_utils import coordinate_grid


def half_grid_center(grid_shape: Sequence[int]) -> Tuple[int, ...]:
    """Array index of the zero frequency in a half-stored, fftshifted grid.

    All dimensions but the last are fftshifted, the last holds the non-negative
    half of the spectrum starting at index 0.
    """
    return tuple(s // 2 for s in grid_shape[:-1]) + (0,)


def half_grid_coordinates(
    grid_shape: Sequence[int],
    dtype: torch.dtype = torch.float32,
    device: torch.device | None = None,
) -> torch.Tensor:
    """Logical frequency coordinates of every element of a half-stored grid.

    Parameters
    ----------
    grid_shape: Sequence[int]
        Shape of the half-stored array, e.g. `(d, h, w // 2 + 1)`.

    Returns
    -------
    coordinates: torch.Tensor
        `(*grid_shape, ndim)` array of frequencies in `xyz` (or `xy`) order.
    """
    center = torch.as_tensor(half_grid_center(grid_shape), device=device)
    grid = coordinate_grid(image_shape=tuple(grid_shape), center=center, device=device)
    return torch.flip(grid, dims=(-1,)).to(dtype)


def squared_radius(
    grid_shape: Sequence[int],
    dtype: torch.dtype = torch.float32,
    device: torch.device | None = None,
) -> torch.Tensor:
    """Squared frequency radius of every element of a half-stored grid."""
    coordinates = half_grid_coordinates(grid_shape, dtype=dtype, device=device)
    return torch.sum(coordinates**2, dim=-1)


def logical_to_array_position(
    coordinates: torch.Tensor, grid_shape: Sequence[int]
) -> torch.Tensor:
    """Positions of logical `xyz` frequencies along the `zyx` axes of a half grid."""
    center = torch.as_tensor(
        half_grid_center(grid_shape), dtype=coordinates.dtype, device=coordinates.device
    )
    return torch.flip(coordinates, dims=(-1,)) + center


def logical_to_flat_index(
    coordinates: torch.LongTensor, grid_shape: Sequence[int]
) -> Tuple[torch.LongTensor, torch.BoolTensor]:
    """Convert logical `xyz` frequencies to flat indices into a half-stored grid.

    Parameters
    ----------
    coordinates: torch.LongTensor
        `(..., ndim)` integer frequencies in `xyz` order.
    grid_shape: Sequence[int]
        Shape of the half-stored array being indexed.

    Returns
    -------
    flat_index: torch.LongTensor
        `(..., )` indices into the flattened grid, only meaningful where valid.
    valid: torch.BoolTensor
        `(..., )` whether the frequency lies inside the grid.
    """
    device = coordinates.device
    indices = logical_to_array_position(coordinates, grid_shape)
    shape = torch.as_tensor(tuple(grid_shape), device=device)
    valid = torch.all((indices >= 0) & (indices < shape), dim=-1)
    strides = torch.as_tensor(
        [math.prod(grid_shape[i + 1 :]) for i in range(len(grid_shape))],
        device=device,
    )
    flat_index = torch.sum(indices * strides, dim=-1)
    return flat_index, valid


def crop_center(volume: torch.Tensor, size: int) -> torch.Tensor:
    """Crop the central `size` cube (or square) of a centred real-space array."""
    starts = [s // 2 - size // 2 for s in volume.shape]
    return volume[tuple(slice(start, start + size) for start in starts)]


@contextmanager
def torch_threads(nr_threads: int) -> Iterator[None]:
    """Temporarily set the number of intra-op threads used by torch."""
    previous = torch.get_num_threads()
    if nr_threads > 0:
        torch.set_num_threads(nr_threads)
    try:
        yield
    finally:
        torch.set_num_threads(previous)
