"""Linear interpolation of half-stored Fourier grids at arbitrary frequencies."""

import torch
from torch_image_lerp import sample_image_2d, sample_image_3d

from ttrecon.utils import logical_to_array_position


def sample_half_grid(
    grid: torch.Tensor,
    coordinates: torch.Tensor,
) -> torch.Tensor:
    """Sample a half-stored grid with (bi/tri)linear interpolation.

    Frequencies with negative x are read from their Friedel mate, conjugated when
    `grid` is complex. Frequencies outside of the grid sample zero.

    Parameters
    ----------
    grid: torch.Tensor
        `(d, h, w // 2 + 1)` or `(h, w // 2 + 1)` half-stored grid.
    coordinates: torch.Tensor
        `(n, ndim)` frequencies in `xyz` order, in units of grid voxels.

    Returns
    -------
    samples: torch.Tensor
        `(n, )` interpolated values with the dtype of `grid`.
    """
    negative = coordinates[..., 0] < 0
    coordinates = torch.where(negative[..., None], -coordinates, coordinates)
    positions = logical_to_array_position(coordinates, grid.shape)
    # grid_sample needs positions in the precision of the grid
    positions = positions.to(grid.real.dtype if torch.is_complex(grid) else grid.dtype)
    if grid.dim() == 3:
        samples = sample_image_3d(grid, positions)
    else:
        samples = sample_image_2d(grid, positions)
    if torch.is_complex(grid):
        samples = torch.where(negative, samples.conj().resolve_conj(), samples)
    return samples
