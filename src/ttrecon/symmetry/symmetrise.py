"""Point-group averaging of a grid pair."""

import logging

import einops
import torch

from ttrecon.exceptions import DimensionMismatchError
from ttrecon.grid import GridPair
from ttrecon.interpolation import sample_half_grid
from ttrecon.symmetry.symmetry_list import SymmetryList
from ttrecon.utils import half_grid_coordinates

log = logging.getLogger(__name__)


def symmetrise(
    grid: GridPair, symmetry: SymmetryList, max_r2: float | None = None
) -> GridPair:
    """Average a grid pair over all operators of a point group, in place.

    Every voxel within `max_r2` is replaced by the mean of the grid pair sampled at
    the rotated frequency of each operator. Voxels beyond `max_r2` are left untouched.

    Parameters
    ----------
    grid: GridPair
        Half-stored grid pair.
    symmetry: SymmetryList
        Operators of the point group, matching the dimensionality of `grid`.
    max_r2: float | None, default None
        Squared radius in grid voxels, the whole grid if None.

    Returns
    -------
    grid: GridPair
        The updated grid pair.
    """
    if symmetry.order == 1:
        return grid
    if symmetry.ndim != grid.ndim:
        raise DimensionMismatchError(
            f"{symmetry.ndim}D symmetry operators cannot act on a {grid.ndim}D grid."
        )
    dtype = grid.weight.dtype
    device = grid.data.device
    coordinates = half_grid_coordinates(grid.shape, dtype=dtype, device=device)
    r2 = einops.reduce(coordinates**2, "... coords -> ...", reduction="sum")
    inside = r2 <= (r2.max() if max_r2 is None else max_r2)
    coordinates = coordinates[inside]  # (n, ndim)

    data_sum = torch.zeros_like(grid.data[inside])
    weight_sum = torch.zeros_like(grid.weight[inside])
    for operator in symmetry.operators.to(coordinates):
        # row vectors, k @ R.T == (R @ k.T).T
        rotated = coordinates @ operator.T
        data_sum += sample_half_grid(grid.data, rotated)
        weight_sum += sample_half_grid(grid.weight, rotated)
    grid.data[inside] = data_sum / symmetry.order
    grid.weight[inside] = weight_sum / symmetry.order
    log.debug(
        "symmetrised %d voxels over %d operators", coordinates.shape[0], symmetry.order
    )
    return grid
