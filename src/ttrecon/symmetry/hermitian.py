"""Repair of Hermitian symmetry in half-stored grids."""

from typing import Tuple

import torch


def enforce_hermitian_symmetry(
    data: torch.Tensor, weight: torch.Tensor
) -> Tuple[torch.Tensor, torch.Tensor]:
    """Average every voxel of the x = 0 plane with its Friedel mate, in place.

    In half-stored grids both members of a Friedel pair are stored in the x = 0
    plane, interpolation errors break their conjugate symmetry. Each data value is
    replaced by the mean of itself and the conjugate of its mate, weights by the mean
    of both weights. Applying this twice changes nothing.

    Parameters
    ----------
    data: torch.Tensor
        `(d, h, w // 2 + 1)` or `(h, w // 2 + 1)` complex half-stored grid.
    weight: torch.Tensor
        Real grid with the shape of `data`.

    Returns
    -------
    data, weight: Tuple[torch.Tensor, torch.Tensor]
        The same tensors, updated in place.
    """
    plane = data[..., 0]
    weight_plane = weight[..., 0]
    # the most negative frequency of an even-sized axis has no stored mate
    region = tuple(slice(1 if s % 2 == 0 else 0, None) for s in plane.shape)
    dims = tuple(range(plane.dim()))

    sub = plane[region]
    mate = torch.flip(sub, dims=dims).conj()
    plane[region] = (sub + mate) / 2

    sub_weight = weight_plane[region]
    mate_weight = torch.flip(sub_weight, dims=dims)
    weight_plane[region] = (sub_weight + mate_weight) / 2
    return data, weight
