"""Insertion of Fourier transforms into a grid pair under a pose.

The projection-slice theorem in reverse: every sampled frequency of an input image
(or volume) is rotated into the frequency space of the reference and scattered into
the grid pair.
"""

import logging

import einops
import torch

from ttrecon.blob import BlobTable
from ttrecon.config import BackProjectorConfig
from ttrecon.exceptions import DimensionMismatchError
from ttrecon.grid import GridPair
from ttrecon.interpolation import insert_into_half_grid
from ttrecon.utils import half_grid_coordinates

log = logging.getLogger(__name__)


def _check_half_stored(dft: torch.Tensor, ndim: int) -> None:
    *full, half = dft.shape[-ndim:] if dft.dim() >= ndim else (0,) * ndim
    if len(set(full)) != 1 or half != full[0] // 2 + 1 or full[0] == 0:
        raise DimensionMismatchError(
            f"Expected a half-stored {ndim}D Fourier transform of shape "
            f"(n, ..., n // 2 + 1), got {tuple(dft.shape)}."
        )


def _pose_matrices(
    matrices: torch.Tensor, batch: int, ndim: int, inverse: bool
) -> torch.Tensor:
    matrices = torch.as_tensor(matrices)
    if matrices.shape[-2:] != (ndim, ndim):
        raise DimensionMismatchError(
            f"Expected {ndim}x{ndim} pose matrices, got {tuple(matrices.shape)}."
        )
    n_poses = matrices.shape[0] if matrices.dim() == 3 else 1
    if matrices.dim() > 3 or n_poses not in (1, batch):
        raise DimensionMismatchError(
            f"Expected one pose or one pose per transform ({batch}), got "
            f"{tuple(matrices.shape)}."
        )
    if inverse is True:
        matrices = torch.linalg.inv(matrices)
    matrices = torch.broadcast_to(matrices, (batch, *matrices.shape[-2:]))
    return matrices


def _insert(
    grid: GridPair,
    config: BackProjectorConfig,
    dfts: torch.Tensor,
    matrices: torch.Tensor,
    weights: torch.Tensor | None,
    input_ndim: int,
    r_max: int | None,
    blob: BlobTable | None,
) -> GridPair:
    """Shared implementation of all entry points, `dfts` is always batched."""
    device = grid.data.device
    r_max = config.current_r_max if r_max is None else r_max
    coordinates = half_grid_coordinates(
        dfts.shape[-input_ndim:], dtype=config.dtype, device=device
    )
    r2 = torch.sum(coordinates**2, dim=-1)
    in_sphere = r2 <= r_max**2

    # (n, input_ndim) sampled frequencies, shared by every image in the batch
    coordinates = coordinates[in_sphere]
    nearest = r2[in_sphere] < config.r_min_nn**2
    # pad with zeros so the frequencies live in the reference's space
    target_ndim = matrices.shape[-1]
    coordinates = torch.nn.functional.pad(coordinates, (0, target_ndim - input_ndim))
    coordinates = einops.rearrange(coordinates, "n coords -> 1 n coords 1")
    matrices = einops.rearrange(matrices.to(coordinates), "b i j -> b 1 i j")
    rotated = einops.rearrange(matrices @ coordinates, "b n coords 1 -> b n coords")
    rotated = rotated * config.padding_factor

    values = dfts[(slice(None), *in_sphere.nonzero(as_tuple=True))]
    if weights is not None:
        if weights.shape[-input_ndim:] != dfts.shape[-input_ndim:]:
            raise DimensionMismatchError(
                f"Weights of shape {tuple(weights.shape)} do not match the Fourier "
                f"transforms of shape {tuple(dfts.shape)}."
            )
        weights = torch.broadcast_to(weights, dfts.shape)
        weights = weights[(slice(None), *in_sphere.nonzero(as_tuple=True))]
        weights = einops.rearrange(weights, "b n -> (b n)")
    n_images = dfts.shape[0]
    log.debug(
        "inserting %d sampled frequencies from %d transforms", values.numel(), n_images
    )
    return insert_into_half_grid(
        grid,
        coordinates=einops.rearrange(rotated, "b n coords -> (b n) coords"),
        values=einops.rearrange(values, "b n -> (b n)"),
        weights=weights,
        interpolator=config.interpolator,
        force_nearest=einops.repeat(nearest, "n -> (b n)", b=n_images),
        blob=blob,
    )


def backproject_2d_to_3d(
    grid: GridPair,
    config: BackProjectorConfig,
    images: torch.Tensor,
    matrices: torch.Tensor,
    inverse: bool = False,
    weights: torch.Tensor | None = None,
    r_max: int | None = None,
    blob: BlobTable | None = None,
) -> GridPair:
    """Insert central slices of 2D Fourier transforms into a 3D grid pair.

    Parameters
    ----------
    grid: GridPair
        3D grid pair, updated in place.
    config: BackProjectorConfig
        Configuration of the reconstruction job.
    images: torch.Tensor
        `(h, h // 2 + 1)` or `(b, h, h // 2 + 1)` rfft of projection images,
        fftshifted along `h`.
    matrices: torch.Tensor
        `(3, 3)` or `(b, 3, 3)` rotations mapping image frequencies onto frequencies
        of the reference.
    inverse: bool, default False
        Use the inverse of `matrices`.
    weights: torch.Tensor | None, default None
        Per-frequency weights with the shape of `images`, 1 if None.
    r_max: int | None, default None
        Maximum radius of inserted frequencies, `config.current_r_max` if None.
    blob: BlobTable | None, default None
        Blob used for `Interpolator.BLOB`.
    """
    if config.ref_dim != 3 or grid.ndim != 3:
        raise DimensionMismatchError(
            "Backprojection of 2D images requires a 3D reference."
        )
    if config.data_dim != 2:
        raise DimensionMismatchError(
            f"2D images cannot be inserted with data_dim={config.data_dim}."
        )
    if images.dim() not in (2, 3):
        raise DimensionMismatchError(
            f"Expected 2D images, got an array of shape {tuple(images.shape)}."
        )
    _check_half_stored(images, ndim=2)
    images, _ = einops.pack([images], pattern="* h w")
    if weights is not None:
        weights, _ = einops.pack([weights], pattern="* h w")
    matrices = _pose_matrices(matrices, images.shape[0], ndim=3, inverse=inverse)
    return _insert(grid, config, images, matrices, weights, 2, r_max, blob)


def backrotate_2d(
    grid: GridPair,
    config: BackProjectorConfig,
    images: torch.Tensor,
    matrices: torch.Tensor,
    inverse: bool = False,
    weights: torch.Tensor | None = None,
    r_max: int | None = None,
    blob: BlobTable | None = None,
) -> GridPair:
    """Insert in-plane rotated 2D Fourier transforms into a 2D grid pair.

    Takes the same arguments as `backproject_2d_to_3d` with `(2, 2)` matrices.
    """
    if config.ref_dim != 2 or grid.ndim != 2:
        raise DimensionMismatchError("In-plane back-rotation requires a 2D reference.")
    if config.data_dim != 2 or images.dim() not in (2, 3):
        raise DimensionMismatchError(
            f"Expected 2D images, got an array of shape {tuple(images.shape)}."
        )
    _check_half_stored(images, ndim=2)
    images, _ = einops.pack([images], pattern="* h w")
    if weights is not None:
        weights, _ = einops.pack([weights], pattern="* h w")
    matrices = _pose_matrices(matrices, images.shape[0], ndim=2, inverse=inverse)
    return _insert(grid, config, images, matrices, weights, 2, r_max, blob)


def backrotate_3d(
    grid: GridPair,
    config: BackProjectorConfig,
    volumes: torch.Tensor,
    matrices: torch.Tensor,
    inverse: bool = False,
    weights: torch.Tensor | None = None,
    r_max: int | None = None,
    blob: BlobTable | None = None,
) -> GridPair:
    """Insert rotated 3D Fourier transforms into a 3D grid pair.

    Takes the same arguments as `backproject_2d_to_3d` with `(d, d, d // 2 + 1)`
    volumes and `(3, 3)` matrices.
    """
    if config.ref_dim != 3 or grid.ndim != 3:
        raise DimensionMismatchError(
            "Back-rotation of 3D volumes requires a 3D reference."
        )
    if volumes.dim() not in (3, 4):
        raise DimensionMismatchError(
            f"Expected 3D volumes, got an array of shape {tuple(volumes.shape)}."
        )
    _check_half_stored(volumes, ndim=3)
    volumes, _ = einops.pack([volumes], pattern="* d h w")
    if weights is not None:
        weights, _ = einops.pack([weights], pattern="* d h w")
    matrices = _pose_matrices(matrices, volumes.shape[0], ndim=3, inverse=inverse)
    return _insert(grid, config, volumes, matrices, weights, 3, r_max, blob)


def insert_fourier_transform(
    grid: GridPair,
    config: BackProjectorConfig,
    dft: torch.Tensor,
    matrix: torch.Tensor,
    inverse: bool = False,
    weights: torch.Tensor | None = None,
    r_max: int | None = None,
    blob: BlobTable | None = None,
) -> GridPair:
    """Insert a single, unbatched Fourier transform depending on its dimensionality.

    A 3D transform is back-rotated into a 3D reference. A 2D transform is
    back-rotated into a 2D reference or backprojected into a 3D reference.
    """
    kwargs = dict(inverse=inverse, weights=weights, r_max=r_max, blob=blob)
    if dft.dim() == 3:
        if config.ref_dim != 3:
            raise DimensionMismatchError(
                "A 3D Fourier transform requires a 3D reference."
            )
        return backrotate_3d(grid, config, dft, matrix, **kwargs)
    elif dft.dim() == 2:
        if config.ref_dim == 2:
            return backrotate_2d(grid, config, dft, matrix, **kwargs)
        return backproject_2d_to_3d(grid, config, dft, matrix, **kwargs)
    raise DimensionMismatchError(
        f"Expected a 2D or 3D Fourier transform, got {dft.dim()} dimensions."
    )
