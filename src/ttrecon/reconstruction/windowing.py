"""Real-space operations on padded Fourier grids."""

import torch

from ttrecon.blob import BlobTable
from ttrecon.config import Interpolator
from ttrecon.utils import crop_center, torch_threads


def _centred_radius(shape: tuple[int, ...], device: torch.device) -> torch.Tensor:
    """Distance to the origin at `n // 2` along every dimension of a real array."""
    axes = [torch.arange(s, device=device, dtype=torch.float64) - s // 2 for s in shape]
    grids = torch.meshgrid(*axes, indexing="ij")
    return torch.sqrt(sum(g**2 for g in grids))


def _to_real_space(dft: torch.Tensor, pad_size: int) -> torch.Tensor:
    ndim = dft.dim()
    dims = tuple(range(ndim))
    real = torch.fft.irfftn(dft, s=(pad_size,) * ndim, dim=dims)
    return torch.fft.fftshift(real, dim=dims)


def window_to_oridim_real_space(
    dft: torch.Tensor, pad_size: int, ori_size: int, nr_threads: int = 1
) -> torch.Tensor:
    """Inverse transform a decentered half-stored grid and crop it to `ori_size`.

    Parameters
    ----------
    dft: torch.Tensor
        `(p, p, p // 2 + 1)` or `(p, p // 2 + 1)` grid with its zero frequency at
        index 0.
    pad_size: int
        Side length `p` of the padded real-space array.
    ori_size: int
        Side length of the output.
    nr_threads: int, default 1
        Number of threads of the inverse transform.

    Returns
    -------
    volume: torch.Tensor
        `(ori_size, ) * ndim` real array with its origin at `ori_size // 2`.
    """
    with torch_threads(nr_threads):
        real = _to_real_space(dft, pad_size)
    return crop_center(real, ori_size)


def convolute_blob_real_space(
    dft: torch.Tensor, blob: BlobTable, pad_size: int, do_mask: bool = False
) -> torch.Tensor:
    """Convolve a decentered half-stored grid with a blob.

    The convolution is a multiplication in real space with the blob's transform,
    normalised to 1 at the origin.

    Parameters
    ----------
    dft: torch.Tensor
        Grid with its zero frequency at index 0.
    blob: BlobTable
        Blob with its radius in voxels of `dft`.
    pad_size: int
        Side length of the padded real-space array.
    do_mask: bool, default False
        Zero the real-space array beyond a radius of `pad_size / 2` before
        transforming back.
    """
    ndim = dft.dim()
    dims = tuple(range(ndim))
    real = _to_real_space(dft, pad_size)
    r = _centred_radius(real.shape, device=real.device)
    taper = blob.fourier_profile(r / pad_size, normalise=True).to(real.dtype)
    if do_mask is True:
        taper = torch.where(r > pad_size / 2, torch.zeros_like(taper), taper)
    real = torch.fft.ifftshift(real * taper, dim=dims)
    return torch.fft.rfftn(real, dim=dims)


def gridding_correct(
    volume: torch.Tensor, pad_size: int, interpolator: Interpolator
) -> torch.Tensor:
    """Divide a real-space map by the transform of the scatter kernel.

    Scattering samples with a kernel convolves the Fourier grid with that kernel,
    which tapers the map towards its edges. Nearest-neighbour and linear kernels
    are separable boxes and triangles. Blob footprints carry unit mass per sample
    and cancel against the preweighted weight, so maps of blob-scattered grids are
    returned unchanged.

    Parameters
    ----------
    volume: torch.Tensor
        Cropped real-space map with its origin at `n // 2`.
    pad_size: int
        Side length of the padded grid the map was windowed from.
    interpolator: Interpolator
        Kernel used during insertion.
    """
    if interpolator is Interpolator.BLOB:
        return volume
    device = volume.device
    power = 1 if interpolator is Interpolator.NEAREST_NEIGHBOUR else 2
    kernel = torch.ones(volume.shape, dtype=torch.float64, device=device)
    for dim, size in enumerate(volume.shape):
        x = torch.arange(size, dtype=torch.float64, device=device) - size // 2
        shape = [1] * volume.dim()
        shape[dim] = size
        kernel = kernel * torch.sinc(x / pad_size).reshape(shape) ** power
    return volume / kernel.to(volume.dtype)
