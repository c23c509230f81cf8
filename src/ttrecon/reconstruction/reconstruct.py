"""Inversion of an accumulated grid pair into a real-space map."""

import logging
from dataclasses import dataclass

import torch

from ttrecon.blob import BlobTable
from ttrecon.config import BackProjectorConfig
from ttrecon.exceptions import ConfigurationError, DimensionMismatchError
from ttrecon.grid import GridPair
from ttrecon.reconstruction.decenter import decenter
from ttrecon.reconstruction.regularisation import add_map_regularisation
from ttrecon.reconstruction.windowing import (
    convolute_blob_real_space,
    gridding_correct,
    window_to_oridim_real_space,
)
from ttrecon.utils import torch_threads

log = logging.getLogger(__name__)


@dataclass
class ReconstructionResult:
    """Real-space map and the spectra of a reconstruction.

    The spectra are None unless MAP regularisation was requested.
    """

    volume: torch.Tensor
    tau2: torch.Tensor | None = None
    sigma2: torch.Tensor | None = None
    data_vs_prior: torch.Tensor | None = None
    fourier_coverage: torch.Tensor | None = None


def iterate_preweighting(
    weight: torch.Tensor,
    blob: BlobTable,
    pad_size: int,
    max_iter: int = 10,
    tolerance: float = 1e-4,
    nr_threads: int = 1,
) -> torch.Tensor:
    """Density compensation for a decentered weight grid.

    Iteratively finds a correction `w` such that the blob convolved with
    `w * weight` is 1 at every sampled voxel. Voxels without weight get no
    correction.

    Parameters
    ----------
    weight: torch.Tensor
        Decentered weight grid, zero beyond the sampled sphere.
    blob: BlobTable
        Blob with its radius in padded voxels.
    pad_size: int
        Side length of the padded grid.
    max_iter: int, default 10
        Maximum number of iterations.
    tolerance: float, default 1e-4
        Stop when the convolved weight deviates less than this from 1 everywhere.
    nr_threads: int, default 1
        Number of threads of the Fourier transforms.
    """
    sampled = weight > 1e-10
    correction = torch.zeros_like(weight)
    correction[sampled] = 1.0 / weight[sampled]
    with torch_threads(nr_threads):
        for iteration in range(max_iter):
            convolved = convolute_blob_real_space(
                (correction * weight).to(torch.complex128), blob, pad_size=pad_size
            )
            convolved = torch.abs(convolved).to(weight.dtype)
            deviation = torch.abs(convolved[sampled] - 1)
            if deviation.numel() == 0:
                log.debug("nothing to preweight, the grid holds no weight")
                break
            log.debug(
                "preweighting iteration %d: mean deviation %.3e, max deviation %.3e",
                iteration + 1,
                float(deviation.mean()),
                float(deviation.max()),
            )
            if float(deviation.max()) < tolerance:
                break
            correction[sampled] /= torch.clamp(convolved[sampled], min=1e-6)
    return correction


def reconstruct(
    grid: GridPair,
    config: BackProjectorConfig,
    blob: BlobTable,
    max_iter_preweight: int = 10,
    do_map: bool = False,
    tau2_fudge: float = 1.0,
    tau2: torch.Tensor | None = None,
    sigma2: torch.Tensor | None = None,
    data_vs_prior: torch.Tensor | None = None,
    fourier_coverage: torch.Tensor | None = None,
    fsc: torch.Tensor | None = None,
    normalise: float = 1.0,
    update_tau2_with_fsc: bool = False,
    is_whole_instead_of_half: bool = False,
    nr_threads: int = 1,
    minres_map: int = -1,
    r_max: int | None = None,
) -> ReconstructionResult:
    """Reconstruct a real-space map from an accumulated grid pair.

    The grid pair is left unchanged. Spectra passed in as tensors (`tau2`,
    `sigma2`, `data_vs_prior`, `fourier_coverage`) are updated in place when MAP
    regularisation is requested.

    Parameters
    ----------
    grid: GridPair
        Accumulated grid pair, symmetrised and with Hermitian symmetry enforced.
    config: BackProjectorConfig
        Configuration the grid pair was accumulated with.
    blob: BlobTable
        Blob with its radius in padded voxels, used for preweighting.
    max_iter_preweight: int, default 10
        Maximum number of preweighting iterations.
    do_map: bool, default False
        Add the inverse of the signal power to the weight.
    tau2_fudge: float, default 1.0
        Scaling of the signal power.
    tau2: torch.Tensor | None, default None
        `(ori_size // 2 + 1, )` signal power per shell.
    sigma2: torch.Tensor | None, default None
        Output, `(ori_size // 2 + 1, )` noise power per shell.
    data_vs_prior: torch.Tensor | None, default None
        Output, evidence of the data over the prior per shell.
    fourier_coverage: torch.Tensor | None, default None
        Output, fraction of voxels per shell where the data outweighs the prior.
    fsc: torch.Tensor | None, default None
        Fourier shell correlation used by `update_tau2_with_fsc`.
    normalise: float, default 1.0
        Multiplier of the output map.
    update_tau2_with_fsc: bool, default False
        Derive `tau2` from `fsc`.
    is_whole_instead_of_half: bool, default False
        `fsc` was calculated on the full dataset instead of half-sets.
    nr_threads: int, default 1
        Number of threads of the Fourier transforms.
    minres_map: int, default -1
        Only shells above this index are regularised.
    r_max: int | None, default None
        Maximum radius in unpadded pixels, `config.current_r_max` if None.

    Returns
    -------
    result: ReconstructionResult
        `(ori_size, ) * ref_dim` map with its origin at `ori_size // 2`, and spectra.
    """
    if grid.shape != config.grid_shape:
        raise DimensionMismatchError(
            f"Grid of shape {grid.shape} does not match the configured shape "
            f"{config.grid_shape}."
        )
    if do_map is True and tau2 is None and update_tau2_with_fsc is False:
        raise ConfigurationError("MAP regularisation requires a tau2 spectrum.")
    r_max = config.current_r_max if r_max is None else r_max
    pad_size = config.pad_size
    max_r2 = float((r_max * config.padding_factor) ** 2)
    result = ReconstructionResult(volume=torch.empty(0))

    weight = grid.weight.to(torch.float64)
    if do_map is True:
        spectra = add_map_regularisation(
            weight,
            padding_factor=config.padding_factor,
            ori_size=config.ori_size,
            max_r2=max_r2,
            tau2=tau2,
            tau2_fudge=tau2_fudge,
            fsc=fsc,
            update_tau2_with_fsc=update_tau2_with_fsc,
            is_whole_instead_of_half=is_whole_instead_of_half,
            minres_map=minres_map,
        )
        weight = spectra.weight
        outputs = dict(
            tau2=(tau2, spectra.tau2),
            sigma2=(sigma2, spectra.sigma2),
            data_vs_prior=(data_vs_prior, spectra.data_vs_prior),
            fourier_coverage=(fourier_coverage, spectra.fourier_coverage),
        )
        for name, (target, values) in outputs.items():
            if target is not None:
                target.copy_(values)
            setattr(result, name, values)

    decentered_weight = decenter(weight, max_r2=max_r2, dtype=torch.float64)
    correction = iterate_preweighting(
        decentered_weight,
        blob,
        pad_size=pad_size,
        max_iter=max_iter_preweight,
        nr_threads=nr_threads,
    )
    data = decenter(grid.data, max_r2=max_r2, dtype=torch.complex128) * correction
    volume = window_to_oridim_real_space(
        data, pad_size=pad_size, ori_size=config.ori_size, nr_threads=nr_threads
    )
    volume = gridding_correct(volume, pad_size, config.interpolator)
    volume = volume * normalise
    log.info(
        "reconstructed a %s map from %d sampled voxels",
        "x".join(str(s) for s in volume.shape),
        int(torch.count_nonzero(decentered_weight)),
    )
    result.volume = volume.to(config.dtype)
    return result
