"""Maximum-a-posteriori regularisation of the accumulated weight."""

import logging
from typing import NamedTuple

import torch

from ttrecon.exceptions import ConfigurationError, DimensionMismatchError
from ttrecon.utils import squared_radius

log = logging.getLogger(__name__)


class MapSpectra(NamedTuple):
    """Per-shell spectra produced while regularising a weight grid."""

    weight: torch.Tensor
    tau2: torch.Tensor
    sigma2: torch.Tensor
    data_vs_prior: torch.Tensor
    fourier_coverage: torch.Tensor


def _shell_mean(
    shells: torch.Tensor, values: torch.Tensor, n_shells: int
) -> torch.Tensor:
    total = torch.bincount(shells, weights=values, minlength=n_shells)
    count = torch.bincount(shells, minlength=n_shells).to(total.dtype)
    return torch.where(count > 0, total / count.clamp(min=1), torch.zeros_like(total))


def fsc_to_tau2(
    fsc: torch.Tensor,
    sigma2: torch.Tensor,
    tau2_fudge: float = 1.0,
    is_whole_instead_of_half: bool = False,
) -> tuple[torch.Tensor, torch.Tensor]:
    """Signal power and signal-to-noise ratio implied by a Fourier shell correlation.

    A half-set correlation is first converted to that of the full dataset.

    Returns
    -------
    tau2, ssnr: tuple[torch.Tensor, torch.Tensor]
        Signal power per shell and the fudged signal-to-noise ratio per shell.
    """
    fsc = torch.clamp(torch.as_tensor(fsc, dtype=sigma2.dtype), min=0.001)
    if is_whole_instead_of_half is False:
        fsc = torch.sqrt(2 * fsc / (fsc + 1))
    fsc = torch.clamp(fsc, max=0.999)
    ssnr = tau2_fudge * fsc / (1 - fsc)
    return ssnr * sigma2, ssnr


def add_map_regularisation(
    weight: torch.Tensor,
    padding_factor: int,
    ori_size: int,
    max_r2: float,
    tau2: torch.Tensor | None = None,
    tau2_fudge: float = 1.0,
    fsc: torch.Tensor | None = None,
    update_tau2_with_fsc: bool = False,
    is_whole_instead_of_half: bool = False,
    minres_map: int = -1,
) -> MapSpectra:
    """Add the inverse of the signal power per shell to a centred weight grid.

    The noise power `sigma2` of each shell is estimated from the inverse of the
    average accumulated weight. Shells without any signal power receive a large
    term that suppresses them.

    Parameters
    ----------
    weight: torch.Tensor
        Centred half-stored weight grid, a regularised copy is returned.
    padding_factor: int
        Oversampling of `weight`.
    ori_size: int
        Unpadded side length, spectra have `ori_size // 2 + 1` shells.
    max_r2: float
        Squared radius in padded voxels beyond which `weight` is left untouched.
    tau2: torch.Tensor | None, default None
        Signal power per shell, required unless it is derived from `fsc`.
    tau2_fudge: float, default 1.0
        Scaling of the signal power.
    fsc: torch.Tensor | None, default None
        Fourier shell correlation per shell.
    update_tau2_with_fsc: bool, default False
        Derive `tau2` from `fsc` and the estimated `sigma2`.
    is_whole_instead_of_half: bool, default False
        Whether `fsc` was calculated on the full dataset instead of half-sets.
    minres_map: int, default -1
        Only shells above this index are regularised.

    Returns
    -------
    spectra: MapSpectra
        Regularised weight and the spectra per shell.
    """
    n_shells = ori_size // 2 + 1
    oversampling_correction = float(padding_factor ** weight.dim())
    r2 = squared_radius(weight.shape, dtype=torch.float64, device=weight.device)
    inside = r2 <= max_r2
    shells = torch.round(torch.sqrt(r2[inside]) / padding_factor).long()
    in_range = shells < n_shells
    shells = shells[in_range]
    voxel_weight = oversampling_correction * weight[inside][in_range].to(torch.float64)

    # inverse of the average weight per shell
    weight_sum = torch.bincount(shells, weights=voxel_weight, minlength=n_shells)
    count = torch.bincount(shells, minlength=n_shells).to(torch.float64)
    sigma2 = torch.where(
        weight_sum > 1e-10, count / weight_sum.clamp(min=1e-10), 0.0
    )

    if update_tau2_with_fsc is True:
        if fsc is None:
            raise ConfigurationError(
                "Updating tau2 requires a Fourier shell correlation."
            )
        if len(fsc) != n_shells:
            raise DimensionMismatchError(
                f"Expected {n_shells} shells of FSC, got {len(fsc)}."
            )
        tau2, _ = fsc_to_tau2(fsc, sigma2, tau2_fudge, is_whole_instead_of_half)
        tau2 = tau2.to(weight.device)
    elif tau2 is None:
        raise ConfigurationError("MAP regularisation requires a tau2 spectrum.")
    tau2 = torch.as_tensor(tau2, dtype=torch.float64, device=weight.device)
    if tau2.shape[0] != n_shells:
        raise DimensionMismatchError(
            f"Expected {n_shells} shells of tau2, got {tau2.shape[0]}."
        )

    voxel_tau2 = tau2[shells]
    with_signal = voxel_tau2 > 0
    invtau2 = torch.zeros_like(voxel_weight)
    invtau2[with_signal] = 1.0 / (
        oversampling_correction * tau2_fudge * voxel_tau2[with_signal]
    )
    # shells without signal power are suppressed
    suppressed = ~with_signal & (voxel_weight > 0)
    invtau2[suppressed] = 1.0 / (0.001 * voxel_weight[suppressed])
    n_suppressed = int(torch.count_nonzero(suppressed))
    if n_suppressed > 0:
        log.debug("suppressing %d voxels in shells without signal", n_suppressed)

    evidence = torch.zeros_like(voxel_weight)
    has_prior = invtau2 > 0
    evidence[has_prior] = voxel_weight[has_prior] / invtau2[has_prior]
    data_vs_prior = _shell_mean(shells, evidence, n_shells)
    fourier_coverage = _shell_mean(shells, (evidence >= 1).to(torch.float64), n_shells)

    regularised = weight.clone()
    regularise = shells > minres_map
    addition = torch.zeros_like(voxel_weight)
    addition[regularise] = invtau2[regularise]
    update = torch.zeros_like(weight[inside])
    update[in_range] = addition.to(weight.dtype)
    regularised[inside] += update
    return MapSpectra(
        weight=regularised,
        tau2=tau2,
        sigma2=sigma2,
        data_vs_prior=data_vs_prior,
        fourier_coverage=fourier_coverage,
    )
