"""Tabulated Kaiser-Bessel blobs.

A blob is a smooth, compactly supported, spherically symmetric function. Here it is
used as a scatter kernel in Fourier space, while its Fourier transform is a
real-space taper that can be multiplied in or divided out.

Lewitt, R. M. "Multidimensional digital image representations using generalized
Kaiser-Bessel window functions." JOSA A 7.10 (1990): 1834-1846.
"""

import numpy as np
import torch
from scipy import special


def kaiser_value(
    r: np.ndarray, radius: float, alpha: float, order: int
) -> np.ndarray:
    """Value of a Kaiser-Bessel blob at distance `r` from its center."""
    r = np.asarray(r, dtype=np.float64)
    rda = r / radius
    w = np.sqrt(np.clip(1.0 - rda**2, 0.0, None))
    value = w**order * special.iv(order, alpha * w) / special.iv(order, alpha)
    return np.where(rda <= 1.0, value, 0.0)


def kaiser_fourier_value(
    frequency: np.ndarray, radius: float, alpha: float, order: int
) -> np.ndarray:
    """3D Fourier transform of a Kaiser-Bessel blob at a radial `frequency`.

    `frequency` is in cycles per unit of `radius`.
    """
    frequency = np.asarray(frequency, dtype=np.float64)
    nu = order + 1.5
    argument = 2.0 * np.pi * radius * frequency
    sigma = np.sqrt(np.abs(alpha**2 - argument**2))
    norm = (2.0 * np.pi) ** 1.5 * radius**3 * alpha**order / special.iv(order, alpha)
    with np.errstate(divide="ignore", invalid="ignore"):
        below = special.iv(nu, sigma) / sigma**nu
        above = special.jv(nu, sigma) / sigma**nu
    ratio = np.where(argument <= alpha, below, above)
    # I_nu(s) / s^nu and J_nu(s) / s^nu share the same limit at s = 0
    limit = 1.0 / (2.0**nu * special.gamma(nu + 1.0))
    ratio = np.where(sigma > 1e-8, ratio, limit)
    return norm * ratio


class BlobTable:
    """Radial lookup tables of a blob and of its Fourier transform.

    Parameters
    ----------
    radius: float
        Blob radius in (padded) Fourier voxels.
    alpha: float
        Blob shape parameter.
    order: int
        Order of the Bessel function.
    n_samples: int, default 10000
        Number of sampling steps of each table.
    max_frequency: float, default 1.0
        Largest tabulated frequency of the transform, in cycles per voxel.
    """

    def __init__(
        self,
        radius: float,
        alpha: float,
        order: int = 0,
        n_samples: int = 10000,
        max_frequency: float = 1.0,
    ):
        self.radius = float(radius)
        self.alpha = float(alpha)
        self.order = int(order)
        self.n_samples = int(n_samples)
        self.max_frequency = float(max_frequency)

        self.sampling = self.radius / self.n_samples
        self.frequency_sampling = self.max_frequency / self.n_samples
        r = np.linspace(0.0, self.radius, self.n_samples + 1)
        nu = np.linspace(0.0, self.max_frequency, self.n_samples + 1)
        self.values = torch.as_tensor(
            kaiser_value(r, self.radius, self.alpha, self.order)
        )
        self.fourier_values = torch.as_tensor(
            kaiser_fourier_value(nu, self.radius, self.alpha, self.order)
        )

    def __repr__(self) -> str:
        return (
            f"BlobTable(radius={self.radius}, alpha={self.alpha}, "
            f"order={self.order}, n_samples={self.n_samples})"
        )

    @staticmethod
    def _lookup(
        table: torch.Tensor, x: torch.Tensor, sampling: float
    ) -> torch.Tensor:
        x = torch.as_tensor(x)
        idx = torch.round(torch.abs(x) / sampling).long()
        inside = idx < table.shape[0]
        values = table.to(x.device)[torch.clamp(idx, max=table.shape[0] - 1)]
        values = torch.where(inside, values, torch.zeros_like(values))
        return values.to(x.dtype) if x.is_floating_point() else values

    def footprint(self, distance: torch.Tensor) -> torch.Tensor:
        """Blob value at `distance`, zero outside of the blob's support."""
        return self._lookup(self.values, distance, self.sampling)

    def fourier_profile(
        self, frequency: torch.Tensor, normalise: bool = True
    ) -> torch.Tensor:
        """Fourier transform of the blob at `frequency`.

        With `normalise` the profile is scaled to 1 at the zero frequency, which
        makes it a real-space multiplier that leaves the mean of a map unchanged.
        Frequencies beyond `max_frequency` evaluate to zero.
        """
        profile = self._lookup(self.fourier_values, frequency, self.frequency_sampling)
        if normalise is True:
            profile = profile / float(self.fourier_values[0])
        return profile
