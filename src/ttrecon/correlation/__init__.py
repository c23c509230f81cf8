"""Resolution estimation between independently accumulated grid pairs."""

from .fourier_shell_correlation import (
    calculate_downsampled_fourier_shell_correlation,
    get_downsampled_average,
)

__all__ = [
    "calculate_downsampled_fourier_shell_correlation",
    "get_downsampled_average",
]
