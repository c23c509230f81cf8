"""Scatter and gather interpolation on half-stored Fourier grids."""

from .gather import sample_half_grid
from .scatter import insert_into_half_grid

__all__ = [
    "insert_into_half_grid",
    "sample_half_grid",
]
