"""Module for back projection of Fourier transforms into a grid pair."""

from .insert import (
    backproject_2d_to_3d,
    backrotate_2d,
    backrotate_3d,
    insert_fourier_transform,
)

__all__ = [
    "backproject_2d_to_3d",
    "backrotate_2d",
    "backrotate_3d",
    "insert_fourier_transform",
]
