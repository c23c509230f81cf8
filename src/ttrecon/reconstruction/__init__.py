"""Reconstruction of real-space maps from accumulated grid pairs."""

from .decenter import decenter, recenter
from .reconstruct import ReconstructionResult, iterate_preweighting, reconstruct
from .regularisation import MapSpectra, add_map_regularisation, fsc_to_tau2
from .windowing import (
    convolute_blob_real_space,
    gridding_correct,
    window_to_oridim_real_space,
)

__all__ = [
    "MapSpectra",
    "ReconstructionResult",
    "add_map_regularisation",
    "convolute_blob_real_space",
    "decenter",
    "fsc_to_tau2",
    "gridding_correct",
    "iterate_preweighting",
    "reconstruct",
    "recenter",
    "window_to_oridim_real_space",
]
