"""Example of ttrecon.BackProjector usage on a synthetic C4-symmetric object."""

from pathlib import Path

import mrcfile
import numpy as np
import torch
from scipy.spatial.transform import Rotation

from ttrecon import (
    BackProjector,
    BackProjectorConfig,
    Interpolator,
    SymmetryList,
    cyclic_operators,
)

SIZE = 48
N_ORIENTATIONS = 500
PIXEL_SIZE = 2.0
OUTPUT_DIR = Path(__file__).parent.resolve().joinpath("data")

# Set the device for running
DEVICE = "cpu"

# four gaussian blobs related by a 4-fold rotation around Z
CENTERS = torch.tensor(
    [[6.0, 0.0, 3.0], [0.0, 6.0, 3.0], [-6.0, 0.0, 3.0], [0.0, -6.0, 3.0]]
)
SIGMA = 2.5


def project(matrices: torch.Tensor) -> torch.Tensor:
    """Analytical projections of the gaussians, `(b, SIZE, SIZE)`."""
    y, x = torch.meshgrid(
        torch.arange(SIZE, dtype=torch.float64) - SIZE // 2,
        torch.arange(SIZE, dtype=torch.float64) - SIZE // 2,
        indexing="ij",
    )
    images = torch.zeros((matrices.shape[0], SIZE, SIZE), dtype=torch.float64)
    for center in CENTERS.to(torch.float64):
        u = torch.einsum("bi,i->b", matrices[:, :, 0], center)
        v = torch.einsum("bi,i->b", matrices[:, :, 1], center)
        d2 = (x - u[:, None, None]) ** 2 + (y - v[:, None, None]) ** 2
        images += SIGMA * np.sqrt(2 * np.pi) * torch.exp(-d2 / (2 * SIGMA**2))
    return images


config = BackProjectorConfig(
    ori_size=SIZE,
    interpolator=Interpolator.TRILINEAR,
    padding_factor=2,
    r_min_nn=2,
    dtype=torch.float64,
    device=DEVICE,
)
backprojector = BackProjector(config, symmetry=SymmetryList(cyclic_operators(4)))

quaternions = np.random.default_rng(0).normal(size=(N_ORIENTATIONS, 4))
matrices = torch.as_tensor(
    Rotation.from_quat(quaternions).as_matrix(), dtype=torch.float64
)
images = project(matrices)
dfts = torch.fft.fftshift(
    torch.fft.rfftn(torch.fft.ifftshift(images, dim=(-2, -1)), dim=(-2, -1)), dim=-2
)

backprojector.accumulate(dfts, matrices, n_workers=4, progress=True)
backprojector.enforce_hermitian_symmetry()
backprojector.symmetrise()
result = backprojector.reconstruct(max_iter_preweight=10)

OUTPUT_DIR.mkdir(exist_ok=True)
mrcfile.write(
    OUTPUT_DIR.joinpath("c4_gaussians.mrc"),
    result.volume.detach().cpu().numpy().astype(np.float32),
    voxel_size=PIXEL_SIZE,
    overwrite=True,
)
