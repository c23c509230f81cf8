"""Stateful back-projector owning one grid pair for a reconstruction job."""

import torch
from rich.console import Console

from . import back_projection, correlation, low_resolution, reconstruction
from .blob import BlobTable
from .config import BackProjectorConfig
from .exceptions import ConfigurationError
from .grid import GridPair
from .parallel import accumulate_parallel
from .symmetry import SymmetryList, enforce_hermitian_symmetry, symmetrise

console = Console()


class BackProjector:
    """Accumulate Fourier transforms and reconstruct them into a real-space map.

    The back-projector combines a configuration, the grid pair being accumulated,
    the blob table of the configured blob and the symmetry of the object.

    Parameters
    ----------
    config: BackProjectorConfig
        Configuration of the reconstruction job.
    symmetry: SymmetryList | None, default None
        Point group of the object, no symmetry if None.
    """

    def __init__(
        self, config: BackProjectorConfig, symmetry: SymmetryList | None = None
    ):
        self.config = config
        self.symmetry = (
            SymmetryList.identity(config.ref_dim) if symmetry is None else symmetry
        )
        if self.symmetry.ndim != config.ref_dim:
            raise ConfigurationError(
                f"{self.symmetry.ndim}D symmetry operators do not match "
                f"ref_dim={config.ref_dim}."
            )
        # blob radius in padded voxels
        self.blob = BlobTable(
            radius=config.blob_radius * config.padding_factor,
            alpha=config.blob_alpha,
            order=config.blob_order,
        )
        self.r_max = config.current_r_max
        self.grid = GridPair.zeros(
            config.grid_shape, dtype=config.dtype, device=config.device
        )

    def __repr__(self) -> str:
        return (
            f"BackProjector(ori_size={self.config.ori_size}, "
            f"ref_dim={self.config.ref_dim}, r_max={self.r_max}, "
            f"symmetry_order={self.symmetry.order})"
        )

    @property
    def max_r2(self) -> float:
        """Squared maximum radius in padded voxels."""
        return float((self.r_max * self.config.padding_factor) ** 2)

    def initialise_data_and_weight(self, current_size: int | None = None) -> None:
        """Allocate a zeroed grid pair, limiting frequencies to `current_size // 2`."""
        if current_size is None:
            current_size = self.config.ori_size
        if not 0 < current_size <= self.config.ori_size:
            raise ConfigurationError(
                f"current_size should lie within (0, {self.config.ori_size}], "
                f"got {current_size}."
            )
        self.r_max = min(current_size // 2, self.config.current_r_max)
        self.grid = GridPair.zeros(
            self.config.grid_shape, dtype=self.config.dtype, device=self.config.device
        )

    def init_zeros(self, current_size: int | None = None) -> None:
        """Zero the grid pair at the start of an accumulation pass."""
        self.initialise_data_and_weight(current_size)

    def set_2d_fourier_transform(
        self,
        dft: torch.Tensor,
        matrix: torch.Tensor,
        inverse: bool = False,
        weights: torch.Tensor | None = None,
    ) -> None:
        """Insert one image or volume, dispatched on its dimensionality."""
        back_projection.insert_fourier_transform(
            self.grid,
            self.config,
            dft,
            matrix,
            inverse=inverse,
            weights=weights,
            r_max=self.r_max,
            blob=self.blob,
        )

    def backproject(
        self,
        images: torch.Tensor,
        matrices: torch.Tensor,
        inverse: bool = False,
        weights: torch.Tensor | None = None,
    ) -> None:
        """Insert central slices of one or more 2D images into the 3D grid pair."""
        back_projection.backproject_2d_to_3d(
            self.grid,
            self.config,
            images,
            matrices,
            inverse=inverse,
            weights=weights,
            r_max=self.r_max,
            blob=self.blob,
        )

    def backrotate_2d(
        self,
        images: torch.Tensor,
        matrices: torch.Tensor,
        inverse: bool = False,
        weights: torch.Tensor | None = None,
    ) -> None:
        back_projection.backrotate_2d(
            self.grid,
            self.config,
            images,
            matrices,
            inverse=inverse,
            weights=weights,
            r_max=self.r_max,
            blob=self.blob,
        )

    def backrotate_3d(
        self,
        volumes: torch.Tensor,
        matrices: torch.Tensor,
        inverse: bool = False,
        weights: torch.Tensor | None = None,
    ) -> None:
        back_projection.backrotate_3d(
            self.grid,
            self.config,
            volumes,
            matrices,
            inverse=inverse,
            weights=weights,
            r_max=self.r_max,
            blob=self.blob,
        )

    def accumulate(
        self,
        dfts: torch.Tensor,
        matrices: torch.Tensor,
        inverse: bool = False,
        weights: torch.Tensor | None = None,
        n_workers: int = 4,
        batch_size: int = 64,
        progress: bool = False,
    ) -> None:
        """Insert a stack of transforms with worker threads and add the result."""
        if progress is True:
            console.print(f"=== Accumulating {dfts.shape[0]} Fourier transforms.")
        accumulated = accumulate_parallel(
            self.config,
            dfts,
            matrices,
            weights=weights,
            inverse=inverse,
            n_workers=n_workers,
            batch_size=batch_size,
            r_max=self.r_max,
            blob=self.blob,
            progress=progress,
        )
        self.grid.add_(accumulated)

    def get_low_res_data_and_weight(self, lowres_r_max: int) -> GridPair:
        return low_resolution.get_low_res_data_and_weight(
            self.grid, self.config.padding_factor, lowres_r_max, self.r_max
        )

    def set_low_res_data_and_weight(
        self, low_res: GridPair, lowres_r_max: int
    ) -> None:
        low_resolution.set_low_res_data_and_weight(
            self.grid, low_res, self.config.padding_factor, lowres_r_max, self.r_max
        )

    def get_downsampled_average(self) -> torch.Tensor:
        return correlation.get_downsampled_average(
            self.grid, self.config.padding_factor
        )

    def calculate_downsampled_fourier_shell_correlation(
        self, average1: torch.Tensor, average2: torch.Tensor
    ) -> torch.Tensor:
        return correlation.calculate_downsampled_fourier_shell_correlation(
            average1, average2
        )

    def enforce_hermitian_symmetry(self) -> None:
        enforce_hermitian_symmetry(self.grid.data, self.grid.weight)

    def symmetrise(self) -> None:
        """Average the grid pair over the symmetry of the object."""
        symmetrise(self.grid, self.symmetry, max_r2=self.max_r2)

    def reconstruct(self, **kwargs) -> reconstruction.ReconstructionResult:
        """Reconstruct the accumulated grid pair, see `reconstruction.reconstruct`."""
        kwargs.setdefault("r_max", self.r_max)
        return reconstruction.reconstruct(self.grid, self.config, self.blob, **kwargs)

    def clone(self) -> "BackProjector":
        """Deep copy sharing no grid memory with this back-projector."""
        other = BackProjector(self.config, symmetry=self.symmetry)
        other.r_max = self.r_max
        other.grid = self.grid.clone()
        return other

    copy = clone
