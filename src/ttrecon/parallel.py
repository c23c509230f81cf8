"""Accumulation of many transforms into worker-private grid pairs."""

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial

import torch
from rich.progress import track

from .back_projection import backproject_2d_to_3d, backrotate_2d, backrotate_3d
from .blob import BlobTable
from .config import BackProjectorConfig
from .grid import GridPair, merge

log = logging.getLogger(__name__)


def _insert_function(config: BackProjectorConfig, dfts: torch.Tensor):
    if config.ref_dim == 2:
        return backrotate_2d
    if dfts.dim() == 4:
        return backrotate_3d
    return backproject_2d_to_3d


def _accumulate_chunk(
    indices: torch.Tensor,
    config: BackProjectorConfig,
    dfts: torch.Tensor,
    matrices: torch.Tensor,
    weights: torch.Tensor | None,
    inverse: bool,
    batch_size: int,
    r_max: int | None,
    blob: BlobTable | None,
) -> GridPair:
    """Accumulate the transforms at `indices` into a new, private grid pair."""
    grid = GridPair.zeros(config.grid_shape, dtype=config.dtype, device=config.device)
    insert = _insert_function(config, dfts)
    for batch in torch.split(indices, batch_size):
        insert(
            grid,
            config,
            dfts[batch],
            matrices[batch],
            inverse=inverse,
            weights=None if weights is None else weights[batch],
            r_max=r_max,
            blob=blob,
        )
    return grid


def accumulate_parallel(
    config: BackProjectorConfig,
    dfts: torch.Tensor,
    matrices: torch.Tensor,
    weights: torch.Tensor | None = None,
    inverse: bool = False,
    n_workers: int = 4,
    batch_size: int = 64,
    r_max: int | None = None,
    blob: BlobTable | None = None,
    progress: bool = False,
) -> GridPair:
    """Insert a stack of Fourier transforms using a pool of worker threads.

    Every worker accumulates a contiguous chunk of the stack into its own grid
    pair. The private grid pairs are summed afterwards, so the result does not
    depend on the number of workers.

    Parameters
    ----------
    config: BackProjectorConfig
        Configuration of the reconstruction job.
    dfts: torch.Tensor
        `(b, h, h // 2 + 1)` images or `(b, d, d, d // 2 + 1)` volumes.
    matrices: torch.Tensor
        `(b, 3, 3)` or `(b, 2, 2)` pose matrices.
    weights: torch.Tensor | None, default None
        Per-frequency weights with the shape of `dfts`.
    inverse: bool, default False
        Use the inverse of `matrices`.
    n_workers: int, default 4
        Number of worker threads.
    batch_size: int, default 64
        Number of transforms inserted at once by a worker.
    r_max: int | None, default None
        Maximum radius of inserted frequencies.
    blob: BlobTable | None, default None
        Blob used for `Interpolator.BLOB`.
    progress: bool, default False
        Show a progress bar over the chunks.

    Returns
    -------
    grid: GridPair
        Sum of the private grid pairs of all workers.
    """
    n = dfts.shape[0]
    n_workers = max(1, min(n_workers, n))
    if n == 0:
        return GridPair.zeros(
            config.grid_shape, dtype=config.dtype, device=config.device
        )
    if weights is not None:
        weights = torch.broadcast_to(weights, dfts.shape)
    chunks = torch.tensor_split(torch.arange(n), n_workers)
    accumulate = partial(
        _accumulate_chunk,
        config=config,
        dfts=dfts,
        matrices=torch.broadcast_to(
            torch.as_tensor(matrices), (n, *matrices.shape[-2:])
        ),
        weights=weights,
        inverse=inverse,
        batch_size=batch_size,
        r_max=r_max,
        blob=blob,
    )
    log.debug("accumulating %d transforms with %d workers", n, n_workers)
    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        grids = executor.map(accumulate, chunks)
        if progress is True:
            grids = track(grids, total=len(chunks), description="Backprojecting...")
        grids = list(grids)
    return merge(grids)
