import torch

from ttrecon import BackProjectorConfig, GridPair, accumulate_parallel
from ttrecon.back_projection import backproject_2d_to_3d, backrotate_2d
from ttrecon.transformations import R_2d, euler_to_matrix


def random_dfts(shape, seed=0):
    generator = torch.Generator().manual_seed(seed)
    return torch.randn(shape, dtype=torch.complex128, generator=generator)


def test_accumulate_parallel_matches_serial_insertion():
    config = BackProjectorConfig(ori_size=8, r_min_nn=2, dtype=torch.float64)
    dfts = random_dfts((10, 8, 5))
    matrices = euler_to_matrix(*torch.rand((3, 10), dtype=torch.float64) * 360)
    serial = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    backproject_2d_to_3d(serial, config, dfts, matrices)

    single = accumulate_parallel(config, dfts, matrices, n_workers=1, batch_size=4)
    multiple = accumulate_parallel(config, dfts, matrices, n_workers=3, batch_size=2)
    for grid in (single, multiple):
        assert torch.allclose(grid.data, serial.data)
        assert torch.allclose(grid.weight, serial.weight)


def test_accumulate_parallel_with_weights_and_2d_reference():
    config = BackProjectorConfig(ori_size=8, ref_dim=2, dtype=torch.float64)
    dfts = random_dfts((6, 8, 5))
    matrices = R_2d(torch.linspace(0, 300, 6, dtype=torch.float64))
    weights = torch.rand((8, 5), dtype=torch.float64)
    serial = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    backrotate_2d(serial, config, dfts, matrices, weights=weights)
    grid = accumulate_parallel(
        config, dfts, matrices, weights=weights, n_workers=2, progress=True
    )
    assert grid.shape == (16, 9)
    assert torch.allclose(grid.data, serial.data)
    assert torch.allclose(grid.weight, serial.weight)


def test_accumulate_parallel_without_transforms():
    config = BackProjectorConfig(ori_size=8)
    grid = accumulate_parallel(
        config, torch.zeros((0, 8, 5), dtype=torch.complex64), torch.zeros((0, 3, 3))
    )
    assert grid.shape == config.grid_shape
    assert torch.all(grid.weight == 0)
