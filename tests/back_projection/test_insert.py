import pytest
import torch

from ttrecon import BackProjectorConfig, DimensionMismatchError, GridPair
from ttrecon.back_projection import (
    backproject_2d_to_3d,
    backrotate_2d,
    backrotate_3d,
    insert_fourier_transform,
)
from ttrecon.transformations import euler_to_matrix


def random_dft(shape, seed=0):
    generator = torch.Generator().manual_seed(seed)
    return torch.randn(shape, dtype=torch.complex128, generator=generator)


def test_backproject_identity_pose_fills_central_plane():
    # r_min_nn beyond r_max forces nearest-neighbour insertion everywhere
    config = BackProjectorConfig(ori_size=8, r_min_nn=10, dtype=torch.float64)
    grid = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    image = random_dft((8, 5))
    backproject_2d_to_3d(grid, config, image, torch.eye(3))
    for iy in range(8):
        for ix in range(5):
            if ix**2 + (iy - 4) ** 2 > 16:
                continue
            assert torch.allclose(grid.data[8, 2 * iy, 2 * ix], image[iy, ix])
            assert grid.weight[8, 2 * iy, 2 * ix] == 1
    assert torch.sum(grid.weight[:8]) == 0
    assert torch.sum(grid.weight[9:]) == 0


def test_uniform_weights_equal_omitted_weights():
    config = BackProjectorConfig(ori_size=8, r_min_nn=2, dtype=torch.float64)
    images = random_dft((5, 8, 5))
    matrices = euler_to_matrix(*torch.rand((3, 5), dtype=torch.float64) * 360)
    unweighted = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    weighted = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    backproject_2d_to_3d(unweighted, config, images, matrices)
    backproject_2d_to_3d(
        weighted, config, images, matrices, weights=torch.ones((5, 8, 5))
    )
    assert torch.allclose(weighted.data, unweighted.data)
    assert torch.allclose(weighted.weight, unweighted.weight)


def test_weights_scale_data_and_weight():
    config = BackProjectorConfig(ori_size=8, r_min_nn=2, dtype=torch.float64)
    image = random_dft((8, 5))
    matrix = euler_to_matrix(10.0, 20.0, 30.0).to(torch.float64)
    single = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    double = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    backproject_2d_to_3d(single, config, image, matrix)
    backproject_2d_to_3d(double, config, image, matrix, weights=2 * torch.ones(8, 5))
    assert torch.allclose(double.data, 2 * single.data)
    assert torch.allclose(double.weight, 2 * single.weight)


def test_inverse_pose_uses_transpose():
    config = BackProjectorConfig(ori_size=8, r_min_nn=2, dtype=torch.float64)
    images = random_dft((3, 8, 5))
    matrices = euler_to_matrix(*torch.rand((3, 3), dtype=torch.float64) * 360)
    a = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    b = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    backproject_2d_to_3d(a, config, images, matrices, inverse=True)
    backproject_2d_to_3d(b, config, images, matrices.transpose(-1, -2))
    assert torch.allclose(a.data, b.data)
    assert torch.allclose(a.weight, b.weight)


def test_r_max_limits_inserted_frequencies():
    config = BackProjectorConfig(ori_size=8, r_min_nn=10, dtype=torch.float64)
    grid = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    backproject_2d_to_3d(grid, config, random_dft((8, 5)), torch.eye(3), r_max=2)
    assert torch.count_nonzero(grid.weight) == 9  # half disc of radius 2
    assert torch.sum(grid.weight[8, :, 5:]) == 0


def test_backrotate_2d_identity():
    config = BackProjectorConfig(
        ori_size=8, ref_dim=2, r_min_nn=10, dtype=torch.float64
    )
    grid = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    image = random_dft((8, 5))
    backrotate_2d(grid, config, image, torch.eye(2))
    assert torch.allclose(grid.data[6, 4], image[3, 2])
    assert torch.allclose(grid.data[8, 0], image[4, 0])


def test_backrotate_3d_identity():
    config = BackProjectorConfig(
        ori_size=8, data_dim=3, r_min_nn=10, dtype=torch.float64
    )
    grid = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    volume = random_dft((8, 8, 5))
    backrotate_3d(grid, config, volume, torch.eye(3))
    assert torch.allclose(grid.data[6, 10, 2], volume[3, 5, 1])
    assert torch.allclose(grid.data[8, 8, 0], volume[4, 4, 0])
    n_inside = sum(
        1
        for z in range(-4, 4)
        for y in range(-4, 4)
        for x in range(5)
        if x**2 + y**2 + z**2 <= 16
    )
    assert torch.sum(grid.weight) == n_inside


def test_insert_fourier_transform_dispatch():
    config = BackProjectorConfig(ori_size=8, r_min_nn=10, dtype=torch.float64)
    grid = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    insert_fourier_transform(grid, config, random_dft((8, 5)), torch.eye(3))
    assert torch.count_nonzero(grid.weight[8]) > 0
    assert torch.count_nonzero(grid.weight[6]) == 0
    insert_fourier_transform(grid, config, random_dft((8, 8, 5)), torch.eye(3))
    assert torch.count_nonzero(grid.weight[6]) > 0

    config_2d = BackProjectorConfig(ori_size=8, ref_dim=2, dtype=torch.float64)
    grid_2d = GridPair.zeros(config_2d.grid_shape, dtype=config_2d.dtype)
    insert_fourier_transform(grid_2d, config_2d, random_dft((8, 5)), torch.eye(2))
    assert torch.count_nonzero(grid_2d.weight) > 0


def test_dimension_mismatches():
    config = BackProjectorConfig(ori_size=8, dtype=torch.float64)
    grid = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    config_2d = BackProjectorConfig(ori_size=8, ref_dim=2, dtype=torch.float64)
    grid_2d = GridPair.zeros(config_2d.grid_shape, dtype=config_2d.dtype)
    with pytest.raises(DimensionMismatchError):
        # not half-stored
        backproject_2d_to_3d(grid, config, random_dft((8, 8)), torch.eye(3))
    with pytest.raises(DimensionMismatchError):
        backproject_2d_to_3d(grid, config, random_dft((8, 5)), torch.eye(2))
    with pytest.raises(DimensionMismatchError):
        backproject_2d_to_3d(grid_2d, config_2d, random_dft((8, 5)), torch.eye(3))
    with pytest.raises(DimensionMismatchError):
        backrotate_2d(grid, config, random_dft((8, 5)), torch.eye(2))
    with pytest.raises(DimensionMismatchError):
        backrotate_3d(grid_2d, config_2d, random_dft((8, 8, 5)), torch.eye(3))
    with pytest.raises(DimensionMismatchError):
        volume = random_dft((8, 8, 5))
        insert_fourier_transform(grid_2d, config_2d, volume, torch.eye(3))
    with pytest.raises(DimensionMismatchError):
        insert_fourier_transform(grid, config, random_dft((2, 8, 8, 5)), torch.eye(3))
    with pytest.raises(DimensionMismatchError):
        backproject_2d_to_3d(
            grid, config, random_dft((8, 5)), torch.eye(3), weights=torch.ones(6, 4)
        )
    # dimension errors are configuration errors
    with pytest.raises(ValueError):
        backproject_2d_to_3d(grid, config, random_dft((8, 5)), torch.eye(2))


def test_pose_batch_must_match_transform_batch():
    config = BackProjectorConfig(ori_size=8, dtype=torch.float64)
    grid = GridPair.zeros(config.grid_shape, dtype=config.dtype)
    images = random_dft((3, 8, 5))
    with pytest.raises(DimensionMismatchError):
        backproject_2d_to_3d(grid, config, images, torch.eye(3).expand(2, 3, 3))
    with pytest.raises(DimensionMismatchError):
        backproject_2d_to_3d(grid, config, images, torch.eye(3).expand(1, 3, 3, 3))
    # a single pose is shared by the whole batch
    backproject_2d_to_3d(grid, config, images, torch.eye(3).expand(1, 3, 3))
    assert torch.sum(grid.weight) > 0
