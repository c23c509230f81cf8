import torch

from ttrecon.transformations import R_2d, Rx, Ry, Rz, euler_to_matrix


def test_rotation_matrices():
    x = torch.tensor([1.0, 0.0, 0.0])
    assert torch.allclose(Rz(90.0) @ x, torch.tensor([0.0, 1.0, 0.0]), atol=1e-6)
    assert torch.allclose(Ry(90.0) @ x, torch.tensor([0.0, 0.0, -1.0]), atol=1e-6)
    y = torch.tensor([0.0, 1.0, 0.0])
    assert torch.allclose(Rx(90.0) @ y, torch.tensor([0.0, 0.0, 1.0]), atol=1e-6)
    assert Rz(torch.zeros((2, 5))).shape == (2, 5, 3, 3)
    assert R_2d(torch.tensor([30.0, 60.0])).shape == (2, 2, 2)


def test_euler_to_matrix_is_a_rotation():
    angles = torch.rand((3, 10), dtype=torch.float64) * 360
    matrices = euler_to_matrix(*angles)
    assert matrices.shape == (10, 3, 3)
    identity = torch.eye(3, dtype=torch.float64).expand(10, 3, 3)
    assert torch.allclose(matrices @ matrices.transpose(-1, -2), identity)
    determinants = torch.linalg.det(matrices)
    assert torch.allclose(determinants, torch.ones(10, dtype=torch.float64))
    # tilt only rotates around Y
    assert torch.allclose(euler_to_matrix(0.0, 40.0, 0.0), Ry(40.0))


def test_axis_rotations_are_right_handed():
    angles = torch.tensor([15.0, 120.0], dtype=torch.float64)
    quarter = torch.tensor(90.0, dtype=torch.float64)
    x, y, z = torch.eye(3, dtype=torch.float64)
    # rotating each basis vector a quarter turn yields the next one
    assert torch.allclose(Rx(quarter) @ y, z, atol=1e-12)
    assert torch.allclose(Ry(quarter) @ z, x, atol=1e-12)
    assert torch.allclose(Rz(quarter) @ x, y, atol=1e-12)
    for rotation in (Rx, Ry, Rz):
        matrices = rotation(angles)
        assert matrices.dtype == torch.float64
        assert torch.allclose(matrices @ rotation(-angles), torch.eye(3).double())
