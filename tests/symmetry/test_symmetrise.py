import pytest
import torch

from ttrecon import DimensionMismatchError, GridPair
from ttrecon.symmetry import (
    SymmetryList,
    cyclic_operators,
    dihedral_operators,
    symmetrise,
)
from ttrecon.transformations import R_2d
from ttrecon.utils import squared_radius


def random_grid(shape):
    data = torch.randn(shape, dtype=torch.complex128)
    weight = torch.rand(shape, dtype=torch.float64)
    return GridPair(data=data, weight=weight)


def test_symmetry_list():
    c4 = SymmetryList(cyclic_operators(4))
    assert c4.order == 4
    assert c4.ndim == 3
    assert torch.allclose(c4.operators[0], torch.eye(3, dtype=torch.float64))
    identity = torch.eye(3, dtype=torch.float64).expand(4, 3, 3)
    operators = c4.operators
    assert torch.allclose(operators @ operators.transpose(-1, -2), identity)
    assert SymmetryList(dihedral_operators(3)).order == 6
    assert SymmetryList(torch.eye(3)).order == 1
    assert SymmetryList.identity(2).ndim == 2
    with pytest.raises(DimensionMismatchError):
        SymmetryList(torch.zeros((3, 2, 3)))


def test_symmetrise_with_identity_is_a_no_op():
    grid = random_grid((8, 8, 5))
    original = grid.clone()
    symmetrise(grid, SymmetryList.identity())
    assert torch.equal(grid.data, original.data)
    assert torch.equal(grid.weight, original.weight)
    symmetrise(grid, SymmetryList(cyclic_operators(1)), max_r2=9)
    assert torch.equal(grid.data, original.data)


def test_symmetrise_c2():
    grid = random_grid((8, 8, 5))
    original = grid.clone()
    symmetrise(grid, SymmetryList(cyclic_operators(2)), max_r2=9)
    inside = squared_radius((8, 8, 5)) <= 9
    assert torch.equal(grid.data[~inside], original.data[~inside])
    assert torch.equal(grid.weight[~inside], original.weight[~inside])
    # a 2-fold around Z maps (x, y, z) onto (-x, -y, z), stored as the
    # conjugate at (x, y, -z)
    for iz in range(1, 8):
        for iy in range(8):
            for ix in range(1, 5):
                if ix**2 + (iy - 4) ** 2 + (iz - 4) ** 2 > 9:
                    continue
                mate = torch.conj(grid.data[8 - iz, iy, ix])
                assert torch.allclose(grid.data[iz, iy, ix], mate)
                weight_mate = grid.weight[8 - iz, iy, ix]
                assert torch.allclose(grid.weight[iz, iy, ix], weight_mate)
                original_mate = torch.conj(original.data[8 - iz, iy, ix])
                expected = (original.data[iz, iy, ix] + original_mate) / 2
                assert torch.allclose(grid.data[iz, iy, ix], expected)


def test_symmetrise_dimension_mismatch():
    grid = random_grid((8, 8, 5))
    c4_2d = R_2d(torch.tensor([0.0, 90.0, 180.0, 270.0]))
    with pytest.raises(DimensionMismatchError):
        symmetrise(grid, SymmetryList(c4_2d))
