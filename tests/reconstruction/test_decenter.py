import torch

from ttrecon.reconstruction import decenter, recenter
from ttrecon.utils import squared_radius


def test_decenter_masks_and_copies():
    grid = torch.randn((8, 8, 5), dtype=torch.complex128)
    decentered = decenter(grid, max_r2=5)
    # zero frequency moves to the first element
    assert decentered[0, 0, 0] == grid[4, 4, 0]
    assert decentered[1, 7, 1] == grid[5, 3, 1]
    inside = squared_radius((8, 8, 5)) <= 5
    centred = recenter(decentered)
    assert torch.equal(centred[inside], grid[inside])
    assert torch.all(centred[~inside] == 0)


def test_decenter_converts_precision():
    grid = torch.randn((8, 5), dtype=torch.complex128)
    narrowed = decenter(grid, max_r2=9, dtype=torch.complex64)
    assert narrowed.dtype == torch.complex64
    assert torch.equal(narrowed, decenter(grid, max_r2=9).to(torch.complex64))
    weight = torch.rand((8, 8, 5), dtype=torch.float32)
    widened = decenter(weight, max_r2=100, dtype=torch.float64)
    assert torch.equal(recenter(widened), weight.to(torch.float64))


def test_recenter_with_cutoff():
    grid = torch.randn((8, 8, 5), dtype=torch.complex64)
    centred = recenter(decenter(grid, max_r2=100), max_r2=4)
    inside = squared_radius((8, 8, 5)) <= 4
    assert torch.equal(centred[inside], grid[inside])
    assert torch.count_nonzero(centred[~inside]) == 0
