import torch

from ttrecon import GridPair
from ttrecon.correlation import (
    calculate_downsampled_fourier_shell_correlation,
    get_downsampled_average,
)


def test_fourier_shell_correlation_with_itself():
    average = torch.randn((16, 16, 9), dtype=torch.complex128)
    fsc = calculate_downsampled_fourier_shell_correlation(average, average)
    assert fsc.shape == (9,)
    assert fsc.dtype == torch.float64
    assert torch.allclose(fsc, torch.ones(9, dtype=torch.float64))


def test_fourier_shell_correlation_anticorrelated_and_empty():
    average = torch.randn((8, 8, 5), dtype=torch.complex128)
    fsc = calculate_downsampled_fourier_shell_correlation(average, -average)
    # the zero frequency shell is always 1
    assert fsc[0] == 1
    assert torch.allclose(fsc[1:], -torch.ones(4, dtype=torch.float64))
    empty = torch.zeros((8, 8, 5), dtype=torch.complex128)
    fsc = calculate_downsampled_fourier_shell_correlation(average, empty)
    assert torch.all(fsc[1:] == 0)


def test_downsampled_average_without_padding():
    data = torch.randn((8, 8, 5), dtype=torch.complex128)
    weight = torch.rand((8, 8, 5), dtype=torch.float64) + 0.5
    weight[0, 0, 0] = 0
    average = get_downsampled_average(GridPair(data=data, weight=weight), 1)
    assert average.shape == (8, 8, 5)
    assert average[0, 0, 0] == 0
    expected = data / weight
    assert torch.allclose(average[1:], expected[1:])


def test_downsampled_average_of_constant_ratio():
    weight = torch.rand((16, 16, 9), dtype=torch.float64) + 0.1
    data = (2 - 1j) * weight.to(torch.complex128)
    average = get_downsampled_average(GridPair(data=data, weight=weight), 2)
    assert average.shape == (8, 8, 5)
    expected = torch.full((8, 8, 5), 2 - 1j, dtype=torch.complex128)
    assert torch.allclose(average, expected)
    # 2D grids
    weight = torch.ones((16, 9), dtype=torch.float64)
    average = get_downsampled_average(GridPair(data=3 * weight + 0j, weight=weight), 2)
    assert average.shape == (8, 5)
    assert torch.allclose(average.real, torch.full((8, 5), 3.0, dtype=torch.float64))
