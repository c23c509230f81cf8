"""3x3 and 2x2 rotation matrices.

Functions in this module generate matrices which left-multiply column vectors containing
`xyz` (or `xy`) coordinates. A pose matrix maps frequencies of a projection image onto
frequencies of the reconstructed object.
"""

import einops
import torch

# the plane (i, j) rotated by a right-handed rotation around each axis
_ROTATION_PLANES = {"x": (1, 2), "y": (2, 0), "z": (0, 1)}


def _axis_rotation(angles_degrees: torch.Tensor, axis: str) -> torch.Tensor:
    angles_degrees = torch.atleast_1d(torch.as_tensor(angles_degrees))
    angles_packed, ps = einops.pack([angles_degrees], pattern="*")  # to 1d
    angles_radians = torch.deg2rad(angles_packed)
    c = torch.cos(angles_radians)
    s = torch.sin(angles_radians)
    i, j = _ROTATION_PLANES[axis]
    matrices = einops.repeat(
        torch.eye(3, dtype=c.dtype), "i j -> n i j", n=angles_packed.shape[0]
    ).clone()
    matrices[:, i, i] = c
    matrices[:, i, j] = -s
    matrices[:, j, i] = s
    matrices[:, j, j] = c
    [matrices] = einops.unpack(matrices, packed_shapes=ps, pattern="* i j")
    return matrices


def Rx(angles_degrees: torch.Tensor) -> torch.Tensor:
    """3x3 matrices for a rotation of `xyz` coordinates around the X-axis.

    Parameters
    ----------
    angles_degrees: torch.Tensor
        `(..., )` array of angles

    Returns
    -------
    matrices: `(..., 3, 3)` array of 3x3 rotation matrices.
    """
    return _axis_rotation(angles_degrees, axis="x")


def Ry(angles_degrees: torch.Tensor) -> torch.Tensor:
    """3x3 matrices for a rotation of `xyz` coordinates around the Y-axis."""
    return _axis_rotation(angles_degrees, axis="y")


def Rz(angles_degrees: torch.Tensor) -> torch.Tensor:
    """3x3 matrices for a rotation of `xyz` coordinates around the Z-axis."""
    return _axis_rotation(angles_degrees, axis="z")


def R_2d(angles_degrees: torch.Tensor) -> torch.Tensor:
    """2x2 matrices for an in-plane rotation of `xy` coordinates.

    Parameters
    ----------
    angles_degrees: torch.Tensor
        `(..., )` array of angles

    Returns
    -------
    matrices: `(..., 2, 2)` array of 2x2 rotation matrices.
    """
    return Rz(angles_degrees)[..., :2, :2]


def euler_to_matrix(
    rot: torch.Tensor, tilt: torch.Tensor, psi: torch.Tensor
) -> torch.Tensor:
    """Rotation matrices from ZYZ Euler angles in degrees.

    The first rotation `rot` is applied around Z, then `tilt` around Y and finally
    `psi` around Z again.

    Returns
    -------
    matrices: torch.Tensor
        `(..., 3, 3)` array of rotation matrices.
    """
    return Rz(psi) @ Ry(tilt) @ Rz(rot)
