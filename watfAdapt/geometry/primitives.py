"""
Factory functions for simple simplicial meshes.

Provides:
- make_interval_mesh / make_unit_interval_mesh: uniform 1D meshes
- make_rectangle_mesh / make_unit_square_mesh: structured triangle meshes

Triangle meshes number vertices x-fastest, v(i, j) = j * (nx + 1) + i,
and split each grid square into two triangles along a diagonal:
    "right": (v00, v10, v11), (v00, v11, v01)
    "left":  (v00, v10, v01), (v10, v11, v01)
All triangles are counter-clockwise.
"""

import numpy as np
from typing import Tuple

from ..discretization.mesh import Mesh


def make_interval_mesh(a: float, b: float, n: int) -> Mesh:
    """
    Create a uniform mesh of [a, b].

    Parameters:
        a, b: Interval end points
        n: Number of cells

    Returns:
        Mesh with n intervals
    """
    if n < 1:
        raise ValueError(f"Need at least one cell, got n={n}")
    if not b > a:
        raise ValueError(f"Invalid interval [{a}, {b}]")

    coordinates = np.linspace(a, b, n + 1)
    cells = np.column_stack([np.arange(n), np.arange(1, n + 1)])
    return Mesh(coordinates, cells)


def make_unit_interval_mesh(n: int) -> Mesh:
    """Create a uniform mesh of [0, 1] with n cells."""
    return make_interval_mesh(0.0, 1.0, n)


def make_rectangle_mesh(x_range: Tuple[float, float],
                        y_range: Tuple[float, float],
                        nx: int, ny: int,
                        diagonal: str = "right") -> Mesh:
    """
    Create a structured triangle mesh of a rectangle.

    Parameters:
        x_range: (x_min, x_max)
        y_range: (y_min, y_max)
        nx, ny: Number of grid squares in each direction
        diagonal: "right" or "left"

    Returns:
        Mesh with 2 * nx * ny triangles
    """
    if nx < 1 or ny < 1:
        raise ValueError(f"Need at least one square per direction, got ({nx}, {ny})")
    if diagonal not in ("right", "left"):
        raise ValueError(f"Unknown diagonal: {diagonal}. Use 'right' or 'left'.")

    x = np.linspace(x_range[0], x_range[1], nx + 1)
    y = np.linspace(y_range[0], y_range[1], ny + 1)
    X, Y = np.meshgrid(x, y)  # shape (ny+1, nx+1), x varies fastest when flattened
    coordinates = np.column_stack([X.ravel(), Y.ravel()])

    cells = []
    for j in range(ny):
        for i in range(nx):
            v00 = j * (nx + 1) + i
            v10 = v00 + 1
            v01 = v00 + (nx + 1)
            v11 = v01 + 1
            if diagonal == "right":
                cells.append((v00, v10, v11))
                cells.append((v00, v11, v01))
            else:
                cells.append((v00, v10, v01))
                cells.append((v10, v11, v01))

    return Mesh(coordinates, np.array(cells, dtype=np.int64))


def make_unit_square_mesh(nx: int, ny: int, diagonal: str = "right") -> Mesh:
    """Create a structured triangle mesh of the unit square."""
    return make_rectangle_mesh((0.0, 1.0), (0.0, 1.0), nx, ny, diagonal)
