"""
Geometry module: simple mesh primitives.
"""

from .primitives import (
    make_interval_mesh,
    make_unit_interval_mesh,
    make_rectangle_mesh,
    make_unit_square_mesh,
)
