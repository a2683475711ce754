"""
Pytest configuration and shared fixtures for adaptivity tests.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add the parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from watfAdapt.geometry.primitives import make_unit_square_mesh, make_unit_interval_mesh
from watfAdapt.discretization.element import FiniteElement, MixedElement
from watfAdapt.discretization.function_space import FunctionSpace


@pytest.fixture
def tolerance():
    """Default tolerance for floating point comparisons."""
    return 1e-12


@pytest.fixture
def square_mesh():
    """Unit square split into two triangles: cells (0, 1, 3) and (0, 3, 2)."""
    return make_unit_square_mesh(1, 1)


@pytest.fixture
def square_mesh_4x4():
    """Unit square with 4 x 4 squares (32 triangles)."""
    return make_unit_square_mesh(4, 4)


@pytest.fixture
def interval_mesh():
    """Unit interval with 4 cells."""
    return make_unit_interval_mesh(4)


@pytest.fixture
def cg1_space(square_mesh):
    """Continuous piecewise linear space on the two-triangle square."""
    return FunctionSpace(square_mesh, FiniteElement("CG", 2, 1))


@pytest.fixture
def mixed_space(square_mesh):
    """Mixed CG1 x DG0 space on the two-triangle square."""
    element = MixedElement([FiniteElement("CG", 2, 1), FiniteElement("DG", 2, 0)])
    return FunctionSpace(square_mesh, element)
