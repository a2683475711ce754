"""
watfAdapt - Hierarchical adaptive refinement for finite element models

Refining a mesh invalidates everything built on it: function spaces,
functions, forms, boundary conditions, error control data and mesh
functions. watfAdapt propagates a refinement through these entities once,
caches each result as the child of the refined entity, and remaps boundary
markers and mesh function values through the cell/facet lineage recorded by
the refinement algorithm.

Key modules:
- common: Parent/child link (Hierarchical) and error types
- discretization: Simplicial mesh, mesh functions, elements, dof maps,
  function spaces, mesh subdivision
- geometry: Mesh primitives
- function: Function, Constant, Expression
- fem: Forms, boundary conditions, variational problems, error control
- adaptivity: Refiners and marker remapping
- postprocess / visualization: VTK export and matplotlib plots

Quick start:
    from watfAdapt.geometry import make_unit_square_mesh
    from watfAdapt.discretization import FiniteElement, FunctionSpace
    from watfAdapt.function import Function, Expression
    from watfAdapt.fem import DirichletBC
    from watfAdapt.adaptivity import adapt

    mesh = make_unit_square_mesh(1, 1)
    V = FunctionSpace(mesh, FiniteElement("CG", 2, 1))
    g = Function(V)
    g.interpolate(Expression(lambda x: x[0] + x[1]))
    bc = DirichletBC(V, g, [(0, 2)])

    fine_bc = adapt(bc)          # refines mesh, space and g on the way
    fine_mesh = adapt(mesh)      # returns the mesh refined above
    assert fine_bc.function_space.mesh is fine_mesh
"""

__version__ = "0.1.0"
__author__ = "Wataru Fukuda"

# Core imports for convenience
from .common import Hierarchical, AdaptivityError, MissingLineageError
from .discretization.mesh import Mesh
from .discretization.mesh_function import MeshFunction
from .discretization.element import FiniteElement, MixedElement, VectorElement
from .discretization.function_space import FunctionSpace, SubSpace
from .function import Function, Constant, Expression
from .fem import CompiledForm, Form, DirichletBC, VariationalProblem, ErrorControl
from .adaptivity import adapt, adapt_markers
