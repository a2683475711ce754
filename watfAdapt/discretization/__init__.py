"""
Discretization module.

Provides:
- Mesh: Simplicial mesh with lazily computed facets and lineage data
- MeshFunction: Values indexed by mesh entities of one dimension
- FiniteElement / MixedElement / VectorElement: Local element descriptions
- DofMap: Cell-to-global degree-of-freedom numbering
- FunctionSpace: Mesh + element + dof map
- refine_uniform / refine_local: Mesh subdivision with lineage
"""

from .mesh import Mesh, MeshData, NO_PARENT, PARENT_CELL, PARENT_FACET
from .mesh_function import MeshFunction, cell_function, facet_function
from .element import FiniteElement, MixedElement, VectorElement
from .dofmap import DofMap
from .function_space import FunctionSpace, SubSpace
from .refinement import refine_uniform, refine_local
