"""
Adaptivity module: refinement of meshes and dependent entities.

Provides:
- adapt: Refine any refinable entity (dispatch on type)
- adapt_mesh, adapt_function_space, adapt_function, adapt_form,
  adapt_dirichlet_bc, adapt_bc, adapt_mesh_function, adapt_error_control,
  adapt_problem: Refiners per entity kind
- adapt_markers: Coarse to fine boundary marker remapping
"""

from .adapt import (
    adapt,
    adapt_mesh,
    adapt_function_space,
    adapt_function,
    refine_coefficient,
    adapt_form,
    adapt_dirichlet_bc,
    adapt_bc,
    adapt_mesh_function,
    adapt_error_control,
    adapt_problem,
)
from .markers import adapt_markers, boundary_facet_children
from ..common.errors import (
    AdaptivityError,
    MissingLineageError,
    UnsupportedDimensionError,
    UnsupportedVariantError,
    HierarchyError,
)
