"""
Refinement of meshes and of everything built on them.

One function per entity kind. Each one:
1. Returns the existing child if the entity has already been refined
2. Refines the entities it depends on (mesh, spaces, coefficients, ...)
3. Builds a new entity from the refined dependencies
4. Links the new entity as the child of the original

Entities are never modified apart from the child link, so every other
holder of the original entity is unaffected. Refining several entities
against the same refined mesh shares the refined mesh, spaces and fields
between them.

Dependency graph (arrow = "is refined through"):

    ErrorControl --> Form (x8)
    VariationalProblem --> Form (x2), DirichletBC
    Form --> FunctionSpace, Function, MeshFunction
    DirichletBC --> FunctionSpace, Function, markers
    Function --> FunctionSpace --> Mesh

The target mesh argument is optional everywhere: when omitted, the mesh the
entity lives on is refined uniformly (or reused if already refined).

adapt(entity, ...) dispatches on the type of entity to the matching
function.
"""

import logging
from functools import singledispatch
from typing import Optional

import numpy as np

from ..common.errors import MissingLineageError, UnsupportedDimensionError, UnsupportedVariantError
from ..common.hierarchical import link
from ..discretization.mesh import Mesh, PARENT_CELL, PARENT_FACET
from ..discretization.mesh_function import MeshFunction
from ..discretization.function_space import FunctionSpace, SubSpace
from ..discretization.refinement import refine_uniform, refine_local
from ..function.function import Function
from ..fem.form import Form
from ..fem.bc import BoundaryCondition, DirichletBC
from ..fem.problem import VariationalProblem
from ..fem.error_control import ErrorControl
from ..io import config
from ..io.config import AdaptivityParameters
from .markers import adapt_markers

logger = logging.getLogger(__name__)


def _refined_child(entity, kind: str):
    """Existing child of entity, or None."""
    if entity.has_child():
        logger.debug(f"{kind} has already been refined, returning child")
        return entity.child()
    return None


# -----------------------------------------------------------------------------
# Mesh
# -----------------------------------------------------------------------------

def adapt_mesh(mesh: Mesh, cell_markers=None,
               parameters: Optional[AdaptivityParameters] = None) -> Mesh:
    """
    Refine a mesh.

    Parameters:
        mesh: Coarse mesh
        cell_markers: Cells to refine (boolean MeshFunction over cells or
            array); all cells if None
        parameters: Refinement parameters (module defaults if None)

    Returns:
        Refined mesh with parent_cell / parent_facet lineage
    """
    child = _refined_child(mesh, "Mesh")
    if child is not None:
        return child

    parameters = parameters if parameters is not None else config.parameters
    if cell_markers is None:
        refined_mesh = refine_uniform(mesh)
    else:
        refined_mesh = refine_local(mesh, cell_markers,
                                    algorithm=parameters.local_refinement_algorithm)

    link(mesh, refined_mesh)
    logger.info(f"Refined mesh: {mesh.num_cells} -> {refined_mesh.num_cells} cells")
    return refined_mesh


# -----------------------------------------------------------------------------
# Function space
# -----------------------------------------------------------------------------

def adapt_function_space(space: FunctionSpace, refined_mesh: Optional[Mesh] = None,
                         cell_markers=None) -> FunctionSpace:
    """
    Refine a function space.

    Parameters:
        space: Coarse space (full space or sub-space)
        refined_mesh: Target mesh; the space's mesh is refined if None
        cell_markers: Cell markers used to refine the mesh when
            refined_mesh is None

    Returns:
        Space with the same element on the refined mesh. A sub-space is
        refined through its root space and keeps its component path.
    """
    child = _refined_child(space, "Function space")
    if child is not None:
        return child

    if refined_mesh is None:
        refined_mesh = adapt_mesh(space.mesh, cell_markers)
    elif cell_markers is not None:
        raise ValueError("Pass either a refined mesh or cell markers, not both")

    if space.is_subspace:
        refined_root = adapt_function_space(space.root_space, refined_mesh)
        refined_space = SubSpace(refined_root, space.component)
    else:
        element = space.element.create_for(refined_mesh)
        dofmap = space.dofmap.rebuild_for(refined_mesh, element)
        refined_space = FunctionSpace(refined_mesh, element, dofmap)

    link(space, refined_space)
    logger.info(f"Refined function space: dim {space.dim} -> {refined_space.dim}")
    return refined_space


# -----------------------------------------------------------------------------
# Function
# -----------------------------------------------------------------------------

def adapt_function(function: Function, refined_mesh: Optional[Mesh] = None,
                   parameters: Optional[AdaptivityParameters] = None) -> Function:
    """
    Refine a function by interpolation onto the refined space.

    Functions refined as coefficients of forms or boundary conditions use
    the module defaults in config.parameters.

    Parameters:
        function: Coarse function
        refined_mesh: Target mesh; the function's mesh is refined if None
        parameters: Refinement parameters (module defaults if None);
            point_tolerance is used to locate dofs in the coarse mesh

    Returns:
        Function on the refined space
    """
    child = _refined_child(function, "Function")
    if child is not None:
        return child

    parameters = parameters if parameters is not None else config.parameters
    refined_space = adapt_function_space(function.function_space, refined_mesh)
    refined_function = Function(refined_space, name=function.name)
    refined_function.interpolate(function, tol=parameters.point_tolerance)

    link(function, refined_function)
    logger.info(f"Refined function {function.name or ''}: {refined_space.dim} coefficients")
    return refined_function


@singledispatch
def refine_coefficient(coefficient, refined_mesh: Mesh):
    """
    Refined counterpart of a coefficient.

    Values that do not live on a mesh (Constant, Expression) are returned
    unchanged; Functions are refined.
    """
    return coefficient


@refine_coefficient.register(Function)
def _refine_function_coefficient(coefficient: Function, refined_mesh: Mesh) -> Function:
    return adapt_function(coefficient, refined_mesh)


# -----------------------------------------------------------------------------
# Form
# -----------------------------------------------------------------------------

def adapt_form(form: Form, refined_mesh: Optional[Mesh] = None) -> Form:
    """
    Refine a form.

    Argument spaces and Function coefficients are refined, other coefficients
    are reused, the compiled integrand is shared and the sub-domain tags are
    refined.

    Parameters:
        form: Coarse form
        refined_mesh: Target mesh; the form's mesh is refined if None

    Returns:
        Form on the refined mesh
    """
    child = _refined_child(form, "Form")
    if child is not None:
        return child

    if refined_mesh is None:
        refined_mesh = adapt_mesh(form.mesh)

    refined_spaces = [adapt_function_space(V, refined_mesh) for V in form.function_spaces]
    refined_coefficients = [refine_coefficient(c, refined_mesh) for c in form.coefficients]

    refined_form = Form(form.compiled_form, refined_spaces, refined_coefficients)
    refined_form.mesh = refined_mesh

    for name, mesh_function in form.domains().items():
        setattr(refined_form, name, adapt_mesh_function(mesh_function, refined_mesh))

    link(form, refined_form)
    logger.info(f"Refined form '{form.compiled_form.name}'")
    return refined_form


# -----------------------------------------------------------------------------
# Boundary conditions
# -----------------------------------------------------------------------------

def adapt_dirichlet_bc(bc: DirichletBC, refined_mesh: Optional[Mesh] = None,
                       parent_space: Optional[FunctionSpace] = None) -> DirichletBC:
    """
    Refine a Dirichlet boundary condition.

    Parameters:
        bc: Coarse condition
        refined_mesh: Target mesh; the condition's mesh is refined if None
        parent_space: Full space containing the condition's sub-space
            (defaults to the sub-space's root space); ignored for full spaces

    Returns:
        Condition on the refined (sub-)space with remapped markers
    """
    child = _refined_child(bc, "DirichletBC")
    if child is not None:
        return child

    W = bc.function_space
    if refined_mesh is None:
        refined_mesh = adapt_mesh(W.mesh)

    if not W.is_subspace:
        V = adapt_function_space(W, refined_mesh)
    else:
        S = parent_space if parent_space is not None else W.root_space
        if S.is_subspace:
            raise ValueError("Parent space of a sub-space condition must be a full space")
        V = SubSpace(adapt_function_space(S, refined_mesh), W.component)

    refined_markers = adapt_markers(bc.markers, W.mesh, refined_mesh)
    refined_value = refine_coefficient(bc.value, refined_mesh)

    refined_bc = DirichletBC(V, refined_value, refined_markers)

    link(bc, refined_bc)
    logger.info(f"Refined DirichletBC: {bc.num_markers} -> {refined_bc.num_markers} markers")
    return refined_bc


@singledispatch
def adapt_bc(bc, refined_mesh: Optional[Mesh] = None,
             parent_space: Optional[FunctionSpace] = None):
    """Refine a boundary condition; only DirichletBC can be refined."""
    raise UnsupportedVariantError(
        f"Refinement of boundary conditions is only implemented for DirichletBC, "
        f"got {type(bc).__name__}"
    )


adapt_bc.register(DirichletBC, adapt_dirichlet_bc)


# -----------------------------------------------------------------------------
# Mesh function
# -----------------------------------------------------------------------------

def adapt_mesh_function(mesh_function: MeshFunction,
                        refined_mesh: Optional[Mesh] = None) -> MeshFunction:
    """
    Refine a cell or facet mesh function.

    Each fine entity takes the value of its coarse parent entity. Fine
    entities without a valid parent (facets created inside a coarse cell)
    get the sentinel max(values) + 1. Boolean mesh functions are refined
    into int64 mesh functions; integer dtypes that cannot hold the sentinel
    are widened.

    Parameters:
        mesh_function: Coarse mesh function of dimension tdim or tdim - 1
        refined_mesh: Target mesh; the function's mesh is refined if None

    Returns:
        Mesh function on the refined mesh

    Raises:
        UnsupportedDimensionError: For any other dimension
        MissingLineageError: If refined_mesh has no lineage for the dimension
    """
    child = _refined_child(mesh_function, "MeshFunction")
    if child is not None:
        return child

    mesh = mesh_function.mesh
    dim = mesh_function.dim
    if dim == mesh.tdim:
        lineage = PARENT_CELL
    elif dim == mesh.tdim - 1:
        lineage = PARENT_FACET
    else:
        raise UnsupportedDimensionError(
            f"Refinement of mesh functions of dimension {dim} is only implemented "
            f"for cells ({mesh.tdim}) and facets ({mesh.tdim - 1})"
        )

    if refined_mesh is None:
        refined_mesh = adapt_mesh(mesh)

    parent = refined_mesh.data.array(lineage)
    if parent is None:
        raise MissingLineageError(
            f"Unable to refine mesh function: refined mesh has no {lineage} information"
        )
    if len(parent) != refined_mesh.num_entities(dim):
        raise MissingLineageError(
            f"{lineage} has {len(parent)} entries, refined mesh has "
            f"{refined_mesh.num_entities(dim)} entities of dimension {dim}"
        )

    dtype = np.dtype(np.int64) if mesh_function.dtype == np.bool_ else mesh_function.dtype
    coarse_values = mesh_function.values.astype(dtype)
    max_value = coarse_values.max() if coarse_values.size else dtype.type(0)
    if np.issubdtype(dtype, np.integer):
        # Widen when max + 1 does not fit, e.g. 255 in uint8
        sentinel = int(max_value) + 1
        dtype = np.result_type(dtype, np.min_scalar_type(sentinel))
        coarse_values = coarse_values.astype(dtype)
        sentinel = dtype.type(sentinel)
    else:
        sentinel = max_value + 1

    in_range = (parent >= 0) & (parent < mesh_function.size)
    refined_values = np.full(len(parent), sentinel, dtype=dtype)
    refined_values[in_range] = coarse_values[parent[in_range]]

    refined_function = MeshFunction(refined_mesh, dim, dtype=dtype, values=refined_values)

    link(mesh_function, refined_function)
    logger.info(
        f"Refined mesh function of dimension {dim}: {mesh_function.size} -> "
        f"{refined_function.size} values, {int(np.sum(~in_range))} set to {sentinel}"
    )
    return refined_function


# -----------------------------------------------------------------------------
# Error control and variational problem
# -----------------------------------------------------------------------------

def adapt_error_control(error_control: ErrorControl,
                        refined_mesh: Optional[Mesh] = None) -> ErrorControl:
    """
    Refine the eight error control forms as a unit.

    Parameters:
        error_control: Coarse error control data
        refined_mesh: Target mesh; the mesh of a_star is refined if None

    Returns:
        ErrorControl with refined forms and the same linearity flag
    """
    child = _refined_child(error_control, "ErrorControl")
    if child is not None:
        return child

    if refined_mesh is None:
        refined_mesh = adapt_mesh(error_control.a_star.mesh)

    refined_forms = {name: adapt_form(form, refined_mesh)
                     for name, form in error_control.forms().items()}
    refined_error_control = ErrorControl(is_linear=error_control.is_linear, **refined_forms)

    link(error_control, refined_error_control)
    logger.info("Refined error control forms")
    return refined_error_control


def adapt_problem(problem: VariationalProblem,
                  refined_mesh: Optional[Mesh] = None) -> VariationalProblem:
    """
    Refine a variational problem.

    Both forms are refined; boundary conditions on sub-spaces are refined
    against the problem's trial space.

    Parameters:
        problem: Coarse problem
        refined_mesh: Target mesh; the mesh of form_0 is refined if None

    Returns:
        Problem on the refined mesh

    Raises:
        UnsupportedVariantError: For boundary conditions other than DirichletBC
    """
    child = _refined_child(problem, "Variational problem")
    if child is not None:
        return child

    if refined_mesh is None:
        refined_mesh = adapt_mesh(problem.form_0.mesh)

    refined_form_0 = adapt_form(problem.form_0, refined_mesh)
    refined_form_1 = adapt_form(problem.form_1, refined_mesh)

    trial_space = problem.trial_space
    refined_bcs = [adapt_bc(bc, refined_mesh, trial_space) for bc in problem.bcs]

    refined_problem = VariationalProblem(refined_form_0, refined_form_1, refined_bcs)

    link(problem, refined_problem)
    logger.info(f"Refined variational problem with {len(refined_bcs)} boundary condition(s)")
    return refined_problem


# -----------------------------------------------------------------------------
# Dispatch
# -----------------------------------------------------------------------------

@singledispatch
def adapt(entity, *args, **kwargs):
    """
    Refine any refinable entity.

    Dispatches to adapt_mesh, adapt_function_space, adapt_function,
    adapt_form, adapt_bc, adapt_mesh_function, adapt_error_control or
    adapt_problem according to the type of entity.
    """
    raise UnsupportedVariantError(f"No refinement rule for {type(entity).__name__}")


adapt.register(Mesh, adapt_mesh)
adapt.register(FunctionSpace, adapt_function_space)
adapt.register(Function, adapt_function)
adapt.register(Form, adapt_form)
adapt.register(BoundaryCondition, adapt_bc)
adapt.register(MeshFunction, adapt_mesh_function)
adapt.register(ErrorControl, adapt_error_control)
adapt.register(VariationalProblem, adapt_problem)
