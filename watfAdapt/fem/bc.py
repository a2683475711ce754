"""
Boundary conditions.

A DirichletBC prescribes the value of a (sub-)space on a set of facets.
The facets are stored as markers, pairs (cell index, local facet index),
so that a condition does not depend on a global facet numbering and can be
carried over to a refined mesh through the cell and facet lineage.
"""

import numpy as np
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..common.hierarchical import Hierarchical
from ..discretization.function_space import FunctionSpace
from ..discretization.mesh_function import MeshFunction
from ..function.function import GenericFunction, Constant

Marker = Tuple[int, int]


class BoundaryCondition(Hierarchical):
    """
    Base class for boundary conditions.

    Attributes:
        function_space: Space (or sub-space) the condition applies to
    """

    def __init__(self, function_space: FunctionSpace):
        Hierarchical.__init__(self)
        self._function_space = function_space

    @property
    def function_space(self) -> FunctionSpace:
        return self._function_space


class DirichletBC(BoundaryCondition):
    """
    Dirichlet boundary condition: u = g on marked facets.

    Attributes:
        function_space: Space (or sub-space) the condition applies to
        value: Prescribed value g (Function, Constant or Expression)
        markers: List of (cell, local facet) pairs
    """

    def __init__(self, function_space: FunctionSpace, value,
                 markers: Iterable[Marker]):
        """
        Initialize Dirichlet boundary condition.

        Parameters:
            function_space: Space or sub-space
            value: Prescribed value; plain numbers are wrapped in Constant
            markers: (cell, local facet) pairs on function_space.mesh
        """
        BoundaryCondition.__init__(self, function_space)
        if not isinstance(value, GenericFunction):
            value = Constant(value)
        if value.value_size != function_space.element.value_size:
            raise ValueError(
                f"Value with {value.value_size} components does not match "
                f"space with {function_space.element.value_size} components"
            )
        self._value = value

        mesh = function_space.mesh
        n_local = mesh.tdim + 1
        self._markers: List[Marker] = []
        for cell, local_facet in markers:
            cell, local_facet = int(cell), int(local_facet)
            if not 0 <= cell < mesh.num_cells:
                raise ValueError(f"Marker cell {cell} outside [0, {mesh.num_cells})")
            if not 0 <= local_facet < n_local:
                raise ValueError(f"Marker local facet {local_facet} outside [0, {n_local})")
            self._markers.append((cell, local_facet))

    @classmethod
    def from_facet_function(cls, function_space: FunctionSpace, value,
                            facet_function: MeshFunction,
                            marker_value) -> 'DirichletBC':
        """
        Create a condition on all facets tagged with marker_value.

        Each facet is marked through its first incident cell.

        Parameters:
            function_space: Space or sub-space
            value: Prescribed value
            facet_function: Facet tags on function_space.mesh
            marker_value: Tag selecting the facets
        """
        mesh = function_space.mesh
        if facet_function.mesh is not mesh:
            raise ValueError("Facet function is defined on a different mesh")
        if facet_function.dim != mesh.tdim - 1:
            raise ValueError(
                f"Expected a facet function (dimension {mesh.tdim - 1}), got dimension {facet_function.dim}"
            )
        markers = [mesh.facet_cell_local(f)[0] for f in facet_function.where(marker_value)]
        return cls(function_space, value, markers)

    @classmethod
    def from_boundary(cls, function_space: FunctionSpace, value,
                      inside: Optional[Callable[[np.ndarray], bool]] = None) -> 'DirichletBC':
        """
        Create a condition on boundary facets.

        Parameters:
            function_space: Space or sub-space
            value: Prescribed value
            inside: Predicate on facet midpoints selecting part of the
                boundary (whole boundary if None)
        """
        mesh = function_space.mesh
        midpoints = mesh.facet_midpoints()
        markers = [mesh.facet_cell_local(f)[0]
                   for f in mesh.boundary_facets()
                   if inside is None or inside(midpoints[f])]
        return cls(function_space, value, markers)

    @property
    def value(self) -> GenericFunction:
        return self._value

    @property
    def markers(self) -> List[Marker]:
        return list(self._markers)

    @property
    def num_markers(self) -> int:
        return len(self._markers)

    def boundary_dofs(self) -> np.ndarray:
        """Sorted global dofs located on the marked facets."""
        dofmap = self._function_space.dofmap
        dofs = [dofmap.facet_dofs(c, lf) for c, lf in self._markers]
        if not dofs:
            return np.zeros(0, dtype=np.int64)
        return np.unique(np.concatenate(dofs))

    def get_boundary_values(self) -> Dict[int, float]:
        """
        Prescribed values on the marked facets.

        The value is evaluated at the coordinates of each constrained dof,
        component by component.

        Returns:
            Dictionary mapping global dof index to value
        """
        V = self._function_space
        coordinates = V.tabulate_dof_coordinates()
        boundary_values: Dict[int, float] = {}

        for k, (_, leaf, cell_dofs) in enumerate(V.dofmap.leaves()):
            dofs = [cell_dofs[c, leaf.facet_dofs(lf)] for c, lf in self._markers]
            if not dofs:
                continue
            dofs = np.unique(np.concatenate(dofs))
            if len(dofs) == 0:
                continue
            values = self._value.evaluate(coordinates[dofs])[:, k]
            boundary_values.update(zip(dofs.tolist(), values.tolist()))

        return boundary_values

    def __repr__(self) -> str:
        return f"DirichletBC({self._value!r}, markers={len(self._markers)})"
