"""
Degree-of-freedom maps.

A DofMap assigns global dof indices to the local dofs of every cell:
- CG1: dof = vertex index (shared between cells)
- DG0: dof = cell index
- DG1: dof = cell * (tdim + 1) + local vertex

Mixed elements get blocked numbering: the global dofs of sub-element k
follow those of sub-elements 0..k-1.

A sub-dofmap (extract_sub_dofmap) is a view that keeps the global numbering
of the full map, so vectors of the full space can be indexed directly.
"""
from __future__ import annotations

import numpy as np
from typing import Dict, Iterator, List, Tuple

from .mesh import Mesh


def _leaf_layout(element, mesh: Mesh) -> Tuple[np.ndarray, int]:
    """Cell dofs and dof count of a scalar element, numbered from zero."""
    if element.family == "CG":
        return np.array(mesh.cells, dtype=np.int64), mesh.num_vertices
    n_local = element.space_dimension()
    n_dofs = mesh.num_cells * n_local
    return np.arange(n_dofs, dtype=np.int64).reshape(mesh.num_cells, n_local), n_dofs


class DofMap:
    """
    Cell-to-global dof map for an element on a mesh.

    Attributes:
        element: Element the map is built for
        mesh: Mesh
        component: Component path of a sub-dofmap view (empty for a full map)
        global_dimension: Length of vectors indexed by this map
    """

    def __init__(self, element, mesh: Mesh):
        """
        Build the dof map.

        Parameters:
            element: FiniteElement or MixedElement
            mesh: Mesh to number dofs on
        """
        if element.tdim != mesh.tdim:
            raise ValueError(
                f"Element tdim {element.tdim} does not match mesh tdim {mesh.tdim}"
            )
        self._element = element
        self._mesh = mesh
        self._component: Tuple[int, ...] = ()
        self._root: DofMap = None

        blocks = []
        leaf_columns: Dict[Tuple[int, ...], np.ndarray] = {}
        offset = 0
        column = 0
        for path, leaf in element.leaves():
            cell_dofs, n_dofs = _leaf_layout(leaf, mesh)
            blocks.append(cell_dofs + offset)
            n_local = cell_dofs.shape[1]
            leaf_columns[path] = np.arange(column, column + n_local)
            offset += n_dofs
            column += n_local

        self._cell_dofs = np.hstack(blocks)
        self._cell_dofs.flags.writeable = False
        self._leaf_columns = leaf_columns
        self._global_dimension = offset

    @classmethod
    def _view(cls, root: 'DofMap', component: Tuple[int, ...]) -> 'DofMap':
        """Sub-dofmap view of root for a component path."""
        view = cls.__new__(cls)
        view._element = root._element.sub_element(component)
        view._mesh = root._mesh
        view._component = component
        view._root = root
        view._global_dimension = root._global_dimension

        n = len(component)
        paths = [p for p in root._leaf_columns if p[:n] == component]
        columns = np.concatenate([root._leaf_columns[p] for p in paths])
        view._cell_dofs = root._cell_dofs[:, columns]
        view._cell_dofs.flags.writeable = False

        view._leaf_columns = {}
        start = 0
        for p in paths:
            n_local = len(root._leaf_columns[p])
            view._leaf_columns[p[n:]] = np.arange(start, start + n_local)
            start += n_local
        return view

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def element(self):
        return self._element

    @property
    def mesh(self) -> Mesh:
        return self._mesh

    @property
    def component(self) -> Tuple[int, ...]:
        return self._component

    @property
    def is_view(self) -> bool:
        return self._root is not None

    @property
    def global_dimension(self) -> int:
        return self._global_dimension

    @property
    def cell_dofs_array(self) -> np.ndarray:
        """Global dofs per cell, shape (n_cells, n_local)."""
        return self._cell_dofs

    @property
    def num_element_dofs(self) -> int:
        return self._cell_dofs.shape[1]

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def cell_dofs(self, cell: int) -> np.ndarray:
        """Global dofs of a cell in local order."""
        return self._cell_dofs[cell]

    def facet_dofs(self, cell: int, local_facet: int) -> np.ndarray:
        """Global dofs located on a local facet of a cell."""
        local = self._element.facet_dofs(local_facet)
        return self._cell_dofs[cell, local]

    def dofs(self) -> np.ndarray:
        """Sorted global dofs touched by this map."""
        return np.unique(self._cell_dofs)

    def leaves(self) -> Iterator[Tuple[Tuple[int, ...], object, np.ndarray]]:
        """
        Yield (component path, scalar element, cell dofs) per scalar block.

        The cell dofs array has shape (n_cells, leaf.space_dimension()).
        """
        for path, leaf in self._element.leaves():
            yield path, leaf, self._cell_dofs[:, self._leaf_columns[path]]

    def tabulate_coordinates(self) -> np.ndarray:
        """
        Coordinates of every global dof.

        Returns:
            Array of shape (global_dimension, gdim); rows of dofs not owned
            by this map (other blocks of a view) are NaN.
        """
        mesh = self._mesh
        coords = np.full((self._global_dimension, mesh.gdim), np.nan)
        cell_vertices = mesh.coordinates[mesh.cells]

        for _, leaf, cell_dofs in self.leaves():
            ref = leaf.dof_reference_points()
            physical = np.einsum('lk,nkd->nld', ref, cell_vertices)
            coords[cell_dofs.ravel()] = physical.reshape(-1, mesh.gdim)

        return coords

    # -------------------------------------------------------------------------
    # Derived maps
    # -------------------------------------------------------------------------

    def extract_sub_dofmap(self, component) -> 'DofMap':
        """
        Sub-dofmap view for a component path.

        Parameters:
            component: Component path relative to this map

        Returns:
            DofMap view sharing this map's global numbering
        """
        component = tuple(component)
        if not component:
            return self
        root = self._root if self._root is not None else self
        return DofMap._view(root, self._component + component)

    def rebuild_for(self, mesh: Mesh, element=None) -> 'DofMap':
        """
        Build the corresponding dof map on another mesh.

        A view is rebuilt through its full map, so the rebuilt view keeps
        the block layout of the rebuilt full map.

        Parameters:
            mesh: Target mesh
            element: Element on the target mesh (defaults to element.create_for(mesh))

        Returns:
            New DofMap on mesh
        """
        if self._root is not None:
            return self._root.rebuild_for(mesh).extract_sub_dofmap(self._component)
        if element is None:
            element = self._element.create_for(mesh)
        return DofMap(element, mesh)

    def __repr__(self) -> str:
        return (f"DofMap({self._element.signature()}, component={self._component}, "
                f"global_dimension={self._global_dimension})")
