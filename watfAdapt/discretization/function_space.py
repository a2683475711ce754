"""
Function spaces (discretizations).

A FunctionSpace ties together a mesh, an element and a dof map. A space
with a non-empty component path is a sub-space of a mixed space: it shares
the mesh and the global dof numbering of its root space.
"""

import numpy as np
from typing import Dict, Optional, Sequence, Tuple

from ..common.hierarchical import Hierarchical
from .mesh import Mesh
from .dofmap import DofMap


class FunctionSpace(Hierarchical):
    """
    Discrete function space on a mesh.

    Attributes:
        mesh: Mesh
        element: FiniteElement or MixedElement
        dofmap: DofMap (a view for sub-spaces)
        component: Component path within the root space (empty for a full space)
    """

    def __init__(self, mesh: Mesh, element, dofmap: Optional[DofMap] = None,
                 component: Sequence[int] = (),
                 root: Optional['FunctionSpace'] = None):
        """
        Initialize function space.

        Parameters:
            mesh: Mesh
            element: Element description
            dofmap: Dof map (built from element and mesh if omitted)
            component: Component path for a sub-space
            root: Full space a sub-space was extracted from
        """
        Hierarchical.__init__(self)
        if element.tdim != mesh.tdim:
            raise ValueError(
                f"Element tdim {element.tdim} does not match mesh tdim {mesh.tdim}"
            )
        if dofmap is None:
            dofmap = DofMap(element, mesh)
        elif dofmap.mesh is not mesh:
            raise ValueError("Dof map was built on a different mesh")

        self._mesh = mesh
        self._element = element
        self._dofmap = dofmap
        self._component: Tuple[int, ...] = tuple(component)
        self._root = root
        self._subspaces: Dict[Tuple[int, ...], 'FunctionSpace'] = {}

    @property
    def mesh(self) -> Mesh:
        return self._mesh

    @property
    def element(self):
        return self._element

    @property
    def dofmap(self) -> DofMap:
        return self._dofmap

    @property
    def component(self) -> Tuple[int, ...]:
        return self._component

    @property
    def is_subspace(self) -> bool:
        return len(self._component) > 0

    @property
    def root_space(self) -> 'FunctionSpace':
        """Full space this space belongs to (self for a full space)."""
        return self._root if self._root is not None else self

    @property
    def dim(self) -> int:
        """Length of coefficient vectors on this space."""
        return self._dofmap.global_dimension

    @property
    def num_sub_spaces(self) -> int:
        return self._element.num_sub_elements

    def sub(self, i: int) -> 'FunctionSpace':
        """Sub-space for sub-element i."""
        return self.extract_sub_space((i,))

    def extract_sub_space(self, component: Sequence[int]) -> 'FunctionSpace':
        """
        Sub-space for a component path (cached).

        Sub-spaces are cached on the root space by absolute path, so every
        path has a single instance whatever route extracted it.

        Parameters:
            component: Path relative to this space

        Returns:
            FunctionSpace with the combined component path
        """
        component = tuple(component)
        if not component:
            return self
        if self._root is not None:
            return self._root.extract_sub_space(self._component + component)
        if component not in self._subspaces:
            sub_element = self._element.sub_element(component)
            sub_dofmap = self._dofmap.extract_sub_dofmap(component)
            self._subspaces[component] = FunctionSpace(
                self._mesh, sub_element, sub_dofmap,
                component=self._component + component,
                root=self.root_space
            )
        return self._subspaces[component]

    def collapse(self) -> 'FunctionSpace':
        """Stand-alone space with this space's element and its own numbering."""
        return FunctionSpace(self._mesh, self._element)

    def tabulate_dof_coordinates(self) -> np.ndarray:
        """Coordinates of the dofs, shape (dim, gdim)."""
        return self._dofmap.tabulate_coordinates()

    def __repr__(self) -> str:
        return (f"FunctionSpace({self._element.signature()}, component={self._component}, "
                f"dim={self.dim})")


def SubSpace(space: FunctionSpace, component: Sequence[int]) -> FunctionSpace:
    """Sub-space of space for a component path."""
    return space.extract_sub_space(component)
