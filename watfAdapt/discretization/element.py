"""
Finite element descriptions on simplices.

An element describes the local basis on one cell:
- Its family and degree
- The reference position of each local degree of freedom
- Which local dofs sit on each local facet
- How to tabulate the basis at points given in barycentric coordinates

Supported elements:
- CG1: continuous piecewise linear, one dof per vertex
- DG0: piecewise constant, one dof per cell
- DG1: discontinuous piecewise linear, one dof per cell vertex

Mixed and vector elements are built from these. Their local dofs are
blocked: all dofs of sub-element 0, then all dofs of sub-element 1, ...

Elements are immutable descriptions; create_for(mesh) builds the same
element against another mesh of the same topological dimension.
"""

import numpy as np
from typing import Iterator, List, Sequence, Tuple

FAMILY_ALIASES = {
    "CG": "CG",
    "Lagrange": "CG",
    "P": "CG",
    "DG": "DG",
    "Discontinuous Lagrange": "DG",
}


class FiniteElement:
    """
    Scalar finite element on a simplex.

    Attributes:
        family: "CG" or "DG"
        tdim: Topological dimension of the cell
        degree: Polynomial degree
    """

    value_size = 1
    num_sub_elements = 0

    def __init__(self, family: str, tdim: int, degree: int):
        if family not in FAMILY_ALIASES:
            raise ValueError(
                f"Unknown element family: {family}. Use one of {sorted(FAMILY_ALIASES)}."
            )
        family = FAMILY_ALIASES[family]
        if family == "CG" and degree != 1:
            raise ValueError(f"CG elements support degree 1 only, got {degree}")
        if family == "DG" and degree not in (0, 1):
            raise ValueError(f"DG elements support degree 0 or 1, got {degree}")
        if tdim < 1:
            raise ValueError(f"Invalid topological dimension: {tdim}")

        self._family = family
        self._tdim = tdim
        self._degree = degree

    @property
    def family(self) -> str:
        return self._family

    @property
    def tdim(self) -> int:
        return self._tdim

    @property
    def degree(self) -> int:
        return self._degree

    @property
    def continuous(self) -> bool:
        """Whether dofs are shared between neighbouring cells."""
        return self._family == "CG"

    def space_dimension(self) -> int:
        """Number of local dofs."""
        return 1 if self._degree == 0 else self._tdim + 1

    def dof_reference_points(self) -> np.ndarray:
        """
        Dof positions in barycentric coordinates.

        Returns:
            Array of shape (space_dimension, tdim + 1)
        """
        n_vertices = self._tdim + 1
        if self._degree == 0:
            return np.full((1, n_vertices), 1.0 / n_vertices)
        return np.eye(n_vertices)

    def tabulate(self, barycentric: np.ndarray) -> np.ndarray:
        """
        Evaluate the local basis.

        Parameters:
            barycentric: Points in barycentric coordinates, shape (n, tdim + 1)

        Returns:
            Basis values, shape (n, space_dimension)
        """
        barycentric = np.asarray(barycentric, dtype=np.float64)
        if self._degree == 0:
            return np.ones((barycentric.shape[0], 1))
        # P1 basis functions are the barycentric coordinates
        return barycentric.copy()

    def facet_dofs(self, local_facet: int) -> List[int]:
        """Local dofs located on a local facet (the facet opposite vertex local_facet)."""
        if self._degree == 0:
            return []
        return [j for j in range(self._tdim + 1) if j != local_facet]

    def leaves(self, prefix: Tuple[int, ...] = ()) -> Iterator[Tuple[Tuple[int, ...], 'FiniteElement']]:
        """Yield (component path, scalar element) pairs."""
        yield prefix, self

    def sub_element(self, component: Sequence[int]) -> 'FiniteElement':
        """Sub-element by component path (only the empty path for scalars)."""
        if len(component) > 0:
            raise ValueError(f"Scalar element has no sub-element {tuple(component)}")
        return self

    def create_for(self, mesh) -> 'FiniteElement':
        """
        Build the same element for another mesh.

        Parameters:
            mesh: Target mesh

        Returns:
            New element with the same family and degree
        """
        if mesh.tdim != self._tdim:
            raise ValueError(
                f"Element for tdim {self._tdim} cannot be created on a mesh of tdim {mesh.tdim}"
            )
        return FiniteElement(self._family, mesh.tdim, self._degree)

    def signature(self) -> str:
        return f"FiniteElement('{self._family}', {self._tdim}, {self._degree})"

    def __eq__(self, other) -> bool:
        if isinstance(other, FiniteElement):
            return (self._family, self._tdim, self._degree) == \
                   (other._family, other._tdim, other._degree)
        return False

    def __hash__(self) -> int:
        return hash((self._family, self._tdim, self._degree))

    def __repr__(self) -> str:
        return self.signature()


class MixedElement:
    """
    Element made of sub-elements on the same cell.

    Attributes:
        sub_elements: Tuple of sub-elements (scalar or mixed)
    """

    def __init__(self, sub_elements: Sequence):
        sub_elements = tuple(sub_elements)
        if not sub_elements:
            raise ValueError("MixedElement needs at least one sub-element")
        tdims = {e.tdim for e in sub_elements}
        if len(tdims) != 1:
            raise ValueError(f"Sub-elements live on different cells: tdims {sorted(tdims)}")
        self._sub_elements = sub_elements
        self._tdim = tdims.pop()

    @property
    def sub_elements(self) -> tuple:
        return self._sub_elements

    @property
    def num_sub_elements(self) -> int:
        return len(self._sub_elements)

    @property
    def tdim(self) -> int:
        return self._tdim

    @property
    def value_size(self) -> int:
        return sum(e.value_size for e in self._sub_elements)

    @property
    def continuous(self) -> bool:
        return all(e.continuous for e in self._sub_elements)

    def space_dimension(self) -> int:
        return sum(e.space_dimension() for e in self._sub_elements)

    def facet_dofs(self, local_facet: int) -> List[int]:
        """Local dofs on a local facet, offset by the preceding sub-element blocks."""
        dofs = []
        offset = 0
        for e in self._sub_elements:
            dofs.extend(offset + j for j in e.facet_dofs(local_facet))
            offset += e.space_dimension()
        return dofs

    def leaves(self, prefix: Tuple[int, ...] = ()) -> Iterator[Tuple[Tuple[int, ...], FiniteElement]]:
        for i, e in enumerate(self._sub_elements):
            yield from e.leaves(prefix + (i,))

    def sub_element(self, component: Sequence[int]):
        component = tuple(component)
        if not component:
            return self
        i = component[0]
        if i < 0 or i >= len(self._sub_elements):
            raise ValueError(f"Sub-element index {i} out of range [0, {len(self._sub_elements)})")
        return self._sub_elements[i].sub_element(component[1:])

    def create_for(self, mesh) -> 'MixedElement':
        return MixedElement([e.create_for(mesh) for e in self._sub_elements])

    def signature(self) -> str:
        return "MixedElement(" + ", ".join(e.signature() for e in self._sub_elements) + ")"

    def __eq__(self, other) -> bool:
        if isinstance(other, MixedElement):
            return self._sub_elements == other._sub_elements
        return False

    def __hash__(self) -> int:
        return hash(self._sub_elements)

    def __repr__(self) -> str:
        return self.signature()


def VectorElement(family: str, tdim: int, degree: int, dim: int = None) -> MixedElement:
    """
    Vector-valued element with dim identical scalar components.

    Parameters:
        family: Element family
        tdim: Topological dimension
        degree: Polynomial degree
        dim: Number of components (defaults to tdim)
    """
    dim = tdim if dim is None else dim
    return MixedElement([FiniteElement(family, tdim, degree) for _ in range(dim)])
