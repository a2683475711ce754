"""
Mesh functions: one value per mesh entity of a fixed dimension.

Mesh functions tag cells or facets (sub-domain ids for forms, boundary ids
for boundary conditions, refinement markers). They are bound to the mesh
they were created on; refining one produces a new mesh function on the
refined mesh (see watfAdapt.adaptivity.adapt.adapt_mesh_function).
"""

import numpy as np
from typing import Callable, Optional

from ..common.hierarchical import Hierarchical
from .mesh import Mesh


class MeshFunction(Hierarchical):
    """
    Array of values indexed by the entities of one dimension of a mesh.

    Attributes:
        mesh: Mesh the values are defined on
        dim: Entity dimension
        values: Value array, shape (mesh.num_entities(dim),)
    """

    def __init__(self, mesh: Mesh, dim: int, value=0,
                 dtype=np.int64, values: Optional[np.ndarray] = None):
        """
        Initialize mesh function.

        Parameters:
            mesh: Mesh
            dim: Entity dimension (0 <= dim <= mesh.tdim)
            value: Initial value for every entity (ignored if values given)
            dtype: Value type
            values: Explicit values, one per entity
        """
        Hierarchical.__init__(self)
        if dim < 0 or dim > mesh.tdim:
            raise ValueError(f"Mesh function dimension {dim} outside [0, {mesh.tdim}]")

        self._mesh = mesh
        self._dim = dim
        size = mesh.num_entities(dim)

        if values is None:
            self._values = np.full(size, value, dtype=dtype)
        else:
            values = np.array(values, dtype=dtype)
            if values.shape != (size,):
                raise ValueError(
                    f"Expected {size} values for dimension {dim}, got shape {values.shape}"
                )
            self._values = values

    @property
    def mesh(self) -> Mesh:
        return self._mesh

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def values(self) -> np.ndarray:
        """Value array (modifiable in place)."""
        return self._values

    @property
    def dtype(self):
        return self._values.dtype

    @property
    def size(self) -> int:
        return self._values.shape[0]

    def __len__(self) -> int:
        return self.size

    def __getitem__(self, index):
        return self._values[index]

    def __setitem__(self, index, value) -> None:
        self._values[index] = value

    def set_all(self, value) -> None:
        """Set every entity to value."""
        self._values[:] = value

    def where(self, value) -> np.ndarray:
        """Indices of entities holding value."""
        return np.nonzero(self._values == value)[0]

    def max(self):
        """Largest value (0 for an empty function)."""
        if self.size == 0:
            return self._values.dtype.type(0)
        return self._values.max()

    def mark(self, inside: Callable[[np.ndarray], bool], value,
             on_boundary: bool = False) -> int:
        """
        Set value on entities whose midpoint satisfies a predicate.

        Parameters:
            inside: Predicate on a midpoint, inside(x) -> bool
            value: Value to assign
            on_boundary: Restrict to boundary facets (dim must be tdim - 1)

        Returns:
            Number of entities marked
        """
        midpoints = self._mesh.midpoints(self._dim)
        candidates = np.arange(self.size)
        if on_boundary:
            if self._dim != self._mesh.tdim - 1:
                raise ValueError("on_boundary marking requires a facet function")
            candidates = self._mesh.boundary_facets()

        marked = [i for i in candidates if inside(midpoints[i])]
        self._values[marked] = value
        return len(marked)

    def __repr__(self) -> str:
        return f"MeshFunction(dim={self._dim}, size={self.size}, dtype={self.dtype})"


def cell_function(mesh: Mesh, value=0, dtype=np.int64) -> MeshFunction:
    """Create a mesh function over cells."""
    return MeshFunction(mesh, mesh.tdim, value=value, dtype=dtype)


def facet_function(mesh: Mesh, value=0, dtype=np.int64) -> MeshFunction:
    """Create a mesh function over facets."""
    return MeshFunction(mesh, mesh.tdim - 1, value=value, dtype=dtype)
