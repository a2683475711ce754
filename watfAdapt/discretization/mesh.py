"""
Simplicial mesh with lazily computed topology.

The Mesh class is the base of every refinable entity:
1. Owns vertex coordinates and cell-vertex connectivity
2. Computes facets and cell <-> facet connectivity on demand
3. Carries a named auxiliary data store (MeshData)
4. Links to its refined child mesh (Hierarchical)

Key design principles:
- Coordinates and cells are read-only after construction; refinement always
  builds a new mesh
- Local facet i of a cell is the facet opposite local vertex i
- Entities of each dimension are numbered in lexicographic order of their
  sorted vertex tuples, so numbering is deterministic
- A refined mesh stores its lineage in MeshData:
    "parent_cell"   fine cell index  -> coarse cell index
    "parent_facet"  fine facet index -> coarse facet index (NO_PARENT if the
                    facet lies inside a coarse cell)

Cell <-> facet linking invariant:
    facet_cells[f, k] == c  <=>  cell_facets[c, facet_local[f, k]] == f
"""
from __future__ import annotations

import itertools
import math
import numpy as np
from typing import Dict, List, Optional, Tuple

from scipy.spatial import cKDTree

from ..common.hierarchical import Hierarchical


# Lineage value for a fine entity that has no coarse parent entity
NO_PARENT = -1

PARENT_CELL = "parent_cell"
PARENT_FACET = "parent_facet"


class MeshData:
    """
    Named auxiliary data attached to a mesh.

    Arrays are integer-valued and indexed by mesh entity. The refinement
    algorithms store the lineage maps here.
    """

    def __init__(self):
        self._arrays: Dict[str, np.ndarray] = {}

    def create_array(self, name: str, size: int) -> np.ndarray:
        """Create (or replace) a zero-initialised array."""
        values = np.zeros(size, dtype=np.int64)
        self._arrays[name] = values
        return values

    def set_array(self, name: str, values) -> None:
        """Store a copy of values under name."""
        self._arrays[name] = np.array(values, dtype=np.int64)

    def array(self, name: str) -> Optional[np.ndarray]:
        """Get array by name, or None if absent."""
        return self._arrays.get(name)

    def erase(self, name: str) -> None:
        """Remove array by name (no-op if absent)."""
        self._arrays.pop(name, None)

    def clear(self) -> None:
        """Remove all arrays."""
        self._arrays.clear()

    def names(self) -> List[str]:
        """Sorted names of stored arrays."""
        return sorted(self._arrays)

    def __contains__(self, name: str) -> bool:
        return name in self._arrays

    def __len__(self) -> int:
        return len(self._arrays)


class Mesh(Hierarchical):
    """
    Simplicial mesh of intervals, triangles or tetrahedra.

    Attributes:
        coordinates: Vertex coordinates, shape (n_vertices, gdim), read-only
        cells: Cell-vertex connectivity, shape (n_cells, tdim + 1), read-only
        tdim: Topological dimension
        gdim: Geometric dimension
        data: Auxiliary data store (lineage for refined meshes)
    """

    def __init__(self, coordinates: np.ndarray, cells: np.ndarray):
        """
        Initialize mesh from coordinates and cells.

        Parameters:
            coordinates: Vertex coordinates, shape (n_vertices, gdim) or (n_vertices,)
            cells: Vertex indices per cell, shape (n_cells, tdim + 1)
        """
        Hierarchical.__init__(self)

        coordinates = np.array(coordinates, dtype=np.float64)
        if coordinates.ndim == 1:
            coordinates = coordinates[:, np.newaxis]
        cells = np.array(cells, dtype=np.int64)
        if cells.ndim != 2:
            raise ValueError(f"Cells must be a 2D array, got shape {cells.shape}")

        coordinates.flags.writeable = False
        cells.flags.writeable = False
        self._coordinates = coordinates
        self._cells = cells

        self.tdim = cells.shape[1] - 1
        self.gdim = coordinates.shape[1]
        if self.tdim < 1:
            raise ValueError("Cells must have at least two vertices")
        if self.gdim < self.tdim:
            raise ValueError(
                f"Geometric dimension {self.gdim} smaller than topological dimension {self.tdim}"
            )

        self._data = MeshData()

        # Lazily computed topology
        self._entities: Dict[int, np.ndarray] = {}
        self._cell_entities: Dict[int, np.ndarray] = {}
        self._facet_cells: Optional[np.ndarray] = None
        self._facet_local: Optional[np.ndarray] = None
        self._tree: Optional[cKDTree] = None

        self._verify_cells()

    def _verify_cells(self) -> None:
        """
        Verify cell-vertex connectivity.

        Raises ValueError on out-of-range indices or repeated vertices.
        """
        if self._cells.size == 0:
            return
        if self._cells.min() < 0 or self._cells.max() >= self.num_vertices:
            raise ValueError(
                f"Cell references a vertex outside [0, {self.num_vertices})"
            )
        sorted_cells = np.sort(self._cells, axis=1)
        degenerate = np.any(np.diff(sorted_cells, axis=1) == 0, axis=1)
        if np.any(degenerate):
            bad = int(np.nonzero(degenerate)[0][0])
            raise ValueError(f"Cell {bad} repeats a vertex: {self._cells[bad].tolist()}")

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def coordinates(self) -> np.ndarray:
        """Vertex coordinates (read-only)."""
        return self._coordinates

    @property
    def cells(self) -> np.ndarray:
        """Cell-vertex connectivity (read-only)."""
        return self._cells

    @property
    def data(self) -> MeshData:
        """Auxiliary data store."""
        return self._data

    @property
    def num_vertices(self) -> int:
        return self._coordinates.shape[0]

    @property
    def num_cells(self) -> int:
        return self._cells.shape[0]

    @property
    def num_facets(self) -> int:
        return self.num_entities(self.tdim - 1)

    @property
    def cell_facets(self) -> np.ndarray:
        """Facet indices per cell, local facet i opposite local vertex i."""
        return self.cell_entities(self.tdim - 1)

    # -------------------------------------------------------------------------
    # Topology
    # -------------------------------------------------------------------------

    def _local_entity_vertices(self, dim: int) -> np.ndarray:
        """Local vertex tuples of the dim-entities of a reference cell."""
        combos = list(itertools.combinations(range(self.tdim + 1), dim + 1))
        if dim == self.tdim - 1:
            # Reverse so that local facet i is opposite local vertex i
            combos = combos[::-1]
        return np.array(combos, dtype=np.int64)

    def _compute_entities(self, dim: int) -> None:
        """Number the entities of dimension dim and build cell -> entity map."""
        n_cells = self.num_cells

        if dim == self.tdim:
            entities = self._cells
            cell_entities = np.arange(n_cells, dtype=np.int64)[:, np.newaxis]
        elif dim == 0:
            local = self._local_entity_vertices(0)[:, 0]
            entities = np.arange(self.num_vertices, dtype=np.int64)[:, np.newaxis]
            cell_entities = self._cells[:, local]
        else:
            local = self._local_entity_vertices(dim)
            all_entities = self._cells[:, local].reshape(-1, dim + 1)
            all_entities = np.sort(all_entities, axis=1)
            entities, inverse = np.unique(all_entities, axis=0, return_inverse=True)
            cell_entities = np.asarray(inverse).reshape(n_cells, len(local))

        entities = np.ascontiguousarray(entities, dtype=np.int64)
        cell_entities = np.ascontiguousarray(cell_entities, dtype=np.int64)
        entities.flags.writeable = False
        cell_entities.flags.writeable = False
        self._entities[dim] = entities
        self._cell_entities[dim] = cell_entities

    def _check_dim(self, dim: int) -> None:
        if dim < 0 or dim > self.tdim:
            raise ValueError(f"Entity dimension {dim} outside [0, {self.tdim}]")

    def entities(self, dim: int) -> np.ndarray:
        """
        Vertex indices of all entities of a dimension.

        Parameters:
            dim: Entity dimension (0 = vertices, tdim = cells)

        Returns:
            Array of shape (n_entities, dim + 1)
        """
        self._check_dim(dim)
        if dim not in self._entities:
            self._compute_entities(dim)
        return self._entities[dim]

    def cell_entities(self, dim: int) -> np.ndarray:
        """
        Entity indices of dimension dim for each cell (local ordering).

        Returns:
            Array of shape (n_cells, n_local_entities)
        """
        self._check_dim(dim)
        if dim not in self._cell_entities:
            self._compute_entities(dim)
        return self._cell_entities[dim]

    def num_entities(self, dim: int) -> int:
        """Number of entities of dimension dim."""
        if dim == 0:
            self._check_dim(dim)
            return self.num_vertices
        return self.entities(dim).shape[0]

    def _compute_facet_cells(self) -> None:
        """Build facet -> (cell, local facet) connectivity."""
        cell_facets = self.cell_facets
        n_facets = self.num_facets
        n_local = self.tdim + 1

        facet_ids = cell_facets.ravel()
        cell_ids = np.repeat(np.arange(self.num_cells, dtype=np.int64), n_local)
        local_ids = np.tile(np.arange(n_local, dtype=np.int64), self.num_cells)

        counts = np.bincount(facet_ids, minlength=n_facets)
        if counts.size and counts.max() > 2:
            bad = int(np.argmax(counts))
            raise ValueError(f"Facet {bad} is shared by {counts[bad]} cells (non-manifold mesh)")

        order = np.argsort(facet_ids, kind="stable")
        offsets = np.concatenate([[0], np.cumsum(counts)[:-1]])
        sorted_facets = facet_ids[order]
        position = np.arange(len(facet_ids)) - offsets[sorted_facets]

        facet_cells = np.full((n_facets, 2), -1, dtype=np.int64)
        facet_local = np.full((n_facets, 2), -1, dtype=np.int64)
        facet_cells[sorted_facets, position] = cell_ids[order]
        facet_local[sorted_facets, position] = local_ids[order]

        self._facet_cells = facet_cells
        self._facet_local = facet_local

    @property
    def num_facet_cells(self) -> np.ndarray:
        """Number of cells incident to each facet (1 = boundary, 2 = interior)."""
        if self._facet_cells is None:
            self._compute_facet_cells()
        return np.count_nonzero(self._facet_cells >= 0, axis=1)

    def facet_cells(self, facet: int) -> np.ndarray:
        """Cells incident to a facet."""
        if self._facet_cells is None:
            self._compute_facet_cells()
        cells = self._facet_cells[facet]
        return cells[cells >= 0]

    def facet_cell_local(self, facet: int) -> List[Tuple[int, int]]:
        """(cell, local facet) pairs of a facet."""
        if self._facet_cells is None:
            self._compute_facet_cells()
        return [(int(c), int(lf))
                for c, lf in zip(self._facet_cells[facet], self._facet_local[facet])
                if c >= 0]

    def boundary_facets(self) -> np.ndarray:
        """Indices of facets incident to exactly one cell."""
        return np.nonzero(self.num_facet_cells == 1)[0]

    def interior_facets(self) -> np.ndarray:
        """Indices of facets shared by two cells."""
        return np.nonzero(self.num_facet_cells == 2)[0]

    def local_facet_index(self, cell: int, facet: int) -> int:
        """
        Local index of a facet with respect to a cell.

        Raises:
            ValueError: If the facet is not a facet of the cell
        """
        matches = np.nonzero(self.cell_facets[cell] == facet)[0]
        if len(matches) == 0:
            raise ValueError(f"Facet {facet} is not a facet of cell {cell}")
        return int(matches[0])

    # -------------------------------------------------------------------------
    # Geometry
    # -------------------------------------------------------------------------

    def midpoints(self, dim: int) -> np.ndarray:
        """Midpoints of all entities of dimension dim, shape (n, gdim)."""
        return self._coordinates[self.entities(dim)].mean(axis=1)

    def cell_midpoints(self) -> np.ndarray:
        return self.midpoints(self.tdim)

    def facet_midpoints(self) -> np.ndarray:
        return self.midpoints(self.tdim - 1)

    def cell_volumes(self) -> np.ndarray:
        """
        Cell volumes (length / area / volume).

        Uses the Gram determinant so manifold meshes (gdim > tdim) work too.
        """
        v0 = self._coordinates[self._cells[:, 0]]
        edges = self._coordinates[self._cells[:, 1:]] - v0[:, np.newaxis, :]
        gram = np.einsum('nid,njd->nij', edges, edges)
        return np.sqrt(np.abs(np.linalg.det(gram))) / math.factorial(self.tdim)

    def volume(self) -> float:
        """Total mesh volume."""
        return float(np.sum(self.cell_volumes()))

    def barycentric_coordinates(self, cell_indices: np.ndarray,
                                points: np.ndarray) -> np.ndarray:
        """
        Barycentric coordinates of points with respect to cells.

        Parameters:
            cell_indices: Cell per point, shape (n,)
            points: Points, shape (n, gdim)

        Returns:
            Barycentric coordinates, shape (n, tdim + 1)
        """
        cell_indices = np.asarray(cell_indices, dtype=np.int64)
        points = np.asarray(points, dtype=np.float64).reshape(len(cell_indices), self.gdim)

        vertices = self._coordinates[self._cells[cell_indices]]
        v0 = vertices[:, 0, :]
        edges = vertices[:, 1:, :] - v0[:, np.newaxis, :]

        # Least-squares solve of edges^T lam = p - v0 (exact when gdim == tdim)
        gram = np.einsum('nid,njd->nij', edges, edges)
        rhs = np.einsum('nid,nd->ni', edges, points - v0)
        lam = np.linalg.solve(gram, rhs[..., np.newaxis])[..., 0]

        return np.column_stack([1.0 - lam.sum(axis=1), lam])

    def locate_points(self, points: np.ndarray, tol: float = 1e-10,
                      n_candidates: int = 8) -> np.ndarray:
        """
        Find a cell containing each point.

        Candidate cells come from a KD-tree over cell midpoints; points not
        resolved among the candidates are tested against every cell.

        Parameters:
            points: Points, shape (n, gdim)
            tol: Barycentric tolerance for points on cell boundaries
            n_candidates: Number of nearest cells tested first

        Returns:
            Cell index per point, -1 for points outside the mesh
        """
        points = np.asarray(points, dtype=np.float64).reshape(-1, self.gdim)
        n_points = points.shape[0]
        found = np.full(n_points, -1, dtype=np.int64)
        if n_points == 0 or self.num_cells == 0:
            return found

        if self._tree is None:
            self._tree = cKDTree(self.cell_midpoints())

        k = min(n_candidates, self.num_cells)
        _, candidates = self._tree.query(points, k=k)
        candidates = np.asarray(candidates).reshape(n_points, k)

        for j in range(k):
            pending = np.nonzero(found < 0)[0]
            if len(pending) == 0:
                break
            cells = candidates[pending, j]
            bary = self.barycentric_coordinates(cells, points[pending])
            inside = np.all(bary >= -tol, axis=1)
            found[pending[inside]] = cells[inside]

        # Fall back to exhaustive search
        all_cells = np.arange(self.num_cells, dtype=np.int64)
        for i in np.nonzero(found < 0)[0]:
            repeated = np.repeat(points[i][np.newaxis, :], self.num_cells, axis=0)
            bary = self.barycentric_coordinates(all_cells, repeated)
            inside = np.nonzero(np.all(bary >= -tol, axis=1))[0]
            if len(inside):
                found[i] = inside[0]

        return found

    # -------------------------------------------------------------------------
    # Lineage
    # -------------------------------------------------------------------------

    def has_lineage(self) -> bool:
        """True if both parent_cell and parent_facet maps are present."""
        return PARENT_CELL in self._data and PARENT_FACET in self._data

    def summary(self) -> str:
        """Human-readable mesh summary."""
        lines = [
            f"Mesh: tdim={self.tdim}, gdim={self.gdim}",
            f"  vertices: {self.num_vertices}",
            f"  cells:    {self.num_cells}",
            f"  facets:   {self.num_facets} (boundary: {len(self.boundary_facets())})",
            f"  data:     {self._data.names()}",
        ]
        if self.has_parent() or self.has_child():
            lines.append(f"  hierarchy depth: {self.depth()}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (f"Mesh(tdim={self.tdim}, gdim={self.gdim}, "
                f"n_vertices={self.num_vertices}, n_cells={self.num_cells})")
