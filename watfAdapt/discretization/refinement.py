"""
Mesh subdivision algorithms with lineage.

Both algorithms return a new mesh whose MeshData holds:
- "parent_cell":  coarse cell each fine cell was cut from
- "parent_facet": coarse facet each fine facet lies in, NO_PARENT for
                  facets created inside a coarse cell

Uniform refinement:
- Intervals are bisected (1 -> 2)
- Triangles are split regularly through their edge midpoints (1 -> 4);
  children of cell c are fine cells 4c .. 4c+3, the last being the
  interior triangle

Local refinement (marked cells only):
- Intervals: marked cells are bisected, no closure needed
- Triangles, "red_green": marked cells are split regularly ("red"); a cell
  with two or more split edges is promoted to red; a cell with exactly one
  split edge is bisected from the opposite vertex ("green")
- Triangles, "red": every cell with a split edge is promoted to red

The closure loop terminates because the set of red cells only grows.
"""

import logging
import numpy as np
from typing import Dict, List, Tuple

from ..common.errors import UnsupportedDimensionError
from .mesh import Mesh, NO_PARENT, PARENT_CELL, PARENT_FACET

logger = logging.getLogger(__name__)

LOCAL_ALGORITHMS = ("red_green", "red")


def refine_uniform(mesh: Mesh) -> Mesh:
    """
    Refine every cell of a mesh.

    Parameters:
        mesh: Coarse mesh (tdim 1 or 2)

    Returns:
        Refined mesh with lineage data
    """
    red = np.ones(mesh.num_cells, dtype=bool)
    refined = _subdivide(mesh, red, np.zeros(mesh.num_cells, dtype=bool))
    logger.debug(f"Uniform refinement: {mesh.num_cells} -> {refined.num_cells} cells")
    return refined


def refine_local(mesh: Mesh, cell_markers, algorithm: str = "red_green") -> Mesh:
    """
    Refine marked cells plus the closure needed for a conforming mesh.

    Parameters:
        mesh: Coarse mesh (tdim 1 or 2)
        cell_markers: Boolean marker per cell (MeshFunction over cells or array)
        algorithm: "red_green" or "red" (ignored for intervals)

    Returns:
        Refined mesh with lineage data
    """
    if algorithm not in LOCAL_ALGORITHMS:
        raise ValueError(f"Unknown refinement algorithm: {algorithm}. Use one of {LOCAL_ALGORITHMS}.")

    marked = _cell_marker_array(mesh, cell_markers)

    if mesh.tdim == 1:
        red, green = marked, np.zeros_like(marked)
    elif mesh.tdim == 2:
        red, green = _triangle_closure(mesh, marked, algorithm)
    else:
        raise UnsupportedDimensionError(
            f"Local refinement of meshes of topological dimension {mesh.tdim} is not implemented"
        )

    refined = _subdivide(mesh, red, green)
    logger.debug(
        f"Local refinement ({algorithm}): {int(marked.sum())} marked, "
        f"{int(red.sum())} red, {int(green.sum())} green, "
        f"{mesh.num_cells} -> {refined.num_cells} cells"
    )
    return refined


def _cell_marker_array(mesh: Mesh, cell_markers) -> np.ndarray:
    """Convert cell markers (MeshFunction or array-like) to a boolean array."""
    if hasattr(cell_markers, "dim"):
        if cell_markers.mesh is not mesh:
            raise ValueError("Cell markers are defined on a different mesh")
        if cell_markers.dim != mesh.tdim:
            raise ValueError(
                f"Cell markers must have dimension {mesh.tdim}, got {cell_markers.dim}"
            )
        values = cell_markers.values
    else:
        values = cell_markers
    marked = np.asarray(values).astype(bool)
    if marked.shape != (mesh.num_cells,):
        raise ValueError(f"Expected {mesh.num_cells} cell markers, got shape {marked.shape}")
    return marked


def _triangle_closure(mesh: Mesh, marked: np.ndarray, algorithm: str) -> Tuple[np.ndarray, np.ndarray]:
    """
    Propagate refinement until no hanging nodes remain.

    Returns:
        (red, green) boolean arrays over cells
    """
    cell_facets = mesh.cell_facets
    threshold = 2 if algorithm == "red_green" else 1

    split_edges = np.zeros(mesh.num_facets, dtype=bool)
    red = marked.copy()
    while True:
        split_edges[cell_facets[red].ravel()] = True
        n_split = split_edges[cell_facets].sum(axis=1)
        promote = ~red & (n_split >= threshold)
        if not np.any(promote):
            break
        red |= promote

    green = ~red & (n_split == 1)
    return red, green


def _subdivide(mesh: Mesh, red: np.ndarray, green: np.ndarray) -> Mesh:
    """Build the refined mesh from red/green cell classes and attach lineage."""
    if mesh.tdim not in (1, 2):
        raise UnsupportedDimensionError(
            f"Refinement of meshes of topological dimension {mesh.tdim} is not implemented"
        )

    cells = mesh.cells
    cell_facets = mesh.cell_facets
    edges = mesh.entities(1)
    n_vertices = mesh.num_vertices

    # Edges that receive a midpoint vertex (for intervals the edges are the cells)
    split = np.zeros(mesh.num_entities(1), dtype=bool)
    if mesh.tdim == 1:
        split[red] = True
    else:
        # The single split edge of a green cell belongs to a red neighbour
        split[cell_facets[red].ravel()] = True

    split_ids = np.nonzero(split)[0]
    midpoint = np.full(len(split), -1, dtype=np.int64)
    midpoint[split_ids] = n_vertices + np.arange(len(split_ids))

    coordinates = np.vstack([
        mesh.coordinates,
        mesh.coordinates[edges[split_ids]].mean(axis=1)
    ])

    fine_cells: List[Tuple[int, ...]] = []
    parent_cell: List[int] = []

    for c in range(mesh.num_cells):
        v = cells[c]
        if mesh.tdim == 1:
            if red[c]:
                m = midpoint[c]
                children = [(v[0], m), (m, v[1])]
            else:
                children = [tuple(v)]
        elif red[c]:
            m0, m1, m2 = midpoint[cell_facets[c]]
            children = [
                (v[0], m2, m1),
                (v[1], m0, m2),
                (v[2], m1, m0),
                (m0, m1, m2),
            ]
        elif green[c]:
            i = int(np.nonzero(split[cell_facets[c]])[0][0])
            a, b, d = v[i], v[(i + 1) % 3], v[(i + 2) % 3]
            m = midpoint[cell_facets[c, i]]
            children = [(a, b, m), (a, m, d)]
        else:
            children = [tuple(v)]

        fine_cells.extend(children)
        parent_cell.extend([c] * len(children))

    refined = Mesh(coordinates, np.array(fine_cells, dtype=np.int64))
    refined.data.set_array(PARENT_CELL, parent_cell)
    refined.data.set_array(PARENT_FACET, _facet_lineage(mesh, refined, split, midpoint))
    return refined


def _facet_lineage(mesh: Mesh, refined: Mesh, split: np.ndarray,
                   midpoint: np.ndarray) -> np.ndarray:
    """
    Map each fine facet to the coarse facet containing it.

    Coarse vertices keep their indices in the fine mesh, so a fine facet is
    identified with its coarse parent through sorted vertex tuples.
    """
    facets = mesh.entities(mesh.tdim - 1)
    sub_facets: Dict[Tuple[int, ...], int] = {}

    for f, vertices in enumerate(facets):
        if mesh.tdim == 2 and split[f]:
            u, w = vertices
            m = midpoint[f]
            sub_facets[tuple(sorted((int(u), int(m))))] = f
            sub_facets[tuple(sorted((int(w), int(m))))] = f
        else:
            sub_facets[tuple(int(x) for x in vertices)] = f

    fine_facets = refined.entities(refined.tdim - 1)
    return np.array([sub_facets.get(tuple(int(x) for x in vertices), NO_PARENT)
                     for vertices in fine_facets], dtype=np.int64)
