"""
Remapping of boundary markers from a coarse mesh to its refinement.

A marker is a (cell, local facet) pair. A coarse boundary facet is split
into several fine boundary facets; each of them records its coarse parent
facet in the "parent_facet" lineage and its cell records the coarse parent
cell in "parent_cell". Grouping the fine boundary facets by
(parent cell, parent local facet) gives the fine markers of each coarse
marker.

Coarse markers with no fine descendant on the boundary (e.g. markers on
interior facets) are dropped without error. Callers relying on every marker
being carried over should compare the counts.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from ..common.errors import AdaptivityError, MissingLineageError
from ..discretization.mesh import Mesh, NO_PARENT, PARENT_CELL, PARENT_FACET

logger = logging.getLogger(__name__)

Marker = Tuple[int, int]


def boundary_facet_children(mesh: Mesh, refined_mesh: Mesh) -> Dict[Marker, List[Marker]]:
    """
    Group the fine boundary facets by their coarse (cell, local facet).

    Parameters:
        mesh: Coarse mesh
        refined_mesh: Fine mesh carrying parent_cell / parent_facet lineage

    Returns:
        Dictionary (parent cell, parent local facet) -> list of
        (fine cell, fine local facet), in fine facet order

    Raises:
        MissingLineageError: If refined_mesh has no lineage data
    """
    parent_cell = refined_mesh.data.array(PARENT_CELL)
    parent_facet = refined_mesh.data.array(PARENT_FACET)
    if parent_cell is None:
        raise MissingLineageError(
            "Unable to remap markers: refined mesh has no parent cell information"
        )
    if parent_facet is None:
        raise MissingLineageError(
            "Unable to remap markers: refined mesh has no parent facet information"
        )

    children: Dict[Marker, List[Marker]] = defaultdict(list)
    for facet in refined_mesh.boundary_facets():
        # Boundary facets have exactly one incident cell
        (cell, local_facet), = refined_mesh.facet_cell_local(facet)

        coarse_facet = int(parent_facet[facet])
        if coarse_facet == NO_PARENT:
            continue
        coarse_cell = int(parent_cell[cell])
        try:
            coarse_local = mesh.local_facet_index(coarse_cell, coarse_facet)
        except ValueError as e:
            raise AdaptivityError(
                f"Inconsistent lineage: fine facet {facet} maps to coarse facet "
                f"{coarse_facet}, which is not a facet of coarse cell {coarse_cell}"
            ) from e

        children[(coarse_cell, coarse_local)].append((cell, local_facet))

    return dict(children)


def adapt_markers(markers: Iterable[Marker], mesh: Mesh,
                  refined_mesh: Mesh) -> List[Marker]:
    """
    Map coarse boundary markers to fine boundary markers.

    Parameters:
        markers: Coarse (cell, local facet) pairs
        mesh: Coarse mesh the markers refer to
        refined_mesh: Fine mesh carrying lineage data

    Returns:
        Fine (cell, local facet) pairs, grouped by input marker

    Raises:
        MissingLineageError: If refined_mesh has no lineage data
    """
    children = boundary_facet_children(mesh, refined_mesh)

    refined_markers: List[Marker] = []
    n_dropped = 0
    for cell, local_facet in markers:
        fine = children.get((int(cell), int(local_facet)))
        if fine is None:
            n_dropped += 1
            continue
        refined_markers.extend(fine)

    if n_dropped:
        logger.debug(f"{n_dropped} marker(s) have no boundary facet on the refined mesh, dropped")
    return refined_markers
