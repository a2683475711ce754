"""
VTK export for visualization.

Exports simplicial meshes with cell data (mesh functions, per-cell arrays)
and point data (functions, per-vertex arrays) to the legacy ASCII VTK
UnstructuredGrid format, readable by ParaView and VisIt.
"""

import logging
import numpy as np
from pathlib import Path
from typing import Dict, Optional, Union

from ..discretization.mesh import Mesh
from ..discretization.mesh_function import MeshFunction
from ..function.function import Function

logger = logging.getLogger(__name__)

# VTK cell type per topological dimension
VTK_CELL_TYPES = {1: 3, 2: 5, 3: 10}  # VTK_LINE, VTK_TRIANGLE, VTK_TETRA


def _cell_values(name: str, mesh: Mesh, data: Union[MeshFunction, np.ndarray]) -> np.ndarray:
    if isinstance(data, MeshFunction):
        if data.mesh is not mesh or data.dim != mesh.tdim:
            raise ValueError(f"Cell data '{name}' must be a cell function on the exported mesh")
        values = data.values
    else:
        values = np.asarray(data)
    if values.shape[0] != mesh.num_cells:
        raise ValueError(f"Cell data '{name}' has {values.shape[0]} rows, mesh has {mesh.num_cells} cells")
    return values


def _point_values(name: str, mesh: Mesh, data: Union[Function, np.ndarray]) -> np.ndarray:
    if isinstance(data, Function):
        values = data.evaluate(mesh.coordinates)
    else:
        values = np.asarray(data)
    if values.shape[0] != mesh.num_vertices:
        raise ValueError(f"Point data '{name}' has {values.shape[0]} rows, mesh has {mesh.num_vertices} vertices")
    return values


def _write_array(f, name: str, values: np.ndarray) -> None:
    values = np.asarray(values, dtype=np.float64)
    if values.ndim == 2 and values.shape[1] == 1:
        values = values[:, 0]

    if values.ndim == 1:
        f.write(f"SCALARS {name} float 1\n")
        f.write("LOOKUP_TABLE default\n")
        for v in values:
            f.write(f"{v}\n")
    else:
        if values.shape[1] > 3:
            raise ValueError(f"Cannot export '{name}' with {values.shape[1]} components as VECTORS")
        padded = np.zeros((values.shape[0], 3))
        padded[:, :values.shape[1]] = values
        f.write(f"VECTORS {name} float\n")
        for v in padded:
            f.write(f"{v[0]} {v[1]} {v[2]}\n")


def export_vtk_unstructured(filename: str, mesh: Mesh,
                            cell_data: Optional[Dict[str, Union[MeshFunction, np.ndarray]]] = None,
                            point_data: Optional[Dict[str, Union[Function, np.ndarray]]] = None) -> Path:
    """
    Export a mesh to VTK UnstructuredGrid format.

    Parameters:
        filename: Output filename (will add .vtk extension if missing)
        mesh: Mesh to export
        cell_data: Optional dict of cell functions or per-cell arrays
        point_data: Optional dict of functions or per-vertex arrays;
                    functions are evaluated at the mesh vertices

    Returns:
        Path of the written file
    """
    path = Path(filename)
    if path.suffix != '.vtk':
        path = path.with_suffix('.vtk')

    cell_arrays = {name: _cell_values(name, mesh, data) for name, data in (cell_data or {}).items()}
    point_arrays = {name: _point_values(name, mesh, data) for name, data in (point_data or {}).items()}

    # VTK points are always 3D
    points = np.zeros((mesh.num_vertices, 3))
    points[:, :mesh.gdim] = mesh.coordinates

    cells = mesh.cells
    n_cells, n_per_cell = cells.shape

    with open(path, 'w') as f:
        # Header
        f.write("# vtk DataFile Version 3.0\n")
        f.write("watfAdapt mesh\n")
        f.write("ASCII\n")
        f.write("DATASET UNSTRUCTURED_GRID\n")

        f.write(f"POINTS {mesh.num_vertices} float\n")
        for p in points:
            f.write(f"{p[0]} {p[1]} {p[2]}\n")

        f.write(f"\nCELLS {n_cells} {n_cells * (n_per_cell + 1)}\n")
        for c in cells:
            f.write(f"{n_per_cell} " + " ".join(str(v) for v in c) + "\n")

        f.write(f"\nCELL_TYPES {n_cells}\n")
        cell_type = VTK_CELL_TYPES[mesh.tdim]
        for _ in range(n_cells):
            f.write(f"{cell_type}\n")

        if cell_arrays:
            f.write(f"\nCELL_DATA {n_cells}\n")
            for name, values in cell_arrays.items():
                _write_array(f, name, values)

        if point_arrays:
            f.write(f"\nPOINT_DATA {mesh.num_vertices}\n")
            for name, values in point_arrays.items():
                _write_array(f, name, values)

    logger.info(f"Exported VTK file: {path}")
    return path
