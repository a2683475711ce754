"""
Mesh plotting with matplotlib.

matplotlib is imported inside the plotting function, so the rest of the
package does not depend on it. Scripts running without a display should
select the Agg backend before calling plot_mesh.
"""

import numpy as np
from typing import Optional

from ..discretization.mesh import Mesh
from ..discretization.mesh_function import MeshFunction


def plot_mesh(mesh: Mesh, cell_function: Optional[MeshFunction] = None,
              ax=None, save_path: Optional[str] = None, show: bool = False):
    """
    Plot a 1D or 2D mesh, optionally coloured by a cell function.

    Parameters:
        mesh: Mesh with gdim 1 or 2
        cell_function: Optional cell values used as face colours
        ax: Existing matplotlib Axes (a new figure is created if None)
        save_path: If provided, save figure to this path
        show: Whether to call plt.show()

    Returns:
        matplotlib Figure object
    """
    import matplotlib.pyplot as plt
    from matplotlib.collections import LineCollection
    from matplotlib.tri import Triangulation

    if mesh.tdim not in (1, 2) or mesh.gdim != mesh.tdim:
        raise ValueError(f"Only 1D and 2D meshes can be plotted, got tdim={mesh.tdim}, gdim={mesh.gdim}")

    values = None
    if cell_function is not None:
        if cell_function.mesh is not mesh or cell_function.dim != mesh.tdim:
            raise ValueError("cell_function must be a cell function on the plotted mesh")
        values = cell_function.values.astype(np.float64)

    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 6) if mesh.tdim == 2 else (8, 2))
    else:
        fig = ax.figure

    x = mesh.coordinates
    if mesh.tdim == 2:
        tri = Triangulation(x[:, 0], x[:, 1], mesh.cells)
        if values is not None:
            collection = ax.tripcolor(tri, facecolors=values, cmap='viridis', edgecolors='k', linewidth=0.3)
            fig.colorbar(collection, ax=ax)
        else:
            ax.triplot(tri, 'k-', linewidth=0.5)
        ax.set_aspect('equal')
        ax.set_ylabel('y')
    else:
        segments = np.stack([
            np.column_stack([x[mesh.cells[:, 0], 0], np.zeros(mesh.num_cells)]),
            np.column_stack([x[mesh.cells[:, 1], 0], np.zeros(mesh.num_cells)]),
        ], axis=1)
        lines = LineCollection(segments, linewidths=4, cmap='viridis')
        if values is not None:
            lines.set_array(values)
            fig.colorbar(lines, ax=ax)
        ax.add_collection(lines)
        ax.plot(x[:, 0], np.zeros(mesh.num_vertices), 'k|', markersize=12)
        ax.set_xlim(x[:, 0].min(), x[:, 0].max())
        ax.set_ylim(-1, 1)
        ax.set_yticks([])

    ax.set_xlabel('x')
    ax.set_title(f"{mesh.num_cells} cells, {mesh.num_vertices} vertices")

    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches='tight')

    if show:
        plt.show()

    return fig
