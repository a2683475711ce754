"""
Visualization module.

Usage:
    import matplotlib
    matplotlib.use('Agg')
    from watfAdapt.visualization import plot_mesh

    fig = plot_mesh(mesh, cell_function=markers, save_path="mesh.png")
"""

from .plot import plot_mesh

__all__ = ['plot_mesh']
