"""
Tests for mesh plotting.
"""

import pytest

matplotlib = pytest.importorskip("matplotlib")
matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from watfAdapt.adaptivity import adapt_mesh_function  # noqa: E402
from watfAdapt.discretization.mesh import Mesh  # noqa: E402
from watfAdapt.discretization.mesh_function import MeshFunction  # noqa: E402
from watfAdapt.visualization import plot_mesh  # noqa: E402


class TestPlotMesh:

    def test_triangles(self, square_mesh):
        fig = plot_mesh(square_mesh)
        assert fig.axes[0].get_title() == "2 cells, 4 vertices"
        plt.close(fig)

    def test_refined_cell_function(self, square_mesh, tmp_path):
        mf_fine = adapt_mesh_function(MeshFunction(square_mesh, 2, values=[0, 1]))
        path = tmp_path / "mesh.png"
        fig = plot_mesh(mf_fine.mesh, mf_fine, save_path=str(path))
        assert path.exists()
        plt.close(fig)

    def test_interval(self, interval_mesh):
        fig = plot_mesh(interval_mesh)
        assert fig.axes[0].get_title() == "4 cells, 5 vertices"
        plt.close(fig)

    def test_unsupported_mesh(self):
        mesh = Mesh([[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1]], [[0, 1, 2, 3]])
        with pytest.raises(ValueError):
            plot_mesh(mesh)

    def test_foreign_cell_function(self, square_mesh, square_mesh_4x4):
        with pytest.raises(ValueError):
            plot_mesh(square_mesh, MeshFunction(square_mesh_4x4, 2))
