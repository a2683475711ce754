"""
Coefficients: discrete fields and opaque values.

Every value that can appear in a form or a boundary condition is a
GenericFunction. The class attribute is_field tells, at the type level,
whether the value is a discrete field bound to a function space (and so has
to be refined together with its mesh) or an opaque value that is valid on
any mesh:

    Function    is_field = True   coefficient vector on a FunctionSpace
    Constant    is_field = False  fixed scalar or vector value
    Expression  is_field = False  callable evaluated at points

Interpolation between meshes goes through a sparse transfer matrix
(see transfer_matrix). When the target mesh descends from the source mesh
the parent_cell lineage gives the source cell of each target cell directly;
otherwise points are located in the source mesh.
"""

from abc import ABC, abstractmethod

import numpy as np
from typing import Callable, Optional

from scipy import sparse

from ..common.hierarchical import Hierarchical
from ..discretization.mesh import Mesh, PARENT_CELL
from ..discretization.function_space import FunctionSpace


class GenericFunction(ABC):
    """
    Abstract base class for coefficient values.

    Subclasses implement evaluate(points) returning shape (n, value_size).
    """

    is_field = False
    value_size = 1

    @abstractmethod
    def evaluate(self, points: np.ndarray) -> np.ndarray:
        """Values at points, shape (n, value_size)."""
        pass

    def __call__(self, x):
        """Evaluate at a single point; scalar for scalar-valued functions."""
        values = self.evaluate(np.atleast_1d(np.asarray(x, dtype=np.float64))[np.newaxis, :])[0]
        return float(values[0]) if self.value_size == 1 else values


class Constant(GenericFunction):
    """
    Constant value, independent of the mesh.

    Attributes:
        values: Component values, shape (value_size,)
    """

    def __init__(self, value):
        self._values = np.atleast_1d(np.asarray(value, dtype=np.float64)).ravel()
        self.value_size = len(self._values)

    @property
    def values(self) -> np.ndarray:
        return self._values.copy()

    def __float__(self) -> float:
        if self.value_size != 1:
            raise TypeError("Only scalar constants convert to float")
        return float(self._values[0])

    def evaluate(self, points: np.ndarray) -> np.ndarray:
        n = np.asarray(points).shape[0]
        return np.tile(self._values, (n, 1))

    def __repr__(self) -> str:
        return f"Constant({self._values.tolist()})"


class Expression(GenericFunction):
    """
    Value given by a callable f(x) -> scalar or sequence.

    Parameters:
        f: Callable taking a point (array of shape (gdim,))
        value_size: Number of components returned by f
    """

    def __init__(self, f: Callable, value_size: int = 1):
        self._f = f
        self.value_size = value_size

    def evaluate(self, points: np.ndarray) -> np.ndarray:
        points = np.asarray(points, dtype=np.float64)
        values = [np.atleast_1d(np.asarray(self._f(x), dtype=np.float64)) for x in points]
        return np.array(values).reshape(len(points), self.value_size)

    def __repr__(self) -> str:
        return f"Expression({getattr(self._f, '__name__', self._f)!r}, value_size={self.value_size})"


class Function(GenericFunction, Hierarchical):
    """
    Discrete field on a function space.

    Attributes:
        function_space: Space the coefficients belong to
        vector: Coefficient vector, shape (function_space.dim,)
        name: Optional label (used for export)
    """

    is_field = True

    def __init__(self, function_space: FunctionSpace,
                 vector: Optional[np.ndarray] = None,
                 name: Optional[str] = None):
        Hierarchical.__init__(self)
        self._function_space = function_space
        if vector is None:
            vector = np.zeros(function_space.dim)
        else:
            vector = np.array(vector, dtype=np.float64)
            if vector.shape != (function_space.dim,):
                raise ValueError(
                    f"Vector of shape {vector.shape} does not match space dimension {function_space.dim}"
                )
        self._vector = vector
        self.name = name
        self.value_size = function_space.element.value_size

    @property
    def function_space(self) -> FunctionSpace:
        return self._function_space

    @property
    def vector(self) -> np.ndarray:
        return self._vector

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate(self, points: np.ndarray, tol: float = 1e-10) -> np.ndarray:
        """
        Evaluate at arbitrary points.

        Parameters:
            points: Points, shape (n, gdim)
            tol: Point location tolerance

        Returns:
            Values, shape (n, value_size)
        """
        V = self._function_space
        mesh = V.mesh
        points = np.asarray(points, dtype=np.float64).reshape(-1, mesh.gdim)

        cells = mesh.locate_points(points, tol=tol)
        if np.any(cells < 0):
            raise ValueError(f"{int(np.sum(cells < 0))} point(s) lie outside the mesh")

        bary = mesh.barycentric_coordinates(cells, points)
        values = np.zeros((len(points), self.value_size))
        for k, (_, leaf, cell_dofs) in enumerate(V.dofmap.leaves()):
            basis = leaf.tabulate(bary)
            values[:, k] = np.sum(basis * self._vector[cell_dofs[cells]], axis=1)
        return values

    def eval(self, points: np.ndarray) -> np.ndarray:
        """Evaluate at points; scalar fields give shape (n,)."""
        values = self.evaluate(points)
        return values[:, 0] if self.value_size == 1 else values

    # -------------------------------------------------------------------------
    # Interpolation
    # -------------------------------------------------------------------------

    def interpolate(self, source: GenericFunction, tol: float = 1e-10) -> None:
        """
        Set the coefficients by interpolating source.

        Fields are transferred through transfer_matrix; opaque values are
        evaluated at the dof coordinates. Dofs outside this space (other
        blocks of a mixed root space) are left untouched.

        Parameters:
            source: Function, Constant or Expression
            tol: Point location tolerance
        """
        V = self._function_space
        if source.value_size != self.value_size:
            raise ValueError(
                f"Cannot interpolate a {source.value_size}-component value "
                f"into a {self.value_size}-component space"
            )

        owned = V.dofmap.dofs()
        if source.is_field:
            P = transfer_matrix(source.function_space, V, tol=tol)
            self._vector[owned] = (P @ source.vector)[owned]
            return

        coordinates = V.tabulate_dof_coordinates()
        for k, (_, _, cell_dofs) in enumerate(V.dofmap.leaves()):
            dofs = np.unique(cell_dofs)
            self._vector[dofs] = source.evaluate(coordinates[dofs])[:, k]

    def __repr__(self) -> str:
        label = f"'{self.name}', " if self.name else ""
        return f"Function({label}{self._function_space!r})"


def _lineage_cell_map(source_mesh: Mesh, target_mesh: Mesh) -> Optional[np.ndarray]:
    """
    Source cell containing each target cell, following parent_cell lineage.

    Returns None if target_mesh does not descend from source_mesh.
    """
    cell_map = np.arange(target_mesh.num_cells, dtype=np.int64)
    mesh = target_mesh
    while mesh is not source_mesh:
        parent_cell = mesh.data.array(PARENT_CELL)
        if parent_cell is None or not mesh.has_parent():
            return None
        cell_map = parent_cell[cell_map]
        mesh = mesh.parent()
    return cell_map


def transfer_matrix(source_space: FunctionSpace, target_space: FunctionSpace,
                    tol: float = 1e-10) -> sparse.csr_matrix:
    """
    Interpolation matrix from source_space to target_space.

    Row i holds the weights of the source dofs defining target dof i. Rows
    of dofs outside target_space (other blocks of a view) are empty.

    Parameters:
        source_space: Space interpolated from
        target_space: Space interpolated to (same element structure)
        tol: Point location tolerance

    Returns:
        Sparse matrix of shape (target_space.dim, source_space.dim)
    """
    source_leaves = list(source_space.dofmap.leaves())
    target_leaves = list(target_space.dofmap.leaves())
    if len(source_leaves) != len(target_leaves):
        raise ValueError(
            f"Element structures differ: {len(source_leaves)} vs {len(target_leaves)} components"
        )

    source_mesh = source_space.mesh
    target_mesh = target_space.mesh
    gdim = target_mesh.gdim
    cell_map = _lineage_cell_map(source_mesh, target_mesh)

    cell_vertices = target_mesh.coordinates[target_mesh.cells]
    rows, cols, vals = [], [], []

    for (_, t_leaf, t_dofs), (_, s_leaf, s_dofs) in zip(target_leaves, source_leaves):
        ref = t_leaf.dof_reference_points()
        n_local = ref.shape[0]
        points = np.einsum('lk,nkd->nld', ref, cell_vertices).reshape(-1, gdim)

        # One row per target dof, taken from its first cell
        dofs, first = np.unique(t_dofs.ravel(), return_index=True)
        points = points[first]
        target_cells = first // n_local

        if cell_map is not None:
            source_cells = cell_map[target_cells]
        elif t_leaf.continuous:
            source_cells = source_mesh.locate_points(points, tol=tol)
        else:
            # Discontinuous dofs sit on cell boundaries: locate the owning cell instead
            midpoints = target_mesh.cell_midpoints()[target_cells]
            source_cells = source_mesh.locate_points(midpoints, tol=tol)

        if np.any(source_cells < 0):
            raise ValueError(
                f"{int(np.sum(source_cells < 0))} target dof(s) lie outside the source mesh"
            )

        bary = source_mesh.barycentric_coordinates(source_cells, points)
        basis = s_leaf.tabulate(bary)
        n_source_local = basis.shape[1]

        rows.append(np.repeat(dofs, n_source_local))
        cols.append(s_dofs[source_cells].ravel())
        vals.append(basis.ravel())

    return sparse.csr_matrix(
        (np.concatenate(vals), (np.concatenate(rows), np.concatenate(cols))),
        shape=(target_space.dim, source_space.dim)
    )
