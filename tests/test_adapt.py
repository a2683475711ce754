"""
Tests for refinement of meshes and dependent entities.
"""

import logging

import numpy as np
import pytest

from watfAdapt.adaptivity import (
    adapt, adapt_mesh, adapt_function_space, adapt_function, adapt_form,
    adapt_dirichlet_bc, adapt_bc, adapt_mesh_function, adapt_error_control,
    adapt_problem, adapt_markers, refine_coefficient,
)
from watfAdapt.common.errors import (
    MissingLineageError, UnsupportedDimensionError, UnsupportedVariantError,
)
from watfAdapt.discretization.mesh import PARENT_CELL, PARENT_FACET
from watfAdapt.discretization.mesh_function import MeshFunction, cell_function, facet_function
from watfAdapt.discretization.function_space import FunctionSpace
from watfAdapt.discretization.element import FiniteElement, MixedElement
from watfAdapt.function.function import Function, Constant, Expression
from watfAdapt.fem.form import CompiledForm, Form
from watfAdapt.fem.bc import BoundaryCondition, DirichletBC
from watfAdapt.fem.problem import VariationalProblem
from watfAdapt.fem.error_control import ErrorControl, FORM_RANKS
from watfAdapt.geometry.primitives import make_unit_square_mesh, make_rectangle_mesh
from watfAdapt.io.config import AdaptivityParameters


class PeriodicBC(BoundaryCondition):
    """Boundary condition variant without a refinement rule."""
    pass


def linear_function(V):
    f = Function(V, name="f")
    f.interpolate(Expression(lambda x: x[0] + 2.0 * x[1]))
    return f


class TestAdaptMesh:
    """Tests for mesh refinement."""

    def test_uniform(self, square_mesh):
        """Two triangles refine to eight, with lineage, linked as child."""
        fine = adapt_mesh(square_mesh)

        assert fine.num_cells == 8
        assert square_mesh.is_refined
        assert square_mesh.child() is fine
        assert fine.parent() is square_mesh

        parent_cell = fine.data.array(PARENT_CELL)
        assert len(parent_cell) == fine.num_cells
        assert len(fine.data.array(PARENT_FACET)) == fine.num_facets
        assert set(parent_cell.tolist()) <= {0, 1}

    def test_idempotent(self, square_mesh):
        first = adapt_mesh(square_mesh)
        second = adapt_mesh(square_mesh)
        assert first is second

    def test_existing_child_returned_for_markers(self, square_mesh):
        """Once refined, the same child is returned whatever the arguments."""
        first = adapt_mesh(square_mesh)
        assert adapt_mesh(square_mesh, [True, False]) is first

    def test_local(self, square_mesh):
        fine = adapt_mesh(square_mesh, cell_function(square_mesh, value=True, dtype=bool))
        assert fine.num_cells == 8

    def test_local_parameters(self, square_mesh_4x4):
        markers = np.zeros(32, dtype=bool)
        markers[0] = True
        red_green = adapt_mesh(make_unit_square_mesh(4, 4), markers)
        red = adapt_mesh(square_mesh_4x4, markers,
                         parameters=AdaptivityParameters(local_refinement_algorithm="red"))
        assert red.num_cells > red_green.num_cells

    def test_does_not_modify_mesh(self, square_mesh):
        coordinates = square_mesh.coordinates.copy()
        adapt_mesh(square_mesh)
        np.testing.assert_array_equal(square_mesh.coordinates, coordinates)
        assert not square_mesh.has_lineage()

    def test_cache_hit_logged(self, square_mesh, caplog):
        adapt_mesh(square_mesh)
        with caplog.at_level(logging.DEBUG, logger="watfAdapt"):
            adapt_mesh(square_mesh)
        assert "already been refined" in caplog.text


class TestAdaptFunctionSpace:
    """Tests for function space refinement."""

    def test_full_space(self, cg1_space):
        V_fine = adapt_function_space(cg1_space)
        assert V_fine.mesh is cg1_space.mesh.child()
        assert V_fine.element == cg1_space.element
        assert V_fine.element is not cg1_space.element
        assert V_fine.dim == 9
        assert cg1_space.child() is V_fine
        assert adapt_function_space(cg1_space) is V_fine

    def test_target_mesh(self, cg1_space):
        fine = adapt_mesh(cg1_space.mesh)
        assert adapt_function_space(cg1_space, fine).mesh is fine

    def test_cell_markers(self, cg1_space):
        V_fine = adapt_function_space(cg1_space, cell_markers=[True, False])
        assert V_fine.mesh.num_cells == 6

    def test_markers_and_mesh_exclusive(self, cg1_space):
        fine = make_unit_square_mesh(2, 2)
        with pytest.raises(ValueError):
            adapt_function_space(cg1_space, fine, cell_markers=[True, False])
        assert not cg1_space.has_child()

    def test_sub_space(self, mixed_space):
        """A sub-space is refined through its root and keeps its component."""
        V1 = mixed_space.sub(1)
        V1_fine = adapt_function_space(V1)

        assert V1_fine.is_subspace
        assert V1_fine.component == (1,)
        assert V1_fine.root_space is mixed_space.child()
        assert V1_fine is mixed_space.child().sub(1)
        assert V1_fine.dim == mixed_space.child().dim == 9 + 8
        np.testing.assert_array_equal(V1_fine.dofmap.dofs(), np.arange(9, 17))

    def test_nested_sub_space_two_routes(self, square_mesh):
        """Refining a nested sub-space reached by two paths gives one child."""
        cg = FiniteElement("CG", 2, 1)
        W = FunctionSpace(square_mesh, MixedElement([MixedElement([cg, cg]), cg]))

        first = adapt_function_space(W.sub(0).sub(1))
        second = adapt_function_space(W.extract_sub_space((0, 1)))

        assert first is second
        assert first is W.child().extract_sub_space((0, 1))
        assert first.component == (0, 1)


class TestAdaptFunction:
    """Tests for function refinement."""

    def test_interpolated(self, cg1_space, tolerance):
        f = linear_function(cg1_space)
        f_fine = adapt_function(f)

        fine = cg1_space.mesh.child()
        assert f_fine.function_space is cg1_space.child()
        assert f_fine.name == "f"
        expected = fine.coordinates[:, 0] + 2.0 * fine.coordinates[:, 1]
        np.testing.assert_allclose(f_fine.vector, expected, atol=tolerance)

    def test_idempotent(self, cg1_space):
        f = linear_function(cg1_space)
        vector = f.vector.copy()
        assert adapt_function(f) is adapt_function(f)
        np.testing.assert_array_equal(f.vector, vector)

    def test_function_on_sub_space(self, mixed_space):
        f = Function(mixed_space.sub(1))
        f.interpolate(Constant(4.0))
        f_fine = adapt_function(f)

        assert f_fine.vector.shape == (17,)
        np.testing.assert_allclose(f_fine.vector[9:], 4.0)
        np.testing.assert_allclose(f_fine.vector[:9], 0.0)

    def test_point_tolerance(self, square_mesh):
        """Explicit parameters set the tolerance for locating dofs."""
        f = linear_function(FunctionSpace(square_mesh, FiniteElement("CG", 2, 1)))
        # Slightly wider than the unit square, and not refined from it
        other = make_rectangle_mesh((0.0, 1.0 + 1e-6), (0.0, 1.0), 2, 2)

        f_other = adapt_function(f, other, parameters=AdaptivityParameters(point_tolerance=1e-4))
        expected = other.coordinates[:, 0] + 2.0 * other.coordinates[:, 1]
        np.testing.assert_allclose(f_other.vector, expected, atol=1e-9)

        g = linear_function(FunctionSpace(make_unit_square_mesh(1, 1), FiniteElement("CG", 2, 1)))
        with pytest.raises(ValueError):
            adapt_function(g, make_rectangle_mesh((0.0, 1.0 + 1e-6), (0.0, 1.0), 2, 2))
        assert not g.has_child()

    def test_refine_coefficient(self, cg1_space):
        fine = adapt_mesh(cg1_space.mesh)
        c = Constant(1.0)
        e = Expression(lambda x: x[0])
        f = Function(cg1_space)

        assert refine_coefficient(c, fine) is c
        assert refine_coefficient(e, fine) is e
        assert refine_coefficient(f, fine) is f.child()


class TestAdaptForm:
    """Tests for form refinement."""

    def test_spaces_and_coefficients(self, cg1_space):
        f = linear_function(cg1_space)
        c = Constant(3.0)
        compiled = CompiledForm("a", 2, 2)
        a = Form(compiled, [cg1_space, cg1_space], [f, c])

        a_fine = adapt_form(a)
        fine = cg1_space.mesh.child()

        assert a_fine.compiled_form is compiled
        assert a_fine.mesh is fine
        assert a_fine.function_spaces == (cg1_space.child(), cg1_space.child())
        assert a_fine.coefficients[0] is f.child()
        assert a_fine.coefficients[1] is c

    def test_domains(self, cg1_space):
        mesh = cg1_space.mesh
        cells = MeshFunction(mesh, 2, values=[0, 1])
        facets = facet_function(mesh)
        facets.mark(lambda x: abs(x[1]) < 1e-12, 1, on_boundary=True)
        a = Form(CompiledForm("a", 2), [cg1_space, cg1_space],
                 cell_domains=cells, exterior_facet_domains=facets)

        a_fine = adapt_form(a)
        assert a_fine.cell_domains is cells.child()
        assert a_fine.exterior_facet_domains is facets.child()
        assert a_fine.interior_facet_domains is None
        assert a_fine.cell_domains.mesh is a_fine.mesh

    def test_functional(self, cg1_space):
        """A functional takes its mesh from a field coefficient."""
        f = linear_function(cg1_space)
        M = Form(CompiledForm("M", 0, 1), [], [f])
        M_fine = adapt_form(M)
        assert M_fine.mesh is cg1_space.mesh.child()
        assert M_fine.coefficients[0] is f.child()

    def test_shared_children(self, cg1_space):
        """Forms refined against one mesh share refined spaces and fields."""
        f = linear_function(cg1_space)
        a = Form(CompiledForm("a", 2, 1), [cg1_space, cg1_space], [f])
        L = Form(CompiledForm("L", 1, 1), [cg1_space], [f])

        fine = adapt_mesh(cg1_space.mesh)
        a_fine = adapt_form(a, fine)
        L_fine = adapt_form(L, fine)

        assert cg1_space.mesh.child() is fine
        assert a_fine.function_spaces[0] is L_fine.function_spaces[0]
        assert a_fine.coefficients[0] is L_fine.coefficients[0]
        assert f.child().function_space is cg1_space.child()
        assert fine.has_child() is False

    def test_idempotent(self, cg1_space):
        a = Form(CompiledForm("a", 2), [cg1_space, cg1_space])
        assert adapt_form(a) is adapt_form(a)


class TestAdaptMeshFunction:
    """Tests for mesh function refinement."""

    def test_cell_values(self, square_mesh):
        """Children of each cell take the parent's value."""
        mf = MeshFunction(square_mesh, 2, values=[0, 1])
        mf_fine = adapt_mesh_function(mf)

        assert mf_fine.mesh is square_mesh.child()
        assert mf_fine.size == 8
        np.testing.assert_array_equal(mf_fine.values, [0, 0, 0, 0, 1, 1, 1, 1])

    def test_facet_values_with_sentinel(self, square_mesh):
        """Facets created inside coarse cells get max + 1."""
        mf = MeshFunction(square_mesh, 1, values=[10, 20, 30, 40, 50])
        mf_fine = adapt_mesh_function(mf)

        fine = square_mesh.child()
        parent_facet = fine.data.array(PARENT_FACET)
        has_parent = parent_facet >= 0
        np.testing.assert_array_equal(mf_fine.values[has_parent], mf.values[parent_facet[has_parent]])
        assert np.all(mf_fine.values[~has_parent] == 51)
        assert np.sum(mf_fine.values == 51) == 6

    def test_round_trip(self, square_mesh_4x4):
        """f'[i] == f[parent(i)] for every fine cell."""
        mf = MeshFunction(square_mesh_4x4, 2, values=np.arange(32) % 5)
        mf_fine = adapt_mesh_function(mf, adapt_mesh(square_mesh_4x4, np.arange(32) < 3))

        parent = mf_fine.mesh.data.array(PARENT_CELL)
        np.testing.assert_array_equal(mf_fine.values, mf.values[parent])

    def test_boolean_to_int(self, square_mesh):
        mf = facet_function(square_mesh, value=True, dtype=bool)
        mf_fine = adapt_mesh_function(mf)
        assert mf_fine.dtype == np.int64
        assert set(mf_fine.values.tolist()) == {1, 2}

    def test_sentinel_widens_dtype(self, square_mesh):
        """max + 1 is not wrapped around when it overflows the dtype."""
        mf = MeshFunction(square_mesh, 1, dtype=np.uint8, values=[255, 0, 0, 0, 0])
        mf_fine = adapt_mesh_function(mf)

        parent_facet = square_mesh.child().data.array(PARENT_FACET)
        has_parent = parent_facet >= 0
        assert np.can_cast(np.uint8, mf_fine.dtype)
        assert np.all(mf_fine.values[~has_parent] == 256)
        np.testing.assert_array_equal(mf_fine.values[has_parent], mf.values[parent_facet[has_parent]])

    def test_sentinel_keeps_dtype_when_it_fits(self, square_mesh):
        mf = MeshFunction(square_mesh, 1, dtype=np.uint8, values=[3, 0, 0, 0, 0])
        mf_fine = adapt_mesh_function(mf)
        assert mf_fine.dtype == np.uint8
        assert np.sum(mf_fine.values == 4) == 6

    def test_unsupported_dimension(self, square_mesh):
        mf = MeshFunction(square_mesh, 0)
        with pytest.raises(UnsupportedDimensionError):
            adapt_mesh_function(mf)
        with pytest.raises(NotImplementedError):
            adapt_mesh_function(mf)
        assert not mf.has_child()

    def test_missing_lineage(self, square_mesh):
        """Refining against a mesh without lineage fails and links nothing."""
        mf = cell_function(square_mesh)
        with pytest.raises(MissingLineageError):
            adapt_mesh_function(mf, make_unit_square_mesh(2, 2))
        assert not mf.has_child()

    def test_idempotent(self, square_mesh):
        mf = cell_function(square_mesh)
        assert adapt_mesh_function(mf) is adapt_mesh_function(mf)


class TestAdaptMarkers:
    """Tests for boundary marker remapping."""

    def test_bottom_edge(self, square_mesh):
        """The bottom edge of cell 0 splits into two fine boundary facets."""
        fine = adapt_mesh(square_mesh)
        refined = adapt_markers([(0, 2)], square_mesh, fine)

        assert sorted(refined) == [(0, 2), (1, 1)]
        for cell, local_facet in refined:
            facet = fine.cell_facets[cell, local_facet]
            assert abs(fine.facet_midpoints()[facet, 1]) < 1e-12

    def test_completeness(self, square_mesh_4x4):
        """Each boundary marker maps to its two halves, each exactly once."""
        mesh = square_mesh_4x4
        markers = [mesh.facet_cell_local(f)[0] for f in mesh.boundary_facets()]
        fine = adapt_mesh(mesh)

        refined = adapt_markers(markers, mesh, fine)
        assert len(refined) == 2 * len(markers)
        assert len(set(refined)) == len(refined)

        fine_boundary = {fine.facet_cell_local(f)[0] for f in fine.boundary_facets()}
        assert set(refined) == fine_boundary

    def test_local_refinement(self, square_mesh):
        """Markers on facets that are not split map to a single facet."""
        fine = adapt_mesh(square_mesh, [True, False])
        # Cell 1, local facet 1 is the left edge (0, 2), untouched by the closure
        refined = adapt_markers([(1, 1), (0, 2)], square_mesh, fine)
        assert len(refined) == 3

    def test_interior_marker_dropped(self, square_mesh):
        fine = adapt_mesh(square_mesh)
        # Local facet 1 of cell 0 is the interior diagonal
        assert adapt_markers([(0, 1)], square_mesh, fine) == []

    def test_missing_lineage(self, square_mesh):
        with pytest.raises(MissingLineageError):
            adapt_markers([(0, 2)], square_mesh, make_unit_square_mesh(2, 2))


class TestAdaptDirichletBC:
    """Tests for boundary condition refinement."""

    def test_field_value(self, cg1_space):
        """Marker (0, 2) maps to 2 fine markers; the value is refined with the space."""
        g = linear_function(cg1_space)
        bc = DirichletBC(cg1_space, g, [(0, 2)])

        bc_fine = adapt_dirichlet_bc(bc)

        assert bc_fine.num_markers == 2
        assert bc_fine.function_space is cg1_space.child()
        assert bc_fine.value is g.child()
        assert bc_fine.value.function_space is bc_fine.function_space
        assert bc.child() is bc_fine

        # Boundary values still follow g on the bottom edge
        values = bc_fine.get_boundary_values()
        assert len(values) == 3
        coordinates = bc_fine.function_space.tabulate_dof_coordinates()
        for dof, value in values.items():
            assert abs(value - coordinates[dof, 0]) < 1e-12

    def test_constant_value_reused(self, cg1_space):
        c = Constant(1.5)
        bc = DirichletBC(cg1_space, c, [(0, 2), (1, 0)])
        bc_fine = adapt_dirichlet_bc(bc)
        assert bc_fine.value is c
        assert bc_fine.num_markers == 4

    def test_sub_space(self, square_mesh):
        W = FunctionSpace(square_mesh, MixedElement([FiniteElement("CG", 2, 1),
                                                     FiniteElement("CG", 2, 1)]))
        V = W.sub(1)
        g = linear_function(V.collapse())
        bc = DirichletBC(V, g, [(0, 2)])

        bc_fine = adapt_dirichlet_bc(bc, parent_space=W)

        assert bc_fine.function_space.is_subspace
        assert bc_fine.function_space.component == (1,)
        assert bc_fine.function_space.root_space is W.child()
        assert bc_fine.num_markers == 2
        assert bc_fine.value.function_space.mesh is square_mesh.child()
        assert bc_fine.value.function_space.element == bc_fine.function_space.element
        # The coarse sub-space itself is not refined
        assert not V.has_child()

    def test_sub_space_default_parent(self, mixed_space):
        bc = DirichletBC(mixed_space.sub(0), 0.0, [(0, 2)])
        bc_fine = adapt_dirichlet_bc(bc)
        assert bc_fine.function_space.root_space is mixed_space.child()

    def test_parent_space_must_be_full(self, mixed_space):
        bc = DirichletBC(mixed_space.sub(0), 0.0, [(0, 2)])
        with pytest.raises(ValueError):
            adapt_dirichlet_bc(bc, parent_space=mixed_space.sub(1))
        assert not bc.has_child()

    def test_idempotent(self, cg1_space):
        bc = DirichletBC(cg1_space, 0.0, [(0, 2)])
        assert adapt_bc(bc) is adapt_bc(bc)
        assert adapt(bc) is bc.child()

    def test_unsupported_variant(self, cg1_space):
        bc = PeriodicBC(cg1_space)
        with pytest.raises(UnsupportedVariantError):
            adapt_bc(bc)
        with pytest.raises(UnsupportedVariantError):
            adapt(bc)
        assert not bc.has_child()


class TestAdaptErrorControl:
    """Tests for error control refinement."""

    def make_error_control(self, V, is_linear):
        f = linear_function(V)
        forms = {name: Form(CompiledForm(name, rank, 1), [V] * rank, [f], mesh=V.mesh)
                 for name, rank in FORM_RANKS.items()}
        return ErrorControl(is_linear=is_linear, **forms)

    @pytest.mark.parametrize("is_linear", [True, False])
    def test_forms_refined(self, cg1_space, is_linear):
        ec = self.make_error_control(cg1_space, is_linear)
        ec_fine = adapt_error_control(ec)

        assert ec_fine.is_linear == is_linear
        for name, form in ec.forms().items():
            assert ec_fine.forms()[name] is form.child()
            assert form.child().mesh is cg1_space.mesh.child()

    def test_idempotent(self, cg1_space):
        ec = self.make_error_control(cg1_space, True)
        assert adapt(ec) is adapt(ec)


class TestAdaptProblem:
    """Tests for variational problem refinement."""

    def test_linear_problem(self, mixed_space):
        a = Form(CompiledForm("a", 2), [mixed_space, mixed_space])
        L = Form(CompiledForm("L", 1, 1), [mixed_space], [Constant(1.0)])
        bc = DirichletBC(mixed_space.sub(0), 0.0, [(0, 2)])
        problem = VariationalProblem(a, L, [bc])

        problem_fine = adapt_problem(problem)

        assert problem_fine.is_linear
        assert problem_fine.form_0 is a.child()
        assert problem_fine.form_1 is L.child()
        assert problem_fine.bcs == (bc.child(),)
        assert problem_fine.trial_space is mixed_space.child()
        assert problem_fine.bcs[0].function_space is mixed_space.child().sub(0)
        assert adapt(problem) is problem_fine

    def test_unsupported_bc(self, cg1_space):
        """The problem is not linked, its refined forms stay linked."""
        a = Form(CompiledForm("a", 2), [cg1_space, cg1_space])
        L = Form(CompiledForm("L", 1), [cg1_space])
        problem = VariationalProblem(a, L, [PeriodicBC(cg1_space)])

        with pytest.raises(UnsupportedVariantError):
            adapt_problem(problem)
        assert not problem.has_child()
        assert a.has_child()
        assert L.has_child()


class TestDispatch:
    """Tests for the adapt entry point."""

    def test_dispatch_by_type(self, cg1_space):
        f = linear_function(cg1_space)
        mf = cell_function(cg1_space.mesh)

        assert adapt(f) is f.child()
        assert adapt(cg1_space) is cg1_space.child()
        assert adapt(cg1_space.mesh) is cg1_space.mesh.child()
        assert adapt(mf) is mf.child()

    def test_unknown_type(self):
        with pytest.raises(UnsupportedVariantError):
            adapt(object())
