"""
Variational forms.

A Form binds a compiled integrand to concrete arguments:
- one function space per argument (rank of the integrand)
- one coefficient per coefficient slot (Function, Constant or Expression)
- a mesh
- optional sub-domain tags for cell, exterior facet and interior facet
  integrals

The compiled integrand (CompiledForm) is a description of the local
integrals only; it does not depend on the mesh and is shared by a form and
its refinements.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from ..common.hierarchical import Hierarchical
from ..discretization.mesh import Mesh
from ..discretization.mesh_function import MeshFunction
from ..discretization.function_space import FunctionSpace
from ..function.function import GenericFunction, Constant

DOMAIN_TYPES = ("cell_domains", "exterior_facet_domains", "interior_facet_domains")


@dataclass(frozen=True)
class CompiledForm:
    """
    Mesh-independent description of a form's integrand.

    Attributes:
        name: Label of the integrand
        rank: Number of arguments (0 functional, 1 linear, 2 bilinear)
        num_coefficients: Number of coefficient slots
    """
    name: str
    rank: int
    num_coefficients: int = 0

    def __post_init__(self):
        if self.rank < 0:
            raise ValueError(f"Form rank must be non-negative, got {self.rank}")
        if self.num_coefficients < 0:
            raise ValueError(f"Number of coefficients must be non-negative, got {self.num_coefficients}")


class Form(Hierarchical):
    """
    Compiled integrand bound to function spaces, coefficients and a mesh.

    Attributes:
        compiled_form: Shared CompiledForm
        function_spaces: Argument spaces (test space first)
        coefficients: Coefficient values
        mesh: Integration mesh
        cell_domains / exterior_facet_domains / interior_facet_domains:
            Optional sub-domain tags
    """

    def __init__(self, compiled_form: CompiledForm,
                 function_spaces: Sequence[FunctionSpace] = (),
                 coefficients: Sequence = (),
                 mesh: Optional[Mesh] = None,
                 cell_domains: Optional[MeshFunction] = None,
                 exterior_facet_domains: Optional[MeshFunction] = None,
                 interior_facet_domains: Optional[MeshFunction] = None):
        """
        Initialize form.

        Parameters:
            compiled_form: Integrand description
            function_spaces: One space per argument
            coefficients: One value per coefficient slot; plain numbers are
                wrapped in Constant
            mesh: Integration mesh (derived from spaces or fields if omitted)
            cell_domains: Cell tags for sub-domain integrals
            exterior_facet_domains: Facet tags for boundary integrals
            interior_facet_domains: Facet tags for interior facet integrals
        """
        Hierarchical.__init__(self)
        function_spaces = tuple(function_spaces)
        if len(function_spaces) != compiled_form.rank:
            raise ValueError(
                f"Form '{compiled_form.name}' of rank {compiled_form.rank} "
                f"got {len(function_spaces)} function spaces"
            )
        coefficients = tuple(
            c if isinstance(c, GenericFunction) else Constant(c) for c in coefficients
        )
        if len(coefficients) != compiled_form.num_coefficients:
            raise ValueError(
                f"Form '{compiled_form.name}' expects {compiled_form.num_coefficients} "
                f"coefficients, got {len(coefficients)}"
            )

        self._compiled_form = compiled_form
        self._function_spaces = function_spaces
        self._coefficients = coefficients
        self._mesh: Optional[Mesh] = None
        if mesh is not None:
            self.mesh = mesh

        self._domains: Dict[str, Optional[MeshFunction]] = dict.fromkeys(DOMAIN_TYPES)
        self.cell_domains = cell_domains
        self.exterior_facet_domains = exterior_facet_domains
        self.interior_facet_domains = interior_facet_domains

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def compiled_form(self) -> CompiledForm:
        return self._compiled_form

    @property
    def rank(self) -> int:
        return self._compiled_form.rank

    @property
    def function_spaces(self) -> Tuple[FunctionSpace, ...]:
        return self._function_spaces

    @property
    def coefficients(self) -> Tuple[GenericFunction, ...]:
        return self._coefficients

    def has_mesh(self) -> bool:
        """Check whether an integration mesh can be determined."""
        return self._find_mesh() is not None

    @property
    def mesh(self) -> Mesh:
        """
        Integration mesh.

        Taken from, in order: the mesh set explicitly, the first argument
        space, the first field coefficient.
        """
        mesh = self._find_mesh()
        if mesh is None:
            raise ValueError(
                f"Form '{self._compiled_form.name}' has no mesh: "
                "no mesh was set and it has no spaces or field coefficients"
            )
        return mesh

    @mesh.setter
    def mesh(self, mesh: Mesh) -> None:
        for V in self._function_spaces:
            if V.mesh is not mesh:
                raise ValueError("Mesh differs from the mesh of the form's function spaces")
        self._mesh = mesh

    def _find_mesh(self) -> Optional[Mesh]:
        if self._mesh is not None:
            return self._mesh
        if self._function_spaces:
            return self._function_spaces[0].mesh
        for c in self._coefficients:
            if c.is_field:
                return c.function_space.mesh
        return None

    # -------------------------------------------------------------------------
    # Sub-domain tags
    # -------------------------------------------------------------------------

    @property
    def cell_domains(self) -> Optional[MeshFunction]:
        return self._domains["cell_domains"]

    @cell_domains.setter
    def cell_domains(self, mesh_function: Optional[MeshFunction]) -> None:
        self._set_domain("cell_domains", mesh_function, 0)

    @property
    def exterior_facet_domains(self) -> Optional[MeshFunction]:
        return self._domains["exterior_facet_domains"]

    @exterior_facet_domains.setter
    def exterior_facet_domains(self, mesh_function: Optional[MeshFunction]) -> None:
        self._set_domain("exterior_facet_domains", mesh_function, 1)

    @property
    def interior_facet_domains(self) -> Optional[MeshFunction]:
        return self._domains["interior_facet_domains"]

    @interior_facet_domains.setter
    def interior_facet_domains(self, mesh_function: Optional[MeshFunction]) -> None:
        self._set_domain("interior_facet_domains", mesh_function, 1)

    def _set_domain(self, name: str, mesh_function: Optional[MeshFunction],
                    codim: int) -> None:
        if mesh_function is not None:
            expected = mesh_function.mesh.tdim - codim
            if mesh_function.dim != expected:
                raise ValueError(
                    f"{name} must have dimension {expected}, got {mesh_function.dim}"
                )
            mesh = self._find_mesh()
            if mesh is not None and mesh_function.mesh is not mesh:
                raise ValueError(f"{name} is defined on a different mesh than the form")
        self._domains[name] = mesh_function

    def domains(self) -> Dict[str, MeshFunction]:
        """Sub-domain tags that are present, by name."""
        return {name: mf for name, mf in self._domains.items() if mf is not None}

    def __repr__(self) -> str:
        return (f"Form('{self._compiled_form.name}', rank={self.rank}, "
                f"coefficients={len(self._coefficients)})")
