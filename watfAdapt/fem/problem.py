"""
Variational problems: a pair of forms plus boundary conditions.

Linear problems are given as (a, L) with a bilinear and L linear.
Nonlinear problems are given as (F, J) with F the linear residual form and
J its bilinear Jacobian.
"""

from typing import Sequence, Tuple

from ..common.hierarchical import Hierarchical
from ..discretization.function_space import FunctionSpace
from .form import Form
from .bc import BoundaryCondition


class VariationalProblem(Hierarchical):
    """
    Variational problem.

    Attributes:
        form_0: a (linear problem) or F (nonlinear problem)
        form_1: L (linear problem) or J (nonlinear problem)
        bcs: Boundary conditions
        is_linear: True for (a, L), False for (F, J)
    """

    def __init__(self, form_0: Form, form_1: Form,
                 bcs: Sequence[BoundaryCondition] = ()):
        Hierarchical.__init__(self)
        if form_0.rank == 2 and form_1.rank == 1:
            self._is_linear = True
        elif form_0.rank == 1 and form_1.rank == 2:
            self._is_linear = False
        else:
            raise ValueError(
                f"Expected forms of rank (2, 1) or (1, 2), got ({form_0.rank}, {form_1.rank})"
            )

        bcs = tuple(bcs)
        for bc in bcs:
            if not isinstance(bc, BoundaryCondition):
                raise TypeError(f"Expected a BoundaryCondition, got {type(bc).__name__}")

        self._form_0 = form_0
        self._form_1 = form_1
        self._bcs = bcs

    @property
    def form_0(self) -> Form:
        return self._form_0

    @property
    def form_1(self) -> Form:
        return self._form_1

    @property
    def bcs(self) -> Tuple[BoundaryCondition, ...]:
        return self._bcs

    @property
    def is_linear(self) -> bool:
        return self._is_linear

    @property
    def bilinear_form(self) -> Form:
        """The rank 2 form (a or J)."""
        return self._form_0 if self._is_linear else self._form_1

    @property
    def trial_space(self) -> FunctionSpace:
        """Space of the solution (second argument of the bilinear form)."""
        return self.bilinear_form.function_spaces[1]

    @property
    def test_space(self) -> FunctionSpace:
        return self.bilinear_form.function_spaces[0]

    def __repr__(self) -> str:
        kind = "linear" if self._is_linear else "nonlinear"
        return f"VariationalProblem({kind}, bcs={len(self._bcs)})"
