"""
Goal-oriented error control data.

ErrorControl groups the eight forms needed to estimate the error in a goal
functional and to compute cell indicators:

    a_star, L_star   dual problem (bilinear, linear)
    residual         weak residual of the primal solution (functional)
    a_R_T, L_R_T     cell residual problem (bilinear, linear)
    a_R_dT, L_R_dT   facet residual problem (bilinear, linear)
    eta_T            error indicators, one value per cell (linear)

The forms are refined as a unit; the linearity flag of the primal problem is
carried along unchanged.
"""

from typing import Dict

from ..common.hierarchical import Hierarchical
from .form import Form

# Form name -> expected rank
FORM_RANKS = {
    "a_star": 2,
    "L_star": 1,
    "residual": 0,
    "a_R_T": 2,
    "L_R_T": 1,
    "a_R_dT": 2,
    "L_R_dT": 1,
    "eta_T": 1,
}


class ErrorControl(Hierarchical):
    """Aggregate of the error estimation forms."""

    def __init__(self, a_star: Form, L_star: Form, residual: Form,
                 a_R_T: Form, L_R_T: Form, a_R_dT: Form, L_R_dT: Form,
                 eta_T: Form, is_linear: bool):
        Hierarchical.__init__(self)
        forms = {
            "a_star": a_star,
            "L_star": L_star,
            "residual": residual,
            "a_R_T": a_R_T,
            "L_R_T": L_R_T,
            "a_R_dT": a_R_dT,
            "L_R_dT": L_R_dT,
            "eta_T": eta_T,
        }
        for name, form in forms.items():
            if form.rank != FORM_RANKS[name]:
                raise ValueError(
                    f"ErrorControl form {name} must have rank {FORM_RANKS[name]}, got {form.rank}"
                )
        self._forms = forms
        self._is_linear = bool(is_linear)

    @property
    def is_linear(self) -> bool:
        return self._is_linear

    @property
    def a_star(self) -> Form:
        return self._forms["a_star"]

    @property
    def L_star(self) -> Form:
        return self._forms["L_star"]

    @property
    def residual(self) -> Form:
        return self._forms["residual"]

    @property
    def a_R_T(self) -> Form:
        return self._forms["a_R_T"]

    @property
    def L_R_T(self) -> Form:
        return self._forms["L_R_T"]

    @property
    def a_R_dT(self) -> Form:
        return self._forms["a_R_dT"]

    @property
    def L_R_dT(self) -> Form:
        return self._forms["L_R_dT"]

    @property
    def eta_T(self) -> Form:
        return self._forms["eta_T"]

    def forms(self) -> Dict[str, Form]:
        """The eight forms by name, in constructor order."""
        return dict(self._forms)

    def __repr__(self) -> str:
        return f"ErrorControl(is_linear={self._is_linear})"
