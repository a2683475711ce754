"""
Variational formulation objects: forms, boundary conditions, problems and
error control data.
"""

from .form import CompiledForm, Form
from .bc import BoundaryCondition, DirichletBC
from .problem import VariationalProblem
from .error_control import ErrorControl

__all__ = [
    "CompiledForm",
    "Form",
    "BoundaryCondition",
    "DirichletBC",
    "VariationalProblem",
    "ErrorControl",
]
