"""
Coefficient values: discrete fields and mesh-independent values.
"""

from .function import (
    GenericFunction,
    Constant,
    Expression,
    Function,
    transfer_matrix,
)

__all__ = [
    "GenericFunction",
    "Constant",
    "Expression",
    "Function",
    "transfer_matrix",
]
