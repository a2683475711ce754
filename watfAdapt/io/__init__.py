"""
Input/output: configuration loading.
"""

from .config import (
    AdaptivityParameters,
    load_config,
    parameters_from_config,
    load_parameters,
    parameters,
)
