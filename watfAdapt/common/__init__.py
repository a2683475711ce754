"""
Shared building blocks: the parent/child link and error types.
"""

from .hierarchical import Hierarchical, link
from .errors import (
    AdaptivityError,
    MissingLineageError,
    UnsupportedDimensionError,
    UnsupportedVariantError,
    HierarchyError,
)
