"""
Error types raised by the adaptivity layer.

All of these signal misuse by the caller (a precondition that does not hold),
not a transient condition: there is nothing to retry. They are raised, never
returned, so callers decide whether to propagate or abort.

- MissingLineageError: a mesh expected to carry parent_cell / parent_facet
  lineage data does not have it (it was not produced by refinement)
- UnsupportedDimensionError: an entity dimension the refiner cannot map
- UnsupportedVariantError: a concrete type the refiner has no rule for
- HierarchyError: misuse of the parent/child link
"""


class AdaptivityError(RuntimeError):
    """Base class for all adaptivity errors."""
    pass


class MissingLineageError(AdaptivityError):
    """Raised when a refined mesh carries no parent entity information."""
    pass


class UnsupportedDimensionError(AdaptivityError, NotImplementedError):
    """Raised when an entity dimension has no lineage map."""
    pass


class UnsupportedVariantError(AdaptivityError, NotImplementedError):
    """Raised when asked to refine a type with no refinement rule."""
    pass


class HierarchyError(AdaptivityError):
    """Raised on invalid parent/child queries or double linking."""
    pass
