"""
Parent/child link for refinable entities.

Every refinable entity (mesh, function space, function, form, boundary
condition, error control, mesh function, variational problem) carries at most
one child, created lazily by whichever caller first refines it, and an
optional back-reference to the entity it was refined from.

Key design principles:
- The forward reference (parent -> child) is the owning link
- The back-reference (child -> parent) is a weak reference, used only for
  lineage queries and never for ownership
- Both references are set together by link(), which may run once per parent
  and once per child
- The child slot is the only mutable part of an otherwise immutable entity,
  so refinement never modifies an entity in place

Linking invariant:
    parent.has_child() and parent.child() is c  <=>  c.has_parent() and c.parent() is parent

The two-part mutation in link() is not atomic; refining the same entity from
several threads at once needs external synchronisation.
"""

import weakref
from typing import Optional

from .errors import HierarchyError


class Hierarchical:
    """
    Mixin giving an entity a single owned child and a weak parent reference.

    Attributes:
        _child: The refined entity owned by this one (or None)
        _parent_ref: Weak reference to the entity this one was refined from
    """

    def __init__(self):
        self._child: Optional['Hierarchical'] = None
        self._parent_ref: Optional[weakref.ref] = None

    # -------------------------------------------------------------------------
    # Child queries
    # -------------------------------------------------------------------------

    def has_child(self) -> bool:
        """Check whether this entity has been refined."""
        return self._child is not None

    @property
    def is_refined(self) -> bool:
        """True once a child has been linked. Never reverts."""
        return self._child is not None

    def child(self):
        """
        Get the refined entity.

        Raises:
            HierarchyError: If the entity has not been refined
        """
        if self._child is None:
            raise HierarchyError(
                f"{type(self).__name__} has not been refined, no child available"
            )
        return self._child

    # -------------------------------------------------------------------------
    # Parent queries
    # -------------------------------------------------------------------------

    def has_parent(self) -> bool:
        """Check whether this entity was refined from a still-alive parent."""
        return self._parent_ref is not None and self._parent_ref() is not None

    def parent(self):
        """
        Get the entity this one was refined from.

        Raises:
            HierarchyError: If there is no parent, or it has been collected
        """
        parent = self._parent_ref() if self._parent_ref is not None else None
        if parent is None:
            raise HierarchyError(f"{type(self).__name__} has no parent")
        return parent

    # -------------------------------------------------------------------------
    # Hierarchy traversal
    # -------------------------------------------------------------------------

    def root_node(self):
        """Coarsest ancestor that is still alive (self if none)."""
        node = self
        while node.has_parent():
            node = node.parent()
        return node

    def leaf_node(self):
        """Finest descendant (self if not refined)."""
        node = self
        while node.has_child():
            node = node.child()
        return node

    def depth(self) -> int:
        """Number of entities in the hierarchy, counted from the root to the leaf."""
        node = self.root_node()
        n = 1
        while node.has_child():
            node = node.child()
            n += 1
        return n


def link(parent: Hierarchical, child: Hierarchical) -> None:
    """
    Register child as the refinement of parent.

    Sets the owning forward reference and the weak back-reference in one
    step, so the two never disagree.

    Parameters:
        parent: Coarse entity
        child: Newly created refined entity

    Raises:
        HierarchyError: If parent already has a child or child already has a parent
    """
    if parent.has_child():
        raise HierarchyError(
            f"{type(parent).__name__} already has a child; refinement may be linked only once"
        )
    if child._parent_ref is not None:
        raise HierarchyError(f"{type(child).__name__} is already linked to a parent")

    parent._child = child
    child._parent_ref = weakref.ref(parent)
