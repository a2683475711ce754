"""
Tests for the parent/child link.
"""

import gc

import pytest

from watfAdapt.common.hierarchical import Hierarchical, link
from watfAdapt.common.errors import HierarchyError, AdaptivityError


class Node(Hierarchical):
    def __init__(self, label):
        Hierarchical.__init__(self)
        self.label = label


class TestLink:
    """Tests for linking parent and child."""

    def test_unlinked_entity(self):
        """A new entity has neither child nor parent."""
        node = Node("a")
        assert not node.has_child()
        assert not node.is_refined
        assert not node.has_parent()

    def test_child_without_link_raises(self):
        node = Node("a")
        with pytest.raises(HierarchyError):
            node.child()
        with pytest.raises(HierarchyError):
            node.parent()

    def test_link_sets_both_directions(self):
        """After link the forward and backward references agree."""
        parent, child = Node("coarse"), Node("fine")
        link(parent, child)

        assert parent.has_child()
        assert parent.is_refined
        assert parent.child() is child
        assert child.has_parent()
        assert child.parent() is parent

    def test_double_link_parent_raises(self):
        """A parent may be linked only once."""
        parent = Node("coarse")
        link(parent, Node("fine"))
        with pytest.raises(HierarchyError):
            link(parent, Node("other"))

    def test_double_link_child_raises(self):
        """A child may have only one parent."""
        child = Node("fine")
        link(Node("a"), child)
        with pytest.raises(HierarchyError):
            link(Node("b"), child)

    def test_hierarchy_error_is_adaptivity_error(self):
        assert issubclass(HierarchyError, AdaptivityError)


class TestOwnership:
    """The child is owned by the parent; the parent is only observed."""

    def test_parent_keeps_child_alive(self):
        parent = Node("coarse")
        link(parent, Node("fine"))
        gc.collect()
        assert parent.child().label == "fine"

    def test_child_does_not_keep_parent_alive(self):
        parent, child = Node("coarse"), Node("fine")
        link(parent, child)
        del parent
        gc.collect()

        assert not child.has_parent()
        with pytest.raises(HierarchyError):
            child.parent()


class TestTraversal:
    """Tests for root/leaf traversal."""

    def test_root_leaf_depth(self):
        nodes = [Node(i) for i in range(4)]
        for coarse, fine in zip(nodes[:-1], nodes[1:]):
            link(coarse, fine)

        assert nodes[2].root_node() is nodes[0]
        assert nodes[1].leaf_node() is nodes[3]
        assert nodes[0].depth() == 4
        assert nodes[3].depth() == 4

    def test_single_node(self):
        node = Node("a")
        assert node.root_node() is node
        assert node.leaf_node() is node
        assert node.depth() == 1
