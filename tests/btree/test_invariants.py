"""Tests for structural invariant checks"""
# pylint: skip-file

import unittest

from btree_index.base import InvariantError
from btree_index.btree_base import btree_stats_
from btree_index.factory import create_btree, make_btree_classes


class TestNodeViolations(unittest.TestCase):
    def setUp(self):
        _, self.NodeClass = make_btree_classes(3)

    def test_valid_nodes(self):
        self.assertEqual(self.NodeClass.new_leaf([1, 2]).violations(), [])
        self.assertEqual(self.NodeClass.new_internal([5], [0, 1]).violations(), [])
        self.NodeClass.new_leaf([]).verify()

    def test_leaf_with_children(self):
        node = self.NodeClass(True, [1], [4, 5])
        with self.assertRaisesRegex(InvariantError, "Leaf node should not have children"):
            node.verify()

    def test_too_many_keys(self):
        node = self.NodeClass.new_leaf([1, 2, 3])
        with self.assertRaisesRegex(InvariantError, "at most 2 keys"):
            node.verify()
        node = self.NodeClass.new_internal([1, 2, 3], [0, 1, 2, 3])
        with self.assertRaisesRegex(InvariantError, "at most 2 keys"):
            node.verify()

    def test_internal_child_count(self):
        node = self.NodeClass.new_internal([1, 2], [0, 1])
        with self.assertRaisesRegex(InvariantError, "one more child than keys"):
            node.verify()

    def test_internal_without_children(self):
        node = self.NodeClass(False, [1], None)
        with self.assertRaisesRegex(InvariantError, "Internal node should have children"):
            node.verify()


class TestWriteBackChecks(unittest.TestCase):
    def _corrupt_root_leaf(self, tree):
        tree.insert(1)
        # a leaf that carries a (empty) child list
        tree.arena[tree.root].children = []

    def test_violation_is_logged_and_raised(self):
        tree = create_btree(3)
        self._corrupt_root_leaf(tree)
        with self.assertLogs("btree_index.btree_base", level="CRITICAL") as cm:
            with self.assertRaises(InvariantError):
                tree.insert(2)
        self.assertIn("handle 0", cm.output[0])

    def test_checks_can_be_disabled(self):
        tree = create_btree(3, check_invariants=False)
        self._corrupt_root_leaf(tree)
        tree.insert(2)
        self.assertTrue(tree.search(2))
        with self.assertRaises(InvariantError):
            tree.verify()

    def test_verify_detects_unbalanced_tree(self):
        tree = create_btree(3)
        for key in (1, 2, 3):
            tree.insert(key)
        _, NodeClass = make_btree_classes(3)
        # hang an internal node over the right leaf to break equal depth
        right = tree.arena[tree.root].children[1]
        wrapper = tree.arena.allocate(NodeClass.new_internal([3], [right, right]))
        tree.arena[tree.root].children[1] = wrapper
        self.assertFalse(btree_stats_(tree).leaves_same_depth)
        with self.assertLogs("btree_index.btree_base", level="CRITICAL"):
            with self.assertRaises(InvariantError):
                tree.verify()

    def test_verify_detects_misordered_keys(self):
        tree = create_btree(4)
        for key in (1, 2, 3, 4):
            tree.insert(key)
        left = tree.arena[tree.arena[tree.root].children[0]]
        left.keys.append(100)
        stats = btree_stats_(tree)
        self.assertFalse(stats.is_search_tree)
        with self.assertLogs("btree_index.btree_base", level="CRITICAL"):
            with self.assertRaises(InvariantError):
                tree.verify()

    def test_verify_detects_size_mismatch(self):
        tree = create_btree(5)
        for key in (1, 2):
            tree.insert(key)
        tree.size = 5
        with self.assertRaises(InvariantError):
            tree.verify()

    def test_retired_handle_is_not_dereferenced(self):
        tree = create_btree(3)
        for key in (1, 2, 3):
            tree.insert(key)
        with self.assertLogs("btree_index.arena", level="CRITICAL"):
            with self.assertRaises(InvariantError):
                tree.arena[0]


class TestStats(unittest.TestCase):
    def test_empty_tree(self):
        stats = btree_stats_(create_btree(3))
        self.assertEqual(stats.height, 0)
        self.assertEqual(stats.node_count, 0)
        self.assertIsNone(stats.least_key)
        self.assertTrue(stats.is_search_tree)

    def test_counts(self):
        tree = create_btree(3)
        for key in range(1, 8):
            tree.insert(key)
        stats = btree_stats_(tree)
        self.assertEqual(stats.height, 3)
        self.assertEqual(stats.node_count, 7)
        self.assertEqual(stats.leaf_count, 4)
        self.assertEqual(stats.internal_count, 3)
        self.assertEqual(stats.key_count, 7)
        self.assertEqual(stats.separator_count, 3)
        self.assertEqual(stats.least_key, 1)
        self.assertEqual(stats.greatest_key, 7)
        self.assertTrue(stats.nodes_valid)
        self.assertTrue(stats.leaves_same_depth)


if __name__ == "__main__":
    unittest.main()
