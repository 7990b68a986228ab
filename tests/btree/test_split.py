"""Tests for split_node"""
# pylint: skip-file

import unittest

from btree_index.base import InvariantError, SplitResult
from btree_index.btree_base import split_node
from btree_index.factory import make_btree_classes


class TestSplitLeaf(unittest.TestCase):
    def _leaf(self, order, keys):
        _, NodeClass = make_btree_classes(order)
        return NodeClass.new_leaf(keys)

    def test_order_3(self):
        result = split_node(3, self._leaf(3, [1, 2, 3]))
        self.assertIsInstance(result, SplitResult)
        left, parent, right = result
        self.assertEqual(left.keys, [1, 2])
        self.assertEqual(right.keys, [3])
        self.assertEqual(parent.keys, [2])
        self.assertTrue(left.leaf)
        self.assertTrue(right.leaf)
        self.assertFalse(parent.leaf)
        self.assertEqual(parent.children, [])

    def test_order_4_keeps_median_in_left(self):
        left, parent, right = split_node(4, self._leaf(4, [10, 20, 30, 40]))
        self.assertEqual(left.keys, [10, 20, 30])
        self.assertEqual(parent.keys, [30])
        self.assertEqual(right.keys, [40])

    def test_order_5(self):
        left, parent, right = split_node(5, self._leaf(5, [1, 2, 3, 4, 5]))
        self.assertEqual(left.keys, [1, 2, 3])
        self.assertEqual(parent.keys, [3])
        self.assertEqual(right.keys, [4, 5])

    def test_halves_are_valid_nodes(self):
        for order in range(3, 20):
            with self.subTest(order=order):
                left, _, right = split_node(order, self._leaf(order, list(range(order))))
                self.assertEqual(left.violations(), [])
                self.assertEqual(right.violations(), [])
                self.assertEqual(left.keys + right.keys, list(range(order)))

    def test_input_node_is_untouched(self):
        node = self._leaf(3, [1, 2, 3])
        left, _, right = split_node(3, node)
        self.assertEqual(node.keys, [1, 2, 3])
        self.assertIsNot(left.keys, node.keys)
        self.assertIsNot(right.keys, node.keys)

    def test_result_nodes_share_the_order(self):
        node = self._leaf(7, list(range(7)))
        for half in split_node(7, node):
            self.assertIs(type(half), type(node))
            self.assertEqual(half.ORDER, 7)


class TestSplitInternal(unittest.TestCase):
    def _internal(self, order, keys, children):
        _, NodeClass = make_btree_classes(order)
        return NodeClass.new_internal(keys, children)

    def test_order_3(self):
        node = self._internal(3, [10, 20, 30], [100, 101, 102, 103])
        left, parent, right = split_node(3, node)
        self.assertEqual(left.keys, [10])
        self.assertEqual(left.children, [100, 101])
        self.assertEqual(parent.keys, [20])
        self.assertEqual(parent.children, [])
        self.assertEqual(right.keys, [30])
        self.assertEqual(right.children, [102, 103])

    def test_order_4(self):
        node = self._internal(4, [10, 20, 30, 40], [0, 1, 2, 3, 4])
        left, parent, right = split_node(4, node)
        self.assertEqual(left.keys, [10, 20])
        self.assertEqual(left.children, [0, 1, 2])
        self.assertEqual(parent.keys, [30])
        self.assertEqual(right.keys, [40])
        self.assertEqual(right.children, [3, 4])

    def test_halves_are_valid_nodes(self):
        for order in range(3, 20):
            with self.subTest(order=order):
                node = self._internal(order, list(range(order)), list(range(order + 1)))
                left, parent, right = split_node(order, node)
                self.assertEqual(left.violations(), [])
                self.assertEqual(right.violations(), [])
                self.assertEqual(left.children + right.children, list(range(order + 1)))
                self.assertEqual(left.keys + parent.keys + right.keys, list(range(order)))


class TestSplitPreconditions(unittest.TestCase):
    def test_not_full_raises(self):
        _, NodeClass = make_btree_classes(4)
        with self.assertRaises(InvariantError):
            split_node(4, NodeClass.new_leaf([1, 2, 3]))

    def test_order_mismatch_raises(self):
        _, NodeClass = make_btree_classes(3)
        with self.assertRaises(InvariantError):
            split_node(4, NodeClass.new_leaf([1, 2, 3]))


if __name__ == "__main__":
    unittest.main()
