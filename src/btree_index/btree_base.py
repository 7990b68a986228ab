# -*- coding: utf-8 -*-
# ------------------------------------------------------------------------------
#
#   Copyright 2025 Jannik Hehemann
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.
#
# ------------------------------------------------------------------------------
"""B-tree base implementation"""

from __future__ import annotations
import bisect
import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Type

from btree_index.arena import Arena
from btree_index.base import (
    AbstractOrderedIndex,
    InvariantError,
    SplitResult,
    check_key,
)

# Configure logging
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)

# Default for BTreeBase(check_invariants=None)
CHECK_INVARIANTS = True


class BTreeNodeBase:
    """
    Base class for B-tree nodes. Factory will set:
      - ORDER : maximum number of children of an internal node

    A leaf holds sorted keys and no children. An internal node holds sorted
    separator keys and one more child handle than keys.
    """
    __slots__ = ("keys", "children", "leaf")

    # injected by factory.py
    ORDER: int

    def __init__(
        self,
        leaf: bool,
        keys: Optional[List[int]] = None,
        children: Optional[List[int]] = None,
    ) -> None:
        self.leaf = leaf
        self.keys: List[int] = keys if keys is not None else []
        self.children: Optional[List[int]] = children

    @classmethod
    def new_leaf(cls, keys: Iterable[int] = ()) -> BTreeNodeBase:
        return cls(True, list(keys), None)

    @classmethod
    def new_internal(
        cls,
        keys: Iterable[int] = (),
        children: Iterable[int] = ()
    ) -> BTreeNodeBase:
        return cls(False, list(keys), list(children))

    def insertion_index(self, key: int) -> int:
        """Number of keys <= key; the position a new key is inserted at."""
        return bisect.bisect_right(self.keys, key)

    def child_index(self, key: int) -> int:
        """Number of keys < key; the child a search descends into."""
        return bisect.bisect_left(self.keys, key)

    def contains(self, key: int) -> bool:
        keys = self.keys
        i = bisect.bisect_left(keys, key)
        return i < len(keys) and keys[i] == key

    def is_overflowing(self) -> bool:
        return len(self.keys) >= self.ORDER

    def violations(self) -> List[str]:
        """
        Check the structural invariants of this node alone.

        Returns:
            List[str]: One message per violated invariant; empty if the node is valid.
        """
        problems = []
        max_keys = self.ORDER - 1
        if self.leaf:
            if self.children is not None:
                problems.append(f"Leaf node should not have children: {self.children}")
            if len(self.keys) > max_keys:
                problems.append(f"Leaf node should have at most {max_keys} keys, has {len(self.keys)}")
        else:
            if self.children is None:
                problems.append("Internal node should have children")
                return problems
            if len(self.keys) > max_keys:
                problems.append(f"Internal node should have at most {max_keys} keys, has {len(self.keys)}")
            if len(self.keys) + 1 != len(self.children):
                problems.append(
                    f"Internal node should have one more child than keys: "
                    f"{self.keys}, children: {self.children}"
                )
        return problems

    def verify(self) -> None:
        """Raise InvariantError if the node violates a structural invariant."""
        problems = self.violations()
        if problems:
            raise InvariantError("; ".join(problems))

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        kind = "leaf" if self.leaf else "internal"
        if self.leaf:
            return f"{cls}({kind}, keys={self.keys!r})"
        return f"{cls}({kind}, keys={self.keys!r}, children={self.children!r})"


def split_node(order: int, node: BTreeNodeBase) -> SplitResult:
    """
    Split a full node into a left sibling, a parent and a right sibling.

    With mid = len(keys) // 2 the parent holds keys[mid] only and has no
    children yet. A leaf keeps the median in its left half as well. An
    internal node moves the median up: the left half gets keys[:mid] with
    children[:mid + 1], the right half keys[mid + 1:] with children[mid + 1:].

    This is a pure function; nothing is allocated in an arena.

    Parameters:
        order (int): The order of the tree the node belongs to.
        node (BTreeNodeBase): A node holding exactly `order` keys.

    Returns:
        SplitResult: (left, parent, right)

    Raises:
        InvariantError: If the node does not hold exactly `order` keys.
    """
    keys = node.keys
    if len(keys) != order:
        raise InvariantError(
            f"split_node(): node must hold exactly {order} keys, has {len(keys)}"
        )

    NodeK = type(node)
    mid = len(keys) // 2

    if node.leaf:
        left = NodeK.new_leaf(keys[:mid + 1])
        right = NodeK.new_leaf(keys[mid + 1:])
    else:
        children = node.children
        left = NodeK.new_internal(keys[:mid], children[:mid + 1])
        right = NodeK.new_internal(keys[mid + 1:], children[mid + 1:])

    parent = NodeK.new_internal([keys[mid]])
    return SplitResult(left, parent, right)


class BTreeBase(AbstractOrderedIndex):
    """
    An in-memory B-tree over 32-bit integer keys.

    Nodes live in an append-only Arena and refer to their children by handle.
    The tree is either empty (root is None) or rooted at a live handle.

    Attributes:
        root (Optional[int]): Handle of the root node, None for an empty tree.
        arena (Arena): Storage of all nodes ever allocated by this tree.
        size (int): Number of keys inserted so far, duplicates included.
        check_invariants (bool): Verify every node after it is written.
    """
    __slots__ = ("root", "arena", "size", "check_invariants")

    # Will be set by the factory
    NodeClass: Type[BTreeNodeBase]
    ORDER: int

    def __init__(self, check_invariants: Optional[bool] = None):
        self.root: Optional[int] = None
        self.arena = Arena()
        self.size = 0
        self.check_invariants = CHECK_INVARIANTS if check_invariants is None else check_invariants

    def is_empty(self) -> bool:
        return self.root is None

    def __len__(self) -> int:
        return self.size

    def __iter__(self) -> Iterator[int]:
        """Yields all stored keys in non-decreasing order."""
        for leaf in self.iter_leaf_nodes():
            yield from leaf.keys

    def __str__(self):
        cls = self.__class__.__name__
        if self.is_empty():
            return f"Empty {cls}"
        return f"{cls}(order={self.ORDER}, size={self.size}, height={self.height()}, root={self.root})"

    __repr__ = __str__

    # Public API
    def insert(self, key: int) -> None:
        """
        Public method (O(log n)): Insert a key into the B-tree.
        Duplicates are stored again next to the existing copies.

        Args:
            key (int): The key to be inserted.

        Raises:
            TypeError: If key is not an int.
            ValueError: If key is outside the 32-bit signed range.
        """
        check_key(key)
        if self.is_empty():
            self._insert_empty(key)
        else:
            promoted = self._insert_inner(self.root, key)
            if promoted is not None:
                old_root = self.root
                self.root = promoted
                logger.debug("Root %d split, new root %d (height %d)",
                             old_root, promoted, self.height())
        self.size += 1

    def search(self, key: int) -> bool:
        """
        Tests whether key is stored in the B-tree.

        Iteratively descends from the root, at each internal node into the
        child whose index equals the number of separators smaller than key.

        Args:
            key (int): The key to search for.

        Returns:
            bool: True if key was inserted before.
        """
        check_key(key)
        if self.is_empty():
            return False

        arena = self.arena
        node = arena[self.root]
        while not node.leaf:
            node = arena[node.children[node.child_index(key)]]
        return node.contains(key)

    def verify(self) -> None:
        """
        Check every node reachable from the root and the ordering and balance
        properties of the whole tree.

        Raises:
            InvariantError: On the first violated property.
        """
        stats = btree_stats_(self)
        for flag in TREE_FLAGS:
            if not getattr(stats, flag):
                logger.critical(f"Tree invariant failed: {flag} is False\n{self.print_structure()}")
                raise InvariantError(f"tree invariant failed: {flag}")
        if stats.key_count != self.size:
            raise InvariantError(
                f"tree holds {stats.key_count} keys, but {self.size} were inserted"
            )

    def height(self) -> int:
        """Number of levels; 0 for an empty tree."""
        if self.is_empty():
            return 0
        arena = self.arena
        node = arena[self.root]
        levels = 1
        while not node.leaf:
            node = arena[node.children[0]]
            levels += 1
        return levels

    def iter_leaf_nodes(self) -> Iterator[BTreeNodeBase]:
        """
        Iterates over all leaf nodes from left to right.

        Yields:
            BTreeNodeBase: Each leaf node in key order.
        """
        if self.is_empty():
            return
        arena = self.arena
        stack = [self.root]
        while stack:
            node = arena[stack.pop()]
            if node.leaf:
                yield node
            else:
                stack.extend(reversed(node.children))

    def level_keys(self) -> List[List[List[int]]]:
        """Key lists of all nodes, grouped by depth, left to right."""
        levels = []
        if self.is_empty():
            return levels
        arena = self.arena
        current = [self.root]
        while current:
            nodes = [arena[h] for h in current]
            levels.append([list(n.keys) for n in nodes])
            current = [c for n in nodes if not n.leaf for c in n.children]
        return levels

    def print_structure(self, indent: int = 0, max_depth: Optional[int] = None) -> str:
        prefix = ' ' * indent
        if self.is_empty():
            return f"{prefix}Empty {self.__class__.__name__}"

        result = []

        def _walk(handle: int, depth: int):
            pad = ' ' * (indent + 4 * depth)
            if max_depth is not None and depth > max_depth:
                result.append(f"{pad}... (max depth reached)")
                return
            node = self.arena[handle]
            kind = "Leaf" if node.leaf else "Internal"
            result.append(f"{pad}{kind}(handle={handle}, keys={node.keys})")
            if not node.leaf:
                for child in node.children:
                    _walk(child, depth + 1)

        _walk(self.root, 0)
        return "\n".join(result)

    # Private Methods
    def _verify(self, handle: int, node: BTreeNodeBase) -> None:
        """Check a freshly written node, logging the offender before raising."""
        if not self.check_invariants:
            return
        problems = node.violations()
        if problems:
            logger.critical(f"Invariant violated at handle {handle}: {'; '.join(problems)} ({node!r})")
            raise InvariantError(f"node {handle}: {'; '.join(problems)}")

    def _insert_empty(self, key: int) -> None:
        leaf = self.NodeClass.new_leaf([key])
        handle = self.arena.allocate(leaf)
        self._verify(handle, leaf)
        self.root = handle
        logger.debug("Created root leaf %d", handle)

    def _insert_inner(self, handle: int, key: int) -> Optional[int]:
        """
        Insert key into the subtree rooted at handle.

        The node is mutated in place in its arena slot. If it overflows it is
        split instead, and the handle of the new parent holding the promoted
        key is returned to the caller; otherwise None.
        """
        node = self.arena[handle]
        index = node.insertion_index(key)

        if node.leaf:
            node.keys.insert(index, key)
        else:
            promoted = self._insert_inner(node.children[index], key)
            if promoted is not None:
                self._absorb_split(node, index, promoted)

        if node.is_overflowing():
            return self._split(handle, node)

        self._verify(handle, node)
        return None

    def _absorb_split(self, node: BTreeNodeBase, index: int, promoted: int) -> None:
        """Replace child `index` of node by the two halves of a split result."""
        arena = self.arena
        split = arena[promoted]
        left, right = split.children
        node.keys.insert(index, split.keys[0])
        node.children[index] = left
        node.children.insert(index + 1, right)
        # the split-result parent is merged into node
        arena.retire(promoted)

    def _split(self, handle: int, node: BTreeNodeBase) -> int:
        arena = self.arena
        left, parent, right = split_node(self.ORDER, node)

        left_handle = arena.allocate(left)
        right_handle = arena.allocate(right)
        parent.children.extend((left_handle, right_handle))
        parent_handle = arena.allocate(parent)

        self._verify(left_handle, left)
        self._verify(right_handle, right)
        self._verify(parent_handle, parent)

        arena.retire(handle)
        logger.debug("Split node %d into %d | %d | %d on key %d",
                     handle, left_handle, parent_handle, right_handle, parent.keys[0])
        return parent_handle


TREE_FLAGS = (
    "nodes_valid",
    "keys_in_order",
    "is_search_tree",
    "leaves_same_depth",
)


@dataclass
class Stats:
    height: int
    node_count: int
    leaf_count: int
    internal_count: int
    key_count: int
    separator_count: int
    least_key: Optional[int]
    greatest_key: Optional[int]
    nodes_valid: bool
    keys_in_order: bool
    is_search_tree: bool
    leaves_same_depth: bool


def btree_stats_(t: BTreeBase,
                 handle: Optional[int] = None,
                 _is_root: bool = True,
                 ) -> Stats:
    """
    Returns aggregated statistics for a B-tree in **O(n)** time.

    Only nodes reachable from the root are visited; retired arena slots are
    not part of the tree.
    """
    if _is_root:
        handle = t.root

    # ---------- empty tree return ---------------------------------
    if handle is None:
        return Stats(height            = 0,
                     node_count        = 0,
                     leaf_count        = 0,
                     internal_count    = 0,
                     key_count         = 0,
                     separator_count   = 0,
                     least_key         = None,
                     greatest_key      = None,
                     nodes_valid       = True,
                     keys_in_order     = True,
                     is_search_tree    = True,
                     leaves_same_depth = True)

    node = t.arena[handle]
    keys = node.keys
    keys_in_order = all(keys[i] <= keys[i + 1] for i in range(len(keys) - 1))
    nodes_valid = not node.violations()

    if node.leaf:
        return Stats(height            = 1,
                     node_count        = 1,
                     leaf_count        = 1,
                     internal_count    = 0,
                     key_count         = len(keys),
                     separator_count   = 0,
                     least_key         = keys[0] if keys else None,
                     greatest_key      = keys[-1] if keys else None,
                     nodes_valid       = nodes_valid,
                     keys_in_order     = keys_in_order,
                     is_search_tree    = True,
                     leaves_same_depth = True)

    # ---------- recurse on children ------------------------------------
    child_stats = [btree_stats_(t, c, False) for c in (node.children or [])]

    stats = Stats(
        height=1 + max((cs.height for cs in child_stats), default=0),
        node_count=1 + sum(cs.node_count for cs in child_stats),
        leaf_count=sum(cs.leaf_count for cs in child_stats),
        internal_count=1 + sum(cs.internal_count for cs in child_stats),
        key_count=sum(cs.key_count for cs in child_stats),
        separator_count=len(keys) + sum(cs.separator_count for cs in child_stats),
        least_key=child_stats[0].least_key if child_stats else None,
        greatest_key=child_stats[-1].greatest_key if child_stats else None,
        nodes_valid=nodes_valid and all(cs.nodes_valid for cs in child_stats),
        keys_in_order=keys_in_order and all(cs.keys_in_order for cs in child_stats),
        is_search_tree=all(cs.is_search_tree for cs in child_stats),
        leaves_same_depth=(
            all(cs.leaves_same_depth for cs in child_stats)
            and len({cs.height for cs in child_stats}) <= 1
        ),
    )

    # Keys under children[i] are <= keys[i], keys under children[i + 1] are >= keys[i]
    for i, key in enumerate(keys):
        if i < len(child_stats):
            greatest = child_stats[i].greatest_key
            if greatest is not None and greatest > key:
                stats.is_search_tree = False
        if i + 1 < len(child_stats):
            least = child_stats[i + 1].least_key
            if least is not None and least < key:
                stats.is_search_tree = False

    return stats


def collect_leaf_keys(tree: BTreeBase) -> List[int]:
    return list(tree)
