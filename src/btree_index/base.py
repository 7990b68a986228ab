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
from abc import ABC, abstractmethod
from typing import NamedTuple, TYPE_CHECKING

if TYPE_CHECKING:
    from btree_index.btree_base import BTreeNodeBase

# Keys are 32-bit signed integers
KEY_MIN = -(1 << 31)
KEY_MAX = (1 << 31) - 1

MIN_ORDER = 3


class InvariantError(Exception):
    """Raised when a B-tree node or arena handle violates a structural invariant."""
    pass


class SplitResult(NamedTuple):
    """
    The three nodes produced by splitting an overflowing node.

    Attributes:
        left (BTreeNodeBase): Lower half of the keys (and children).
        parent (BTreeNodeBase): Internal node holding the single promoted key.
            Its children are attached by the caller once left and right have
            been allocated.
        right (BTreeNodeBase): Upper half of the keys (and children).
    """
    left: "BTreeNodeBase"
    parent: "BTreeNodeBase"
    right: "BTreeNodeBase"


class AbstractOrderedIndex(ABC):
    """
    Abstract base class for an ordered, key-only index.
    """

    @abstractmethod
    def insert(self, key: int) -> None:
        """
        Insert a key into the index.

        Parameters:
            key (int): The key to be inserted.
        """
        pass

    @abstractmethod
    def search(self, key: int) -> bool:
        """
        Test whether a key is present in the index.

        Parameters:
            key (int): The key to look up.

        Returns:
            bool: True if the key has been inserted before, otherwise False.
        """
        pass

    def __contains__(self, key: int) -> bool:
        return self.search(key)


def check_key(key) -> int:
    """
    Validate that key lies in the 32-bit signed integer domain.

    Raises:
        TypeError: If key is not an int.
        ValueError: If key does not fit into 32 bits.
    """
    if not isinstance(key, int) or isinstance(key, bool):
        raise TypeError(f"key must be an int, got {type(key).__name__}")
    if key < KEY_MIN or key > KEY_MAX:
        raise ValueError(f"key {key} outside of 32-bit range [{KEY_MIN}, {KEY_MAX}]")
    return key


def check_order(order) -> int:
    """
    Validate the maximum branching factor of a tree.

    Raises:
        TypeError: If order is not an int.
        ValueError: If order is smaller than MIN_ORDER.
    """
    if not isinstance(order, int) or isinstance(order, bool):
        raise TypeError(f"order must be an int, got {type(order).__name__}")
    if order < MIN_ORDER:
        raise ValueError(f"order must be >= {MIN_ORDER}, got {order}")
    return order
