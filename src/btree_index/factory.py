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
"""Factory for the creation of order-specialised B-trees"""

from typing import Type, Tuple, Dict, Optional
import logging

from btree_index.base import check_order
from btree_index.btree_base import BTreeBase, BTreeNodeBase

# Configure logging
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)

# Cache for previously created classes to avoid recreating them
_class_cache: Dict[int, Tuple[Type[BTreeBase], Type[BTreeNodeBase]]] = {}


def make_btree_classes(order: int) -> Tuple[
    Type[BTreeBase],
    Type[BTreeNodeBase]
]:
    """
    Factory function to generate B-tree classes specialised for a given order.

    Returns:
        BTreeO      – subclass of BTreeBase with ORDER=order and NodeClass=BTreeNodeO.
        BTreeNodeO  – subclass of BTreeNodeBase with ORDER=order.

    Raises:
        TypeError: If order is not an int.
        ValueError: If order is smaller than 3.
    """
    check_order(order)

    # Check if we've already created classes for this order
    if order in _class_cache:
        logger.debug(f"Using cached classes for order={order}")
        return _class_cache[order]

    logger.debug(f"Creating new classes for order={order}")

    # 1) Node class: every node carries the order of its tree
    BTreeNodeO = type(
        f"BTreeNode_O{order}",
        (BTreeNodeBase,),
        {
            "ORDER": order,
            "__slots__": ()
        }
    )
    logger.debug(f"Created BTreeNode_O{order} with ORDER={order}")

    # 2) Tree class points at the node class
    BTreeO = type(
        f"BTree_O{order}",
        (BTreeBase,),
        {
            "ORDER": order,
            "NodeClass": BTreeNodeO,
            "__slots__": ()
        }
    )
    logger.debug(f"Created BTree_O{order} with NodeClass={BTreeNodeO.__name__}")

    # Cache the created classes
    _class_cache[order] = (BTreeO, BTreeNodeO)
    logger.debug(f"Cached classes for order={order}")

    return BTreeO, BTreeNodeO


def create_btree(order: int, check_invariants: Optional[bool] = None) -> BTreeBase:
    """
    Create a new, empty B-tree with the specified order.

    Args:
        order (int): Maximum number of children per internal node (>= 3).
        check_invariants (Optional[bool]): Verify each node after it is written.
            Defaults to btree_base.CHECK_INVARIANTS.

    Returns:
        A new empty B-tree with the specified order
    """
    logger.debug(f"Creating new tree with order={order}")
    BTreeO, _ = make_btree_classes(order)
    tree = BTreeO(check_invariants=check_invariants)
    logger.debug(f"Created tree instance of type {type(tree).__name__}")
    return tree
