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
"""Append-only node arena"""

from typing import TYPE_CHECKING, Iterator, List, Set, Tuple
import logging

from btree_index.base import InvariantError

if TYPE_CHECKING:
    from btree_index.btree_base import BTreeNodeBase

# Configure logging
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


class Arena:
    """
    An append-only collection of B-tree nodes addressed by integer handles.

    A handle is the position of a node at allocation time and never changes.
    Slots are never freed or reused: when a split supersedes a node, its
    handle is retired and the node stays resident but unreachable.
    """
    __slots__ = ("_nodes", "_retired")

    def __init__(self):
        self._nodes: List["BTreeNodeBase"] = []
        self._retired: Set[int] = set()

    def __len__(self) -> int:
        return len(self._nodes)

    def __getitem__(self, handle: int) -> "BTreeNodeBase":
        """Direct (mutable) access to the node stored under handle."""
        if handle < 0 or handle >= len(self._nodes):
            logger.critical(f"Dereferenced out-of-range handle {handle} (arena size {len(self._nodes)})")
            raise InvariantError(f"handle {handle} out of range for arena of size {len(self._nodes)}")
        if handle in self._retired:
            logger.critical(f"Dereferenced retired handle {handle}: {self._nodes[handle]!r}")
            raise InvariantError(f"handle {handle} refers to a superseded node")
        return self._nodes[handle]

    def allocate(self, node: "BTreeNodeBase") -> int:
        """Append node and return its handle."""
        self._nodes.append(node)
        return len(self._nodes) - 1

    def retire(self, handle: int) -> None:
        """Mark handle as superseded. The slot is kept, not recycled."""
        if handle in self._retired:
            raise InvariantError(f"handle {handle} retired twice")
        # validates the handle as a side effect
        self[handle]
        self._retired.add(handle)

    def is_live(self, handle: int) -> bool:
        return 0 <= handle < len(self._nodes) and handle not in self._retired

    @property
    def live_count(self) -> int:
        return len(self._nodes) - len(self._retired)

    @property
    def retired_count(self) -> int:
        """Number of leaked slots."""
        return len(self._retired)

    def items(self) -> Iterator[Tuple[int, "BTreeNodeBase"]]:
        """Yields (handle, node) for every live slot in allocation order."""
        retired = self._retired
        for handle, node in enumerate(self._nodes):
            if handle not in retired:
                yield handle, node

    def __repr__(self) -> str:
        return f"Arena(size={len(self._nodes)}, live={self.live_count}, retired={self.retired_count})"
