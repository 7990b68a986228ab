"""Utility functions for testing B-tree invariants."""

from btree_index.btree_base import (
    BTreeBase,
    Stats,
    TREE_FLAGS,
)


def assert_tree_invariants_tc(tc, t: BTreeBase, stats: Stats) -> None:
    """TestCase version: use inside unittest.TestCase methods."""
    for flag in TREE_FLAGS:
        tc.assertTrue(
            getattr(stats, flag),
            f"Invariant failed: {flag} is False\n{t.print_structure()}"
        )

    # a leaf split keeps its median, so leaves hold every key exactly once
    tc.assertEqual(
        stats.key_count, len(t),
        f"Invariant failed: key_count={stats.key_count} ≠ len(tree)={len(t)}"
    )

    if not t.is_empty():
        tc.assertGreater(
            stats.node_count, 0,
            f"Invariant failed: node_count={stats.node_count} ≤ 0 for non-empty tree"
        )
        tc.assertEqual(
            stats.height, t.height(),
            f"Invariant failed: stats height {stats.height} ≠ tree height {t.height()}"
        )
        tc.assertEqual(
            stats.node_count, t.arena.live_count,
            f"Invariant failed: {stats.node_count} reachable nodes, "
            f"{t.arena.live_count} live arena slots"
        )
        tc.assertIsNotNone(
            stats.least_key,
            "Invariant failed: least_key is None for non-empty tree"
        )
        tc.assertIsNotNone(
            stats.greatest_key,
            "Invariant failed: greatest_key is None for non-empty tree"
        )
        tc.assertEqual(
            stats.internal_count == 0, stats.height == 1,
            "Invariant failed: internal nodes present in a single-level tree"
        )
