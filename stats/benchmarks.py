#!/usr/bin/env python3
"""
Benchmarks for the B-tree index.

This script measures:
 1. Insert time per call / per batch for a range of keys
 2. Search time per call / per batch for the same keys
 3. Tree shape after the workload (height, nodes, leaked arena slots)

Every inserted key must be found again; a failed search aborts the run.

Usage:
    python benchmarks.py [--order M] [--count N] [--start S] [--batch-size B]
                         [--per-call] [--shuffle] [--seed X] [--no-verify]
"""
import argparse
import logging
import random
import sys
import gc
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from btree_index.btree_base import BTreeBase, btree_stats_
from btree_index.factory import create_btree
from btree_index.profiling import PerformanceTracker, track_performance

logger = logging.getLogger("benchmarks")


class MissingKeyError(Exception):
    """Raised when a previously inserted key is not found."""

    def __init__(self, key: int):
        super().__init__(f"failed to find {key}")
        self.key = key


def make_keys(count: int, start: int = 0, shuffle: bool = False,
              seed: Optional[int] = None) -> List[int]:
    """Keys start .. start + count - 1, ascending unless shuffled."""
    keys = list(range(start, start + count))
    if shuffle:
        random.Random(seed).shuffle(keys)
    return keys


def _run_timed(op: Callable[[int], object], keys: Sequence[int], tag: str,
               per_call: bool = False) -> np.ndarray:
    """Call op for every key with gc disabled and return the per-call times."""
    tracker = PerformanceTracker.get_instance()
    tracker.metrics.pop(tag, None)
    timed_op = track_performance(op, tag=tag)

    gc.collect()
    gc.disable()
    try:
        for key in keys:
            result = timed_op(key)
            if result is False:
                raise MissingKeyError(key)
            if per_call:
                elapsed = tracker.get(tag).times[-1]
                print(f"{tag} {key} takes: {elapsed * 1e6:.3f} us")
    finally:
        gc.enable()

    metrics = tracker.get(tag)
    return np.asarray(metrics.times if metrics else [], dtype=np.float64)


def bench_insert(tree: BTreeBase, keys: Sequence[int], per_call: bool = False) -> np.ndarray:
    """Insert every key, returning the per-insert times in seconds."""
    return _run_timed(tree.insert, keys, "insert", per_call)


def bench_search(tree: BTreeBase, keys: Sequence[int], per_call: bool = False) -> np.ndarray:
    """
    Search every key, returning the per-search times in seconds.

    Raises:
        MissingKeyError: If one of the keys is not in the tree.
    """
    return _run_timed(tree.search, keys, "search", per_call)


def summarize(times: np.ndarray) -> Dict[str, float]:
    """Mean, median, p99 and max of the times, in microseconds."""
    if times.size == 0:
        return {"count": 0, "total_s": 0.0, "mean_us": 0.0, "p50_us": 0.0, "p99_us": 0.0, "max_us": 0.0}
    us = times * 1e6
    return {
        "count": int(times.size),
        "total_s": float(times.sum()),
        "mean_us": float(us.mean()),
        "p50_us": float(np.percentile(us, 50)),
        "p99_us": float(np.percentile(us, 99)),
        "max_us": float(us.max()),
    }


def print_batches(label: str, times: np.ndarray, batch_size: int) -> None:
    """Print the total time of each consecutive batch of calls."""
    for batch_no, start in enumerate(range(0, times.size, batch_size)):
        batch = times[start:start + batch_size]
        print(f"[bench] {label} batch {batch_no:<6} ({batch.size} calls): "
              f"{batch.sum() * 1e3:10.3f} ms   avg {batch.mean() * 1e6:8.3f} us")


def print_summary(label: str, times: np.ndarray) -> None:
    s = summarize(times)
    print(f"[bench] {label:<7} {s['count']} calls in {s['total_s']:.4f}s → "
          f"avg {s['mean_us']:8.3f} us   p50 {s['p50_us']:8.3f} us   "
          f"p99 {s['p99_us']:8.3f} us   max {s['max_us']:8.3f} us")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="B-tree index benchmarks")
    parser.add_argument("--order", type=int, default=10,
                        help="Maximum number of children per internal node")
    parser.add_argument("--count", type=int, default=1_000_000,
                        help="Number of keys to insert and search")
    parser.add_argument("--start", type=int, default=0,
                        help="First key of the range")
    parser.add_argument("--batch-size", type=int, default=100_000,
                        help="Report timings per batch of this many calls")
    parser.add_argument("--per-call", action="store_true",
                        help="Print the time of every single call")
    parser.add_argument("--shuffle", action="store_true",
                        help="Insert and search keys in random order")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for --shuffle")
    parser.add_argument("--no-verify", action="store_true",
                        help="Skip node invariant checks during inserts")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s: [%(levelname)s] %(message)s"
    )

    tree = create_btree(args.order, check_invariants=not args.no_verify)
    keys = make_keys(args.count, args.start, args.shuffle, args.seed)

    print(f"\n=== Insert {args.count} keys (order={args.order}) ===")
    insert_times = bench_insert(tree, keys, args.per_call)
    print_batches("insert", insert_times, args.batch_size)
    print_summary("insert", insert_times)

    print(f"\n=== Search {args.count} keys ===")
    try:
        search_times = bench_search(tree, keys, args.per_call)
    except MissingKeyError as e:
        logger.critical(f"Search failed after insert: {e}")
        return 1
    print_batches("search", search_times, args.batch_size)
    print_summary("search", search_times)

    stats = btree_stats_(tree)
    print("\n=== Tree Shape ===")
    print(f"[bench] height={stats.height} nodes={stats.node_count} leaves={stats.leaf_count} "
          f"keys={stats.key_count} arena={len(tree.arena)} leaked={tree.arena.retired_count}")

    print("\n=== Operation-Level Performance Breakdown ===")
    print(PerformanceTracker.get_instance().report())
    return 0


if __name__ == "__main__":
    sys.exit(main())
