"""Pure functions for computing statistics over program graphs."""

from __future__ import annotations

from collections import Counter

from scribble.graph import Block, Edge


def count_block_types(blocks: list[Block]) -> dict[str, int]:
    """Return a frequency map of block type tags in the given block list.

    Args:
        blocks: A list of blocks.

    Returns:
        A dict mapping block type strings to their occurrence counts.
        Empty dict for an empty input list.
    """
    return dict(Counter(b.type for b in blocks))


def count_edge_kinds(edges: list[Edge]) -> dict[str, int]:
    return dict(Counter(e.kind.value for e in edges))
