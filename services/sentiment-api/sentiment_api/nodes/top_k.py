"""Node 4 — Top-K Selector.

Keeps the K most frequent keywords using a bounded min-heap, so memory
stays at O(k) no matter how large the frequency table grows.
"""

from __future__ import annotations

import heapq
import logging
from typing import Mapping

from ..timing import timed_node

log = logging.getLogger(__name__)


@timed_node("top_k", "scoring")
def select_top_k(frequencies: Mapping[str, int], k: int) -> dict[str, int]:
    """Return the *k* highest-frequency ``word -> count`` entries.

    Runs in O(n log k).  Among equal frequencies the earliest-inserted
    entry is evicted first; callers must not rely on that order.  The
    result is ordered by descending frequency.
    """
    if k <= 0 or not frequencies:
        return {}

    # (frequency, insertion index, word): the index keeps comparisons off
    # the word and makes eviction deterministic.
    heap: list[tuple[int, int, str]] = []
    for seq, (word, count) in enumerate(frequencies.items()):
        entry = (count, seq, word)
        if len(heap) < k:
            heapq.heappush(heap, entry)
        elif entry > heap[0]:
            heapq.heapreplace(heap, entry)

    ranked = sorted(heap, key=lambda e: (-e[0], e[1]))
    return {word: count for count, _, word in ranked}
