"""
Ranking (top-N categories per metric)
=====================================

For each of the six metrics we sort the category aggregates from highest
to lowest and keep the first N (5 by default).

The sort is a stable merge sort: when two categories have the same value,
the one that appeared first in the dataset stays first. Because the
aggregator keeps first-seen order, the same file always produces the same
rankings.
"""

from __future__ import annotations
from typing import Callable, Dict, List, Mapping, TypeVar
import logging

from .models import CategoryAggregate, METRICS

logger = logging.getLogger(__name__)

TOP_N = 5

T = TypeVar("T")


def merge_sort_desc(arr: List[T], key: Callable[[T], object]) -> List[T]:
    """Stable merge sort, largest key first."""
    if len(arr) <= 1:
        return arr[:]
    mid = len(arr) // 2
    left = merge_sort_desc(arr[:mid], key)
    right = merge_sort_desc(arr[mid:], key)
    out: List[T] = []
    i = j = 0
    while i < len(left) and j < len(right):
        # >= keeps the left element on ties, which is what makes it stable
        if key(left[i]) >= key(right[j]):
            out.append(left[i]); i += 1
        else:
            out.append(right[j]); j += 1
    out.extend(left[i:])
    out.extend(right[j:])
    return out


def rank(aggregates: Mapping[str, CategoryAggregate], metric: str, n: int = TOP_N) -> List[CategoryAggregate]:
    """Return the `n` categories with the highest `metric`, descending.

    Fewer than `n` categories is not an error: all of them are returned.
    """
    if metric not in METRICS:
        raise ValueError(f"metric must be one of: {', '.join(METRICS)}")
    if n < 1:
        raise ValueError("n must be >= 1")
    rows = merge_sort_desc(list(aggregates.values()), key=lambda a: getattr(a, metric))
    if len(rows) < n:
        logger.warning("Only %d categories available, ranking by %s has fewer than %d entries",
                       len(rows), metric, n)
    return rows[:n]


def rank_all(aggregates: Mapping[str, CategoryAggregate], n: int = TOP_N) -> Dict[str, List[CategoryAggregate]]:
    """One independent top-N list per metric, keyed in METRICS order."""
    return {m: rank(aggregates, m, n) for m in METRICS}
