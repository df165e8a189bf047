"""
Half-open time interval helpers shared by the resolver, intersector and
conflict checker.

An interval is ``[start, end)``: two intervals that only touch
(``a.end == b.start``) do not overlap.
"""

from datetime import datetime, timedelta
from typing import Iterable, NamedTuple


class Interval(NamedTuple):
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end

    def expand(self, before: timedelta, after: timedelta) -> "Interval":
        return Interval(self.start - before, self.end + after)


def subtract(interval: Interval, block: Interval) -> list[Interval]:
    """
    Remove ``block`` from ``interval``.

    Returns zero, one or two intervals:
    - no overlap: the original interval
    - block covers everything: nothing
    - block covers the head or the tail: the remaining piece
    - block strictly inside: the pieces on both sides
    """
    if not interval.overlaps(block):
        return [interval]

    pieces = []
    if block.start > interval.start:
        pieces.append(Interval(interval.start, block.start))
    if block.end < interval.end:
        pieces.append(Interval(block.end, interval.end))
    return pieces


def subtract_all(intervals: Iterable[Interval], blocks: Iterable[Interval]) -> list[Interval]:
    remaining = list(intervals)
    for block in blocks:
        next_round: list[Interval] = []
        for interval in remaining:
            next_round.extend(subtract(interval, block))
        remaining = next_round
    return sorted(remaining)


def merge(intervals: Iterable[Interval]) -> list[Interval]:
    """Merge overlapping or adjacent intervals into a sorted disjoint list."""
    ordered = sorted(intervals)
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            if current.end > last.end:
                merged[-1] = Interval(last.start, current.end)
        else:
            merged.append(current)
    return merged


def intersect(first: Iterable[Interval], second: Iterable[Interval]) -> list[Interval]:
    """Pairwise overlap of two interval sets, sorted ascending."""
    a = merge(first)
    b = merge(second)
    result: list[Interval] = []
    i = j = 0
    while i < len(a) and j < len(b):
        start = max(a[i].start, b[j].start)
        end = min(a[i].end, b[j].end)
        if start < end:
            result.append(Interval(start, end))
        if a[i].end <= b[j].end:
            i += 1
        else:
            j += 1
    return result
