from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Tuple

from watchtime_server.models.progress import Interval, MergeResult

_log = logging.getLogger(__name__)


def merge_intervals(intervals: Iterable[Interval]) -> MergeResult:
    """Merge overlapping or touching intervals and sum the covered seconds.

    The input is left untouched. The result is sorted by start and pairwise
    non-overlapping; an empty input gives an empty result with a zero total.
    """
    ordered = sorted(intervals, key=lambda iv: iv.start)
    if not ordered:
        return MergeResult(intervals=(), total=0.0)
    merged: List[Interval] = []
    cur_start, cur_end = ordered[0].start, ordered[0].end
    for iv in ordered[1:]:
        if iv.start <= cur_end:
            cur_end = max(cur_end, iv.end)
            continue
        merged.append(Interval(cur_start, cur_end))
        cur_start, cur_end = iv.start, iv.end
    merged.append(Interval(cur_start, cur_end))
    total = sum(iv.end - iv.start for iv in merged)
    return MergeResult(intervals=tuple(merged), total=float(total))


def total_duration(intervals: Iterable[Interval]) -> float:
    return merge_intervals(intervals).total


def split_seek_jumps(intervals: Sequence[Interval], max_span: float) -> Tuple[List[Interval], List[Interval]]:
    """Partition intervals into (kept, dropped) by span.

    A span strictly greater than ``max_span`` is a player seek, not continuous
    watching; a span exactly equal to it is kept.
    """
    kept: List[Interval] = []
    dropped: List[Interval] = []
    for iv in intervals:
        if iv.duration > max_span:
            dropped.append(iv)
        else:
            kept.append(iv)
    return kept, dropped


def apply_validation_policy(intervals: Sequence[Interval], policy: str) -> Tuple[List[Interval], int]:
    """Resolve malformed intervals (end < start) at reconciliation time.

    ``drop`` discards them, ``clamp`` turns them into zero-length intervals at
    their start. ``reject`` is enforced on track, so anything malformed that
    still reaches here is dropped. Returns (intervals, number_dropped).
    """
    out: List[Interval] = []
    dropped = 0
    for iv in intervals:
        if not iv.is_malformed:
            out.append(iv)
        elif policy == 'clamp':
            out.append(Interval(iv.start, iv.start))
        else:
            dropped += 1
    if dropped:
        _log.debug("discarded %d malformed interval(s) policy=%s", dropped, policy)
    return out, dropped
