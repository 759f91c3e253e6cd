"""
Tests for interval merging, seek-jump filtering and malformed-interval handling.

Merge properties are checked with hypothesis over integer-aligned intervals so
the covered measure can be computed independently by counting unit cells.
"""

import pytest
from hypothesis import given, strategies as st

from watchtime_server.models.progress import Interval
from watchtime_server.utils.intervals import (
    apply_validation_policy,
    merge_intervals,
    split_seek_jumps,
    total_duration,
)


def iv(start, end):
    return Interval(float(start), float(end))


interval_st = st.builds(
    lambda start, length: iv(start, start + length),
    st.integers(min_value=0, max_value=200),
    st.integers(min_value=0, max_value=40),
)
interval_lists = st.lists(interval_st, max_size=30)


def covered_cells(intervals):
    cells = set()
    for i in intervals:
        cells.update(range(int(i.start), int(i.end)))
    return cells


class TestMergeIntervals:
    """Deterministic merge cases."""

    def test_empty_input(self):
        result = merge_intervals([])
        assert result.intervals == ()
        assert result.total == 0.0

    def test_single_interval(self):
        result = merge_intervals([iv(3, 8)])
        assert result.intervals == (iv(3, 8),)
        assert result.total == pytest.approx(5.0)

    def test_overlapping_intervals_merge(self):
        result = merge_intervals([iv(0, 10), iv(5, 15)])
        assert result.intervals == (iv(0, 15),)
        assert result.total == pytest.approx(15.0)

    def test_touching_intervals_merge(self):
        result = merge_intervals([iv(0, 10), iv(10, 20)])
        assert result.intervals == (iv(0, 20),)

    def test_disjoint_intervals_stay_separate(self):
        result = merge_intervals([iv(20, 25), iv(0, 5)])
        assert result.intervals == (iv(0, 5), iv(20, 25))
        assert result.total == pytest.approx(10.0)

    def test_contained_interval_absorbed(self):
        result = merge_intervals([iv(0, 30), iv(5, 10), iv(12, 14)])
        assert result.intervals == (iv(0, 30),)

    def test_duplicates_counted_once(self):
        result = merge_intervals([iv(1, 4), iv(1, 4), iv(1, 4)])
        assert result.total == pytest.approx(3.0)

    def test_fractional_seconds(self):
        result = merge_intervals([iv(0.5, 2.25), iv(2.0, 3.75)])
        assert result.intervals == (iv(0.5, 3.75),)
        assert result.total == pytest.approx(3.25)

    def test_input_not_mutated(self):
        raw = [iv(10, 12), iv(0, 3), iv(2, 5)]
        snapshot = list(raw)
        merge_intervals(raw)
        assert raw == snapshot

    def test_accepts_generators(self):
        result = merge_intervals(iv(i, i + 1) for i in range(5))
        assert result.intervals == (iv(0, 5),)

    def test_total_duration_helper(self):
        assert total_duration([iv(0, 10), iv(5, 15), iv(40, 41)]) == pytest.approx(16.0)


class TestMergeProperties:
    """Property-based checks of the merge contract."""

    @given(interval_lists)
    def test_output_sorted_and_disjoint(self, intervals):
        out = merge_intervals(intervals).intervals
        for a, b in zip(out, out[1:]):
            assert a.start <= b.start
            assert a.end < b.start

    @given(interval_lists)
    def test_total_equals_union_measure(self, intervals):
        result = merge_intervals(intervals)
        assert result.total == pytest.approx(float(len(covered_cells(intervals))))
        assert covered_cells(result.intervals) == covered_cells(intervals)

    @given(interval_lists)
    def test_idempotent(self, intervals):
        once = merge_intervals(intervals)
        twice = merge_intervals(once.intervals)
        assert twice == once

    @given(st.data(), interval_lists)
    def test_order_independent(self, data, intervals):
        shuffled = data.draw(st.permutations(intervals))
        assert merge_intervals(shuffled) == merge_intervals(intervals)

    @given(interval_lists, interval_lists)
    def test_total_monotonic(self, base, extra):
        assert merge_intervals(base + extra).total >= merge_intervals(base).total


class TestSeekJumpFilter:
    """Spans over the limit are seeks; the limit itself is still watching."""

    def test_long_span_dropped(self):
        kept, dropped = split_seek_jumps([iv(0, 45)], 30.0)
        assert kept == []
        assert dropped == [iv(0, 45)]

    def test_boundary_span_kept(self):
        kept, dropped = split_seek_jumps([iv(0, 30)], 30.0)
        assert kept == [iv(0, 30)]
        assert dropped == []

    def test_just_over_boundary_dropped(self):
        kept, _ = split_seek_jumps([iv(0, 30.001)], 30.0)
        assert kept == []

    def test_order_preserved(self):
        raw = [iv(50, 55), iv(0, 100), iv(10, 20)]
        kept, _ = split_seek_jumps(raw, 30.0)
        assert kept == [iv(50, 55), iv(10, 20)]


class TestValidationPolicy:
    def test_drop_discards_backwards_intervals(self):
        out, dropped = apply_validation_policy([iv(10, 5), iv(0, 3)], 'drop')
        assert out == [iv(0, 3)]
        assert dropped == 1

    def test_clamp_keeps_zero_length(self):
        out, dropped = apply_validation_policy([iv(10, 5)], 'clamp')
        assert out == [iv(10, 10)]
        assert dropped == 0

    def test_reject_drops_leftovers(self):
        out, dropped = apply_validation_policy([iv(10, 5)], 'reject')
        assert out == []
        assert dropped == 1

    def test_zero_length_is_well_formed(self):
        out, dropped = apply_validation_policy([iv(7, 7)], 'drop')
        assert out == [iv(7, 7)]
        assert dropped == 0
