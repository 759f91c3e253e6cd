from __future__ import annotations
import logging
from typing import List, Optional, Sequence, Tuple

from watchtime_server.core.system_settings import VALIDATION_POLICIES, get_value as sys_get
from watchtime_server.models.progress import (
    Interval,
    InvalidIntervalError,
    SessionKey,
    SweepReport,
    SyncOutcome,
)
from watchtime_server.stores.memory import (
    KeyLockRegistry,
    LastSeenTimeStore,
    PendingIntervalStore,
    ResumePointStore,
    WatchHistoryStore,
)
from watchtime_server.utils.intervals import apply_validation_policy, merge_intervals, split_seek_jumps, total_duration

_log = logging.getLogger(__name__)

MSG_TRACKED = 'Tracked'
MSG_SYNCED = 'Synced'
MSG_NO_INTERVALS = 'No intervals, resume time saved'


def _setting_float(key: str, fallback: float) -> float:
    try:
        value = sys_get(key, fallback)
        return float(value if value is not None else fallback)
    except (TypeError, ValueError):
        return fallback


class WatchProgressService:
    """Tracks raw playback intervals and reconciles them into watch history.

    Track only buffers. Sync and the background sweep both drain the buffer
    under the key's lock, drop seek jumps, and fold what remains into the
    merged history; they are the only writers of that history.
    """

    def __init__(
        self,
        *,
        pending: PendingIntervalStore | None = None,
        history: WatchHistoryStore | None = None,
        resume_points: ResumePointStore | None = None,
        last_seen: LastSeenTimeStore | None = None,
        locks: KeyLockRegistry | None = None,
    ):
        self.pending = pending or PendingIntervalStore()
        self.history = history or WatchHistoryStore()
        self.resume_points = resume_points or ResumePointStore()
        self.last_seen = last_seen or LastSeenTimeStore()
        self.locks = locks or KeyLockRegistry()

    # --- configuration -----------------------------------------------
    @property
    def max_valid_span(self) -> float:
        return _setting_float('MAX_VALID_INTERVAL_SECONDS', 30.0)

    @property
    def default_duration(self) -> float:
        return _setting_float('DEFAULT_VIDEO_DURATION_SECONDS', 60.0)

    @property
    def completion_threshold(self) -> float:
        return _setting_float('COMPLETION_THRESHOLD_PERCENT', 90.0)

    @property
    def validation_policy(self) -> str:
        policy = str(sys_get('INTERVAL_VALIDATION_POLICY', 'drop') or 'drop').lower()
        if policy not in VALIDATION_POLICIES:
            _log.warning("unknown interval validation policy %r, using 'drop'", policy)
            return 'drop'
        return policy

    # --- writes ------------------------------------------------------
    def track(self, key: SessionKey, interval: Interval, current_time: float) -> str:
        if interval.is_malformed and self.validation_policy == 'reject':
            raise InvalidIntervalError(
                f'interval end {interval.end} precedes start {interval.start}'
            )
        with self.locks.hold(key):
            size = self.pending.append(key, interval)
            self.last_seen.set(key, float(current_time))
        _log.debug("track key=%s from=%s to=%s pending=%d", key, interval.start, interval.end, size)
        return MSG_TRACKED

    def sync(
        self,
        key: SessionKey,
        current_time: float,
        video_duration: Optional[float] = None,
        *,
        is_ended: bool = False,
    ) -> SyncOutcome:
        current_time = float(current_time)
        with self.locks.hold(key):
            self.last_seen.set(key, current_time)
            raw = self.pending.drain(key)
            if not raw:
                self.resume_points.set(key, current_time)
                _log.info("sync key=%s no pending intervals, resume=%ss", key, current_time)
                return SyncOutcome(message=MSG_NO_INTERVALS, resume_time=current_time)
            total, merged_count, dropped = self._fold_into_history(key, raw)
            duration = self._effective_duration(video_duration)
            completed = self._is_completed(total, duration)
            self.resume_points.set(key, current_time)
        _log.info(
            "sync key=%s intervals=%d dropped=%d total=%ss duration=%ss completed=%s resume=%ss ended=%s",
            key, merged_count, dropped, total, duration, completed, current_time, is_ended,
        )
        return SyncOutcome(
            message=MSG_SYNCED,
            resume_time=current_time,
            total_watch_time=total,
            is_completed=completed,
        )

    def sweep_pending(self) -> SweepReport:
        """Reconcile every key that still holds unsynced intervals.

        Visits the keys pending at call time. A key a concurrent Sync already
        drained is skipped. The resume point comes from the last seen position
        since no client supplied one.
        """
        report = SweepReport()
        for key in self.pending.pending_keys():
            report.keys_visited += 1
            with self.locks.hold(key):
                raw = self.pending.drain(key)
                if not raw:
                    continue
                total, merged_count, dropped = self._fold_into_history(key, raw)
                resume = self.last_seen.pop(key)
                resume = 0.0 if resume is None else float(resume)
                self.resume_points.set(key, resume)
            report.keys_reconciled += 1
            report.intervals_merged += merged_count
            report.intervals_dropped += dropped
            _log.info("sweep saved key=%s total=%ss resume=%ss", key, total, resume)
        return report

    # --- reads -------------------------------------------------------
    def get_resume_point(self, key: SessionKey) -> float:
        return self.resume_points.resume_point(key)

    def get_total_watch_time(self, key: SessionKey) -> float:
        return total_duration(self.history.history(key))

    def get_watch_history(self, key: SessionKey) -> Tuple[Interval, ...]:
        return self.history.history(key)

    def pending_count(self, key: SessionKey) -> int:
        return len(self.pending.peek(key))

    # --- internals ---------------------------------------------------
    def _filter(self, raw: Sequence[Interval]) -> Tuple[List[Interval], int]:
        valid, malformed = apply_validation_policy(raw, self.validation_policy)
        kept, seeks = split_seek_jumps(valid, self.max_valid_span)
        return kept, malformed + len(seeks)

    def _fold_into_history(self, key: SessionKey, raw: Sequence[Interval]) -> Tuple[float, int, int]:
        # caller holds the key lock
        kept, dropped = self._filter(raw)
        existing = self.history.history(key)
        result = merge_intervals((*existing, *kept))
        self.history.replace(key, result.intervals)
        return result.total, len(kept), dropped

    def _effective_duration(self, video_duration: Optional[float]) -> float:
        if video_duration is not None and video_duration > 0:
            return float(video_duration)
        fallback = self.default_duration
        return fallback if fallback > 0 else 60.0

    def _is_completed(self, total: float, duration: float) -> bool:
        return (total / duration) * 100 >= self.completion_threshold
