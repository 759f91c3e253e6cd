from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple


class InvalidIntervalError(ValueError):
    """Raised on track when an interval ends before it starts and the policy is 'reject'."""


@dataclass(frozen=True)
class Interval:
    """One contiguous stretch of playback, in seconds."""
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def is_malformed(self) -> bool:
        return self.end < self.start


@dataclass(frozen=True)
class SessionKey:
    """Identifies one viewer's history for one video.

    Equality and hashing use the (user, video) pair itself, so ids containing
    separators can never collide the way a joined string would.
    """
    user_id: str
    video_id: str

    @classmethod
    def of(cls, user_id, video_id) -> 'SessionKey':
        return cls(str(user_id), str(video_id))

    def __str__(self) -> str:
        return f'{self.user_id}/{self.video_id}'


@dataclass(frozen=True)
class MergeResult:
    intervals: Tuple[Interval, ...]
    total: float


@dataclass(frozen=True)
class SyncOutcome:
    message: str
    resume_time: float
    total_watch_time: Optional[float] = None
    is_completed: Optional[bool] = None

    @property
    def had_intervals(self) -> bool:
        return self.total_watch_time is not None


@dataclass
class SweepReport:
    keys_visited: int = 0
    keys_reconciled: int = 0
    intervals_merged: int = 0
    intervals_dropped: int = 0
