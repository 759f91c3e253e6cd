from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from watchtime_server.models.progress import Interval, SessionKey, SyncOutcome


class _ViewerRef(BaseModel):
    # NaN and Infinity are valid JSON to the parser but never a playback position
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    user_id: str = Field(alias='userId', min_length=1)
    video_id: str = Field(alias='videoId', min_length=1)

    def session_key(self) -> SessionKey:
        return SessionKey.of(self.user_id, self.video_id)


class TrackRequest(_ViewerRef):
    from_: float = Field(alias='from')
    to: float
    current_time: float = Field(alias='currentTime')

    def interval(self) -> Interval:
        return Interval(self.from_, self.to)


class TrackResponse(BaseModel):
    message: str


class SyncRequest(_ViewerRef):
    current_time: float = Field(alias='currentTime')
    # 0 or missing means the client doesn't know; the fallback duration applies
    video_duration: Optional[float] = Field(default=None, alias='videoDuration')
    is_ended: bool = Field(default=False, alias='isEnded')


class SyncResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    total_watch_time: Optional[float] = Field(default=None, alias='totalWatchTime')
    is_completed: Optional[bool] = Field(default=None, alias='isCompleted')
    resume_time: Optional[float] = Field(default=None, alias='resumeTime')

    @classmethod
    def from_outcome(cls, outcome: SyncOutcome) -> 'SyncResponse':
        if not outcome.had_intervals:
            return cls(message=outcome.message)
        return cls(
            message=outcome.message,
            total_watch_time=outcome.total_watch_time,
            is_completed=outcome.is_completed,
            resume_time=outcome.resume_time,
        )
