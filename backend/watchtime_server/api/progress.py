from fastapi import APIRouter, HTTPException, Query

from watchtime_server.core.dependencies import ProgressServiceDep
from watchtime_server.models.progress import InvalidIntervalError, SessionKey
from watchtime_server.schemas.progress import SyncRequest, SyncResponse, TrackRequest, TrackResponse

router = APIRouter(prefix='/video', tags=['progress'])


@router.post('/track', response_model=TrackResponse)
def track_progress(body: TrackRequest, service: ProgressServiceDep):
    """Buffer one watched interval until the next sync or sweep."""
    try:
        message = service.track(body.session_key(), body.interval(), body.current_time)
    except InvalidIntervalError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return TrackResponse(message=message)


@router.post('/sync', response_model=SyncResponse, response_model_exclude_none=True)
def sync_progress(body: SyncRequest, service: ProgressServiceDep):
    """Reconcile buffered intervals and report total watch time and completion."""
    outcome = service.sync(
        body.session_key(),
        body.current_time,
        body.video_duration,
        is_ended=body.is_ended,
    )
    return SyncResponse.from_outcome(outcome)


@router.get('/resume')
def get_resume_time(
    service: ProgressServiceDep,
    user_id: str = Query(..., alias='userId'),
    video_id: str = Query(..., alias='videoId'),
) -> float:
    return service.get_resume_point(SessionKey.of(user_id, video_id))


@router.get('/watchtime')
def get_watch_time(
    service: ProgressServiceDep,
    user_id: str = Query(..., alias='userId'),
    video_id: str = Query(..., alias='videoId'),
) -> float:
    return service.get_total_watch_time(SessionKey.of(user_id, video_id))
