from typing import Any, Dict

from fastapi import APIRouter

from watchtime_server.core.config import settings
from watchtime_server.core.system_settings import get_value as sys_get
from watchtime_server.tasks.sweeper import sweeper

router = APIRouter()


def get_version_payload() -> Dict[str, Any]:
    return {
        'version': settings.version,
        'sweep_interval_s': sweeper.interval,
        'sweep_running': sweeper.running,
        'max_valid_interval_s': sys_get('MAX_VALID_INTERVAL_SECONDS'),
        'interval_validation_policy': sys_get('INTERVAL_VALIDATION_POLICY'),
    }


@router.get('/version')
async def version():
    return get_version_payload()
