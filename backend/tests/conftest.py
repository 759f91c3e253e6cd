import os
import pathlib
import sys

import pytest
from fastapi.testclient import TestClient

# Ensure backend root (containing the 'watchtime_server' package) is on sys.path
BACKEND_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

# Keep the app's own sweep loop out of the way; tests drive sweeps explicitly.
os.environ.setdefault('SWEEP_INTERVAL_SECONDS', '3600')

from watchtime_server.core.dependencies import set_test_progress_service_override
from watchtime_server.core.system_settings import seed_system_settings
from watchtime_server.main import app
from watchtime_server.models.progress import SessionKey
from watchtime_server.services.progress import WatchProgressService


@pytest.fixture
def service():
    """Fresh engine with default tunables; overrides a test applies are dropped afterwards."""
    seed_system_settings()
    yield WatchProgressService()
    seed_system_settings()


@pytest.fixture
def key():
    return SessionKey.of('user-1', 'video-1')


@pytest.fixture
def client(service):
    set_test_progress_service_override(service)
    try:
        with TestClient(app) as c:
            yield c
    finally:
        set_test_progress_service_override(None)
