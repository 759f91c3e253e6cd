"""
Dependency injection setup for the application.
Provides FastAPI dependencies for core services.
"""

from functools import lru_cache
from typing import Annotated, Optional
from fastapi import Depends

from watchtime_server.services.progress import WatchProgressService

# Global variable to allow test isolation
_test_progress_service_override: Optional[WatchProgressService] = None


@lru_cache()
def _default_progress_service() -> WatchProgressService:
    return WatchProgressService()


def get_progress_service() -> WatchProgressService:
    """Get the WatchProgressService instance (singleton)."""
    # Allow test override for isolation
    if _test_progress_service_override is not None:
        return _test_progress_service_override
    return _default_progress_service()


def set_test_progress_service_override(service: Optional[WatchProgressService]) -> None:
    """Set a test override for the progress service (for test isolation)."""
    global _test_progress_service_override
    _test_progress_service_override = service


# FastAPI dependency type annotations
ProgressServiceDep = Annotated[WatchProgressService, Depends(get_progress_service)]
