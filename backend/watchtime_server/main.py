from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from contextlib import asynccontextmanager
import logging
import math
from watchtime_server.core.config import settings
from watchtime_server.api import progress as progress_router
from watchtime_server.api import version as version_router
from watchtime_server.tasks.sweeper import sweeper
from watchtime_server.core.system_settings import seed_system_settings, get_value as sys_get
from watchtime_server.core.logging_config import configure_logging

_log = logging.getLogger(__name__)


def _renderable_errors(errors):
    # rejected NaN/Infinity inputs would make the JSON response itself unrenderable
    out = jsonable_encoder(errors)
    for err in out:
        value = err.get('input')
        if isinstance(value, float) and not math.isfinite(value):
            err['input'] = str(value)
    return out


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Loads tunables and starts the background sweep that reconciles sessions
    whose clients never synced. The sweep is stopped on shutdown; pending
    state is in memory only and is dropped with the process.
    """
    configure_logging(settings.log_level)
    seed_system_settings()

    sweep_enabled = bool(sys_get('SWEEP_ENABLED', True))
    if sweep_enabled:
        await sweeper.start()
    else:
        _log.info("background sweep disabled")

    yield

    if sweep_enabled:
        await sweeper.stop()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    try:
        body = await request.body()
    except Exception:
        body = b''
    _log.warning("validation_error url=%s body=%s errors=%s", request.url, body.decode(errors='replace'), exc.errors())
    return JSONResponse(status_code=422, content={'detail': _renderable_errors(exc.errors())})


# Routers
app.include_router(progress_router.router, prefix=settings.api_prefix)
app.include_router(version_router.router, prefix=settings.api_prefix)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

@app.get('/')
async def root():
    return {'status': 'ok', 'app': settings.app_name}


@app.get('/health')
async def health():
    return {'status': 'OK'}
