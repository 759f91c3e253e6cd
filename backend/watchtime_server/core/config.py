from pathlib import Path
from pydantic import BaseModel
import os
from watchtime_server import __version__
# Optionally load a repo-level config.env file for local development so
# deployments can keep overrides out of docker-compose and environment dumps.
# Copy `backend/config.sample.env` to `backend/config.env`.
try:
    from dotenv import load_dotenv
    # Allow explicit override of config file path
    cfg_override = os.getenv('WATCHTIME_CONFIG_FILE')
    candidates = []
    if cfg_override:
        candidates.append(Path(cfg_override))

    # Prefer the working directory (where docker-compose or the user runs the process)
    candidates.append(Path.cwd() / 'config.env')
    candidates.append(Path.cwd() / 'backend' / 'config.env')

    for p in candidates:
        try:
            if p and p.exists():
                load_dotenv(str(p))
                break
        except Exception:
            continue
except Exception:
    # If the config file can't be loaded, fall back to plain env vars
    pass

"""Central configuration.

Process-level settings (bind address, logging, routing prefix). Tunables of
the watch-time engine itself live in `core.system_settings`.

Env vars:
  WATCHTIME_HOST / WATCHTIME_PORT - bind address (PORT is honoured as a fallback)
  WATCHTIME_LOG_LEVEL             - DEBUG, INFO, WARNING, ERROR, CRITICAL
  WATCHTIME_API_PREFIX            - mount point for the routers (default /api)
  WATCHTIME_CORS_ORIGINS          - comma separated list, '*' by default
  WATCHTIME_VERSION               - override reported version
"""

_diagnostics: list[str] = []


def _env_port(default: int = 8080) -> int:
    for name in ('WATCHTIME_PORT', 'PORT'):
        raw = os.getenv(name)
        if not raw:
            continue
        try:
            port = int(raw)
        except ValueError:
            _diagnostics.append(f"invalid_port {name}={raw!r}")
            continue
        _diagnostics.append(f"port_from={name}")
        return port
    return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    items = [part.strip() for part in raw.split(',')]
    return [item for item in items if item]


class Settings(BaseModel):
    app_name: str = 'Watch Time Backend'
    api_prefix: str = os.getenv('WATCHTIME_API_PREFIX', '/api')
    version: str = os.getenv('WATCHTIME_VERSION', __version__)
    host: str = os.getenv('WATCHTIME_HOST', '0.0.0.0')
    port: int = _env_port()
    cors_origins: list[str] = _env_list('WATCHTIME_CORS_ORIGINS', ['*'])
    # Logging level for the backend (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = os.getenv('WATCHTIME_LOG_LEVEL', 'INFO')
    diagnostics: list[str] | None = _diagnostics

settings = Settings()
