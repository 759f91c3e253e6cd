from __future__ import annotations
from watchtime_server.core.config import settings
from watchtime_server.core.logging_config import configure_logging
from watchtime_server.core.system_settings import seed_system_settings


def main():
    configure_logging(settings.log_level)
    print(f"[entrypoint] starting (prod) version={settings.version} log_level={settings.log_level}", flush=True)
    if getattr(settings, 'diagnostics', None):
        for line in settings.diagnostics:
            print(f"[entrypoint][config] {line}", flush=True)
    seed_system_settings()
    import uvicorn
    from uvicorn.config import LOGGING_CONFIG
    print(f"[entrypoint] launching uvicorn on {settings.host}:{settings.port}", flush=True)
    try:
        uvicorn.run(
            'watchtime_server.main:app',
            host=settings.host,
            port=settings.port,
            reload=False,
            log_level=settings.log_level.lower(),
            # Use uvicorn's default logging config to surface startup errors
            log_config=LOGGING_CONFIG,
        )
    except BaseException as exc:  # catch SystemExit too
        import traceback
        print(f"[entrypoint] uvicorn crashed: {exc}", flush=True)
        traceback.print_exc()
        raise
    finally:
        print("[entrypoint] uvicorn stopped", flush=True)

if __name__ == '__main__':  # pragma: no cover
    main()
