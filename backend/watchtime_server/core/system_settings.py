"""Runtime tunables of the watch-time engine.

Each definition carries a type, label and default. Values are seeded from
environment variables of the same name and cached in process memory; there is
no persistent settings table because the service keeps no durable state.
"""
from __future__ import annotations
import logging
import os
import threading
from typing import Any, Dict, List

_log = logging.getLogger(__name__)

VALIDATION_POLICIES = ('drop', 'clamp', 'reject')

_DEFS: List[Dict[str, Any]] = [
    { 'key': 'MAX_VALID_INTERVAL_SECONDS', 'type': 'number', 'label': 'Max Valid Interval (s)', 'default': 30.0, 'description': 'Reported intervals longer than this are treated as seek jumps and never counted.' },
    { 'key': 'DEFAULT_VIDEO_DURATION_SECONDS', 'type': 'number', 'label': 'Fallback Video Duration (s)', 'default': 60.0, 'description': 'Duration used for completion when the client does not report a positive one.' },
    { 'key': 'COMPLETION_THRESHOLD_PERCENT', 'type': 'number', 'label': 'Completion Threshold (%)', 'default': 90.0, 'description': 'Share of the video that must be watched for a session to count as completed.' },
    { 'key': 'SWEEP_INTERVAL_SECONDS', 'type': 'number', 'label': 'Sweep Interval (s)', 'default': 30.0, 'description': 'Period of the background reconciliation of unsynced sessions.' },
    { 'key': 'SWEEP_ENABLED', 'type': 'boolean', 'label': 'Background Sweep', 'default': True, 'description': 'Start the background reconciliation loop with the app.' },
    { 'key': 'INTERVAL_VALIDATION_POLICY', 'type': 'choice', 'label': 'Malformed Interval Policy', 'default': 'drop', 'options': list(VALIDATION_POLICIES), 'description': 'What to do with intervals whose end precedes their start: drop or clamp at reconciliation, or reject on track.' },
]

_DEFS_BY_KEY: Dict[str, Dict[str, Any]] = {d['key']: d for d in _DEFS}

_CACHE: Dict[str, Any] = {}
_CACHE_LOADED = False
_CACHE_LOCK = threading.Lock()


def _coerce_value(setting: Dict[str, Any], value: Any):
    if value is None:
        return None
    setting_type = setting.get('type', 'string')
    try:
        if setting_type == 'number':
            return float(value)
        if setting_type == 'boolean':
            if isinstance(value, bool):
                return value
            if isinstance(value, (int, float)):
                return bool(value)
            if isinstance(value, str):
                return value.strip().lower() in ('1', 'true', 'yes', 'on')
            return False
        if setting_type == 'choice':
            text = str(value).strip().lower()
            options = setting.get('options') or []
            if text not in options:
                _log.warning("ignoring %s=%r; expected one of %s", setting['key'], value, ', '.join(options))
                return setting.get('default')
            return text
    except (TypeError, ValueError):
        _log.warning("ignoring unparseable %s=%r", setting['key'], value)
        return setting.get('default')
    return value


def _load() -> None:
    global _CACHE_LOADED
    _CACHE.clear()
    for d in _DEFS:
        env_val = os.getenv(d['key'])
        val = _coerce_value(d, env_val) if env_val is not None else None
        _CACHE[d['key']] = val if val is not None else d.get('default')
    _CACHE_LOADED = True


def seed_system_settings() -> None:
    """(Re)load every definition, preferring environment values over defaults."""
    with _CACHE_LOCK:
        _load()


def definitions() -> List[Dict[str, Any]]:
    return [dict(d) for d in _DEFS]


def get_value(key: str, default: Any | None = None) -> Any:
    with _CACHE_LOCK:
        if not _CACHE_LOADED:
            _load()
        return _CACHE.get(key, default)


def set_value(key: str, value: Any) -> Any:
    """Override a tunable for the running process and return the stored value."""
    d = _DEFS_BY_KEY.get(key)
    if d is None:
        raise KeyError(f'unknown system setting {key}')
    with _CACHE_LOCK:
        if not _CACHE_LOADED:
            _load()
        coerced = _coerce_value(d, value)
        _CACHE[key] = coerced if coerced is not None else d.get('default')
        return _CACHE[key]


def invalidate_cache():
    global _CACHE_LOADED
    with _CACHE_LOCK:
        _CACHE_LOADED = False
