"""
Client settings for Donor Connect.

Values are read from the environment.  A ``.env`` file in the current
working directory is loaded first so that a developer machine can be
configured without exporting variables by hand.  In production you
should set environment variables rather than relying on the ``.env``
file.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv  # type: ignore

from .exceptions import ImproperlyConfigured

DEFAULT_API_BASE_URL = 'http://localhost:5000/api'
DEFAULT_STORAGE_PATH = Path.home() / '.donorconnect' / 'storage.json'
LOCAL_HOSTS = {'localhost', '127.0.0.1', '::1'}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, '').strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ImproperlyConfigured(f'{name} must be an integer, got {raw!r}') from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, '').strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ImproperlyConfigured(f'{name} must be a number, got {raw!r}') from exc


def socket_url_for(api_base_url: str) -> str:
    """The real-time endpoint lives on the API host without the ``/api`` suffix."""
    url = api_base_url.rstrip('/')
    if url.endswith('/api'):
        url = url[: -len('/api')]
    return url


@dataclass(frozen=True)
class Settings:
    env: str = 'dev'
    api_base_url: str = DEFAULT_API_BASE_URL
    socket_url: str = socket_url_for(DEFAULT_API_BASE_URL)
    storage_path: Path = DEFAULT_STORAGE_PATH
    http_timeout: float = 10.0
    reconnect_attempts: int = 5
    reconnect_delay: float = 1.0
    reconnect_delay_max: float = 5.0
    poll_interval: float = 1.0
    poll_max_checks: int = 60
    poll_warn_at: int = 40
    watch_interval: float = 1.0
    log_level: str = 'WARNING'

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> 'Settings':
        env_path = env_file or Path.cwd() / '.env'
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        api_base_url = os.getenv('DONORCONNECT_API_BASE_URL', DEFAULT_API_BASE_URL).strip().rstrip('/')
        socket_url = os.getenv('DONORCONNECT_SOCKET_URL', '').strip() or socket_url_for(api_base_url)
        storage_path = os.getenv('DONORCONNECT_STORAGE_PATH', '').strip()

        settings = cls(
            env=os.getenv('ENV', 'dev'),
            api_base_url=api_base_url,
            socket_url=socket_url,
            storage_path=Path(storage_path).expanduser() if storage_path else DEFAULT_STORAGE_PATH,
            http_timeout=_env_float('DONORCONNECT_HTTP_TIMEOUT', 10.0),
            reconnect_attempts=_env_int('DONORCONNECT_RECONNECT_ATTEMPTS', 5),
            reconnect_delay=_env_float('DONORCONNECT_RECONNECT_DELAY', 1.0),
            reconnect_delay_max=_env_float('DONORCONNECT_RECONNECT_DELAY_MAX', 5.0),
            poll_interval=_env_float('DONORCONNECT_POLL_INTERVAL', 1.0),
            poll_max_checks=_env_int('DONORCONNECT_POLL_MAX_CHECKS', 60),
            poll_warn_at=_env_int('DONORCONNECT_POLL_WARN_AT', 40),
            watch_interval=_env_float('DONORCONNECT_WATCH_INTERVAL', 1.0),
            log_level=os.getenv('DONORCONNECT_LOG_LEVEL', 'WARNING').upper(),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.poll_max_checks < 1:
            raise ImproperlyConfigured('DONORCONNECT_POLL_MAX_CHECKS must be at least 1')
        if self.reconnect_delay_max < self.reconnect_delay:
            raise ImproperlyConfigured('DONORCONNECT_RECONNECT_DELAY_MAX cannot be lower than the first delay')
        # Tokens must not travel in clear text outside a developer machine
        if self.env == 'prod':
            parsed = urlparse(self.api_base_url)
            if parsed.scheme != 'https' and parsed.hostname not in LOCAL_HOSTS:
                raise ImproperlyConfigured('DONORCONNECT_API_BASE_URL must use https in prod')


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
