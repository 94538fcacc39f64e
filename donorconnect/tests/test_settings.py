import pytest

from donorconnect.exceptions import ImproperlyConfigured
from donorconnect.settings import Settings, socket_url_for

ENV_NAMES = [
    'ENV',
    'DONORCONNECT_API_BASE_URL',
    'DONORCONNECT_SOCKET_URL',
    'DONORCONNECT_STORAGE_PATH',
    'DONORCONNECT_HTTP_TIMEOUT',
    'DONORCONNECT_RECONNECT_ATTEMPTS',
    'DONORCONNECT_RECONNECT_DELAY',
    'DONORCONNECT_RECONNECT_DELAY_MAX',
    'DONORCONNECT_POLL_INTERVAL',
    'DONORCONNECT_POLL_MAX_CHECKS',
    'DONORCONNECT_POLL_WARN_AT',
    'DONORCONNECT_LOG_LEVEL',
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return tmp_path / 'missing.env'


def test_defaults_match_web_client(clean_env):
    s = Settings.from_env(clean_env)
    assert s.api_base_url == 'http://localhost:5000/api'
    assert s.socket_url == 'http://localhost:5000'
    assert s.reconnect_attempts == 5
    assert s.reconnect_delay == 1.0
    assert s.reconnect_delay_max == 5.0
    assert s.poll_interval == 1.0
    assert s.poll_max_checks == 60
    assert s.poll_warn_at == 40


def test_env_overrides(clean_env, monkeypatch, tmp_path):
    monkeypatch.setenv('DONORCONNECT_API_BASE_URL', 'https://donors.example.org/api/')
    monkeypatch.setenv('DONORCONNECT_STORAGE_PATH', str(tmp_path / 'state.json'))
    monkeypatch.setenv('DONORCONNECT_POLL_MAX_CHECKS', '10')
    monkeypatch.setenv('DONORCONNECT_LOG_LEVEL', 'debug')
    s = Settings.from_env(clean_env)
    assert s.api_base_url == 'https://donors.example.org/api'
    assert s.socket_url == 'https://donors.example.org'
    assert s.storage_path == tmp_path / 'state.json'
    assert s.poll_max_checks == 10
    assert s.log_level == 'DEBUG'


def test_dotenv_file_is_loaded(clean_env, tmp_path):
    # clean_env removes whatever load_dotenv exports on teardown
    env_file = tmp_path / '.env'
    env_file.write_text("DONORCONNECT_SOCKET_URL=http://sockets.local:9000\n")
    s = Settings.from_env(env_file)
    assert s.socket_url == 'http://sockets.local:9000'


def test_bad_number_is_reported(clean_env, monkeypatch):
    monkeypatch.setenv('DONORCONNECT_RECONNECT_ATTEMPTS', 'five')
    with pytest.raises(ImproperlyConfigured, match='DONORCONNECT_RECONNECT_ATTEMPTS'):
        Settings.from_env(clean_env)


def test_prod_requires_https_except_localhost(clean_env, monkeypatch):
    monkeypatch.setenv('ENV', 'prod')
    monkeypatch.setenv('DONORCONNECT_API_BASE_URL', 'http://donors.example.org/api')
    with pytest.raises(ImproperlyConfigured):
        Settings.from_env(clean_env)
    monkeypatch.setenv('DONORCONNECT_API_BASE_URL', 'http://127.0.0.1:5000/api')
    assert Settings.from_env(clean_env).env == 'prod'


def test_socket_url_strips_api_suffix():
    assert socket_url_for('http://localhost:5000/api/') == 'http://localhost:5000'
    assert socket_url_for('http://localhost:5000') == 'http://localhost:5000'
