import json as jsonlib
from collections import namedtuple

import pytest
from socketio.exceptions import ConnectionError as SocketConnectionError

from donorconnect import settings as settings_module
from donorconnect.app import DonorConnect
from donorconnect.auth import SessionState
from donorconnect.client import ApiClient
from donorconnect.navigation import Navigator
from donorconnect.settings import Settings
from donorconnect.storage import MemoryStorage

API = 'http://api.test/api'

Call = namedtuple('Call', 'method path params json headers')


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.text = payload if isinstance(payload, str) else jsonlib.dumps(payload)

    def json(self):
        if isinstance(self._payload, str):
            raise ValueError('No JSON object could be decoded')
        return self._payload


class FakePrepared:
    def __init__(self, headers):
        self.headers = dict(headers or {})


class FakeHttp:
    """Stands in for ``requests.Session``; routes are keyed by method and path."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, path, payload=None, status=200):
        self.routes.setdefault((method, path), []).append(FakeResponse(status, payload))

    def fail(self, method, path, exc):
        self.routes.setdefault((method, path), []).append(exc)

    def request(self, method, url, params=None, json=None, auth=None, timeout=None, headers=None):
        prepared = FakePrepared(headers)
        if auth is not None:
            auth(prepared)
        path = url[len(API):]
        self.calls.append(Call(method, path, params, json, prepared.headers))
        queue = self.routes.get((method, path))
        if not queue:
            return FakeResponse(404, {'message': f'no route {method} {path}'})
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def last(self):
        return self.calls[-1]

    def paths(self):
        return [(c.method, c.path) for c in self.calls]


class FakeSocketClient:
    def __init__(self, fail=False):
        self.handlers = {}
        self.emitted = []
        self.connect_calls = []
        self.retries = []
        self.connected = False
        self.disconnected = False
        self.sid = None
        self.fail = fail

    def on(self, event, handler):
        self.handlers[event] = handler

    def connect(self, url, transports=None, retry=False):
        self.connect_calls.append((url, transports))
        self.retries.append(retry)
        if self.fail:
            raise SocketConnectionError('Connection refused by the server')
        self.connected = True
        self.sid = 'sid-%d' % len(self.connect_calls)
        self.fire('connect')

    def disconnect(self):
        self.connected = False
        self.disconnected = True

    def emit(self, event, data=None):
        self.emitted.append((event, data))

    def fire(self, event, *args):
        if event == 'disconnect':
            self.connected = False
        self.handlers[event](*args)


class FakeSocketFactory:
    def __init__(self):
        self.clients = []
        self.fail = False

    def __call__(self, settings):
        client = FakeSocketClient(fail=self.fail)
        self.clients.append(client)
        return client

    @property
    def last(self):
        return self.clients[-1]


@pytest.fixture
def settings(tmp_path, monkeypatch):
    s = Settings(
        api_base_url=API,
        socket_url='http://api.test',
        storage_path=tmp_path / 'storage.json',
        http_timeout=1.0,
        poll_interval=0,
        poll_max_checks=5,
        poll_warn_at=3,
        watch_interval=0.01,
    )
    monkeypatch.setattr(settings_module, '_settings', s)
    return s


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def session(storage):
    return SessionState(storage)


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def navigator():
    return Navigator()


@pytest.fixture
def client(settings, session, http, navigator):
    return ApiClient(session, base_url=API, timeout=1.0, http=http, navigator=navigator)


@pytest.fixture
def sockets():
    return FakeSocketFactory()


@pytest.fixture
def app(settings, storage, http, sockets, navigator):
    return DonorConnect(settings, storage=storage, http=http, client_factory=sockets, navigator=navigator)
