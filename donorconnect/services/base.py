import logging
from typing import Any, Optional

import bleach

from ..auth import Role
from ..client import ApiClient
from ..exceptions import ApiError

logger = logging.getLogger(__name__)


def clean_text(value: Optional[str]) -> str:
    """Strip markup from free text before it is sent to the server."""
    return bleach.clean((value or '').strip(), strip=True)


def unwrap(payload: Any, key: str, default: Any = None) -> Any:
    """Return ``payload[key]`` for envelope responses, or the payload itself."""
    if isinstance(payload, dict):
        if key in payload:
            return payload[key]
        if 'data' in payload:
            return payload['data']
        return default if default is not None else payload
    if payload in (None, ''):
        return default
    return payload


def login_body(payload: Any) -> dict:
    # user auth nests {token, user} under "data"
    if isinstance(payload, dict):
        data = payload.get('data')
        if isinstance(data, dict) and 'token' in data:
            return data
        return payload
    return {}


class Service:
    role: Optional[Role] = None

    def __init__(self, client: ApiClient):
        self.client = client
        self.session = client.session

    def _call(self, method: str, path: str, **kwargs) -> Any:
        kwargs.setdefault('role', self.role)
        return self.client.request(method, path, **kwargs)

    def _login(self, path: str, credentials: dict, key: str, action: str):
        payload = self.client.post(path, json=credentials, anonymous=True, action=action)
        body = login_body(payload)
        token = body.get('token')
        if not token:
            raise ApiError('No authentication token received', payload=payload)
        profile = body.get(key) or {}
        return self.session.login(self.role, token, profile)

    def _logout(self, path: str) -> None:
        """Tell the server, then always drop the local identity."""
        if self.session.token_for(self.role):
            try:
                self._call('POST', path, json={}, action='logout')
            except ApiError as exc:
                logger.warning('Logout request failed: %s', exc)
        self.session.logout(self.role)
