"""
REST client for the Donor Connect API.

Every call runs as one identity.  The identity's bearer token is read
from the shared storage at call time, so a login or logout done by
another process is picked up on the next request.  A 401 clears that
identity from storage, sends the navigator to its login route and
raises ``SessionExpired``.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import requests

from .auth import Role, SessionState
from .authentication import BearerAuth
from .exceptions import ApiError, NotAuthenticated, SessionExpired, extract_error_message
from .navigation import Navigator
from .settings import get_settings

logger = logging.getLogger(__name__)


class ApiClient:
    def __init__(
        self,
        session: SessionState,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http=None,
        navigator: Optional[Navigator] = None,
    ):
        if base_url is None or timeout is None:
            settings = get_settings()
            base_url = base_url or settings.api_base_url
            timeout = timeout if timeout is not None else settings.http_timeout
        self.session = session
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.http = http if http is not None else requests.Session()
        self.navigator = navigator or Navigator()

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _resolve_auth(self, role: Optional[Role], public: bool, anonymous: bool):
        if anonymous:
            return None, None
        if role is None:
            ident = self.session.active()
            if ident is None:
                return None, None
            return ident.role, BearerAuth(ident.token)
        token = self.session.token_for(role)
        if token:
            return role, BearerAuth(token)
        if public:
            return None, None
        raise NotAuthenticated(role)

    def request(
        self,
        method: str,
        path: str,
        *,
        role: Optional[Role] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        public: bool = False,
        anonymous: bool = False,
        action: Optional[str] = None,
    ) -> Any:
        """Send one request and return the decoded body.

        ``role`` selects the identity whose token is attached; ``None``
        uses whichever identity is active.  ``public`` endpoints are sent
        anonymously when no token is stored; ``anonymous`` calls (login,
        registration) never carry a token.  ``action`` feeds the generic
        error message used when the server gives none.
        """
        method = method.upper()
        acting_role, auth = self._resolve_auth(role, public, anonymous)
        fallback = f'Failed to {action}' if action else f'{method} {path} failed'

        start_time = time.time()
        try:
            response = self.http.request(
                method,
                self.url(path),
                params=params,
                json=json,
                auth=auth,
                timeout=self.timeout,
                headers={'Content-Type': 'application/json'},
            )
        except requests.RequestException as exc:
            logger.warning('%s %s failed: %s', method, path, exc)
            raise ApiError(f'{fallback}: {exc}') from exc
        response_time = time.time() - start_time
        logger.debug('%s %s -> %s (%.2fs)', method, path, response.status_code, response_time)

        try:
            payload = response.json()
        except ValueError:
            payload = response.text

        # anonymous 401s are plain failures (e.g. bad credentials on login)
        if response.status_code == 401 and acting_role is not None:
            self._expire(acting_role, payload)
        if not 200 <= response.status_code < 300:
            raise ApiError(extract_error_message(payload, fallback), response.status_code, payload)
        if isinstance(payload, dict) and payload.get('success') is False:
            raise ApiError(extract_error_message(payload, fallback), response.status_code, payload)
        return payload

    def _expire(self, role: Role, payload: Any) -> None:
        logger.warning('Session for %s expired; clearing stored token', role.label)
        self.session.logout(role)
        self.navigator.redirect(role.login_route)
        raise SessionExpired(role, role.login_route, payload)

    def get(self, path: str, **kwargs) -> Any:
        return self.request('GET', path, **kwargs)

    def post(self, path: str, **kwargs) -> Any:
        return self.request('POST', path, **kwargs)

    def put(self, path: str, **kwargs) -> Any:
        return self.request('PUT', path, **kwargs)

    def patch(self, path: str, **kwargs) -> Any:
        return self.request('PATCH', path, **kwargs)

    def delete(self, path: str, **kwargs) -> Any:
        return self.request('DELETE', path, **kwargs)
