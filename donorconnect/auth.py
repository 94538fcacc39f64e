"""
Session state: which identity this client is acting as.

Four identities exist (user, hospital, ambulance, admin).  Each one is
backed by a bearer token and a serialised profile in ``Storage`` under
its own pair of keys.  The identities are mutually exclusive: logging in
as one removes the others.  Another process may still leave more than
one token behind, so ``active()`` resolves them in a fixed precedence
order (user, hospital, ambulance, admin).
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import NotAuthenticated

logger = logging.getLogger(__name__)


class Role(Enum):
    USER = ('user', 'token', 'user', '/login', '/')
    HOSPITAL = ('hospital', 'hospitalToken', 'hospital', '/hospital-login', '/hospital-dashboard')
    AMBULANCE = ('ambulance', 'ambulanceToken', 'ambulance', '/ambulance-login', '/ambulance-dashboard')
    ADMIN = ('admin', 'adminToken', 'admin', '/admin-login', '/admin-dashboard')

    def __init__(self, label, token_key, data_key, login_route, home_route):
        self.label = label
        self.token_key = token_key
        self.data_key = data_key
        self.login_route = login_route
        self.home_route = home_route

    @classmethod
    def from_label(cls, label: str) -> 'Role':
        for role in cls:
            if role.label == label:
                return role
        raise ValueError(f'unknown role {label!r}')

    @classmethod
    def for_token_key(cls, key: str) -> Optional['Role']:
        for role in cls:
            if role.token_key == key:
                return role
        return None


# start-up resolution order
PRECEDENCE = (Role.USER, Role.HOSPITAL, Role.AMBULANCE, Role.ADMIN)
TOKEN_KEYS = tuple(r.token_key for r in PRECEDENCE)


@dataclass(frozen=True)
class Identity:
    role: Role
    token: str
    profile: Dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> Optional[str]:
        value = self.profile.get('id') or self.profile.get('_id')
        return str(value) if value is not None else None

    @property
    def name(self) -> str:
        return self.profile.get('name') or self.profile.get('email') or self.role.label


class SessionState:
    def __init__(self, storage):
        self.storage = storage

    def login(self, role: Role, token: str, profile: Optional[Dict[str, Any]] = None) -> Identity:
        if not token:
            raise ValueError('token must not be empty')
        others: List[str] = []
        for other in PRECEDENCE:
            if other is not role:
                others.extend([other.token_key, other.data_key])
        self.storage.remove_items(others)
        self.storage.set_item(role.token_key, token)
        self.storage.set_item(role.data_key, json.dumps(profile or {}))
        logger.info('Logged in as %s', role.label)
        return Identity(role, token, dict(profile or {}))

    def logout(self, role: Optional[Role] = None) -> None:
        roles = [role] if role else list(PRECEDENCE)
        keys: List[str] = []
        for r in roles:
            keys.extend([r.token_key, r.data_key])
        self.storage.remove_items(keys)
        logger.info('Logged out %s', role.label if role else 'all identities')

    def _profile(self, role: Role) -> Dict[str, Any]:
        raw = self.storage.get_item(role.data_key)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning('Stored %s profile is not valid JSON', role.label)
            return {}
        return data if isinstance(data, dict) else {}

    def identity(self, role: Role) -> Optional[Identity]:
        token = self.storage.get_item(role.token_key)
        if not token:
            return None
        return Identity(role, token, self._profile(role))

    def active(self) -> Optional[Identity]:
        for role in PRECEDENCE:
            ident = self.identity(role)
            if ident is not None:
                return ident
        return None

    def token_for(self, role: Role) -> Optional[str]:
        return self.storage.get_item(role.token_key) or None

    def require(self, role: Role) -> Identity:
        ident = self.identity(role)
        if ident is None:
            raise NotAuthenticated(role)
        return ident

    def update_profile(self, role: Role, profile: Dict[str, Any]) -> None:
        if self.token_for(role):
            self.storage.set_item(role.data_key, json.dumps(profile))

    def fingerprint(self) -> Dict[str, Optional[str]]:
        snapshot = self.storage.snapshot()
        return {key: snapshot.get(key) or None for key in TOKEN_KEYS}
