"""
Route bookkeeping for front ends built on this client.

The client never renders anything; it only needs to tell whoever owns
the screen to go somewhere else (after a 401, or when another process
logged out) or to reload everything (when another process logged in
with a different token).  ``Navigator`` records the current route and
notifies listeners; ``guard`` reproduces the per-route access rules.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .auth import Role, SessionState

logger = logging.getLogger(__name__)

ROUTES = (
    '/',
    '/login',
    '/register',
    '/hospitals',
    '/blood-donation',
    '/ambulance',
    '/fund-requests',
    '/hospital-login',
    '/hospital-register',
    '/hospital-dashboard',
    '/ambulance-login',
    '/ambulance-register',
    '/ambulance-dashboard',
    '/admin-login',
    '/admin-register',
    '/admin-dashboard',
    '/notifications',
    '/become-donor',
    '/verify-email',
)

# route -> identity it needs; missing identity sends you to the role's login
PROTECTED = {
    '/hospital-dashboard': Role.HOSPITAL,
    '/ambulance-dashboard': Role.AMBULANCE,
    '/admin-dashboard': Role.ADMIN,
    '/notifications': Role.USER,
    '/become-donor': Role.USER,
}

# route -> identity that makes it pointless; present identity sends you home
ANONYMOUS_ONLY = {
    '/login': Role.USER,
    '/register': Role.USER,
    '/hospital-login': Role.HOSPITAL,
    '/hospital-register': Role.HOSPITAL,
    '/ambulance-login': Role.AMBULANCE,
    '/ambulance-register': Role.AMBULANCE,
    '/admin-login': Role.ADMIN,
    '/admin-register': Role.ADMIN,
}

Listener = Callable[[str, str], None]


def guard(route: str, session: SessionState) -> str:
    """Return the route that should actually be shown for ``route``."""
    if route not in ROUTES:
        return '/'
    role = PROTECTED.get(route)
    if role is not None and session.identity(role) is None:
        return role.login_route
    role = ANONYMOUS_ONLY.get(route)
    if role is not None and session.identity(role) is not None:
        return role.home_route
    return route


class Navigator:
    def __init__(self, route: str = '/'):
        self.route = route
        self.history: List[str] = [route]
        self.reloads = 0
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, action: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(action, self.route)
            except Exception:
                logger.exception('Navigation listener failed on %s %s', action, self.route)

    def redirect(self, route: str) -> None:
        logger.info('Redirecting to %s', route)
        self.route = route
        self.history.append(route)
        self._notify('redirect')

    def reload(self) -> None:
        logger.info('Reloading %s', self.route)
        self.reloads += 1
        self._notify('reload')

    def go(self, route: str, session: SessionState) -> str:
        target = guard(route, session)
        if target != self.route:
            self.redirect(target)
        return target

    @property
    def previous(self) -> Optional[str]:
        return self.history[-2] if len(self.history) > 1 else None
