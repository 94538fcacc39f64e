"""
Cross-process session change detection.

Several processes (terminals, scripts, a long running ``listen``) can
share one storage file.  When one of them logs in or out, the others
must not keep acting with a stale identity.  ``StorageWatcher`` polls
the token keys and reacts the same way for every role:

* token removed elsewhere -> redirect to that role's login route;
* token added or replaced elsewhere -> full reload.

A reload wins over redirects found in the same check, since reloading
re-reads every identity anyway.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from .auth import Role, SessionState
from .navigation import Navigator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageEvent:
    key: str
    old: Optional[str]
    new: Optional[str]

    @property
    def removed(self) -> bool:
        return bool(self.old) and not self.new

    @property
    def replaced(self) -> bool:
        return bool(self.new) and self.new != self.old


class StorageWatcher:
    def __init__(self, session: SessionState, navigator: Navigator, interval: float = 1.0):
        self.session = session
        self.navigator = navigator
        self.interval = interval
        self._last: Dict[str, Optional[str]] = session.fingerprint()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def reset(self) -> None:
        """Accept the current storage as the new baseline (after our own login/logout)."""
        self._last = self.session.fingerprint()

    def check(self) -> List[StorageEvent]:
        current = self.session.fingerprint()
        events = [
            StorageEvent(key, self._last.get(key), value)
            for key, value in current.items()
            if value != self._last.get(key)
        ]
        self._last = current
        if not events:
            return events

        for event in events:
            logger.info('Storage change detected: %s %s', event.key, 'changed' if event.new else 'removed')

        if any(e.replaced for e in events):
            logger.warning('Different account logged in from another process; reloading')
            self.navigator.reload()
            return events

        for event in events:
            role = Role.for_token_key(event.key)
            if event.removed and role is not None:
                logger.warning('%s logged out from another process', role.label)
                self.navigator.redirect(role.login_route)
                break
        return events

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.check()
            except Exception:
                logger.exception('Storage watcher check failed')

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name='donorconnect-storage-watcher', daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.interval + 1)
