"""
Bounded status polling for a freshly created emergency.

After an emergency is created the requester waits for an ambulance to
accept it.  ``EmergencyStatusPoller`` asks for the status once per
interval, reports status changes, and stops on the first terminal state
or after ``max_checks`` checks, whichever comes first.  There is no
backoff and no jitter.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .exceptions import DonorConnectError
from .models import EMERGENCY_ASSIGNED, EMERGENCY_SEARCHING, EMERGENCY_TIMEOUT

logger = logging.getLogger(__name__)

TERMINAL_STATES = (EMERGENCY_ASSIGNED, EMERGENCY_TIMEOUT)


@dataclass
class PollResult:
    status: str
    emergency: Optional[Dict[str, Any]]
    checks: int


class EmergencyStatusPoller:
    def __init__(
        self,
        fetch_status: Callable[[], Dict[str, Any]],
        interval: float = 1.0,
        max_checks: int = 60,
        warn_at: Optional[int] = 40,
        on_status: Optional[Callable[[str, Dict[str, Any]], None]] = None,
        on_warning: Optional[Callable[[int], None]] = None,
        wait: Optional[Callable[[float], bool]] = None,
    ):
        if max_checks < 1:
            raise ValueError('max_checks must be at least 1')
        self.fetch_status = fetch_status
        self.interval = interval
        self.max_checks = max_checks
        self.warn_at = warn_at
        self.on_status = on_status
        self.on_warning = on_warning
        self.status = EMERGENCY_SEARCHING
        self.checks = 0
        self._cancelled = threading.Event()
        # returns True when the wait was cut short by cancel()
        self._wait = wait or self._cancelled.wait

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @staticmethod
    def is_terminal(emergency: Dict[str, Any]) -> bool:
        status = emergency.get('status')
        if status == EMERGENCY_ASSIGNED:
            # assigned without an ambulance yet is still in flight
            return bool(emergency.get('assignedAmbulance'))
        return status == EMERGENCY_TIMEOUT

    def _report(self, status: str, emergency: Dict[str, Any]) -> None:
        if status == self.status:
            return
        self.status = status
        if self.on_status is not None:
            self.on_status(status, emergency)

    def run(self) -> Optional[PollResult]:
        """Poll until terminal, capped or cancelled; ``None`` when cancelled."""
        emergency: Optional[Dict[str, Any]] = None
        failures = 0
        while self.checks < self.max_checks:
            if self._wait(self.interval) or self.cancelled:
                logger.info('Emergency status polling cancelled after %s checks', self.checks)
                return None
            try:
                latest = self.fetch_status()
            except DonorConnectError as exc:
                failures += 1
                logger.debug('Error checking emergency status: %s', exc)
                if failures % 10 == 0:
                    logger.warning('Connection issues while checking emergency status (%s failures)', failures)
            else:
                if isinstance(latest, dict):
                    emergency = latest
                    status = latest.get('status') or self.status
                    self._report(status, latest)
                    if self.is_terminal(latest):
                        self.checks += 1
                        return PollResult(status, latest, self.checks)

            self.checks += 1
            if self.warn_at and self.checks == self.warn_at and self.on_warning is not None:
                self.on_warning(self.checks)

        self._report(EMERGENCY_TIMEOUT, emergency or {})
        return PollResult(EMERGENCY_TIMEOUT, emergency, self.checks)
