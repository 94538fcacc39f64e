"""
Emergency requests raised by a user.

``create`` sends the request and ``watch`` polls its status until an
ambulance accepts it or the poll runs out of checks.
"""
import logging
from typing import Any, Dict, Optional

from ..auth import Role
from ..exceptions import ApiError, ValidationError
from ..models import Coordinates
from ..polling import EmergencyStatusPoller, PollResult
from ..settings import get_settings
from .base import Service, clean_text, unwrap

logger = logging.getLogger(__name__)

DEFAULT_TYPE = 'Medical Emergency'
DEFAULT_NOTES = 'User requested emergency assistance through the app'


class EmergencyService(Service):
    role = Role.USER

    def create(
        self,
        location: Optional[str],
        coordinates: Coordinates,
        emergency_type: str = DEFAULT_TYPE,
        notes: str = DEFAULT_NOTES,
    ) -> Dict[str, Any]:
        """Raise an emergency at ``coordinates``; requires a logged-in user.

        A blank ``location`` falls back to the coordinates as text.
        """
        user = self.session.require(Role.USER)
        if coordinates is None:
            raise ValidationError('Please enter coordinates first')
        payload = self._call('POST', '/emergencies/create', json={
            'userId': user.id,
            'location': clean_text(location) or str(coordinates),
            'coordinates': coordinates.as_dict(),
            'emergencyType': emergency_type or DEFAULT_TYPE,
            'notes': clean_text(notes),
        }, action='create emergency request')
        emergency = unwrap(payload, 'emergency', {})
        if not isinstance(emergency, dict) or not (emergency.get('_id') or emergency.get('id')):
            raise ApiError('Failed to create emergency request', payload=payload)
        logger.info('Emergency %s created', emergency.get('_id') or emergency.get('id'))
        return emergency

    def status(self, emergency_id: str) -> Dict[str, Any]:
        payload = self._call('GET', f'/emergencies/status/{emergency_id}', public=True,
                             action='check emergency status')
        emergency = unwrap(payload, 'emergency', {})
        return emergency if isinstance(emergency, dict) else {}

    def poller(self, emergency_id: str, **kwargs) -> EmergencyStatusPoller:
        settings = get_settings()
        kwargs.setdefault('interval', settings.poll_interval)
        kwargs.setdefault('max_checks', settings.poll_max_checks)
        kwargs.setdefault('warn_at', settings.poll_warn_at)
        return EmergencyStatusPoller(lambda: self.status(emergency_id), **kwargs)

    def watch(self, emergency_id: str, **kwargs) -> Optional[PollResult]:
        return self.poller(emergency_id, **kwargs).run()
