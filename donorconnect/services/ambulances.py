from typing import Any, Dict, List, Optional

from .. import permissions
from ..auth import Identity, Role
from ..exceptions import ValidationError
from ..models import AMBULANCE_STATUSES, Ambulance, Coordinates, Emergency
from .base import Service, unwrap

SEARCH_RADIUS = 10000


class AmbulanceService(Service):
    role = Role.AMBULANCE

    def register(self, **details) -> Dict[str, Any]:
        return self.client.post('/ambulances/register', json=details, anonymous=True, action='register ambulance')

    def login(self, email: str, password: str) -> Identity:
        return self._login('/ambulances/login', {'email': email, 'password': password}, 'ambulance', 'login')

    def logout(self) -> None:
        self._logout('/ambulances/logout')

    def nearby(
        self,
        coordinates: Optional[Coordinates] = None,
        city: Optional[str] = None,
        radius: int = SEARCH_RADIUS,
    ) -> List[Ambulance]:
        """Ambulances near a point, in a city, or all of them when neither is given."""
        if coordinates is not None:
            params = {'lng': coordinates.lng, 'lat': coordinates.lat, 'radius': radius}
        elif city and city.strip():
            params = {'city': city.strip()}
        else:
            params = {}
        payload = self.client.get('/ambulances/nearby', params=params, anonymous=True,
                                  action='fetch ambulances')
        return [Ambulance.from_dict(a) for a in unwrap(payload, 'ambulances', []) or []]

    def dashboard(self) -> Dict[str, Any]:
        return self._call('GET', '/ambulances/dashboard', action='load dashboard')

    def profile(self) -> Ambulance:
        payload = self.dashboard()
        data = unwrap(payload, 'ambulance', {})
        return Ambulance.from_dict(data if isinstance(data, dict) else {})

    def update_location(self, coordinates: Coordinates) -> Dict[str, Any]:
        # server stores GeoJSON order
        return self._call('PUT', '/ambulances/update-location', json={
            'coordinates': [coordinates.lng, coordinates.lat],
        }, action='update location')

    def update_status(self, status: str) -> Dict[str, Any]:
        if status not in AMBULANCE_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(AMBULANCE_STATUSES)}")
        return self._call('PUT', '/ambulances/update-status', json={'status': status}, action='update status')

    def nearby_emergencies(self, radius: int = SEARCH_RADIUS) -> List[Emergency]:
        payload = self._call('GET', '/ambulances/emergencies/nearby', params={'radius': radius},
                             action='fetch emergencies')
        return [Emergency.from_dict(e) for e in unwrap(payload, 'emergencies', []) or []]

    def accept_emergency(self, emergency: Any, ambulance: Any = None) -> Dict[str, Any]:
        """Accept ``emergency`` (an id or object); checked locally when both objects are known."""
        if ambulance is not None and not isinstance(emergency, (str, int)):
            permissions.require(
                permissions.can_accept_emergency(ambulance, emergency),
                'This emergency can no longer be accepted',
            )
        return self._call('POST', '/ambulances/emergencies/accept', json={
            'emergencyId': permissions.normalize_id(emergency),
        }, action='accept emergency')

    def complete_emergency(self, emergency: Any, ambulance: Any = None) -> Dict[str, Any]:
        if ambulance is not None and not isinstance(emergency, (str, int)):
            permissions.require(
                permissions.can_complete_emergency(ambulance, emergency),
                'Only the assigned ambulance can complete this emergency',
            )
        return self._call('POST', '/ambulances/emergencies/complete', json={
            'emergencyId': permissions.normalize_id(emergency),
        }, action='complete emergency')

    def history(self) -> List[Emergency]:
        payload = self._call('GET', '/ambulances/emergencies/history', action='load history')
        return [Emergency.from_dict(e) for e in unwrap(payload, 'emergencies', []) or []]
