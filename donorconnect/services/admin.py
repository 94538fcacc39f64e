from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..auth import Identity, Role
from ..exceptions import ValidationError
from ..models import FUND_STATUSES, Coordinates
from .base import Service, unwrap

MAPS_DIRECTIONS = 'https://www.google.com/maps/dir/?api=1&destination={lat},{lng}&travelmode=driving'
MAPS_SEARCH = 'https://www.google.com/maps/search/?api=1&query={query}'


def maps_url(coordinates: Any = None, location: Optional[str] = None) -> str:
    """Driving directions to ``coordinates``, or a place search for ``location``."""
    point = Coordinates.from_value(coordinates)
    if point is not None and point.lat and point.lng:
        return MAPS_DIRECTIONS.format(lat=point.lat, lng=point.lng)
    return MAPS_SEARCH.format(query=quote(location or '', safe="~()*!.'"))


class AdminService(Service):
    role = Role.ADMIN

    def register(self, name: str, email: str, password: str) -> Dict[str, Any]:
        return self.client.post('/admin/register', json={'name': name, 'email': email, 'password': password},
                                anonymous=True, action='register admin')

    def login(self, email: str, password: str) -> Identity:
        return self._login('/admin/login', {'email': email, 'password': password}, 'admin', 'login')

    def logout(self) -> None:
        self.session.logout(self.role)

    def stats(self) -> Dict[str, Any]:
        return self._call('GET', '/admin/dashboard/stats', action='load dashboard stats')

    def all_data(self) -> Dict[str, Any]:
        return self._call('GET', '/admin/dashboard/all-data', action='load dashboard data')

    def pending_hospitals(self) -> List[Dict[str, Any]]:
        payload = self._call('GET', '/admin/hospitals/pending', action='fetch pending hospitals')
        return list(unwrap(payload, 'hospitals', []) or [])

    def pending_ambulances(self) -> List[Dict[str, Any]]:
        payload = self._call('GET', '/admin/ambulances/pending', action='fetch pending ambulances')
        return list(unwrap(payload, 'ambulances', []) or [])

    def approve_hospital(self, hospital_id: str) -> Dict[str, Any]:
        return self._call('POST', f'/admin/hospitals/approve/{hospital_id}', json={}, action='approve hospital')

    def reject_hospital(self, hospital_id: str) -> Dict[str, Any]:
        return self._call('DELETE', f'/admin/hospitals/reject/{hospital_id}', action='reject hospital')

    def approve_ambulance(self, ambulance_id: str) -> Dict[str, Any]:
        return self._call('POST', f'/admin/ambulances/approve/{ambulance_id}', json={},
                          action='approve ambulance')

    def reject_ambulance(self, ambulance_id: str) -> Dict[str, Any]:
        return self._call('DELETE', f'/admin/ambulances/reject/{ambulance_id}', action='reject ambulance')

    def all_hospitals(self) -> List[Dict[str, Any]]:
        payload = self._call('GET', '/admin/hospitals/all', action='fetch hospitals')
        return list(unwrap(payload, 'hospitals', []) or [])

    def hospitals_with_beds(self) -> List[Dict[str, Any]]:
        payload = self._call('GET', '/admin/hospitals/with-beds', action='fetch hospitals')
        return list(unwrap(payload, 'hospitals', []) or [])

    def fund_requests(self) -> List[Dict[str, Any]]:
        payload = self._call('GET', '/admin/fund-requests', action='fetch fund requests')
        return list(unwrap(payload, 'fundRequests', []) or [])

    def blood_requests(self) -> List[Dict[str, Any]]:
        payload = self._call('GET', '/admin/blood-requests', action='fetch blood requests')
        return list(unwrap(payload, 'bloodRequests', []) or [])

    def update_fund_status(self, fund_id: str, status: str) -> Dict[str, Any]:
        if status not in FUND_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(FUND_STATUSES)}")
        return self._call('PATCH', f'/admin/fund-requests/{fund_id}/status', json={'status': status},
                          action='update fund status')

    def emergencies(self) -> List[Dict[str, Any]]:
        payload = self._call('GET', '/admin/emergencies', action='fetch emergencies')
        return list(unwrap(payload, 'emergencies', []) or [])

    def assign_emergency(self, emergency_id: str) -> Dict[str, Any]:
        return self._call('POST', f'/admin/emergencies/{emergency_id}/assign', json={},
                          action='accept emergency')

    maps_url = staticmethod(maps_url)
