"""
Blood donation requests, donors and blood banks.

Reads are public.  Every mutating call checks the acting user's relation
to the request (recipient or donor) before sending anything, and raises
``PermissionDenied`` without touching the network when the check fails.
"""
from typing import Any, Dict, Iterable, List, Optional

from .. import permissions
from ..auth import Identity, Role
from ..exceptions import ValidationError
from ..models import BLOOD_COMPLETED, BLOOD_MATCHED, BLOOD_PENDING, BLOOD_TYPES, URGENCY_LEVELS, BloodRequest
from .base import Service, clean_text, unwrap

EDITABLE_FIELDS = ('bloodType', 'units', 'urgency', 'location', 'notes')


def blood_stats(requests: Iterable[Any], donors: Iterable[Any]) -> Dict[str, int]:
    requests = list(requests)
    statuses = [r.get('status') if isinstance(r, dict) else getattr(r, 'status', None) for r in requests]
    return {
        'totalRequests': len(requests),
        'activeRequests': sum(1 for s in statuses if s in (BLOOD_PENDING, BLOOD_MATCHED)),
        'completedRequests': sum(1 for s in statuses if s == BLOOD_COMPLETED),
        'availableDonors': len(list(donors)),
    }


class BloodDonationService(Service):
    role = Role.USER
    prefix = '/blood-donation'

    def _path(self, path: str) -> str:
        return self.prefix + path

    def _user(self) -> Identity:
        return self.session.require(Role.USER)

    # -- public reads ----------------------------------------------------------

    def requests(self, status: Optional[str] = None, blood_type: Optional[str] = None,
                 city: Optional[str] = None) -> List[BloodRequest]:
        params = {k: v for k, v in (('status', status), ('bloodType', blood_type), ('city', city)) if v}
        payload = self._call('GET', self._path('/requests'), params=params or None, public=True,
                             action='fetch blood requests')
        return [BloodRequest.from_dict(r) for r in unwrap(payload, 'requests', []) or []]

    def donors(self) -> List[Dict[str, Any]]:
        payload = self._call('GET', self._path('/donors'), public=True, action='fetch donors')
        return list(unwrap(payload, 'donors', []) or [])

    def blood_banks(self, city: Optional[str] = None, lat: Optional[float] = None,
                    lng: Optional[float] = None) -> List[Dict[str, Any]]:
        if city:
            path, params = self._path(f'/bloodbanks/city/{city.strip()}'), None
        elif lat is not None and lng is not None:
            path, params = self._path('/bloodbanks/nearby'), {'lat': lat, 'lng': lng}
        else:
            path, params = self._path('/bloodbanks/nearby'), None
        payload = self._call('GET', path, params=params, public=True, action='fetch blood banks')
        return list(unwrap(payload, 'bloodBanks', []) or [])

    # -- user ------------------------------------------------------------------

    def my_requests(self) -> List[BloodRequest]:
        payload = self._call('GET', self._path('/my-requests'), action='fetch your blood requests')
        return [BloodRequest.from_dict(r) for r in unwrap(payload, 'requests', []) or []]

    def my_blood_banks(self) -> List[Dict[str, Any]]:
        payload = self._call('GET', self._path('/my-nearby-bloodbanks'), action='fetch blood banks')
        return list(unwrap(payload, 'bloodBanks', []) or [])

    def create_request(
        self,
        blood_type: str,
        city: str,
        units: int = 1,
        urgency: str = 'medium',
        address: str = '',
        hospital: str = '',
        notes: str = '',
    ) -> Dict[str, Any]:
        self._user()
        if not blood_type:
            raise ValidationError('Please select blood type')
        if blood_type not in BLOOD_TYPES:
            raise ValidationError(f'Invalid blood type {blood_type!r}')
        if not (city or '').strip():
            raise ValidationError('Please enter city')
        if urgency not in URGENCY_LEVELS:
            raise ValidationError(f"Urgency must be one of: {', '.join(URGENCY_LEVELS)}")
        if int(units) < 1:
            raise ValidationError('At least one unit is required')
        return self._call('POST', self._path('/request'), json={
            'bloodType': blood_type,
            'units': int(units),
            'urgency': urgency,
            'location': {
                'city': clean_text(city),
                'address': clean_text(address),
                'hospital': clean_text(hospital),
            },
            'notes': clean_text(notes),
        }, action='create blood request')

    def accept(self, request: Any) -> Dict[str, Any]:
        user = self._user()
        permissions.require(
            permissions.can_accept_blood_request(user, request),
            'You cannot accept this blood request',
        )
        return self._call('PUT', self._path(f'/requests/{permissions.normalize_id(request)}/accept'),
                          json={}, action='accept blood request')

    def complete(self, request: Any) -> Dict[str, Any]:
        user = self._user()
        permissions.require(
            permissions.can_complete_blood_request(user, request),
            'Only the recipient or the donor can complete a matched request',
        )
        return self._call('PUT', self._path(f'/requests/{permissions.normalize_id(request)}/complete'),
                          json={}, action='complete blood request')

    def update(self, request: Any, **changes) -> Dict[str, Any]:
        user = self._user()
        permissions.require(
            permissions.can_edit_blood_request(user, request),
            'Only the recipient can edit a pending request',
        )
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update {', '.join(sorted(unknown))}")
        if 'notes' in changes:
            changes['notes'] = clean_text(changes['notes'])
        return self._call('PUT', self._path(f'/requests/{permissions.normalize_id(request)}'),
                          json=changes, action='update blood request')

    def delete(self, request: Any) -> Dict[str, Any]:
        user = self._user()
        permissions.require(
            permissions.can_delete_blood_request(user, request),
            'Only the recipient can delete a pending request',
        )
        return self._call('DELETE', self._path(f'/requests/{permissions.normalize_id(request)}'),
                          action='delete blood request')

    stats = staticmethod(blood_stats)
