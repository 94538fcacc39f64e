from typing import Any, Dict, Optional

from ..auth import Role
from ..exceptions import ValidationError
from ..models import BLOOD_TYPES, Coordinates
from .base import Service, clean_text


class DonorService(Service):
    role = Role.USER

    def register(
        self,
        username: str,
        phone: str,
        blood_group: str,
        city: str,
        state: str = '',
        coordinates: Optional[Coordinates] = None,
    ) -> Dict[str, Any]:
        if blood_group not in BLOOD_TYPES:
            raise ValidationError(f'Invalid blood group {blood_group!r}')
        if not (username and phone and city):
            raise ValidationError('Name, phone and city are required')
        body = {
            'username': clean_text(username),
            'phone': phone.strip(),
            'bloodGroup': blood_group,
            'city': clean_text(city),
            'state': clean_text(state),
        }
        if coordinates is not None:
            body['coordinates'] = [coordinates.lng, coordinates.lat]
        return self._call('POST', '/donors/register', json=body, public=True, action='register donor')

    def update_info(self, donor_id: str, **changes: Any) -> Dict[str, Any]:
        return self._call('PUT', f'/donors/{donor_id}', json=changes, public=True, action='update donor')

    def update_location(self, donor_id: str, coordinates: Coordinates) -> Dict[str, Any]:
        return self._call('PUT', '/donors/location/update', json={
            'donorId': donor_id,
            'coordinates': [coordinates.lng, coordinates.lat],
        }, public=True, action='update donor location')
