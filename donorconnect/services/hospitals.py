"""
Hospital identity and public bed search.

Bed search is done client side: ``/hospitals/beds`` returns every
approved hospital and ``search_beds`` narrows the list by a free-form
location and a bed type.
"""
import re
from typing import Any, Dict, List, Optional

from ..auth import Identity, Role
from ..exceptions import ValidationError
from ..models import BED_TYPES, Hospital
from .base import Service, clean_text, unwrap

STOP_WORDS = ('and', 'the', 'in', 'at', 'on', 'for', 'of')
_STOP_WORDS_RE = re.compile(r"\b(%s)\b" % '|'.join(STOP_WORDS))

# server-side field for each bed type
BED_FIELDS = {
    'general': 'generalBeds',
    'icu': 'icuBeds',
    'ventilator': 'ventilatorBeds',
    'pediatricICU': 'pediatricIcuBeds',
}


def normalize_location(text: Optional[str]) -> str:
    if not text:
        return ''
    text = text.lower().strip()
    text = re.sub(r'[.,]', '', text)
    text = re.sub(r"\s+", ' ', text)
    text = _STOP_WORDS_RE.sub('', text)
    return text.strip()


def matches_location(hospital: Hospital, search: Optional[str]) -> bool:
    """Every search term must appear in one of city, state, address or name."""
    normalized = normalize_location(search)
    if not normalized:
        return True
    terms = normalized.split()
    fields = [f for f in (hospital.city, hospital.state, hospital.address, hospital.name) if f]
    return any(all(term in normalize_location(f) for term in terms) for f in fields)


def bed_stats(hospitals: List[Hospital]) -> Dict[str, int]:
    total_available = 0
    with_beds = 0
    for hospital in hospitals:
        available = hospital.available_beds
        if available > 0:
            with_beds += 1
            total_available += available
    return {
        'totalHospitals': len(hospitals),
        'totalAvailableBeds': total_available,
        'hospitalsWithBeds': with_beds,
    }


class HospitalService(Service):
    role = Role.HOSPITAL

    def register(self, **details) -> Dict[str, Any]:
        return self.client.post('/hospitals/register', json=details, anonymous=True, action='register hospital')

    def login(self, email: str, password: str) -> Identity:
        return self._login('/hospitals/login', {'email': email, 'password': password}, 'hospital', 'login')

    def logout(self) -> None:
        self._logout('/hospitals/logout')

    def all_with_beds(self) -> List[Hospital]:
        payload = self.client.get('/hospitals/beds', anonymous=True, action='fetch hospitals')
        rows = unwrap(payload, 'hospitals', [])
        return [Hospital.from_dict(row) for row in rows or [] if isinstance(row, dict)]

    def search_beds(self, city: Optional[str] = None, bed_type: Optional[str] = None) -> List[Hospital]:
        if bed_type and bed_type not in BED_TYPES:
            raise ValidationError(f'Unknown bed type {bed_type!r}')
        hospitals = self.all_with_beds()
        if city and city.strip():
            hospitals = [h for h in hospitals if matches_location(h, city)]
        if bed_type:
            hospitals = [h for h in hospitals if h.bed_availability[bed_type].available > 0]
        return hospitals

    def dashboard(self) -> Dict[str, Any]:
        return self._call('GET', '/hospitals/dashboard', action='load dashboard')

    def update_beds(self, beds: Dict[str, Dict[str, int]]) -> Dict[str, Any]:
        """``beds`` maps a bed type (``icu``) or server field (``icuBeds``) to ``{total, occupied}``."""
        body = {}
        for key, counts in beds.items():
            field = BED_FIELDS.get(key, key)
            if field not in BED_FIELDS.values():
                raise ValidationError(f'Unknown bed type {key!r}')
            total = int(counts.get('total') or 0)
            occupied = int(counts.get('occupied') or 0)
            if total < 0 or occupied < 0 or occupied > total:
                raise ValidationError(f'Invalid bed counts for {key}')
            body[field] = {'total': total, 'occupied': occupied}
        return self._call('PUT', '/hospitals/update-beds', json=body, action='update beds')

    def update_profile(self, **changes) -> Dict[str, Any]:
        payload = self._call('PUT', '/hospitals/profile', json=changes, action='update profile')
        hospital = unwrap(payload, 'hospital', {})
        if isinstance(hospital, dict) and hospital:
            self.session.update_profile(self.role, hospital)
        return hospital

    def request_blood(self, blood_group: str, units: int, patient_name: str, urgency: str = 'high'):
        if not (blood_group and patient_name) or int(units) < 1:
            raise ValidationError('Blood group, units and patient name are required')
        return self._call('POST', '/hospitals/request-blood', json={
            'bloodGroup': blood_group,
            'unitsRequired': int(units),
            'patientName': clean_text(patient_name),
            'urgency': urgency,
        }, action='send blood request')

    def request_fund(self, patient_name: str, patient_id: str, amount: float, purpose: str):
        if not (patient_name and patient_id and purpose):
            raise ValidationError('Patient name, patient ID and purpose are required')
        if float(amount) <= 0:
            raise ValidationError('Amount must be greater than zero')
        profile = self.session.require(self.role).profile
        return self._call('POST', '/hospitals/request-fund', json={
            'patientName': clean_text(patient_name),
            'patientId': clean_text(patient_id),
            'amountRequired': float(amount),
            'purpose': clean_text(purpose),
            'contactInfo': {'phone': profile.get('phone'), 'email': profile.get('email')},
        }, action='create fund request')

    def reserve_bed(self, hospital_id: str, bed_type: str, duration_minutes: int = 30):
        """Reserve a bed as the logged-in user."""
        if bed_type not in BED_TYPES:
            raise ValidationError(f'Unknown bed type {bed_type!r}')
        return self._call('POST', '/hospitals/reserve-bed', role=Role.USER, json={
            'hospitalId': hospital_id,
            'bedType': bed_type,
            'durationMinutes': duration_minutes,
        }, action='reserve bed')
