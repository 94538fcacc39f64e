"""
Client-side views of the server's entities.

The server owns the schema; these dataclasses only pick out the fields
the client reads.  ``from_dict`` accepts the raw JSON objects (``_id`` or
``id``, camelCase keys) and ignores everything else.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .exceptions import ValidationError
from .permissions import normalize_id

BLOOD_TYPES = ('A+', 'A-', 'B+', 'B-', 'O+', 'O-', 'AB+', 'AB-')
URGENCY_LEVELS = ('low', 'medium', 'high', 'critical')
BED_TYPES = ('general', 'icu', 'ventilator', 'pediatricICU')

EMERGENCY_SEARCHING = 'searching'
EMERGENCY_PENDING = 'pending'
EMERGENCY_ASSIGNED = 'assigned'
EMERGENCY_COMPLETED = 'completed'
EMERGENCY_CANCELLED = 'cancelled'
EMERGENCY_TIMEOUT = 'timeout'

BLOOD_PENDING = 'pending'
BLOOD_MATCHED = 'matched'
BLOOD_COMPLETED = 'completed'
BLOOD_CANCELLED = 'cancelled'

AMBULANCE_STATUSES = ('available', 'onDuty', 'offline')
FUND_STATUSES = ('Pending', 'Approved', 'Rejected', 'Completed')


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def as_dict(self) -> Dict[str, float]:
        return {'lat': self.lat, 'lng': self.lng}

    def __str__(self) -> str:
        return f'{self.lat:.6f} {self.lng:.6f}'

    @classmethod
    def from_value(cls, value: Any) -> Optional['Coordinates']:
        """Read ``{lat, lng}`` or a GeoJSON point (``[lng, lat]``)."""
        if not value:
            return None
        if isinstance(value, Coordinates):
            return value
        if isinstance(value, dict):
            if 'lat' in value and 'lng' in value:
                return cls(float(value['lat']), float(value['lng']))
            points = value.get('coordinates')
            if isinstance(points, (list, tuple)) and len(points) == 2:
                return cls(float(points[1]), float(points[0]))
        return None


def parse_coordinates(text: str) -> Coordinates:
    """Parse ``"latitude longitude"`` or ``"lat,lng"``."""
    cleaned = re.sub(r"\s+", ' ', text or '').strip()
    if not cleaned:
        raise ValidationError('Please enter coordinates first')
    parts = [p for p in re.split(r"[\s,]+", cleaned) if p]
    if len(parts) != 2:
        raise ValidationError('Please enter coordinates in format: "latitude longitude" or "lat,lng"')
    try:
        lat, lng = float(parts[0]), float(parts[1])
    except ValueError:
        raise ValidationError('Invalid coordinates. Please enter valid numbers.') from None
    if not -90 <= lat <= 90:
        raise ValidationError('Latitude must be between -90 and 90')
    if not -180 <= lng <= 180:
        raise ValidationError('Longitude must be between -180 and 180')
    return Coordinates(lat, lng)


def _id(data: Dict[str, Any]) -> Optional[str]:
    return normalize_id(data.get('_id') or data.get('id'))


@dataclass
class Ambulance:
    id: Optional[str]
    name: str = ''
    driver_name: str = ''
    phone: str = ''
    status: str = 'offline'
    is_approved: bool = False
    location: Optional[Coordinates] = None
    distance: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Ambulance':
        return cls(
            id=_id(data),
            name=data.get('name') or '',
            driver_name=data.get('driverName') or '',
            phone=data.get('phone') or '',
            status=data.get('status') or 'offline',
            is_approved=bool(data.get('isApproved', False)),
            location=Coordinates.from_value(data.get('location') or data.get('coordinates')),
            distance=data.get('distance'),
        )


@dataclass
class Emergency:
    id: Optional[str]
    status: str = EMERGENCY_PENDING
    location: str = ''
    emergency_type: str = 'Medical Emergency'
    coordinates: Optional[Coordinates] = None
    assigned_ambulance: Optional[Ambulance] = None
    estimated_time: Optional[float] = None
    distance: Optional[float] = None
    requester: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Emergency':
        assigned = data.get('assignedAmbulance')
        if isinstance(assigned, dict):
            ambulance = Ambulance.from_dict(assigned)
        elif assigned:
            ambulance = Ambulance(id=normalize_id(assigned))
        else:
            ambulance = None
        user = data.get('userId')
        return cls(
            id=_id(data) or normalize_id(data.get('emergencyId')),
            status=data.get('status') or EMERGENCY_PENDING,
            location=data.get('location') if isinstance(data.get('location'), str) else '',
            emergency_type=data.get('emergencyType') or 'Medical Emergency',
            coordinates=Coordinates.from_value(data.get('coordinates')),
            assigned_ambulance=ambulance,
            estimated_time=data.get('estimatedTime'),
            distance=data.get('distance'),
            requester=user.get('name') if isinstance(user, dict) else data.get('userName'),
        )


@dataclass
class BloodRequest:
    id: Optional[str]
    blood_type: str = ''
    units: int = 1
    urgency: str = 'medium'
    status: str = BLOOD_PENDING
    recipient: Any = None
    donor: Any = None
    city: str = ''
    hospital: str = ''
    notes: str = ''

    @property
    def recipient_name(self) -> str:
        if isinstance(self.recipient, dict):
            return self.recipient.get('name') or 'Anonymous'
        return 'Anonymous'

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BloodRequest':
        location = data.get('location') if isinstance(data.get('location'), dict) else {}
        return cls(
            id=_id(data),
            blood_type=data.get('bloodType') or '',
            units=int(data.get('units') or 1),
            urgency=data.get('urgency') or 'medium',
            status=data.get('status') or BLOOD_PENDING,
            recipient=data.get('recipient'),
            donor=data.get('donor'),
            city=location.get('city') or '',
            hospital=location.get('hospital') or '',
            notes=data.get('notes') or '',
        )


@dataclass(frozen=True)
class BedCount:
    available: int = 0
    total: int = 0


@dataclass
class Hospital:
    id: Optional[str]
    name: str = ''
    city: str = ''
    state: str = ''
    address: str = ''
    phone: str = ''
    is_approved: bool = False
    beds: Dict[str, BedCount] = field(default_factory=dict)

    @property
    def bed_availability(self) -> Dict[str, BedCount]:
        return {bed_type: self.beds.get(bed_type, BedCount()) for bed_type in BED_TYPES}

    @property
    def available_beds(self) -> int:
        return sum(b.available for b in self.bed_availability.values())

    @staticmethod
    def _read_beds(data: Dict[str, Any]) -> Dict[str, BedCount]:
        if isinstance(data.get('bedAvailability'), dict):
            raw = data['bedAvailability']
            return {
                bed_type: BedCount(int((raw.get(bed_type) or {}).get('available') or 0),
                                   int((raw.get(bed_type) or {}).get('total') or 0))
                for bed_type in BED_TYPES
            }
        beds = data.get('hospitalBeds')
        if isinstance(beds, dict):
            source = {
                'general': 'generalBeds',
                'icu': 'icuBeds',
                'ventilator': 'ventilatorBeds',
                'pediatricICU': 'pediatricIcuBeds',
            }
            return {
                bed_type: BedCount(int((beds.get(key) or {}).get('available') or 0),
                                   int((beds.get(key) or {}).get('total') or 0))
                for bed_type, key in source.items()
            }
        return {}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Hospital':
        return cls(
            id=_id(data),
            name=data.get('name') or '',
            city=data.get('city') or '',
            state=data.get('state') or '',
            address=data.get('address') if isinstance(data.get('address'), str) else '',
            phone=data.get('phone') or '',
            is_approved=bool(data.get('isApproved', False)),
            beds=cls._read_beds(data),
        )


@dataclass
class Notification:
    id: Optional[str]
    type: str = 'general'
    message: str = ''
    title: str = ''
    read: bool = False
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Notification':
        return cls(
            id=_id(data),
            type=data.get('type') or 'general',
            message=data.get('message') or '',
            title=data.get('title') or '',
            read=bool(data.get('read') or data.get('isRead')),
            created_at=data.get('createdAt'),
        )


@dataclass
class FundRequest:
    id: Optional[str]
    patient_name: str = ''
    purpose: str = ''
    hospital: str = ''
    amount_required: float = 0.0
    amount_collected: float = 0.0
    urgency: str = 'medium'
    status: str = 'Pending'
    donations: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def progress(self) -> float:
        if self.amount_required <= 0:
            return 0.0
        return min(self.amount_collected / self.amount_required * 100, 100.0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FundRequest':
        hospital = data.get('hospital')
        return cls(
            id=_id(data),
            patient_name=data.get('patientName') or '',
            purpose=data.get('purpose') or '',
            hospital=hospital.get('name', '') if isinstance(hospital, dict) else (hospital or ''),
            amount_required=float(data.get('amountRequired') or 0),
            amount_collected=float(data.get('amountCollected') or 0),
            urgency=data.get('urgency') or 'medium',
            status=data.get('status') or 'Pending',
            donations=list(data.get('donations') or []),
        )
