import pytest

from donorconnect import permissions
from donorconnect.auth import Identity, Role
from donorconnect.exceptions import PermissionDenied
from donorconnect.models import BloodRequest, Emergency

RECIPIENT = {'_id': 'u1', 'name': 'Asha'}
DONOR = {'_id': 'u2', 'name': 'Ravi'}
STRANGER = {'id': 'u3'}


def blood(status, donor=None):
    return {'_id': 'r1', 'status': status, 'recipient': RECIPIENT, 'donor': donor}


def test_normalize_id_shapes():
    assert permissions.normalize_id({'_id': 'abc'}) == 'abc'
    assert permissions.normalize_id({'id': 42}) == '42'
    assert permissions.normalize_id(' x ') == 'x'
    assert permissions.normalize_id(True) is None
    assert permissions.normalize_id(None) is None
    assert permissions.normalize_id(Identity(Role.USER, 't', {'id': 'u9'})) == 'u9'


@pytest.mark.parametrize('user,request_,expected', [
    (RECIPIENT, blood('pending'), {'edit', 'delete'}),
    (STRANGER, blood('pending'), {'accept'}),
    (STRANGER, blood('matched', DONOR), set()),
    (RECIPIENT, blood('matched', DONOR), {'complete'}),
    (DONOR, blood('matched', DONOR), {'complete'}),
    (RECIPIENT, blood('completed', DONOR), set()),
    (None, blood('pending'), set()),
    (STRANGER, dict(blood('pending'), recipient='u1'), {'accept'}),
    ({'id': 'u1'}, dict(blood('pending'), recipient='u1'), {'edit', 'delete'}),
    (Identity(Role.USER, 't', {'id': 'u1'}), dict(blood('pending'), recipient='u1'), {'edit', 'delete'}),
    ({'id': 'u2'}, dict(blood('matched', 'u2'), recipient='u1'), {'complete'}),
])
def test_blood_request_actions(user, request_, expected):
    assert permissions.blood_request_actions(user, request_) == expected


def test_checks_read_dataclasses_too():
    request = BloodRequest.from_dict({'_id': 'r1', 'status': 'pending', 'recipient': {'_id': 'u1'}})
    identity = Identity(Role.USER, 't', {'_id': 'u1'})
    assert permissions.is_recipient(identity, request)
    assert permissions.can_edit_blood_request(identity, request)
    assert not permissions.can_accept_blood_request(identity, request)


def test_accept_emergency_requires_available_approved_ambulance():
    pending = {'_id': 'e1', 'status': 'pending'}
    ambulance = {'_id': 'a1', 'status': 'available', 'isApproved': True}
    assert permissions.can_accept_emergency(ambulance, pending)
    assert not permissions.can_accept_emergency(dict(ambulance, status='onDuty'), pending)
    assert not permissions.can_accept_emergency(dict(ambulance, isApproved=False), pending)
    assert not permissions.can_accept_emergency(ambulance, dict(pending, status='assigned'))


def test_only_assigned_ambulance_completes():
    emergency = Emergency.from_dict({'_id': 'e1', 'status': 'assigned', 'assignedAmbulance': {'_id': 'a1'}})
    assert permissions.can_complete_emergency({'_id': 'a1'}, emergency)
    assert not permissions.can_complete_emergency({'_id': 'a2'}, emergency)


def test_require():
    permissions.require(True, 'fine')
    with pytest.raises(PermissionDenied, match='nope'):
        permissions.require(False, 'nope')
