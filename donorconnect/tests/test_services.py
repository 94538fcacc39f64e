"""
Service layer tests.

The HTTP session is replaced by ``FakeHttp`` (see conftest), so every
test states the exact server responses it relies on and checks the
requests the services sent.
"""
import pytest

from donorconnect.auth import Role
from donorconnect.exceptions import ApiError, NotAuthenticated, PermissionDenied, SessionExpired, ValidationError
from donorconnect.models import Coordinates
from donorconnect.services import (
    AccountService,
    AdminService,
    AmbulanceService,
    BloodDonationService,
    EmergencyService,
    FundService,
    HospitalService,
    NotificationService,
)
from donorconnect.services.admin import maps_url
from donorconnect.services.base import clean_text
from donorconnect.services.hospitals import bed_stats, normalize_location


def login_user(session, user_id='u1', **profile):
    profile.setdefault('name', 'Asha')
    profile.setdefault('email', 'asha@example.org')
    return session.login(Role.USER, 'u-token', dict(profile, id=user_id))


# -- accounts / logins -------------------------------------------------------------


def test_user_login_reads_data_envelope(client, session, http):
    http.add('POST', '/auth/login', {
        'success': True,
        'data': {'token': 'u-token', 'user': {'id': 'u1', 'name': 'Asha'}},
    })
    identity = AccountService(client).login('asha@example.org', 'secret')
    assert identity.role is Role.USER
    assert session.token_for(Role.USER) == 'u-token'
    assert http.last.json == {'email': 'asha@example.org', 'password': 'secret'}


def test_hospital_login_replaces_other_identities(client, session, http):
    login_user(session)
    http.add('POST', '/hospitals/login', {'token': 'h-token', 'hospital': {'_id': 'h1', 'name': 'City Care'}})
    HospitalService(client).login('desk@citycare.org', 'pw')
    assert session.active().role is Role.HOSPITAL
    assert session.identity(Role.USER) is None


def test_bad_credentials_keep_existing_identity(client, session, http):
    login_user(session)
    http.add('POST', '/ambulances/login', {'message': 'Invalid credentials'}, status=401)
    with pytest.raises(ApiError, match='Invalid credentials'):
        AmbulanceService(client).login('crew@example.org', 'wrong')
    assert session.token_for(Role.USER) == 'u-token'


def test_login_without_token_is_rejected(client, session, http):
    http.add('POST', '/admin/login', {'admin': {'name': 'root'}})
    with pytest.raises(ApiError, match='No authentication token'):
        AdminService(client).login('root@example.org', 'pw')
    assert session.active() is None


def test_verify_email_logs_in(client, session, http):
    http.add('GET', '/auth/verify-email', {'success': True, 'token': 'fresh', 'user': {'id': 'u5'}})
    identity = AccountService(client).verify_email('abc123')
    assert identity.id == 'u5'
    assert http.last.params == {'token': 'abc123'}


def test_hospital_logout_is_local_even_if_server_fails(client, session, http):
    session.login(Role.HOSPITAL, 'h-token')
    http.add('POST', '/hospitals/logout', {'message': 'boom'}, status=500)
    HospitalService(client).logout()
    assert session.identity(Role.HOSPITAL) is None


def test_profile_refreshes_stored_user(client, session, http):
    login_user(session)
    http.add('GET', '/auth/profile', {'success': True, 'user': {'id': 'u1', 'name': 'Asha Rao'}})
    AccountService(client).profile()
    assert session.identity(Role.USER).name == 'Asha Rao'


# -- hospitals -----------------------------------------------------------------------


HOSPITALS = {'hospitals': [
    {'_id': 'h1', 'name': "St. John's Hospital", 'city': 'Bengaluru', 'state': 'Karnataka',
     'address': 'Koramangala, 100 ft Road',
     'bedAvailability': {'icu': {'available': 0, 'total': 10}, 'general': {'available': 4, 'total': 40}}},
    {'_id': 'h2', 'name': 'Apollo', 'city': 'Chennai', 'state': 'Tamil Nadu', 'address': 'Greams Road',
     'bedAvailability': {'icu': {'available': 2, 'total': 8}}},
]}


def test_normalize_location():
    assert normalize_location('  The Hospital, Bengaluru. ') == 'hospital bengaluru'
    assert normalize_location("St. John's") == "st john's"
    assert normalize_location(None) == ''


def test_search_beds_by_location_terms(client, http):
    http.add('GET', '/hospitals/beds', HOSPITALS)
    service = HospitalService(client)
    assert [h.id for h in service.search_beds(city='koramangala road')] == ['h1']
    assert [h.id for h in service.search_beds(city='in the Tamil Nadu')] == ['h2']
    assert [h.id for h in service.search_beds(city='  ')] == ['h1', 'h2']
    assert service.search_beds(city='Mumbai') == []
    assert 'Authorization' not in http.last.headers


def test_search_beds_by_type(client, http):
    http.add('GET', '/hospitals/beds', HOSPITALS)
    service = HospitalService(client)
    assert [h.id for h in service.search_beds(bed_type='icu')] == ['h2']
    with pytest.raises(ValidationError):
        service.search_beds(bed_type='suite')


def test_bed_stats(client, http):
    http.add('GET', '/hospitals/beds', HOSPITALS)
    hospitals = HospitalService(client).all_with_beds()
    assert bed_stats(hospitals) == {'totalHospitals': 2, 'totalAvailableBeds': 6, 'hospitalsWithBeds': 2}


def test_update_beds_uses_server_fields(client, session, http):
    session.login(Role.HOSPITAL, 'h-token')
    http.add('PUT', '/hospitals/update-beds', {'success': True})
    HospitalService(client).update_beds({'icu': {'total': 10, 'occupied': 4}})
    assert http.last.json == {'icuBeds': {'total': 10, 'occupied': 4}}
    with pytest.raises(ValidationError):
        HospitalService(client).update_beds({'general': {'total': 1, 'occupied': 2}})


def test_reserve_bed_runs_as_user(client, session, http):
    login_user(session)
    http.add('POST', '/hospitals/reserve-bed', {'message': 'Bed reserved for 30 minutes'})
    HospitalService(client).reserve_bed('h1', 'icu')
    assert http.last.headers['Authorization'] == 'Bearer u-token'
    assert http.last.json == {'hospitalId': 'h1', 'bedType': 'icu', 'durationMinutes': 30}


# -- ambulances / emergencies ----------------------------------------------------


def test_nearby_ambulances_params(client, http):
    http.add('GET', '/ambulances/nearby', {'success': True, 'ambulances': [{'_id': 'a1', 'name': 'KA-01'}]})
    service = AmbulanceService(client)
    result = service.nearby(coordinates=Coordinates(12.9, 77.5))
    assert result[0].name == 'KA-01'
    assert http.last.params == {'lng': 77.5, 'lat': 12.9, 'radius': 10000}
    service.nearby(city=' Mysuru ')
    assert http.last.params == {'city': 'Mysuru'}


def test_ambulance_location_is_sent_lng_first(client, session, http):
    session.login(Role.AMBULANCE, 'a-token', {'_id': 'a1'})
    http.add('PUT', '/ambulances/update-location', {'success': True})
    AmbulanceService(client).update_location(Coordinates(12.9, 77.5))
    assert http.last.json == {'coordinates': [77.5, 12.9]}


def test_accept_emergency_checks_role_locally(client, session, http):
    session.login(Role.AMBULANCE, 'a-token', {'_id': 'a1'})
    service = AmbulanceService(client)
    busy = {'_id': 'a1', 'status': 'onDuty', 'isApproved': True}
    with pytest.raises(PermissionDenied):
        service.accept_emergency({'_id': 'e1', 'status': 'pending'}, busy)
    assert http.calls == []
    http.add('POST', '/ambulances/emergencies/accept', {'success': True})
    service.accept_emergency('e1')
    assert http.last.json == {'emergencyId': 'e1'}


def test_create_emergency_requires_user(client, http):
    with pytest.raises(NotAuthenticated):
        EmergencyService(client).create('MG Road', Coordinates(12.9, 77.5))
    assert http.calls == []


def test_create_emergency_sends_user_and_location(client, session, http):
    login_user(session, 'u7')
    http.add('POST', '/emergencies/create', {'success': True, 'emergency': {'_id': 'e9', 'status': 'pending'}})
    emergency = EmergencyService(client).create(None, Coordinates(12.9716, 77.5946))
    assert emergency['_id'] == 'e9'
    body = http.last.json
    assert body['userId'] == 'u7'
    assert body['location'] == '12.971600 77.594600'
    assert body['coordinates'] == {'lat': 12.9716, 'lng': 77.5946}
    assert body['emergencyType'] == 'Medical Emergency'


def test_create_emergency_keeps_typed_location(client, session, http):
    login_user(session, 'u7')
    http.add('POST', '/emergencies/create', {'success': True, 'emergency': {'_id': 'e9'}})
    EmergencyService(client).create('<span>MG Road</span>, Bengaluru', Coordinates(12.9716, 77.5946), notes='Fell down')
    body = http.last.json
    assert body['location'] == 'MG Road, Bengaluru'
    assert body['notes'] == 'Fell down'


def test_watch_emergency_until_assigned(client, session, http, settings):
    login_user(session)
    http.add('GET', '/emergencies/status/e9', {'success': True, 'emergency': {'status': 'pending'}})
    http.add('GET', '/emergencies/status/e9', {'success': True, 'emergency': {
        'status': 'assigned', 'assignedAmbulance': {'_id': 'a1'}}})
    result = EmergencyService(client).watch('e9')
    assert result.status == 'assigned'
    assert result.checks == 2


def test_watch_expired_session_counts_as_failure(client, session, http, settings):
    login_user(session)
    http.add('GET', '/emergencies/status/e9', {'message': 'jwt expired'}, status=401)
    result = EmergencyService(client).watch('e9')
    assert result.status == 'timeout'
    assert result.checks == settings.poll_max_checks


# -- blood donation ---------------------------------------------------------------


def pending_request(recipient='u1'):
    return {'_id': 'r1', 'status': 'pending', 'recipient': {'_id': recipient}, 'bloodType': 'O+'}


@pytest.mark.parametrize('recipient', [{'_id': 'u1'}, 'u1'])
def test_recipient_cannot_accept_own_request(client, session, http, recipient):
    login_user(session, 'u1')
    request = dict(pending_request(), recipient=recipient)
    with pytest.raises(PermissionDenied):
        BloodDonationService(client).accept(request)
    assert http.calls == []


def test_other_user_accepts(client, session, http):
    login_user(session, 'u2')
    http.add('PUT', '/blood-donation/requests/r1/accept', {'success': True})
    BloodDonationService(client).accept(pending_request('u1'))
    assert http.paths() == [('PUT', '/blood-donation/requests/r1/accept')]


def test_only_recipient_deletes_pending_request(client, session, http):
    login_user(session, 'u2')
    service = BloodDonationService(client)
    with pytest.raises(PermissionDenied):
        service.delete(pending_request('u1'))
    session.login(Role.USER, 'u-token', {'id': 'u1'})
    http.add('DELETE', '/blood-donation/requests/r1', {'success': True})
    service.delete(pending_request('u1'))
    assert http.last.method == 'DELETE'


def test_complete_needs_matched_status(client, session, http):
    login_user(session, 'u2')
    matched = {'_id': 'r1', 'status': 'matched', 'recipient': {'_id': 'u1'}, 'donor': {'_id': 'u2'}}
    http.add('PUT', '/blood-donation/requests/r1/complete', {'success': True})
    service = BloodDonationService(client)
    service.complete(matched)
    with pytest.raises(PermissionDenied):
        service.complete(dict(matched, status='completed'))


def test_create_request_validation(client, session, http):
    service = BloodDonationService(client)
    with pytest.raises(NotAuthenticated):
        service.create_request('O+', 'Pune')
    login_user(session)
    with pytest.raises(ValidationError, match='blood type'):
        service.create_request('', 'Pune')
    with pytest.raises(ValidationError, match='city'):
        service.create_request('O+', ' ')
    assert http.calls == []


def test_create_request_body_is_cleaned(client, session, http):
    login_user(session)
    http.add('POST', '/blood-donation/request', {'success': True})
    BloodDonationService(client).create_request(
        'AB-', 'Pune', units=2, urgency='high', notes='<b>Urgent</b> surgery')
    assert http.last.json == {
        'bloodType': 'AB-',
        'units': 2,
        'urgency': 'high',
        'location': {'city': 'Pune', 'address': '', 'hospital': ''},
        'notes': 'Urgent surgery',
    }


def test_blood_stats():
    requests = [{'status': 'pending'}, {'status': 'matched'}, {'status': 'completed'}]
    assert BloodDonationService.stats(requests, [{'_id': 'd1'}]) == {
        'totalRequests': 3,
        'activeRequests': 2,
        'completedRequests': 1,
        'availableDonors': 1,
    }


def test_public_reads_do_not_need_login(client, http):
    http.add('GET', '/blood-donation/requests', [pending_request()])
    http.add('GET', '/blood-donation/bloodbanks/city/Pune', {'bloodBanks': [{'name': 'Red Cross'}]})
    service = BloodDonationService(client)
    assert service.requests()[0].blood_type == 'O+'
    assert service.blood_banks(city='Pune') == [{'name': 'Red Cross'}]


# -- funds -----------------------------------------------------------------------


FUNDS = {'fundRequests': [
    {'_id': 'f1', 'urgency': 'high', 'amountRequired': 1000, 'amountCollected': 100, 'status': 'Approved'},
    {'_id': 'f2', 'urgency': 'low', 'amountRequired': 1000, 'amountCollected': 800, 'status': 'Approved'},
    {'_id': 'f3', 'urgency': 'low', 'amountRequired': 1000, 'amountCollected': 1000, 'status': 'Completed'},
]}


@pytest.mark.parametrize('name,expected', [
    ('all', ['f1', 'f2', 'f3']),
    ('urgent', ['f1']),
    ('almost', ['f2']),
    ('Completed', ['f3']),
])
def test_fund_filters(client, http, name, expected):
    http.add('GET', '/funds', FUNDS)
    assert [f.id for f in FundService(client).list(name)] == expected


def test_donate_requires_user_and_positive_amount(client, session, http):
    service = FundService(client)
    with pytest.raises(NotAuthenticated):
        service.donate('f1', 100)
    login_user(session)
    for amount in (0, -5, 'abc', None):
        with pytest.raises(ValidationError):
            service.donate('f1', amount)
    http.add('POST', '/funds/donate', {'success': True})
    service.donate('f1', '250')
    assert http.last.json == {
        'fundRequestId': 'f1',
        'donorName': 'Asha',
        'donorEmail': 'asha@example.org',
        'amount': 250.0,
        'paymentMethod': 'UPI',
    }


def test_hospital_fund_calls_need_hospital(client, session, http):
    login_user(session)
    with pytest.raises(NotAuthenticated):
        FundService(client).my_requests()


# -- admin / notifications --------------------------------------------------------


def test_admin_review_paths(client, session, http):
    session.login(Role.ADMIN, 'a-token')
    http.add('POST', '/admin/hospitals/approve/h1', {'success': True})
    http.add('DELETE', '/admin/ambulances/reject/a1', {'success': True})
    http.add('PATCH', '/admin/fund-requests/f1/status', {'success': True})
    admin = AdminService(client)
    admin.approve_hospital('h1')
    admin.reject_ambulance('a1')
    admin.update_fund_status('f1', 'Approved')
    assert http.paths() == [
        ('POST', '/admin/hospitals/approve/h1'),
        ('DELETE', '/admin/ambulances/reject/a1'),
        ('PATCH', '/admin/fund-requests/f1/status'),
    ]
    with pytest.raises(ValidationError):
        admin.update_fund_status('f1', 'Lost')


def test_admin_expired_session(client, session, http, navigator):
    session.login(Role.ADMIN, 'a-token')
    http.add('GET', '/admin/hospitals/pending', {'message': 'Not authorized'}, status=401)
    with pytest.raises(SessionExpired):
        AdminService(client).pending_hospitals()
    assert navigator.route == '/admin-login'


def test_maps_url():
    assert maps_url({'lat': 12.9, 'lng': 77.5}) == (
        'https://www.google.com/maps/dir/?api=1&destination=12.9,77.5&travelmode=driving')
    assert maps_url(None, 'MG Road, Bengaluru') == (
        'https://www.google.com/maps/search/?api=1&query=MG%20Road%2C%20Bengaluru')


def test_notifications(client, session, http):
    login_user(session)
    http.add('GET', '/notifications', {'success': True, 'notifications': [{'_id': 'n1', 'isRead': False}]})
    http.add('GET', '/notifications/unread-count', {'success': True, 'unreadCount': 4})
    http.add('PUT', '/notifications/mark-all-read', {'success': True})
    service = NotificationService(client)
    assert service.list(limit=5)[0].id == 'n1'
    assert http.last.params == {'limit': 5}
    assert service.unread_count() == 4
    service.mark_all_read()
    assert http.last.json == {}


def test_clean_text():
    assert clean_text('  <script>alert(1)</script> hello ') == 'alert(1) hello'
    assert clean_text(None) == ''
