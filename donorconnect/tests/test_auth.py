import json

import pytest

from donorconnect.auth import PRECEDENCE, Role, SessionState
from donorconnect.exceptions import NotAuthenticated
from donorconnect.storage import MemoryStorage


def test_login_stores_token_and_profile(session, storage):
    ident = session.login(Role.HOSPITAL, 'h-token', {'_id': 'h1', 'name': 'City Care'})
    assert storage.get_item('hospitalToken') == 'h-token'
    assert json.loads(storage.get_item('hospital'))['name'] == 'City Care'
    assert ident.id == 'h1'
    assert ident.name == 'City Care'


def test_login_is_mutually_exclusive(session, storage):
    session.login(Role.USER, 'u-token', {'id': 'u1'})
    session.login(Role.AMBULANCE, 'a-token', {'id': 'a1'})
    assert storage.get_item('token') is None
    assert storage.get_item('user') is None
    assert session.active().role is Role.AMBULANCE


def test_active_follows_precedence():
    storage = MemoryStorage({
        'adminToken': 'x',
        'ambulanceToken': 'y',
        'hospitalToken': 'z',
    })
    session = SessionState(storage)
    assert session.active().role is Role.HOSPITAL
    storage.set_item('token', 'u')
    assert session.active().role is Role.USER
    assert PRECEDENCE[0] is Role.USER


def test_logout_single_role_and_all():
    storage = MemoryStorage({'token': 'u', 'user': '{}', 'adminToken': 'a', 'admin': '{}'})
    session = SessionState(storage)
    session.logout(Role.USER)
    assert session.identity(Role.USER) is None
    assert session.identity(Role.ADMIN) is not None
    session.logout()
    assert storage.snapshot() == {}


def test_require_raises_for_missing_identity(session):
    with pytest.raises(NotAuthenticated, match='ambulance'):
        session.require(Role.AMBULANCE)


def test_corrupt_profile_is_empty():
    session = SessionState(MemoryStorage({'token': 'u', 'user': 'not-json'}))
    assert session.identity(Role.USER).profile == {}


def test_update_profile_only_when_logged_in(session, storage):
    session.update_profile(Role.USER, {'name': 'ghost'})
    assert storage.get_item('user') is None
    session.login(Role.USER, 'u', {'name': 'Asha'})
    session.update_profile(Role.USER, {'name': 'Asha R'})
    assert session.identity(Role.USER).name == 'Asha R'


def test_role_lookup():
    assert Role.from_label('admin') is Role.ADMIN
    assert Role.for_token_key('ambulanceToken') is Role.AMBULANCE
    assert Role.for_token_key('user') is None
    with pytest.raises(ValueError):
        Role.from_label('nurse')
