"""
Client-side role matching checks.

These checks only decide which actions are offered and stop obviously
invalid calls before they reach the network; the server is still the
authority.  Ids arrive in several shapes (plain strings, ints, populated
objects with ``_id``/``id``), so every comparison goes through
``normalize_id``.
"""
from typing import Any, Mapping, Optional, Set

from .exceptions import PermissionDenied


def normalize_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Mapping):
        return normalize_id(value.get('_id') or value.get('id'))
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        text = str(value).strip()
        return text or None
    for attr in ('_id', 'id'):
        inner = getattr(value, attr, None)
        if inner is not None:
            return normalize_id(inner)
    return None


def same_party(a: Any, b: Any) -> bool:
    left, right = normalize_id(a), normalize_id(b)
    return left is not None and left == right


def _snake(name: str) -> str:
    return ''.join('_' + c.lower() if c.isupper() else c for c in name)


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    value = getattr(obj, name, None)
    if value is None:
        value = getattr(obj, _snake(name), None)
    return value


def require(allowed: bool, message: str) -> None:
    if not allowed:
        raise PermissionDenied(message)


# -- blood requests -----------------------------------------------------------

def is_recipient(user: Any, request: Any) -> bool:
    return same_party(user, _field(request, 'recipient'))


def is_donor(user: Any, request: Any) -> bool:
    return same_party(user, _field(request, 'donor'))


def can_accept_blood_request(user: Any, request: Any) -> bool:
    """Any logged-in user except the recipient, while the request is pending."""
    if normalize_id(user) is None:
        return False
    return not is_recipient(user, request) and _field(request, 'status') == 'pending'


def can_edit_blood_request(user: Any, request: Any) -> bool:
    return is_recipient(user, request) and _field(request, 'status') == 'pending'


can_delete_blood_request = can_edit_blood_request


def can_complete_blood_request(user: Any, request: Any) -> bool:
    return (is_recipient(user, request) or is_donor(user, request)) and _field(request, 'status') == 'matched'


def blood_request_actions(user: Any, request: Any) -> Set[str]:
    actions = set()
    if can_edit_blood_request(user, request):
        actions.update({'edit', 'delete'})
    if can_accept_blood_request(user, request):
        actions.add('accept')
    if can_complete_blood_request(user, request):
        actions.add('complete')
    return actions


# -- emergencies ----------------------------------------------------------------

def can_accept_emergency(ambulance: Any, emergency: Any) -> bool:
    if normalize_id(ambulance) is None:
        return False
    if _field(ambulance, 'isApproved') is False:
        return False
    return _field(ambulance, 'status') == 'available' and _field(emergency, 'status') == 'pending'


def can_complete_emergency(ambulance: Any, emergency: Any) -> bool:
    return (
        same_party(ambulance, _field(emergency, 'assignedAmbulance'))
        and _field(emergency, 'status') == 'assigned'
    )
