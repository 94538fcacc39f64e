"""
Bearer token authentication for outgoing requests.

This module defines a ``requests`` auth class that simply sets the
``Authorization`` header with the ``keyword`` used by the Donor Connect
API.  Keeping it separate from the client lets tests and scripts attach
a token to a plain ``requests`` call as well.
"""
from __future__ import annotations

from requests.auth import AuthBase


class BearerAuth(AuthBase):
    """Token authentication using the ``Bearer`` keyword."""

    keyword = 'Bearer'

    def __init__(self, token: str):
        self.token = token

    def __call__(self, r):
        r.headers['Authorization'] = f'{self.keyword} {self.token}'
        return r

    def __eq__(self, other) -> bool:
        return isinstance(other, BearerAuth) and other.token == self.token

    def __ne__(self, other) -> bool:
        return not self == other

    def __repr__(self) -> str:
        return f'<BearerAuth {self.token[:6]}...>'
