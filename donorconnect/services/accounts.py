"""Registration, login and profile calls for the user identity."""
from typing import Any, Dict, Optional

from ..auth import Identity, Role
from ..exceptions import ValidationError
from .base import Service, clean_text, login_body, unwrap


class AccountService(Service):
    role = Role.USER

    def register(self, name: str, email: str, password: str, **extra) -> Dict[str, Any]:
        if not (name and email and password):
            raise ValidationError('Name, email and password are required')
        body = {'name': clean_text(name), 'email': email.strip(), 'password': password}
        body.update(extra)
        return self.client.post('/auth/register', json=body, anonymous=True, action='register')

    def login(self, email: str, password: str) -> Identity:
        return self._login('/auth/login', {'email': email, 'password': password}, 'user', 'login')

    def logout(self) -> None:
        self.session.logout(self.role)

    def profile(self) -> Dict[str, Any]:
        payload = self._call('GET', '/auth/profile', action='load profile')
        user = unwrap(payload, 'user', {})
        if isinstance(user, dict) and 'user' in user:
            user = user['user']
        if isinstance(user, dict) and user:
            self.session.update_profile(self.role, user)
        return user

    def update_profile(self, **changes) -> Dict[str, Any]:
        payload = self._call('PUT', '/auth/profile', json=changes, action='update profile')
        user = unwrap(payload, 'user', {})
        if isinstance(user, dict) and user:
            self.session.update_profile(self.role, user)
        return user

    def verify_email(self, token: str) -> Optional[Identity]:
        """Verify the emailed token; the server logs the user in on success."""
        if not token:
            raise ValidationError('Invalid verification link. Please check your email and try again.')
        payload = self.client.get(
            '/auth/verify-email', params={'token': token}, anonymous=True, action='verify email'
        )
        body = login_body(payload)
        if body.get('token'):
            return self.session.login(self.role, body['token'], body.get('user') or {})
        return None

    def resend_verification(self, email: str) -> Dict[str, Any]:
        return self.client.post(
            '/auth/resend-verification', json={'email': email}, anonymous=True,
            action='resend verification email',
        )

    def forgot_password(self, email: str) -> Dict[str, Any]:
        return self.client.post(
            '/auth/forgot-password', json={'email': email}, anonymous=True, action='request password reset'
        )

    def reset_password(self, token: str, password: str) -> Dict[str, Any]:
        if not password:
            raise ValidationError('Password is required')
        return self.client.post(
            '/auth/reset-password', json={'token': token, 'password': password}, anonymous=True,
            action='reset password',
        )
