from typing import List, Optional

from ..auth import Role
from ..models import Notification
from .base import Service, unwrap


class NotificationService(Service):
    role = Role.USER

    def list(self, limit: Optional[int] = None) -> List[Notification]:
        params = {'limit': limit} if limit else None
        payload = self._call('GET', '/notifications', params=params, action='fetch notifications')
        return [Notification.from_dict(n) for n in unwrap(payload, 'notifications', []) or []]

    def unread_count(self) -> int:
        payload = self._call('GET', '/notifications/unread-count', action='fetch unread count')
        if isinstance(payload, dict):
            return int(payload.get('unreadCount') or payload.get('count') or 0)
        return 0

    def mark_read(self, notification_id: str):
        return self._call('PUT', f'/notifications/{notification_id}/read', json={},
                          action='mark notification as read')

    def mark_all_read(self):
        return self._call('PUT', '/notifications/mark-all-read', json={}, action='mark notifications as read')

    def delete(self, notification_id: str):
        return self._call('DELETE', f'/notifications/{notification_id}', action='delete notification')

    def clear(self):
        return self._call('DELETE', '/notifications', action='clear notifications')
