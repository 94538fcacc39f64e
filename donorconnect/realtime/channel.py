"""
Real-time channel client.

One ``RealtimeChannel`` holds one Socket.IO connection for the process.
It remembers which user and ambulance it speaks for and announces them
(``user-join`` / ``ambulance-join``) on every connect, including the
transport's own reconnects.  Reconnection itself is left to the
transport's retry policy.

Listeners are kept here rather than on the transport so that several
callbacks can share one event, callbacks registered before ``connect``
survive, and ``remove_listener`` works on any transport version.
Emitters are fire-and-forget: no acknowledgement, retry or queueing.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError

from ..permissions import normalize_id
from ..settings import Settings, get_settings
from . import events

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]

TRANSPORTS = ['websocket', 'polling']
BUILTIN_EVENTS = (
    events.CONNECT,
    events.DISCONNECT,
    events.CONNECT_ERROR,
    events.ERROR,
    events.CONNECTION_ERROR,
    events.AMBULANCE_CONNECTED,
)


def default_client_factory(settings: Settings):
    return socketio.Client(
        reconnection=True,
        reconnection_attempts=settings.reconnect_attempts,
        reconnection_delay=settings.reconnect_delay,
        reconnection_delay_max=settings.reconnect_delay_max,
        logger=False,
        engineio_logger=False,
    )


class RealtimeChannel:
    def __init__(self, url: Optional[str] = None, client_factory=None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.url = url or self.settings.socket_url
        self._client_factory = client_factory or default_client_factory
        self._sio = None
        self._connected = False
        self._bound: set = set()
        self._listeners: Dict[str, List[Callback]] = defaultdict(list)
        self.user_id: Optional[str] = None
        self.ambulance_id: Optional[str] = None

    # -- connection ------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return bool(self._connected and self._sio is not None and getattr(self._sio, 'connected', False))

    @property
    def sid(self) -> Optional[str]:
        return getattr(self._sio, 'sid', None) if self._sio is not None else None

    def connect(self, user_id: Any = None, ambulance_id: Any = None):
        """Connect, or re-announce when the identity changed on a live connection."""
        user_id = normalize_id(user_id)
        ambulance_id = normalize_id(ambulance_id)
        changed = user_id != self.user_id or ambulance_id != self.ambulance_id

        if self.is_connected and not changed:
            logger.debug('Socket already connected for same user/ambulance')
            return self._sio

        if self.is_connected:
            logger.info('User/ambulance changed, updating socket rooms')
            self.user_id, self.ambulance_id = user_id, ambulance_id
            self._announce()
            return self._sio

        if self._sio is not None:
            # stale transport (never connected, or out of retries)
            self._teardown()

        self.user_id, self.ambulance_id = user_id, ambulance_id
        self._sio = self._client_factory(self.settings)
        self._bound = set()
        for event in BUILTIN_EVENTS:
            self._bind(event)
        for event in list(self._listeners):
            self._bind(event)

        try:
            self._sio.connect(self.url, transports=TRANSPORTS, retry=True)
        except SocketConnectionError as exc:
            logger.error('Socket connection error: %s', exc)
        return self._sio

    def disconnect(self) -> None:
        if self._sio is not None:
            self._teardown()
            logger.info('Socket disconnected')

    def _teardown(self) -> None:
        sio, self._sio = self._sio, None
        self._connected = False
        self._bound = set()
        try:
            sio.disconnect()
        except Exception:
            logger.exception('Error while closing socket')

    def _announce(self) -> None:
        if self.user_id:
            logger.info('Joining user room %s', self.user_id)
            self._sio.emit(events.USER_JOIN, self.user_id)
        if self.ambulance_id:
            logger.info('Joining ambulance emergency room %s', self.ambulance_id)
            self._sio.emit(events.AMBULANCE_JOIN, self.ambulance_id)

    # -- dispatch --------------------------------------------------------------

    def _bind(self, event: str) -> None:
        if self._sio is None or event in self._bound:
            return

        def handler(*args):
            self._dispatch(event, *args)

        self._sio.on(event, handler)
        self._bound.add(event)

    def _dispatch(self, event: str, *args) -> None:
        if event == events.CONNECT:
            self._connected = True
            logger.info('Socket connected: %s', self.sid)
            self._announce()
        elif event == events.DISCONNECT:
            # ids are kept: the transport may reconnect on its own
            self._connected = False
            logger.info('Socket disconnected')
        elif event in (events.ERROR, events.CONNECT_ERROR):
            logger.error('Socket error (%s): %s', event, args[0] if args else None)
        elif event == events.CONNECTION_ERROR:
            logger.error('Socket connection error from server: %s', args[0] if args else None)
        elif event == events.AMBULANCE_CONNECTED:
            logger.info('Ambulance connected to emergency system: %s', args[0] if args else None)

        for callback in list(self._listeners.get(event, ())):
            try:
                callback(*args)
            except Exception:
                logger.exception('Listener for %s failed', event)

    # -- listeners -------------------------------------------------------------

    def on(self, event: str, callback: Callback) -> Callback:
        self._listeners[event].append(callback)
        self._bind(event)
        return callback

    def remove_listener(self, event: str) -> None:
        self._listeners.pop(event, None)

    def listeners(self, event: str) -> List[Callback]:
        return list(self._listeners.get(event, ()))

    def on_new_emergency(self, callback: Callback) -> Callback:
        return self.on(events.NEW_EMERGENCY, callback)

    def on_emergency_taken(self, callback: Callback) -> Callback:
        return self.on(events.EMERGENCY_TAKEN, callback)

    def on_emergency_accepted(self, callback: Callback) -> Callback:
        return self.on(events.EMERGENCY_ACCEPTED, callback)

    def on_emergency_accepted_confirm(self, callback: Callback) -> Callback:
        return self.on(events.EMERGENCY_ACCEPTED_CONFIRM, callback)

    def on_emergency_completed(self, callback: Callback) -> Callback:
        return self.on(events.EMERGENCY_COMPLETED, callback)

    def on_emergency_expired(self, callback: Callback) -> Callback:
        return self.on(events.EMERGENCY_EXPIRED, callback)

    def on_ambulance_online(self, callback: Callback) -> Callback:
        return self.on(events.AMBULANCE_ONLINE, callback)

    def on_ambulance_connected(self, callback: Callback) -> Callback:
        return self.on(events.AMBULANCE_CONNECTED, callback)

    def on_new_blood_request(self, callback: Callback) -> Callback:
        return self.on(events.NEW_BLOOD_REQUEST, callback)

    def on_blood_request_accepted(self, callback: Callback) -> Callback:
        return self.on(events.BLOOD_REQUEST_ACCEPTED, callback)

    def on_blood_request_completed(self, callback: Callback) -> Callback:
        return self.on(events.BLOOD_REQUEST_COMPLETED, callback)

    def on_blood_request_taken(self, callback: Callback) -> Callback:
        return self.on(events.BLOOD_REQUEST_TAKEN, callback)

    def on_blood_request_deleted(self, callback: Callback) -> Callback:
        return self.on(events.BLOOD_REQUEST_DELETED, callback)

    def on_blood_request_updated(self, callback: Callback) -> Callback:
        return self.on(events.BLOOD_REQUEST_UPDATED, callback)

    def on_blood_request_update(self, callback: Callback) -> Callback:
        return self.on(events.BLOOD_REQUEST_UPDATE, callback)

    def on_donor_status_changed(self, callback: Callback) -> Callback:
        return self.on(events.DONOR_STATUS_CHANGED, callback)

    def on_donor_connected(self, callback: Callback) -> Callback:
        return self.on(events.DONOR_CONNECTED, callback)

    # -- emitters --------------------------------------------------------------

    def _emit(self, event: str, data: Any = None) -> None:
        if self._sio is None:
            logger.debug('Dropping %s: no socket', event)
            return
        if data is None:
            self._sio.emit(event)
        else:
            self._sio.emit(event, data)

    def join_emergency_room(self) -> None:
        self._emit(events.AMBULANCE_JOIN, self.ambulance_id)

    def join_blood_donors(self, user_id: Any) -> None:
        self._emit(events.DONOR_JOIN, normalize_id(user_id))
        logger.info('Donor joined blood donation network')

    def accept_emergency(self, emergency_id: Any, ambulance_id: Any) -> None:
        self._emit(events.ACCEPT_EMERGENCY, {
            'emergencyId': normalize_id(emergency_id),
            'ambulanceId': normalize_id(ambulance_id),
        })

    def update_ambulance_location(self, ambulance_id: Any, coordinates, status: Optional[str] = None) -> None:
        if hasattr(coordinates, 'as_dict'):
            coordinates = coordinates.as_dict()
        self._emit(events.UPDATE_AMBULANCE_LOCATION, {
            'ambulanceId': normalize_id(ambulance_id),
            'coordinates': coordinates,
            'status': status,
        })

    def complete_emergency(self, ambulance_id: Any, emergency_id: Any) -> None:
        self._emit(events.COMPLETE_EMERGENCY, {
            'ambulanceId': normalize_id(ambulance_id),
            'emergencyId': normalize_id(emergency_id),
        })

    def accept_blood_request(self, request_id: Any, donor_id: Any) -> None:
        self._emit(events.ACCEPT_BLOOD_REQUEST, {
            'requestId': normalize_id(request_id),
            'donorId': normalize_id(donor_id),
        })

    def update_donor_status(self, user_id: Any, new_status: Any) -> None:
        self._emit(events.UPDATE_DONOR_STATUS, {
            'userId': normalize_id(user_id),
            'newStatus': new_status,
        })
