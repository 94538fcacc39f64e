"""Names of the events exchanged over the real-time channel."""

# room announcements (client -> server)
USER_JOIN = 'user-join'
AMBULANCE_JOIN = 'ambulance-join'
DONOR_JOIN = 'donor-join'

# emergency dispatch (server -> client)
NEW_EMERGENCY = 'new-emergency'
EMERGENCY_TAKEN = 'emergency-taken'
EMERGENCY_ACCEPTED = 'emergency-accepted'
EMERGENCY_ACCEPTED_CONFIRM = 'emergency-accepted-confirm'
EMERGENCY_COMPLETED = 'emergency-completed'
EMERGENCY_EXPIRED = 'emergency-expired'
AMBULANCE_ONLINE = 'ambulance-online'
AMBULANCE_CONNECTED = 'ambulance-connected'
ACCEPT_ERROR = 'accept-error'

# emergency dispatch (client -> server)
ACCEPT_EMERGENCY = 'accept-emergency'
UPDATE_AMBULANCE_LOCATION = 'update-ambulance-location'
COMPLETE_EMERGENCY = 'complete-emergency'

# blood request matching (server -> client)
NEW_BLOOD_REQUEST = 'new-blood-request'
BLOOD_REQUEST_ACCEPTED = 'blood-request-accepted'
BLOOD_REQUEST_COMPLETED = 'blood-request-completed'
BLOOD_REQUEST_TAKEN = 'blood-request-taken'
BLOOD_REQUEST_DELETED = 'blood-request-deleted'
BLOOD_REQUEST_UPDATED = 'blood-request-updated'
BLOOD_REQUEST_UPDATE = 'blood-request-update'
DONOR_STATUS_CHANGED = 'donor-status-changed'
DONOR_CONNECTED = 'donor-connected'

# blood request matching (client -> server)
ACCEPT_BLOOD_REQUEST = 'accept-blood-request'
UPDATE_DONOR_STATUS = 'update-donor-status'

# transport / server diagnostics
CONNECT = 'connect'
DISCONNECT = 'disconnect'
CONNECT_ERROR = 'connect_error'
ERROR = 'error'
CONNECTION_ERROR = 'connection-error'

EMERGENCY_EVENTS = (
    NEW_EMERGENCY,
    EMERGENCY_TAKEN,
    EMERGENCY_ACCEPTED,
    EMERGENCY_ACCEPTED_CONFIRM,
    EMERGENCY_COMPLETED,
    EMERGENCY_EXPIRED,
    AMBULANCE_ONLINE,
    AMBULANCE_CONNECTED,
    ACCEPT_ERROR,
)

BLOOD_EVENTS = (
    NEW_BLOOD_REQUEST,
    BLOOD_REQUEST_ACCEPTED,
    BLOOD_REQUEST_COMPLETED,
    BLOOD_REQUEST_TAKEN,
    BLOOD_REQUEST_DELETED,
    BLOOD_REQUEST_UPDATED,
    BLOOD_REQUEST_UPDATE,
    DONOR_STATUS_CHANGED,
    DONOR_CONNECTED,
)
