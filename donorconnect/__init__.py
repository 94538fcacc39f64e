"""Client library for the Donor Connect platform.

This package contains the session store, REST client, real-time channel
client and feature services used to talk to the Donor Connect API on
behalf of a user, hospital, ambulance or admin identity.
"""

__version__ = '0.1.0'
