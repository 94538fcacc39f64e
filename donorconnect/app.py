"""
One object that wires the client together for a front end.

``DonorConnect`` owns the storage, the session, the navigator, the REST
client, every feature service and the real-time channel.  ``reload``
re-resolves the active identity after another process changed the
stored tokens and points the channel at the new identity.
"""
import logging
from typing import Optional

from .auth import Identity, Role, SessionState
from .client import ApiClient
from .navigation import Navigator
from .realtime import RealtimeChannel
from .services import (
    AccountService,
    AdminService,
    AmbulanceService,
    BloodDonationService,
    DonorService,
    EmergencyService,
    FundService,
    HospitalService,
    NotificationService,
)
from .settings import Settings, get_settings
from .storage import Storage
from .sync import StorageWatcher

logger = logging.getLogger(__name__)


class DonorConnect:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        storage=None,
        http=None,
        client_factory=None,
        navigator: Optional[Navigator] = None,
    ):
        self.settings = settings or get_settings()
        self.storage = storage if storage is not None else Storage(self.settings.storage_path)
        self.session = SessionState(self.storage)
        self.navigator = navigator or Navigator()
        self.client = ApiClient(
            self.session,
            base_url=self.settings.api_base_url,
            timeout=self.settings.http_timeout,
            http=http,
            navigator=self.navigator,
        )
        self.channel = RealtimeChannel(self.settings.socket_url, client_factory=client_factory,
                                       settings=self.settings)
        self.watcher = StorageWatcher(self.session, self.navigator, interval=self.settings.watch_interval)

        self.accounts = AccountService(self.client)
        self.hospitals = HospitalService(self.client)
        self.ambulances = AmbulanceService(self.client)
        self.emergencies = EmergencyService(self.client)
        self.blood = BloodDonationService(self.client)
        self.donors = DonorService(self.client)
        self.funds = FundService(self.client)
        self.admin = AdminService(self.client)
        self.notifications = NotificationService(self.client)

        self.identity: Optional[Identity] = self.session.active()

    def service_for(self, role: Role):
        return {
            Role.USER: self.accounts,
            Role.HOSPITAL: self.hospitals,
            Role.AMBULANCE: self.ambulances,
            Role.ADMIN: self.admin,
        }[role]

    def login(self, role: Role, email: str, password: str) -> Identity:
        self.identity = self.service_for(role).login(email, password)
        self.watcher.reset()
        return self.identity

    def logout(self, role: Optional[Role] = None) -> None:
        roles = [role] if role else [ident.role for ident in (self.session.identity(r) for r in Role) if ident]
        for r in roles:
            self.service_for(r).logout()
        self.identity = self.session.active()
        self.watcher.reset()

    def connect_channel(self):
        """Join the rooms of the stored user and ambulance identities."""
        user = self.session.identity(Role.USER)
        ambulance = self.session.identity(Role.AMBULANCE)
        return self.channel.connect(
            user_id=user.id if user else None,
            ambulance_id=ambulance.id if ambulance else None,
        )

    def reload(self) -> Optional[Identity]:
        self.identity = self.session.active()
        logger.info('Reloaded session: %s', self.identity.role.label if self.identity else 'anonymous')
        if self.identity is None:
            self.channel.disconnect()
        else:
            self.connect_channel()
        return self.identity

    def close(self) -> None:
        self.watcher.stop()
        self.channel.disconnect()
