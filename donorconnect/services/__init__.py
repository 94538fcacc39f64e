from .accounts import AccountService
from .admin import AdminService
from .ambulances import AmbulanceService
from .blood import BloodDonationService
from .donors import DonorService
from .emergencies import EmergencyService
from .funds import FundService
from .hospitals import HospitalService
from .notifications import NotificationService

__all__ = [
    'AccountService',
    'AdminService',
    'AmbulanceService',
    'BloodDonationService',
    'DonorService',
    'EmergencyService',
    'FundService',
    'HospitalService',
    'NotificationService',
]
