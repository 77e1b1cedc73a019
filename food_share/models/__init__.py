from .donation import Donation, DonationStatus, FoodCategory
from .user import User, UserRole
from .reservation import Reservation
from .food_request import FoodRequest
from .notification import Notification
from .system_health import SystemHealth

__all__ = [
    "Donation",
    "DonationStatus",
    "FoodCategory",
    "User",
    "UserRole",
    "Reservation",
    "FoodRequest",
    "Notification",
    "SystemHealth",
]
