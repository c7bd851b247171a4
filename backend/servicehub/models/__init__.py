from servicehub.models.user import User
from servicehub.models.provider import Provider
from servicehub.models.category import Category
from servicehub.models.service import Service
from servicehub.models.booking import Booking, BookingStatus, ACTIVE_STATUSES
from servicehub.models.message import Message

__all__ = [
    "User",
    "Provider",
    "Category",
    "Service",
    "Booking",
    "BookingStatus",
    "ACTIVE_STATUSES",
    "Message",
]
