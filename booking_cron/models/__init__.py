from booking_cron.models.booking import Booking, BookingStatus
from booking_cron.models.service import Service

__all__ = ["Booking", "BookingStatus", "Service"]
