"""
Meeting link fallback
Generates a Google Meet link for online bookings that reached their start
time without one. Best effort: callers log failures and move on.
"""
import logging
from datetime import datetime
from booking_cron.database import SessionLocal
from booking_cron.models import Booking
from booking_cron.services.booking_store import BookingStore
from booking_cron.services.google_calendar import GoogleCalendarService

logger = logging.getLogger(__name__)

GOOGLE_MEET = "google_meet"


class MeetingLinkError(Exception):
    """Raised when the calendar provider rejects the meeting request"""


class MeetingLinkProvisioner:
    """Creates meeting links; each call uses its own database session"""

    def __init__(self, session_factory=None, calendar_factory=None):
        self.session_factory = session_factory or SessionLocal
        self.calendar_factory = calendar_factory or GoogleCalendarService

    def generate_link(self, booking_id: str, now: datetime) -> str | None:
        """
        Generate and store a meeting link for a booking.

        Args:
            booking_id: Booking UUID
            now: Timestamp of the current run, used for updated_at

        Returns:
            The booking's meeting link, or None when no link can be made
            (no meeting platform, or no calendar integration configured)

        Raises:
            MeetingLinkError: if the calendar provider fails to create the event
        """
        db = self.session_factory()
        try:
            booking = db.get(Booking, booking_id)
            if booking is None:
                logger.warning(f"Booking {booking_id} not found, skipping meeting link")
                return None

            if booking.meeting_link:
                return booking.meeting_link

            service = booking.service
            platform = service.meeting_platform if service else None
            if not platform:
                logger.info(f"Service for booking {booking_id[:8]}... does not use a meeting platform")
                return None
            if platform != GOOGLE_MEET:
                logger.info(f"Meeting platform '{platform}' is not supported for fallback links")
                return None

            try:
                calendar = self.calendar_factory()
            except Exception as e:
                logger.warning(f"No calendar integration available for booking {booking_id[:8]}...: {e}")
                return None

            result = calendar.create_meeting_event(
                title=service.title or "Booking session",
                start=booking.scheduled_at,
                end=booking.end_time,
                description=f"Booking {booking.id}",
            )
            if result.get("status") != "success":
                raise MeetingLinkError(result.get("message", "Calendar event creation failed"))

            meet_link = result.get("meet_link")
            if not meet_link:
                logger.warning(f"Calendar event for booking {booking_id[:8]}... has no meeting link")
                return None

            store = BookingStore(db)
            stored = store.set_meeting_link(
                booking_id, meet_link, now, meeting_id=result.get("event_id"), meeting_platform=platform
            )
            if stored == 0:
                # Another writer got there first
                return booking.meeting_link

            return meet_link
        finally:
            db.close()
