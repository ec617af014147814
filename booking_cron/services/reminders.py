"""
Upcoming booking reminders
Selects confirmed bookings starting one to two hours from now and sends
each customer a reminder.
"""
import logging
from datetime import datetime, timedelta
from booking_cron.config import settings
from booking_cron.models import Booking
from booking_cron.services.booking_store import BookingStore, StoreError
from booking_cron.services.sms_service import BookingSummary

logger = logging.getLogger(__name__)


def summarize(booking: Booking) -> BookingSummary:
    return BookingSummary(
        booking_id=booking.id,
        scheduled_at=booking.scheduled_at,
        service_title=booking.service.title if booking.service else None,
        customer_id=booking.customer_id,
        provider_id=booking.provider_id,
        customer_phone=booking.customer_phone,
    )


class ReminderDispatcher:
    """Sends one-hour reminders and marks them as sent"""

    def __init__(
        self,
        store: BookingStore,
        notifier,
        window_start_minutes: int | None = None,
        window_end_minutes: int | None = None,
    ):
        self.store = store
        self.notifier = notifier
        self.window_start = timedelta(minutes=(
            window_start_minutes if window_start_minutes is not None
            else settings.reminder_window_start_minutes
        ))
        self.window_end = timedelta(minutes=(
            window_end_minutes if window_end_minutes is not None
            else settings.reminder_window_end_minutes
        ))

    def dispatch(self, now: datetime) -> int:
        """
        Send reminders for bookings in [now + start, now + end).

        Every selected booking is marked as reminded once the batch has been
        attempted, whether or not its own send succeeded.

        Returns:
            Number of bookings selected
        """
        logger.info("📧 Checking for upcoming booking reminders...")

        try:
            bookings = self.store.select_reminder_candidates(now + self.window_start, now + self.window_end)
        except StoreError as e:
            logger.error(f"Error fetching upcoming bookings: {e}")
            return 0

        if not bookings:
            logger.info("📧 No upcoming bookings need reminders")
            return 0

        logger.info(f"📧 Found {len(bookings)} bookings needing reminders")

        for booking in bookings:
            try:
                result = self.notifier.send(summarize(booking))
            except Exception as e:
                logger.error(f"❌ Failed to send reminder for booking {booking.id}: {e}")
                continue

            # Senders may return nothing; only a dict carries a status
            if not isinstance(result, dict):
                result = {}
            status = result.get("status", "success")
            if status == "error":
                logger.error(f"❌ Failed to send reminder for booking {booking.id}: {result.get('message')}")
            elif status == "skipped":
                logger.warning(f"⚠️ Reminder skipped for booking {booking.id[:8]}...: {result.get('message')}")
            else:
                logger.info(f"📧 Reminder sent for booking {booking.id[:8]}...")

        booking_ids = [b.id for b in bookings]
        try:
            self.store.mark_reminders_sent(booking_ids, now)
        except StoreError as e:
            logger.error(f"Error marking reminders as sent: {e}")

        logger.info(f"✅ Processed {len(booking_ids)} reminders")
        return len(booking_ids)
