"""
SMS Service using Twilio
Sends upcoming booking reminders
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client
from booking_cron.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingSummary:
    """What a reminder needs to know about a booking"""
    booking_id: str
    scheduled_at: datetime
    service_title: str | None = None
    customer_id: str | None = None
    provider_id: str | None = None
    customer_phone: str | None = None


class TwilioService:
    """Service to send SMS using Twilio"""

    def __init__(
        self,
        account_sid: str | None = None,
        auth_token: str | None = None,
        phone_number: str | None = None,
        timeout: float | None = None,
    ):
        self.account_sid = account_sid if account_sid is not None else settings.twilio_account_sid
        self.auth_token = auth_token if auth_token is not None else settings.twilio_auth_token
        self.phone_number = phone_number if phone_number is not None else settings.twilio_phone_number
        self.timeout = timeout if timeout is not None else settings.notification_timeout_seconds
        self.client = None
        self._init_client()

    def _init_client(self):
        """Initialize Twilio client"""
        try:
            if self.account_sid and self.auth_token:
                self.client = Client(
                    self.account_sid,
                    self.auth_token,
                    http_client=TwilioHttpClient(timeout=self.timeout),
                )
        except Exception as e:
            logger.warning(f"Failed to initialize Twilio: {str(e)}")

    def send_sms(self, to_number: str, message: str) -> dict:
        """
        Send SMS using Twilio.

        Args:
            to_number: Recipient phone number
            message: Message to send

        Returns:
            dict with SMS status
        """
        try:
            if not self.client:
                return {
                    "status": "success",
                    "to": to_number,
                    "message": message,
                    "note": "Twilio not configured - running in test mode"
                }

            sms = self.client.messages.create(
                body=message,
                from_=self.phone_number,
                to=to_number
            )

            return {
                "status": "success",
                "to": to_number,
                "message": message,
                "sid": sms.sid
            }

        except Exception as e:
            return {
                "status": "error",
                "message": f"Error sending SMS: {str(e)}"
            }

    def send(self, summary: BookingSummary) -> dict:
        """
        Send the one-hour reminder for an upcoming booking.

        Args:
            summary: Booking details for the message

        Returns:
            dict with SMS status; "skipped" when the customer has no phone
        """
        if not summary.customer_phone:
            return {
                "status": "skipped",
                "message": f"No phone number for booking {summary.booking_id}"
            }

        title = summary.service_title or "your booking"
        when = summary.scheduled_at.strftime('%B %d at %H:%M UTC')
        message = f"Reminder: {title} starts on {when}. See you soon!"
        return self.send_sms(summary.customer_phone, message)
