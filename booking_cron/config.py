import os
from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Job configuration from environment variables"""

    # App
    app_name: str = "Booking Automation Cron"
    debug: bool = os.getenv("DEBUG", "False").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./bookings.db")

    # Settlement backend (completes bookings on-chain)
    settlement_api_url: str = os.getenv("SETTLEMENT_API_URL", "http://localhost:4001")
    settlement_timeout_seconds: float = float(os.getenv("SETTLEMENT_TIMEOUT_SECONDS", "30"))

    # Meeting link fallback
    meeting_link_timeout_seconds: float = float(os.getenv("MEETING_LINK_TIMEOUT_SECONDS", "20"))
    meeting_link_max_workers: int = int(os.getenv("MEETING_LINK_MAX_WORKERS", "4"))

    # Reminders
    notification_timeout_seconds: float = float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "10"))
    reminder_window_start_minutes: int = int(os.getenv("REMINDER_WINDOW_START_MINUTES", "60"))
    reminder_window_end_minutes: int = int(os.getenv("REMINDER_WINDOW_END_MINUTES", "120"))

    # Google Calendar
    google_calendar_credentials: str = os.getenv("GOOGLE_CALENDAR_CREDENTIALS", "")
    google_calendar_id: str = os.getenv("GOOGLE_CALENDAR_ID", "primary")
    google_calendar_time_zone: str = os.getenv("GOOGLE_CALENDAR_TIME_ZONE", "UTC")

    # Twilio
    twilio_account_sid: str = os.getenv("TWILIO_ACCOUNT_SID", "")
    twilio_auth_token: str = os.getenv("TWILIO_AUTH_TOKEN", "")
    twilio_phone_number: str = os.getenv("TWILIO_PHONE_NUMBER", "")

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
