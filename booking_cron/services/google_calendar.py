"""
Google Calendar API Service
Creates calendar events with a Google Meet conference attached
"""
import json
import uuid
from datetime import datetime
import httplib2
from google_auth_httplib2 import AuthorizedHttp
from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from booking_cron.config import settings


class GoogleCalendarService:
    """Service to interact with Google Calendar API"""

    def __init__(
        self,
        credentials: str | None = None,
        calendar_id: str | None = None,
        time_zone: str | None = None,
        timeout: float | None = None,
    ):
        self.credentials = None
        self.service = None
        self.calendar_id = calendar_id or settings.google_calendar_id
        self.time_zone = time_zone or settings.google_calendar_time_zone
        self.timeout = timeout if timeout is not None else settings.meeting_link_timeout_seconds
        self._init_service(credentials if credentials is not None else settings.google_calendar_credentials)

    def _init_service(self, creds_source: str):
        """Initialize Google Calendar API service"""
        try:
            if not creds_source:
                raise ValueError("GOOGLE_CALENDAR_CREDENTIALS not set")

            # Load credentials from file path or JSON string
            try:
                with open(creds_source, 'r') as f:
                    creds_dict = json.load(f)
            except (FileNotFoundError, OSError, json.JSONDecodeError):
                creds_dict = json.loads(creds_source)

            self.credentials = Credentials.from_service_account_info(
                creds_dict,
                scopes=['https://www.googleapis.com/auth/calendar']
            )

            # Every API call is bounded by the meeting link timeout
            http = AuthorizedHttp(self.credentials, http=httplib2.Http(timeout=self.timeout))
            self.service = build('calendar', 'v3', http=http, cache_discovery=False)

        except Exception as e:
            raise Exception(f"Failed to initialize Google Calendar service: {str(e)}")

    def create_meeting_event(self, title: str, start: datetime, end: datetime, description: str = None) -> dict:
        """
        Create event with a Google Meet conference.

        Args:
            title: Event title
            start: Event start (UTC, naive); sent as a UTC instant
            end: Event end (UTC, naive); sent as a UTC instant
            description: Event description

        Returns:
            dict with event ID and meeting link
        """
        try:
            event = {
                'summary': title,
                'description': description or '',
                'start': {'dateTime': start.isoformat() + 'Z', 'timeZone': self.time_zone},
                'end': {'dateTime': end.isoformat() + 'Z', 'timeZone': self.time_zone},
                'conferenceData': {
                    'createRequest': {
                        'requestId': f"meet-{uuid.uuid4()}",
                        'conferenceSolutionKey': {'type': 'hangoutsMeet'},
                    }
                },
            }

            created_event = self.service.events().insert(
                calendarId=self.calendar_id,
                body=event,
                conferenceDataVersion=1
            ).execute()

            meet_link = created_event.get('hangoutLink')
            if not meet_link:
                entry_points = created_event.get('conferenceData', {}).get('entryPoints', [])
                meet_link = next(
                    (ep.get('uri') for ep in entry_points if ep.get('entryPointType') == 'video'),
                    None
                )

            return {
                "status": "success",
                "event_id": created_event.get('id'),
                "meet_link": meet_link,
            }

        except Exception as e:
            return {
                "status": "error",
                "message": f"Failed to create event: {str(e)}"
            }
