"""Google Calendar synchronizer for confirmed bookings.

The synchronizer is optional. Without a calendar id and credentials it
reports ``unavailable`` and the booking keeps the fallback meeting link.
"""

import logging
import os
import re
from datetime import timedelta

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from backend.core import config
from backend.core.config import SchedulingConfig
from backend.integrations.base import CalendarSyncResult, IntegrationStatus
from backend.scheduling.schemas import BookingRecord
from backend.scheduling.slots import slot_start

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar.events"]

SYNC_ERRORS = (HttpError, httplib2.HttpLib2Error, GoogleAuthError, OSError)


def load_calendar_credentials(
    service_account_file: str | None = None,
    token_file: str | None = None,
):
    """Load service-account credentials, falling back to an authorized-user token."""
    service_account_file = config.GCAL_SERVICE_ACCOUNT_FILE if service_account_file is None else service_account_file
    token_file = config.GCAL_TOKEN_FILE if token_file is None else token_file

    try:
        if service_account_file:
            if not os.path.exists(service_account_file):
                logger.warning("Calendar service account file %s not found.", service_account_file)
                return None
            return service_account.Credentials.from_service_account_file(service_account_file, scopes=SCOPES)

        if token_file and os.path.exists(token_file):
            return Credentials.from_authorized_user_file(token_file, SCOPES)
    except (ValueError, OSError):
        logger.exception("Calendar credentials could not be loaded; calendar sync disabled.")
        return None

    return None


def extract_meeting_link(event: dict) -> str | None:
    entry_points = (event.get("conferenceData") or {}).get("entryPoints") or []
    for entry in entry_points:
        if entry.get("entryPointType") == "video" and entry.get("uri"):
            return entry["uri"]
    return event.get("hangoutLink")


def conference_request_id(booking: BookingRecord) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "", f"{booking.date}-{booking.time}-{booking.email}")


class GoogleCalendarSynchronizer:
    def __init__(
        self,
        calendar_id: str,
        credentials=None,
        *,
        summary: str = "Discovery Call",
        timeout: int = 10,
        send_updates: bool = True,
    ):
        self.calendar_id = calendar_id
        self.credentials = credentials
        self.summary = summary
        self.timeout = timeout
        self.send_updates = send_updates

    @classmethod
    def from_config(cls) -> "GoogleCalendarSynchronizer":
        credentials = load_calendar_credentials() if config.GCAL_CALENDAR_ID else None
        return cls(
            config.GCAL_CALENDAR_ID,
            credentials,
            summary=config.EVENT_SUMMARY,
            timeout=config.INTEGRATION_TIMEOUT_SECONDS,
            send_updates=config.GCAL_SEND_UPDATES,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.calendar_id and self.credentials)

    def build_service(self):
        # httplib2.Http is not thread-safe, so every sync gets its own client.
        http = AuthorizedHttp(self.credentials, http=httplib2.Http(timeout=self.timeout))
        return build("calendar", "v3", http=http, cache_discovery=False)

    def build_event_body(self, booking: BookingRecord, scheduling: SchedulingConfig) -> dict:
        start = slot_start(booking.date, booking.time, scheduling)
        end = start + timedelta(minutes=booking.duration_minutes)
        return {
            "summary": self.summary,
            "description": f"{self.summary} with {booking.name or booking.email}",
            "start": {"dateTime": start.isoformat(), "timeZone": scheduling.timezone},
            "end": {"dateTime": end.isoformat(), "timeZone": scheduling.timezone},
            "attendees": [{"email": booking.email}],
            "conferenceData": {
                "createRequest": {
                    "requestId": conference_request_id(booking),
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                },
            },
        }

    def create_event(self, booking: BookingRecord, scheduling: SchedulingConfig) -> CalendarSyncResult:
        if not self.is_configured:
            logger.info("Calendar sync not configured; skipping event for booking %s.", booking.id)
            return CalendarSyncResult.unavailable()

        body = self.build_event_body(booking, scheduling)
        try:
            event = self.build_service().events().insert(
                calendarId=self.calendar_id,
                body=body,
                sendUpdates="all" if self.send_updates else "none",
                conferenceDataVersion=1,
            ).execute()
        except SYNC_ERRORS:
            logger.exception("Calendar event creation failed for booking %s.", booking.id)
            return CalendarSyncResult.failed()

        logger.info("Calendar event %s created for booking %s.", event.get("id"), booking.id)
        return CalendarSyncResult(
            status=IntegrationStatus.SUCCEEDED,
            external_event_id=event.get("id"),
            meeting_link=extract_meeting_link(event),
        )
