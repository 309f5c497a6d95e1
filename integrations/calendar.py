import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import httpx

from integrations.google_auth import GoogleAuthError, GoogleTokenProvider

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
CONSULTATION_MINUTES = 90


class CalendarError(Exception):
    pass


@dataclass
class MeetingInfo:
    event_id: str
    meet_link: Optional[str]
    event_link: Optional[str]
    start: datetime
    end: datetime


class GoogleCalendarClient:
    def __init__(self, calendar_id: str, tokens: GoogleTokenProvider,
                 timezone: str = "Europe/Rome", timeout: float = 10.0, client=None):
        self.calendar_id = calendar_id
        self.tokens = tokens
        self.timezone = timezone
        self.client = client or httpx.Client(timeout=timeout)

    def create_meeting(self, start: datetime, summary: str, description: str,
                       attendees: list, request_id: str) -> MeetingInfo:
        """Create the consultation event with a Meet conference attached."""
        end = start + timedelta(minutes=CONSULTATION_MINUTES)
        event = {
            "summary": summary,
            "description": description,
            "start": {"dateTime": start.isoformat(), "timeZone": self.timezone},
            "end": {"dateTime": end.isoformat(), "timeZone": self.timezone},
            "attendees": attendees,
            "conferenceData": {
                "createRequest": {
                    "requestId": request_id,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            },
            "reminders": {
                "useDefault": False,
                "overrides": [
                    {"method": "email", "minutes": 24 * 60},
                    {"method": "email", "minutes": 60},
                    {"method": "popup", "minutes": 10},
                ],
            },
        }

        try:
            response = self.client.post(
                f"{GOOGLE_CALENDAR_API}/calendars/{self.calendar_id}/events",
                headers=self.tokens.headers(),
                params={"conferenceDataVersion": 1, "sendUpdates": "all"},
                json=event,
            )
        except (httpx.HTTPError, GoogleAuthError) as exc:
            raise CalendarError(str(exc)) from exc

        if response.status_code not in (200, 201):
            raise CalendarError(f"Calendar API {response.status_code}: {response.text[:200]}")

        created = response.json()
        logger.info("Calendar event %s created", created.get("id"))
        return MeetingInfo(
            event_id=created.get("id"),
            meet_link=created.get("hangoutLink"),
            event_link=created.get("htmlLink"),
            start=start,
            end=end,
        )
