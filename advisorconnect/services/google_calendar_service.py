"""
Google Calendar Service
Creates and lists events through the Calendar v3 REST API
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import quote
from zoneinfo import ZoneInfo

import httpx

from ..config import CALENDAR_TIMEZONE, SIDE_EFFECT_TIMEOUT_SECONDS
from ..domain.bookings.side_effects import CalendarEvent, CalendarEventRequest
from ..errors import SideEffectError
from ..shared.time_format import meeting_end, meeting_start, utcnow

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
GOOGLE_CALENDAR_RENDER_URL = "https://calendar.google.com/calendar/render?action=TEMPLATE"


def _to_calendar_stamp(value: datetime, time_zone: str) -> str:
    """YYYYMMDDTHHMMSSZ as used by calendar template links; naive values are wall-clock in time_zone"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=ZoneInfo(time_zone))
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def build_add_to_calendar_url(
    title: str,
    start: datetime,
    end: datetime,
    description: str,
    attendee_email: str,
    time_zone: str = CALENDAR_TIMEZONE,
) -> str:
    """Pre-filled "Add to Google Calendar" link (no API access needed)"""
    params = [
        f"text={quote(title)}",
        f"dates={_to_calendar_stamp(start, time_zone)}/{_to_calendar_stamp(end, time_zone)}",
        f"details={quote(description)}",
        f"add={quote(attendee_email)}",
    ]
    return f"{GOOGLE_CALENDAR_RENDER_URL}&{'&'.join(params)}"


class GoogleCalendarService:
    """Thin Calendar v3 client authorised with a caller-supplied bearer token"""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = SIDE_EFFECT_TIMEOUT_SECONDS,
        calendar_id: str = "primary",
        time_zone: str = CALENDAR_TIMEZONE,
    ):
        self.http_client = http_client
        self.timeout = timeout
        self.calendar_id = calendar_id
        self.time_zone = time_zone

    @asynccontextmanager
    async def _client(self):
        if self.http_client is not None:
            yield self.http_client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    def build_event_body(self, request: CalendarEventRequest) -> dict:
        start = meeting_start(request.date, request.time)
        end = meeting_end(request.date, request.time, request.duration_minutes)
        return {
            "summary": f"Meeting with {request.attendee_name}",
            "description": request.description or "Scheduled meeting via AdvisorConnect",
            "start": {"dateTime": start.isoformat(), "timeZone": self.time_zone},
            "end": {"dateTime": end.isoformat(), "timeZone": self.time_zone},
            "attendees": [
                {"email": request.attendee_email},
                {"email": request.owner_email},
            ],
            "guestsCanModify": False,
            "guestsCanInviteOthers": False,
            "reminders": {"useDefault": True},
        }

    async def create_event(self, bearer_token: str, request: CalendarEventRequest) -> CalendarEvent:
        """
        Create a calendar event for a booked meeting.

        Raises:
            SideEffectError: If Google rejects the request or is unreachable
        """
        event_data = self.build_event_body(request)

        try:
            async with self._client() as client:
                response = await client.post(
                    f"{GOOGLE_CALENDAR_API}/calendars/{self.calendar_id}/events",
                    headers={"Authorization": f"Bearer {bearer_token}"},
                    params={"sendUpdates": "all"},
                    json=event_data,
                )
        except httpx.HTTPError as e:
            raise SideEffectError(f"Calendar request failed: {e}") from e

        if response.status_code not in [200, 201]:
            logger.error(f"Failed to create calendar event: {response.status_code} {response.text}")
            raise SideEffectError(f"Calendar API returned {response.status_code}")

        event = response.json()
        logger.info(f"Google Calendar event created: {event.get('id')}")
        return CalendarEvent(event_id=event.get("id"), event_link=event.get("htmlLink"))

    async def list_events(
        self,
        bearer_token: str,
        time_min: Optional[datetime] = None,
        time_max: Optional[datetime] = None,
    ) -> list[dict]:
        """Events from the last 7 days through the next 30 days unless a window is given"""
        now = utcnow()
        time_min = time_min or now - timedelta(days=7)
        time_max = time_max or now + timedelta(days=30)

        try:
            async with self._client() as client:
                response = await client.get(
                    f"{GOOGLE_CALENDAR_API}/calendars/{self.calendar_id}/events",
                    headers={"Authorization": f"Bearer {bearer_token}"},
                    params={
                        "timeMin": _rfc3339(time_min),
                        "timeMax": _rfc3339(time_max),
                        "maxResults": 100,
                        "singleEvents": "true",
                        "orderBy": "startTime",
                    },
                )
        except httpx.HTTPError as e:
            raise SideEffectError(f"Calendar request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"Failed to list calendar events: {response.status_code} {response.text}")
            raise SideEffectError(f"Calendar API returned {response.status_code}")

        return [
            {
                "id": item.get("id"),
                "title": item.get("summary"),
                "description": item.get("description"),
                "start": (item.get("start") or {}).get("dateTime") or (item.get("start") or {}).get("date"),
                "end": (item.get("end") or {}).get("dateTime") or (item.get("end") or {}).get("date"),
                "attendees": item.get("attendees"),
                "location": item.get("location"),
                "status": item.get("status"),
                "htmlLink": item.get("htmlLink"),
            }
            for item in response.json().get("items", [])
        ]


def _rfc3339(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
