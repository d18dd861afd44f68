"""Google Calendar client and credential provider against a mocked HTTP transport."""

import json
from datetime import date, datetime, timedelta

import httpx
import pytest
from cryptography.fernet import Fernet

from advisorconnect.domain.bookings.side_effects import CalendarEventRequest
from advisorconnect.errors import CredentialRefreshError, NotFoundError, SideEffectError
from advisorconnect.services.credential_provider import GOOGLE_REVOKE_URL, GOOGLE_TOKEN_URL, GoogleCredentialProvider
from advisorconnect.services.google_calendar_service import (
    GoogleCalendarService,
    build_add_to_calendar_url,
)
from advisorconnect.shared.time_format import utcnow


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def event_request(time="12:00 PM"):
    return CalendarEventRequest(
        attendee_name="Casey Client",
        date=date(2025, 3, 14),
        time=time,
        duration_minutes=30,
        attendee_email="client@example.com",
        owner_email="advisor@example.com",
        description="Meeting with Casey Client",
    )


class TestGoogleCalendarService:
    async def test_create_event(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200, json={"id": "evt-1", "htmlLink": "https://calendar.google.com/evt-1"})

        async with mock_client(handler) as client:
            service = GoogleCalendarService(http_client=client, time_zone="America/New_York")
            event = await service.create_event("token-123", event_request())

        assert event.event_id == "evt-1"
        request = seen["request"]
        assert request.headers["Authorization"] == "Bearer token-123"
        assert request.url.path == "/calendar/v3/calendars/primary/events"
        assert request.url.params["sendUpdates"] == "all"
        assert "conferenceDataVersion" not in request.url.params
        body = json.loads(request.content)
        assert body["summary"] == "Meeting with Casey Client"
        assert body["start"] == {"dateTime": "2025-03-14T12:00:00", "timeZone": "America/New_York"}
        assert body["end"]["dateTime"] == "2025-03-14T12:30:00"
        assert [a["email"] for a in body["attendees"]] == ["client@example.com", "advisor@example.com"]

    def test_midnight_event_body(self):
        body = GoogleCalendarService().build_event_body(event_request("12:00 AM"))
        assert body["start"]["dateTime"] == "2025-03-14T00:00:00"

    async def test_api_error_raises_side_effect_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"error": {"message": "insufficient scope"}})

        async with mock_client(handler) as client:
            with pytest.raises(SideEffectError, match="403"):
                await GoogleCalendarService(http_client=client).create_event("token", event_request())

    async def test_network_error_raises_side_effect_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(SideEffectError):
                await GoogleCalendarService(http_client=client).create_event("token", event_request())

    async def test_list_events(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["singleEvents"] == "true"
            assert request.url.params["timeMin"].startswith("2025-03-01T00:00:00")
            return httpx.Response(
                200,
                json={
                    "items": [
                        {
                            "id": "evt-1",
                            "summary": "Meeting with Casey",
                            "start": {"dateTime": "2025-03-14T12:00:00Z"},
                            "end": {"dateTime": "2025-03-14T12:30:00Z"},
                        },
                        {"id": "evt-2", "summary": "Holiday", "start": {"date": "2025-03-17"}, "end": {"date": "2025-03-18"}},
                    ]
                },
            )

        async with mock_client(handler) as client:
            events = await GoogleCalendarService(http_client=client).list_events(
                "token", time_min=datetime(2025, 3, 1), time_max=datetime(2025, 4, 1)
            )

        assert [e["title"] for e in events] == ["Meeting with Casey", "Holiday"]
        assert events[1]["start"] == "2025-03-17"


def test_add_to_calendar_url():
    url = build_add_to_calendar_url(
        title="Meeting with Casey",
        start=datetime(2025, 3, 14, 13, 0),
        end=datetime(2025, 3, 14, 13, 30),
        description="Intro call",
        attendee_email="client@example.com",
    )
    assert "dates=20250314T130000Z/20250314T133000Z" in url
    assert "text=Meeting%20with%20Casey" in url


def test_add_to_calendar_url_matches_event_time_zone():
    # 2:00 PM in New York on 2025-03-11 is 18:00 UTC (daylight saving time)
    request = CalendarEventRequest(
        attendee_name="Casey Client",
        date=date(2025, 3, 11),
        time="2:00 PM",
        duration_minutes=30,
        attendee_email="client@example.com",
        owner_email="advisor@example.com",
    )
    body = GoogleCalendarService(time_zone="America/New_York").build_event_body(request)
    assert body["start"] == {"dateTime": "2025-03-11T14:00:00", "timeZone": "America/New_York"}

    url = build_add_to_calendar_url(
        title="Meeting with Casey",
        start=datetime.fromisoformat(body["start"]["dateTime"]),
        end=datetime.fromisoformat(body["end"]["dateTime"]),
        description="Intro call",
        attendee_email="client@example.com",
        time_zone="America/New_York",
    )
    assert "dates=20250311T180000Z/20250311T183000Z" in url


class TestGoogleCredentialProvider:
    def provider(self, db, handler=None):
        client = mock_client(handler) if handler else None
        return GoogleCredentialProvider(
            db,
            http_client=client,
            client_id="client-id",
            client_secret="client-secret",
            encryption_key=Fernet.generate_key().decode(),
        )

    async def test_tokens_are_stored_encrypted(self, db, advisor):
        provider = self.provider(db)
        credential = provider.store_credential(advisor, "access-1", expires_in=3600, refresh_token="refresh-1")

        assert credential.access_token != "access-1"
        assert provider.decrypt(credential.refresh_token) == "refresh-1"

        bearer = await provider.get_bearer_credential(advisor)
        assert bearer.token == "access-1"

    async def test_expired_token_is_refreshed(self, db, advisor):
        posted = {}

        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == GOOGLE_TOKEN_URL
            posted.update(dict(httpx.QueryParams(request.content.decode())))
            return httpx.Response(200, json={"access_token": "access-2", "expires_in": 3600})

        provider = self.provider(db, handler)
        provider.store_credential(advisor, "access-1", expires_in=0, refresh_token="refresh-1")

        bearer = await provider.get_bearer_credential(advisor)

        assert bearer.token == "access-2"
        assert posted["grant_type"] == "refresh_token"
        assert posted["refresh_token"] == "refresh-1"
        credential = provider.get_credential(advisor)
        assert provider.decrypt(credential.access_token) == "access-2"
        # Google omits the refresh token on refresh; the stored one is kept
        assert provider.decrypt(credential.refresh_token) == "refresh-1"
        assert credential.token_expires_at > utcnow() + timedelta(minutes=30)

    async def test_rejected_refresh(self, db, advisor):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": "invalid_grant"})

        provider = self.provider(db, handler)
        provider.store_credential(advisor, "access-1", expires_in=0, refresh_token="refresh-1")

        with pytest.raises(CredentialRefreshError):
            await provider.get_bearer_credential(advisor)

    async def test_expired_without_refresh_token(self, db, advisor):
        provider = self.provider(db)
        provider.store_credential(advisor, "access-1", expires_in=0)
        with pytest.raises(CredentialRefreshError):
            await provider.get_bearer_credential(advisor)

    async def test_nothing_stored(self, db, advisor):
        with pytest.raises(CredentialRefreshError):
            await self.provider(db).get_bearer_credential(advisor)

    async def test_key_rotation_is_a_refresh_error(self, db, advisor):
        self.provider(db).store_credential(advisor, "access-1", expires_in=3600)
        with pytest.raises(CredentialRefreshError):
            await self.provider(db).get_bearer_credential(advisor)

    async def test_revoke_deletes_even_when_google_fails(self, db, advisor):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            raise httpx.ConnectError("offline", request=request)

        provider = self.provider(db, handler)
        provider.store_credential(advisor, "access-1", expires_in=3600)

        await provider.revoke(advisor)

        assert calls and calls[0].startswith(GOOGLE_REVOKE_URL)
        assert provider.get_credential(advisor) is None
        with pytest.raises(NotFoundError):
            await provider.revoke(advisor)
