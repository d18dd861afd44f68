"""Shared fixtures: in-memory database, collaborator fakes and an API client."""

import asyncio
import os
from datetime import date, datetime

# Configuration is read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.pop("REDIS_URL", None)
os.environ.pop("RESEND_API_KEY", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from advisorconnect.auth import get_current_user
from advisorconnect.database import Base, get_db
from advisorconnect.domain.bookings.router import (
    get_calendar_service,
    get_credential_provider,
    get_notifier,
)
from advisorconnect.domain.bookings.side_effects import BearerCredential, CalendarEvent
from advisorconnect.domain.links.repository import LinkRepository
from advisorconnect.domain.users.repository import UserRepository
from advisorconnect.errors import CredentialRefreshError
from advisorconnect.main import app
from advisorconnect.rate_limiter import reset_rate_limits

# Fixed clock used across the booking tests
NOW = datetime(2025, 3, 10, 12, 0)
TOMORROW = date(2025, 3, 11)


class FakeCalendar:
    def __init__(self, error=None, delay=0.0):
        self.error = error
        self.delay = delay
        self.calls = []
        self.events = []

    async def create_event(self, bearer_token, request):
        self.calls.append((bearer_token, request))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return CalendarEvent(event_id=f"evt-{len(self.calls)}", event_link="https://calendar.test/evt")

    async def list_events(self, bearer_token, time_min=None, time_max=None):
        self.calls.append((bearer_token, (time_min, time_max)))
        return self.events


class FakeNotifier:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    async def notify_owner(self, details):
        self.sent.append(details)
        if self.error:
            raise self.error


class FakeCredentials:
    def __init__(self, token="stored-token", error=None):
        self.token = token
        self.error = error
        self.requested_for = []

    async def get_bearer_credential(self, user):
        self.requested_for.append(user.email)
        if self.error:
            raise self.error
        return BearerCredential(token=self.token)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def advisor(db):
    return UserRepository.get_or_create_user(db, "advisor@example.com", name="Ada Advisor")


@pytest.fixture
def make_link(db, advisor):
    def _make_link(slug="intro", user=None, **overrides):
        data = {
            "name": "Intro Call",
            "slug": slug,
            "duration": 30,
            "max_advance_days": None,
            "max_uses": None,
            "expiration_date": None,
            "custom_questions": [],
        }
        data.update(overrides)
        return LinkRepository.create_link(db, (user or advisor).id, **data)

    return _make_link


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def credentials():
    return FakeCredentials(error=CredentialRefreshError("Google Calendar not connected"))


@pytest.fixture
def client(db, advisor, calendar, notifier, credentials):
    def override_get_db():
        yield db

    reset_rate_limits()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: advisor
    app.dependency_overrides[get_calendar_service] = lambda: calendar
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_credential_provider] = lambda: credentials
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        reset_rate_limits()
