"""Booking router - FastAPI endpoints for meetings"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_optional_bearer_token
from ...config import BOOKING_RATE_LIMIT, BOOKING_RATE_WINDOW
from ...database import get_db
from ...models import Meeting, User
from ...rate_limiter import create_rate_limiter
from ...services.credential_provider import GoogleCredentialProvider
from ...services.google_calendar_service import GoogleCalendarService
from ...services.notification_service import EmailNotificationService
from .schemas import BookingCreate, BookingResponse, MeetingResponse, SideEffectSummary
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meetings", tags=["Meetings"])

rate_limit_bookings = create_rate_limiter(
    limit=BOOKING_RATE_LIMIT,
    window_seconds=BOOKING_RATE_WINDOW,
    key_prefix="booking",
    use_ip=True,
)


def get_calendar_service() -> GoogleCalendarService:
    return GoogleCalendarService()


def get_notifier() -> EmailNotificationService:
    return EmailNotificationService()


def get_credential_provider(db: Session = Depends(get_db)) -> GoogleCredentialProvider:
    return GoogleCredentialProvider(db)


def get_booking_service(
    db: Session = Depends(get_db),
    calendar: GoogleCalendarService = Depends(get_calendar_service),
    notifier: EmailNotificationService = Depends(get_notifier),
    credentials: GoogleCredentialProvider = Depends(get_credential_provider),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, calendar=calendar, notifier=notifier, credentials=credentials)


def meeting_response(meeting: Meeting) -> MeetingResponse:
    return MeetingResponse(
        id=meeting.id,
        linkId=meeting.link_id,
        linkName=meeting.link.name if meeting.link else None,
        clientName=meeting.client_name,
        clientEmail=meeting.client_email,
        profileUrl=meeting.profile_url,
        date=meeting.date,
        time=meeting.time,
        duration=meeting.duration,
        notes=meeting.notes,
        answers=meeting.answers or {},
        createdAt=meeting.created_at,
    )


@router.post("", response_model=BookingResponse)
async def create_meeting(
    data: BookingCreate,
    _: None = Depends(rate_limit_bookings),
    bearer_token: Optional[str] = Depends(get_optional_bearer_token),
    service: BookingService = Depends(get_booking_service),
):
    """Book a meeting through a scheduling link (public)"""
    result = await service.submit_booking(data, bearer_token=bearer_token)
    return BookingResponse(
        **meeting_response(result.meeting).model_dump(),
        created=result.created,
        sideEffects=[
            SideEffectSummary(name=r.name, ok=r.ok, skipped=r.skipped, reason=r.reason)
            for r in result.side_effects
        ],
    )


@router.get("", response_model=list[MeetingResponse])
async def get_meetings(
    link_id: str = Query(..., alias="linkId"),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Get meetings booked on one of the advisor's links, newest first"""
    return [meeting_response(m) for m in service.list_meetings(link_id, current_user)]


@router.get("/upcoming", response_model=list[MeetingResponse])
async def get_upcoming_meetings(
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Get the advisor's future meetings across all links in chronological order"""
    return [meeting_response(m) for m in service.list_upcoming_meetings(current_user)]
