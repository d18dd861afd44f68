"""
Google Calendar Integration Routes
Stores the tokens obtained by the frontend sign-in and exposes the advisor's calendar
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..auth import get_current_user
from ..domain.bookings.router import get_calendar_service, get_credential_provider
from ..errors import ValidationError
from ..models import User
from ..services.credential_provider import GoogleCredentialProvider
from ..services.google_calendar_service import GoogleCalendarService
from ..shared.time_format import parse_instant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/google-calendar", tags=["google-calendar"])


class CredentialsPayload(BaseModel):
    accessToken: str = Field(min_length=1)
    refreshToken: Optional[str] = None
    expiresIn: int = Field(default=3600, ge=0)
    googleUserEmail: Optional[str] = None
    calendarId: Optional[str] = None


@router.post("/credentials")
async def store_google_credentials(
    data: CredentialsPayload,
    current_user: User = Depends(get_current_user),
    provider: GoogleCredentialProvider = Depends(get_credential_provider),
):
    """Save the OAuth tokens the frontend received at sign-in"""
    credential = provider.store_credential(
        current_user,
        access_token=data.accessToken,
        expires_in=data.expiresIn,
        refresh_token=data.refreshToken,
        google_user_email=data.googleUserEmail,
        calendar_id=data.calendarId,
    )
    logger.info(f"Google Calendar connected for user: {current_user.email}")
    return {
        "success": True,
        "message": "Google Calendar connected successfully",
        "user_email": credential.google_user_email,
    }


@router.get("/status")
async def get_google_calendar_status(
    current_user: User = Depends(get_current_user),
    provider: GoogleCredentialProvider = Depends(get_credential_provider),
):
    """Get Google Calendar connection status"""
    credential = provider.get_credential(current_user)

    if not credential:
        return {
            "connected": False,
            "user_email": None,
            "calendar_id": None,
            "auto_sync_enabled": None,
            "can_refresh": False,
        }

    return {
        "connected": True,
        "user_email": credential.google_user_email,
        "calendar_id": credential.google_calendar_id,
        "auto_sync_enabled": credential.auto_sync_enabled,
        "can_refresh": credential.refresh_token is not None,
    }


@router.post("/disconnect")
async def disconnect_google_calendar(
    current_user: User = Depends(get_current_user),
    provider: GoogleCredentialProvider = Depends(get_credential_provider),
):
    """Disconnect Google Calendar integration"""
    await provider.revoke(current_user)
    return {"success": True, "message": "Google Calendar disconnected"}


@router.get("/events")
async def get_calendar_events(
    time_min: Optional[str] = Query(None, alias="timeMin"),
    time_max: Optional[str] = Query(None, alias="timeMax"),
    current_user: User = Depends(get_current_user),
    provider: GoogleCredentialProvider = Depends(get_credential_provider),
    calendar: GoogleCalendarService = Depends(get_calendar_service),
):
    """List events from the advisor's primary calendar (defaults to the past week and next 30 days)"""
    try:
        start: Optional[datetime] = parse_instant(time_min)
        end: Optional[datetime] = parse_instant(time_max)
    except ValueError as e:
        raise ValidationError(str(e), errors={"timeMin/timeMax": str(e)}) from e

    credential = await provider.get_bearer_credential(current_user)
    events = await calendar.list_events(credential.token, time_min=start, time_max=end)
    return {"events": events}
