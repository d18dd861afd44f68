"""Booking domain schemas - Pydantic models for validation"""

import datetime as dt
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ...shared.time_format import normalize_meeting_time, parse_meeting_date
from ...shared.validators import validate_profile_url, validate_required_email


class Attendee(BaseModel):
    """The client booking the meeting"""

    name: str = Field(min_length=1, max_length=255)
    email: str
    # Older clients send the profile link as "linkedin"
    profileUrl: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("profileUrl", "linkedin")
    )

    @field_validator("email")
    @classmethod
    def validate_attendee_email(cls, v: str) -> str:
        return validate_required_email(v)

    @field_validator("profileUrl")
    @classmethod
    def validate_profile(cls, v: Optional[str]) -> Optional[str]:
        return validate_profile_url(v)


class BookingCreate(BaseModel):
    """Schema for a client booking submission"""

    linkId: str = Field(min_length=1)
    date: dt.date
    time: str
    attendee: Attendee
    notes: Optional[str] = Field(default=None, max_length=5000)
    answers: dict[str, str] = Field(default_factory=dict)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return parse_meeting_date(v)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return normalize_meeting_time(v)


class MeetingResponse(BaseModel):
    """Schema for meeting response"""

    id: str
    linkId: str
    linkName: Optional[str] = None
    clientName: str
    clientEmail: str
    profileUrl: Optional[str] = None
    date: dt.date
    time: str
    duration: int
    notes: Optional[str] = None
    answers: dict[str, str]
    createdAt: Optional[dt.datetime] = None


class SideEffectSummary(BaseModel):
    name: str
    ok: bool
    skipped: bool = False
    reason: Optional[str] = None


class BookingResponse(MeetingResponse):
    """Meeting plus the outcome of its post-booking side effects"""

    created: bool = True
    sideEffects: list[SideEffectSummary] = Field(default_factory=list)
