"""Link domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.time_format import parse_instant
from ...shared.validators import validate_slug


class CustomQuestion(BaseModel):
    """A question the client answers when booking"""

    id: str = Field(min_length=1, max_length=100)
    text: str = Field(min_length=1, max_length=500)


class LinkCreate(BaseModel):
    """Schema for creating a scheduling link"""

    name: str = Field(min_length=2, max_length=255)
    slug: str
    duration: int = Field(ge=15)
    maxAdvanceDays: Optional[int] = Field(default=None, ge=1)
    maxUses: Optional[int] = Field(default=None, ge=1)
    expirationDate: Optional[datetime] = None
    customQuestions: list[CustomQuestion] = Field(default_factory=list)

    @field_validator("slug")
    @classmethod
    def validate_slug_format(cls, v: str) -> str:
        return validate_slug(v)

    @field_validator("expirationDate", mode="before")
    @classmethod
    def parse_expiration(cls, v):
        # Accepts bare ISO dates as well as timestamps; stored as naive UTC
        return parse_instant(v)

    @model_validator(mode="after")
    def unique_question_ids(self):
        ids = [q.id for q in self.customQuestions]
        if len(ids) != len(set(ids)):
            raise ValueError("Custom question ids must be unique")
        return self


class OwnerResponse(BaseModel):
    """Public display fields of the link owner"""

    name: Optional[str] = None
    email: str
    image: Optional[str] = None


class LinkResponse(BaseModel):
    """Schema for link response"""

    id: str
    name: str
    slug: str
    duration: int
    maxAdvanceDays: Optional[int] = None
    maxUses: Optional[int] = None
    expirationDate: Optional[datetime] = None
    customQuestions: list[CustomQuestion]
    createdAt: Optional[datetime] = None
    user: OwnerResponse
    meetingsCount: int = 0
    status: str
