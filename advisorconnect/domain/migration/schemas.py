"""Migration schemas"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_required_email


class MigrationRequest(BaseModel):
    email: str
    # Raw localStorage contents: key -> JSON string or already-parsed value
    storage: dict[str, Any] = Field(default_factory=dict)

    @field_validator("email")
    @classmethod
    def validate_owner_email(cls, v: str) -> str:
        return validate_required_email(v)


class MigrationReportResponse(BaseModel):
    linksCreated: int = 0
    linksSkipped: int = 0
    meetingsCreated: int = 0
    meetingsSkipped: int = 0
    invalidRecords: int = 0


class MigrationResponse(BaseModel):
    success: bool
    # True when the client should drop its local copies
    cleared: bool
    clearedKeys: list[str] = Field(default_factory=list)
    report: MigrationReportResponse
