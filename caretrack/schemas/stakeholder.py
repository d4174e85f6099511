"""Pydantic schemas for stakeholders."""

from datetime import date

from pydantic import BaseModel, EmailStr, Field, field_validator

from caretrack.db.enums import StakeholderRole
from caretrack.db.models import Stakeholder
from caretrack.schemas.common import ListParams

MAX_EMAIL_LENGTH = 200


def _check_email_length(value: str | None) -> str | None:
    if value is not None and len(value) > MAX_EMAIL_LENGTH:
        raise ValueError(f"Email must be at most {MAX_EMAIL_LENGTH} characters")
    return value


class StakeholderCreate(BaseModel):
    """Request to create a stakeholder."""
    name: str = Field(..., min_length=1, max_length=200)
    role: StakeholderRole
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    organization: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=1000)

    @field_validator("email")
    @classmethod
    def check_email_length(cls, value: str | None) -> str | None:
        return _check_email_length(value)


class StakeholderUpdate(BaseModel):
    """Request to update a stakeholder (partial)."""
    name: str | None = Field(None, min_length=1, max_length=200)
    role: StakeholderRole | None = None
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    organization: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=1000)
    active: bool | None = None

    @field_validator("email")
    @classmethod
    def check_email_length(cls, value: str | None) -> str | None:
        return _check_email_length(value)


class StakeholderListFilter(ListParams):
    role: StakeholderRole | None = None
    active: bool | None = None
    search: str | None = Field(None, max_length=200)


class StakeholderDetail(Stakeholder):
    total_activities: int = 0
    total_shift_notes: int = 0
    last_activity_date: date | None = None
