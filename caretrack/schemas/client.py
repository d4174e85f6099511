"""Pydantic schemas for clients."""

from datetime import date

from pydantic import BaseModel, Field

from caretrack.db.models import NDIS_NUMBER_PATTERN, Client
from caretrack.schemas.common import ListParams


class ClientCreate(BaseModel):
    """Request to create a client."""
    name: str = Field(..., min_length=1, max_length=200)
    date_of_birth: date
    ndis_number: str | None = Field(None, pattern=NDIS_NUMBER_PATTERN)
    primary_contact: str | None = Field(None, max_length=500)
    support_notes: str | None = Field(None, max_length=2000)


class ClientUpdate(BaseModel):
    """Request to update a client (partial)."""
    name: str | None = Field(None, min_length=1, max_length=200)
    date_of_birth: date | None = None
    ndis_number: str | None = Field(None, pattern=NDIS_NUMBER_PATTERN)
    primary_contact: str | None = Field(None, max_length=500)
    support_notes: str | None = Field(None, max_length=2000)
    active: bool | None = None


class ClientListFilter(ListParams):
    active: bool | None = None
    search: str | None = Field(None, max_length=200)


class ClientDetail(Client):
    """Client with goal and activity rollups."""
    total_goals: int = 0
    active_goals: int = 0
    total_activities: int = 0
    last_activity_date: date | None = None
    last_shift_note_date: date | None = None
