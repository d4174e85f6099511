"""Pydantic schemas for shift notes."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from caretrack.db.models import ShiftNote
from caretrack.schemas.common import ListParams
from caretrack.utils.dates import TIME_PATTERN


class GoalProgressInput(BaseModel):
    goal_id: UUID
    progress_notes: str = Field(..., min_length=1, max_length=1000)
    progress_observed: int = Field(..., ge=1, le=10)


class ShiftNoteCreate(BaseModel):
    """Request to record a shift note."""
    client_id: UUID
    stakeholder_id: UUID
    shift_date: date
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    general_observations: str = Field(..., min_length=1, max_length=5000)
    activity_ids: list[UUID] = Field(default_factory=list)
    goals_progress: list[GoalProgressInput] = Field(default_factory=list)
    mood_wellbeing: str | None = Field(None, max_length=2000)
    communication_notes: str | None = Field(None, max_length=2000)
    health_safety_notes: str | None = Field(None, max_length=2000)
    handover_notes: str | None = Field(None, max_length=2000)
    incidents: str | None = Field(None, max_length=2000)


class ShiftNoteUpdate(BaseModel):
    """Request to amend a shift note inside its edit window (partial)."""
    general_observations: str | None = Field(None, min_length=1, max_length=5000)
    activity_ids: list[UUID] | None = None
    goals_progress: list[GoalProgressInput] | None = None
    mood_wellbeing: str | None = Field(None, max_length=2000)
    communication_notes: str | None = Field(None, max_length=2000)
    health_safety_notes: str | None = Field(None, max_length=2000)
    handover_notes: str | None = Field(None, max_length=2000)
    incidents: str | None = Field(None, max_length=2000)


class ShiftNoteListFilter(ListParams):
    client_id: UUID | None = None
    stakeholder_id: UUID | None = None
    date_from: date | None = None
    date_to: date | None = None

    @model_validator(mode="after")
    def check_date_range(self) -> "ShiftNoteListFilter":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must be on or before date_to")
        return self


class ShiftNoteDetail(ShiftNote):
    client_name: str
    stakeholder_name: str
    duration_minutes: int
