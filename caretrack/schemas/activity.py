"""Pydantic schemas for activities."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from caretrack.db.enums import ActivityStatus, ActivityType
from caretrack.db.models import Activity
from caretrack.schemas.common import ListParams
from caretrack.utils.dates import TIME_PATTERN


class ActivityCreate(BaseModel):
    """Request to log or schedule an activity."""
    client_id: UUID
    stakeholder_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    activity_type: ActivityType
    activity_date: date
    start_time: str | None = Field(None, pattern=TIME_PATTERN)
    end_time: str | None = Field(None, pattern=TIME_PATTERN)
    duration_minutes: int | None = Field(None, ge=1, le=1440)
    status: ActivityStatus = ActivityStatus.SCHEDULED
    goal_ids: list[UUID] = Field(default_factory=list)
    outcome_notes: str | None = Field(None, max_length=2000)


class ActivityUpdate(BaseModel):
    """Request to update an activity (partial)."""
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    activity_type: ActivityType | None = None
    activity_date: date | None = None
    start_time: str | None = Field(None, pattern=TIME_PATTERN)
    end_time: str | None = Field(None, pattern=TIME_PATTERN)
    duration_minutes: int | None = Field(None, ge=1, le=1440)
    status: ActivityStatus | None = None
    goal_ids: list[UUID] | None = None
    outcome_notes: str | None = Field(None, max_length=2000)


class ActivityListFilter(ListParams):
    client_id: UUID | None = None
    stakeholder_id: UUID | None = None
    goal_id: UUID | None = None
    activity_type: ActivityType | None = None
    status: ActivityStatus | None = None
    date_from: date | None = None
    date_to: date | None = None

    @model_validator(mode="after")
    def check_date_range(self) -> "ActivityListFilter":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must be on or before date_to")
        return self


class ActivityDateRange(BaseModel):
    start_date: date
    end_date: date
    client_id: UUID | None = None

    @model_validator(mode="after")
    def check_range(self) -> "ActivityDateRange":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class ActivityDetail(Activity):
    """Activity with names resolved for display."""
    client_name: str
    stakeholder_name: str
    goal_titles: list[str] = Field(default_factory=list)
