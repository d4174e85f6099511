"""Persisted record models.

Each collection stores exactly one record model; ``COLLECTION_MODELS`` is the
registry storage backends use to validate what they are asked to write.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field

from caretrack.db.enums import (
    ActivityStatus,
    ActivityType,
    Collection,
    GoalCategory,
    GoalStatus,
    StakeholderRole,
)
from caretrack.utils.dates import TIME_PATTERN

NDIS_NUMBER_PATTERN = r"^\d{11}$"


class BaseRecord(BaseModel):
    """Fields shared by every stored record."""

    id: str = Field(..., min_length=1)
    created_at: datetime
    updated_at: datetime


class Client(BaseRecord):
    name: str = Field(..., min_length=1, max_length=200)
    date_of_birth: date
    ndis_number: str | None = Field(None, pattern=NDIS_NUMBER_PATTERN)
    primary_contact: str | None = Field(None, max_length=500)
    support_notes: str | None = Field(None, max_length=2000)
    active: bool = True


class Goal(BaseRecord):
    client_id: str
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    category: GoalCategory
    target_date: date
    status: GoalStatus = GoalStatus.NOT_STARTED
    progress_percentage: int = Field(0, ge=0, le=100)
    achieved_at: datetime | None = None
    archived: bool = False


class Activity(BaseRecord):
    client_id: str
    stakeholder_id: str
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    activity_type: ActivityType
    activity_date: date
    start_time: str | None = Field(None, pattern=TIME_PATTERN)
    end_time: str | None = Field(None, pattern=TIME_PATTERN)
    duration_minutes: int | None = Field(None, ge=1, le=1440)
    status: ActivityStatus = ActivityStatus.SCHEDULED
    goal_ids: list[str] = Field(default_factory=list)
    outcome_notes: str | None = Field(None, max_length=2000)


class GoalProgress(BaseModel):
    """Progress observed against one goal during a shift."""

    goal_id: str
    progress_notes: str = Field(..., min_length=1, max_length=1000)
    progress_observed: int = Field(..., ge=1, le=10)


class ShiftNote(BaseRecord):
    client_id: str
    stakeholder_id: str
    shift_date: date
    start_time: str = Field(..., pattern=TIME_PATTERN)
    end_time: str = Field(..., pattern=TIME_PATTERN)
    general_observations: str = Field(..., min_length=1, max_length=5000)
    activity_ids: list[str] = Field(default_factory=list)
    goals_progress: list[GoalProgress] = Field(default_factory=list)
    mood_wellbeing: str | None = Field(None, max_length=2000)
    communication_notes: str | None = Field(None, max_length=2000)
    health_safety_notes: str | None = Field(None, max_length=2000)
    handover_notes: str | None = Field(None, max_length=2000)
    incidents: str | None = Field(None, max_length=2000)


class Stakeholder(BaseRecord):
    name: str = Field(..., min_length=1, max_length=200)
    role: StakeholderRole
    email: str | None = Field(None, max_length=200)
    phone: str | None = Field(None, max_length=50)
    organization: str | None = Field(None, max_length=200)
    notes: str | None = Field(None, max_length=1000)
    active: bool = True


Record = Client | Goal | Activity | ShiftNote | Stakeholder

COLLECTION_MODELS: dict[Collection, type[BaseRecord]] = {
    Collection.CLIENTS: Client,
    Collection.GOALS: Goal,
    Collection.ACTIVITIES: Activity,
    Collection.SHIFT_NOTES: ShiftNote,
    Collection.STAKEHOLDERS: Stakeholder,
}

# Display names used in not-found errors
RESOURCE_NAMES: dict[Collection, str] = {
    Collection.CLIENTS: "Client",
    Collection.GOALS: "Goal",
    Collection.ACTIVITIES: "Activity",
    Collection.SHIFT_NOTES: "Shift note",
    Collection.STAKEHOLDERS: "Stakeholder",
}
