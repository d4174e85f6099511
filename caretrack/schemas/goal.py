"""Pydantic schemas for goals."""

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field

from caretrack.db.enums import GoalCategory, GoalStatus
from caretrack.db.models import Goal
from caretrack.schemas.common import ListParams


class GoalCreate(BaseModel):
    """Request to create a goal. New goals always start not_started at 0%."""
    client_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    category: GoalCategory
    target_date: date


class GoalUpdate(BaseModel):
    """Request to update a goal (partial)."""
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1, max_length=2000)
    category: GoalCategory | None = None
    target_date: date | None = None
    status: GoalStatus | None = None
    progress_percentage: int | None = Field(None, ge=0, le=100)
    archived: bool | None = None


class GoalProgressUpdate(BaseModel):
    """Progress change, optionally with an explicit status."""
    progress_percentage: int = Field(..., ge=0, le=100)
    status: GoalStatus | None = None


class GoalListFilter(ListParams):
    client_id: UUID | None = None
    status: GoalStatus | None = None
    category: GoalCategory | None = None
    archived: bool | None = None
    at_risk: bool | None = None


class GoalDetail(Goal):
    """Goal with derived risk flag and activity rollups."""
    at_risk: bool = False
    activity_count: int = 0
    last_activity_date: date | None = None
