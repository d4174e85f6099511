"""Pydantic schemas for dashboard aggregates."""

from datetime import date

from pydantic import BaseModel, Field

from caretrack.db.enums import GoalStatus
from caretrack.db.models import Activity, Goal, ShiftNote


class GoalsByStatus(BaseModel):
    not_started: int = 0
    in_progress: int = 0
    achieved: int = 0
    on_hold: int = 0
    discontinued: int = 0


class DashboardSummary(BaseModel):
    total_clients: int
    active_clients: int
    total_active_goals: int
    activities_this_week: int
    shift_notes_this_week: int
    goals_by_status: GoalsByStatus
    goals_at_risk: int


class Dashboard(BaseModel):
    """Summary counts plus the recent/upcoming/at-risk lists."""
    summary: DashboardSummary
    recent_activities: list[Activity] = Field(default_factory=list)
    upcoming_activities: list[Activity] = Field(default_factory=list)
    recent_shift_notes: list[ShiftNote] = Field(default_factory=list)
    goals_at_risk: list[Goal] = Field(default_factory=list)


class ClientGoalProgress(BaseModel):
    goal_id: str
    goal_title: str
    status: GoalStatus
    progress_percentage: int
    target_date: date
    at_risk: bool


class ClientSummary(BaseModel):
    client_id: str
    client_name: str
    active_goals: int
    completed_activities_this_week: int
    last_shift_date: date | None = None
    goal_progress: list[ClientGoalProgress] = Field(default_factory=list)


class Statistics(BaseModel):
    total_clients: int
    active_clients: int
    total_goals: int
    active_goals: int
    total_activities: int
    total_shift_notes: int
    goals_at_risk: int
