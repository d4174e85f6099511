"""Pydantic schemas for service inputs and read views."""

from caretrack.schemas.activity import (
    ActivityCreate,
    ActivityDateRange,
    ActivityDetail,
    ActivityListFilter,
    ActivityUpdate,
)
from caretrack.schemas.client import ClientCreate, ClientDetail, ClientListFilter, ClientUpdate
from caretrack.schemas.common import ListParams, SearchParams
from caretrack.schemas.dashboard import (
    ClientGoalProgress,
    ClientSummary,
    Dashboard,
    DashboardSummary,
    GoalsByStatus,
    Statistics,
)
from caretrack.schemas.goal import (
    GoalCreate,
    GoalDetail,
    GoalListFilter,
    GoalProgressUpdate,
    GoalUpdate,
)
from caretrack.schemas.shift_note import (
    GoalProgressInput,
    ShiftNoteCreate,
    ShiftNoteDetail,
    ShiftNoteListFilter,
    ShiftNoteUpdate,
)
from caretrack.schemas.stakeholder import (
    StakeholderCreate,
    StakeholderDetail,
    StakeholderListFilter,
    StakeholderUpdate,
)

__all__ = [
    "ActivityCreate",
    "ActivityDateRange",
    "ActivityDetail",
    "ActivityListFilter",
    "ActivityUpdate",
    "ClientCreate",
    "ClientDetail",
    "ClientGoalProgress",
    "ClientListFilter",
    "ClientSummary",
    "ClientUpdate",
    "Dashboard",
    "DashboardSummary",
    "GoalCreate",
    "GoalDetail",
    "GoalListFilter",
    "GoalProgressInput",
    "GoalProgressUpdate",
    "GoalUpdate",
    "GoalsByStatus",
    "ListParams",
    "SearchParams",
    "ShiftNoteCreate",
    "ShiftNoteDetail",
    "ShiftNoteListFilter",
    "ShiftNoteUpdate",
    "StakeholderCreate",
    "StakeholderDetail",
    "StakeholderListFilter",
    "StakeholderUpdate",
    "Statistics",
]
