"""Enum definitions for record fields and collections."""

from enum import Enum


class Collection(str, Enum):
    """Named record collections. Each maps to one backing resource."""
    CLIENTS = "clients"
    GOALS = "goals"
    ACTIVITIES = "activities"
    SHIFT_NOTES = "shift_notes"
    STAKEHOLDERS = "stakeholders"


class GoalStatus(str, Enum):
    """
    Goal lifecycle status.

    not_started → in_progress → achieved | on_hold | discontinued
    on_hold → in_progress; achieved is reversible.
    """
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    ACHIEVED = "achieved"
    ON_HOLD = "on_hold"
    DISCONTINUED = "discontinued"


class GoalCategory(str, Enum):
    """NDIS support categories used to group goals."""
    DAILY_LIVING = "daily_living"
    SOCIAL_COMMUNITY = "social_community"
    EMPLOYMENT = "employment"
    HEALTH_WELLBEING = "health_wellbeing"
    HOME_LIVING = "home_living"
    RELATIONSHIPS = "relationships"
    CHOICE_CONTROL = "choice_control"
    OTHER = "other"


class ActivityType(str, Enum):
    LIFE_SKILLS = "life_skills"
    SOCIAL_RECREATION = "social_recreation"
    PERSONAL_CARE = "personal_care"
    COMMUNITY_ACCESS = "community_access"
    TRANSPORT = "transport"
    THERAPY = "therapy"
    HOUSEHOLD_TASKS = "household_tasks"
    EMPLOYMENT_EDUCATION = "employment_education"
    COMMUNICATION = "communication"
    OTHER = "other"


class ActivityStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class StakeholderRole(str, Enum):
    """People involved in delivering or coordinating supports."""
    SUPPORT_WORKER = "support_worker"
    SUPPORT_COORDINATOR = "support_coordinator"
    TEAM_LEADER = "team_leader"
    FAMILY = "family"
    HEALTHCARE_PROVIDER = "healthcare_provider"
    PLAN_MANAGER = "plan_manager"
    NDIS_PLANNER = "ndis_planner"
    OTHER = "other"


# Goal statuses that can never be flagged at risk
CLOSED_GOAL_STATUSES = frozenset({GoalStatus.ACHIEVED, GoalStatus.DISCONTINUED})
