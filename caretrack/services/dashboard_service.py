"""Dashboard service - read-only aggregates across all collections."""

from datetime import date, timedelta

from caretrack.core import rules
from caretrack.core.validation import require_id
from caretrack.db.enums import ActivityStatus, Collection, GoalStatus
from caretrack.db.models import Activity, Client, Goal, ShiftNote
from caretrack.schemas.dashboard import (
    ClientGoalProgress,
    ClientSummary,
    Dashboard,
    DashboardSummary,
    GoalsByStatus,
    Statistics,
)
from caretrack.services.record_helpers import get_or_404, latest
from caretrack.storage.base import StorageProvider
from caretrack.utils.dates import is_date_in_range, today_utc, week_range
from caretrack.utils.pagination import RECENT_LIMIT

UPCOMING_WINDOW_DAYS = 7


def _most_recent(records: list, date_field: str, limit: int = RECENT_LIMIT) -> list:
    """Newest ``date_field`` first, ties broken by newest ``created_at``."""
    ordered = sorted(records, key=lambda r: r.created_at, reverse=True)
    ordered.sort(key=lambda r: getattr(r, date_field), reverse=True)
    return ordered[:limit]


def _goals_by_status(goals: list[Goal]) -> GoalsByStatus:
    counts = {status.value: 0 for status in GoalStatus}
    for goal in goals:
        counts[GoalStatus(goal.status).value] += 1
    return GoalsByStatus(**counts)


async def get_dashboard(storage: StorageProvider, today: date | None = None) -> Dashboard:
    """
    Build the dashboard in one pass over every collection.

    Counts: total/active clients, active (non-archived) goals, activities and
    shift notes dated in the current Monday-Sunday week, status histogram of
    non-archived goals and the number of at-risk goals. Lists: 10 most recent
    activities, scheduled activities in the next 7 days (soonest first),
    10 most recent shift notes, and the at-risk goals.
    """
    today = today or today_utc()
    week_start, week_end = week_range(today)

    clients: list[Client] = await storage.list(Collection.CLIENTS)
    goals: list[Goal] = await storage.list(Collection.GOALS)
    activities: list[Activity] = await storage.list(Collection.ACTIVITIES)
    shift_notes: list[ShiftNote] = await storage.list(Collection.SHIFT_NOTES)

    open_goals = [g for g in goals if not g.archived]
    at_risk = sorted(
        (g for g in open_goals if rules.is_goal_at_risk(g, today)),
        key=lambda g: g.target_date,
    )

    upcoming_end = today + timedelta(days=UPCOMING_WINDOW_DAYS)
    upcoming = sorted(
        (
            a for a in activities
            if a.status == ActivityStatus.SCHEDULED
            and is_date_in_range(a.activity_date, today, upcoming_end)
        ),
        key=lambda a: a.activity_date,
    )

    summary = DashboardSummary(
        total_clients=len(clients),
        active_clients=sum(1 for c in clients if c.active),
        total_active_goals=len(open_goals),
        activities_this_week=sum(
            1 for a in activities if is_date_in_range(a.activity_date, week_start, week_end)
        ),
        shift_notes_this_week=sum(
            1 for n in shift_notes if is_date_in_range(n.shift_date, week_start, week_end)
        ),
        goals_by_status=_goals_by_status(open_goals),
        goals_at_risk=len(at_risk),
    )

    return Dashboard(
        summary=summary,
        recent_activities=_most_recent(activities, "activity_date"),
        upcoming_activities=upcoming[:RECENT_LIMIT],
        recent_shift_notes=_most_recent(shift_notes, "shift_date"),
        goals_at_risk=at_risk,
    )


async def get_client_summary(
    storage: StorageProvider,
    client_id: str,
    today: date | None = None,
) -> ClientSummary:
    """Active goals with risk flags, this week's completed activities and the last shift date."""
    client_id = require_id(client_id, "Client")
    client: Client = await get_or_404(storage, Collection.CLIENTS, client_id)
    today = today or today_utc()
    week_start, week_end = week_range(today)

    goals: list[Goal] = await storage.list(Collection.GOALS, {"client_id": client_id, "archived": False})
    activities: list[Activity] = await storage.list(
        Collection.ACTIVITIES, {"client_id": client_id, "status": ActivityStatus.COMPLETED}
    )
    shift_notes: list[ShiftNote] = await storage.list(Collection.SHIFT_NOTES, {"client_id": client_id})

    return ClientSummary(
        client_id=client.id,
        client_name=client.name,
        active_goals=len(goals),
        completed_activities_this_week=sum(
            1 for a in activities if is_date_in_range(a.activity_date, week_start, week_end)
        ),
        last_shift_date=latest(n.shift_date for n in shift_notes),
        goal_progress=[
            ClientGoalProgress(
                goal_id=goal.id,
                goal_title=goal.title,
                status=goal.status,
                progress_percentage=goal.progress_percentage,
                target_date=goal.target_date,
                at_risk=rules.is_goal_at_risk(goal, today),
            )
            for goal in goals
        ],
    )


async def get_statistics(storage: StorageProvider) -> Statistics:
    """Headline counts without the detailed lists."""
    stats = await storage.get_stats()
    clients: list[Client] = await storage.list(Collection.CLIENTS)
    goals: list[Goal] = await storage.list(Collection.GOALS)
    open_goals = [g for g in goals if not g.archived]
    today = today_utc()

    by_collection = stats.records_by_collection
    return Statistics(
        total_clients=by_collection.get(Collection.CLIENTS.value, 0),
        active_clients=sum(1 for c in clients if c.active),
        total_goals=by_collection.get(Collection.GOALS.value, 0),
        active_goals=len(open_goals),
        total_activities=by_collection.get(Collection.ACTIVITIES.value, 0),
        total_shift_notes=by_collection.get(Collection.SHIFT_NOTES.value, 0),
        goals_at_risk=sum(1 for g in open_goals if rules.is_goal_at_risk(g, today)),
    )
