"""Goal service - client goals, progress tracking and risk detection."""

import logging
from typing import Any, Mapping

from caretrack.core import rules
from caretrack.core.errors import ConflictError
from caretrack.core.structured_logging import build_log_context
from caretrack.core.validation import require_id, validate_input
from caretrack.db.enums import Collection, GoalStatus
from caretrack.db.models import Activity, Goal
from caretrack.schemas.goal import (
    GoalCreate,
    GoalDetail,
    GoalListFilter,
    GoalProgressUpdate,
    GoalUpdate,
)
from caretrack.services.record_helpers import (
    get_or_404,
    id_str,
    latest,
    merge_changes,
    new_record_fields,
    query_options,
    require_active_client,
)
from caretrack.storage.base import StorageProvider
from caretrack.storage.query import QueryOptions, matches_filter
from caretrack.utils.dates import today_utc, utcnow

logger = logging.getLogger(__name__)


def _status_changes(
    current: Goal,
    status: GoalStatus | None,
    progress: int | None,
) -> dict[str, Any]:
    """
    Resolve the effective status/progress pair for an update.

    A progress change without an explicit status takes the suggested status.
    The resulting pair must be aligned. ``achieved_at`` is stamped when the
    goal enters achieved and cleared when it leaves.
    """
    new_progress = current.progress_percentage if progress is None else progress
    if status is not None:
        new_status = status
    elif progress is not None:
        new_status = rules.suggest_goal_status(new_progress)
    else:
        new_status = current.status

    rules.check_progress_alignment(new_status, new_progress)

    changes: dict[str, Any] = {"status": new_status, "progress_percentage": new_progress}
    if new_status == GoalStatus.ACHIEVED and current.status != GoalStatus.ACHIEVED:
        changes["achieved_at"] = utcnow()
    elif new_status != GoalStatus.ACHIEVED:
        changes["achieved_at"] = None
    return changes


async def create_goal(storage: StorageProvider, data: GoalCreate | Mapping[str, Any]) -> Goal:
    """
    Create a goal for an active client.

    New goals start as not_started with 0% progress.

    Raises:
        ValidationError: Invalid fields or target date before today
        NotFoundError: Client does not exist
        ConflictError: Client is inactive
    """
    payload = validate_input(GoalCreate, data)
    rules.check_not_before_today(payload.target_date, "target_date")
    client_id = str(payload.client_id)
    await require_active_client(storage, client_id)

    goal = Goal(
        **new_record_fields(),
        client_id=client_id,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        target_date=payload.target_date,
        status=GoalStatus.NOT_STARTED,
        progress_percentage=0,
        archived=False,
    )
    await storage.write(Collection.GOALS, goal)
    logger.info("Goal created", extra=build_log_context(collection="goals", record_id=goal.id, operation="create"))
    return goal


async def get_goal(storage: StorageProvider, goal_id: str) -> GoalDetail:
    """Get a goal with its risk flag and linked-activity rollups."""
    goal_id = require_id(goal_id, "Goal")
    goal: Goal = await get_or_404(storage, Collection.GOALS, goal_id)
    activities: list[Activity] = await storage.find(
        Collection.ACTIVITIES,
        lambda a: a.client_id == goal.client_id and goal_id in a.goal_ids,
    )
    return GoalDetail(
        **goal.model_dump(),
        at_risk=rules.is_goal_at_risk(goal),
        activity_count=len(activities),
        last_activity_date=latest(a.activity_date for a in activities),
    )


async def list_goals(
    storage: StorageProvider,
    filters: GoalListFilter | Mapping[str, Any] | None = None,
) -> list[Goal]:
    """List goals newest first, with exact filters and an optional at-risk filter."""
    params = validate_input(GoalListFilter, filters)
    exact = {
        "client_id": id_str(params.client_id),
        "status": params.status,
        "category": params.category,
        "archived": params.archived,
    }
    today = today_utc()

    def predicate(goal: Goal) -> bool:
        if not matches_filter(goal, exact):
            return False
        if params.at_risk is not None and rules.is_goal_at_risk(goal, today) != params.at_risk:
            return False
        return True

    return await storage.find(
        Collection.GOALS,
        predicate,
        query_options(params.limit, params.offset, "created_at", "desc"),
    )


async def update_goal(
    storage: StorageProvider,
    goal_id: str,
    data: GoalUpdate | Mapping[str, Any],
) -> Goal:
    """
    Update goal fields, status and progress.

    Raises:
        ValidationError: Misaligned status/progress
        ConflictError: Attempt to unarchive an archived goal
    """
    goal_id = require_id(goal_id, "Goal")
    current: Goal = await get_or_404(storage, Collection.GOALS, goal_id)
    changes = validate_input(GoalUpdate, data).model_dump(exclude_unset=True, exclude_none=True)

    if current.archived and changes.get("archived") is False:
        raise ConflictError("Archived goals cannot be restored", "GOAL_ARCHIVED", field="archived")

    status = changes.pop("status", None)
    progress = changes.pop("progress_percentage", None)
    if status is not None or progress is not None:
        changes.update(_status_changes(current, status, progress))

    updated = merge_changes(current, changes)
    await storage.write(Collection.GOALS, updated)
    logger.info("Goal updated", extra=build_log_context(collection="goals", record_id=goal_id, operation="update"))
    return updated


async def update_goal_progress(
    storage: StorageProvider,
    goal_id: str,
    data: GoalProgressUpdate | Mapping[str, Any],
) -> Goal:
    """
    Record progress on a goal.

    Without an explicit status the status follows the progress value:
    0% not_started, 100% achieved, anything else in_progress.
    """
    goal_id = require_id(goal_id, "Goal")
    current: Goal = await get_or_404(storage, Collection.GOALS, goal_id)
    payload = validate_input(GoalProgressUpdate, data)

    changes = _status_changes(current, payload.status, payload.progress_percentage)
    updated = merge_changes(current, changes)
    await storage.write(Collection.GOALS, updated)
    logger.info(
        "Goal progress updated",
        extra=build_log_context(collection="goals", record_id=goal_id, operation="update_progress"),
    )
    return updated


async def archive_goal(storage: StorageProvider, goal_id: str) -> Goal:
    """Soft-delete a goal. Archiving is one-way; archiving twice is a no-op."""
    goal_id = require_id(goal_id, "Goal")
    current: Goal = await get_or_404(storage, Collection.GOALS, goal_id)
    if current.archived:
        return current

    updated = merge_changes(current, {"archived": True})
    await storage.write(Collection.GOALS, updated)
    logger.info("Goal archived", extra=build_log_context(collection="goals", record_id=goal_id, operation="archive"))
    return updated


async def get_goals_at_risk(storage: StorageProvider, client_id: str | None = None) -> list[Goal]:
    """Non-archived at-risk goals, soonest target date first."""
    if client_id is not None:
        client_id = require_id(client_id, "Client")
        await get_or_404(storage, Collection.CLIENTS, client_id)
    today = today_utc()
    exact = {"client_id": client_id, "archived": False}
    return await storage.find(
        Collection.GOALS,
        lambda g: matches_filter(g, exact) and rules.is_goal_at_risk(g, today),
        QueryOptions(sort_by="target_date"),
    )
