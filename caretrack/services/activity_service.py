"""Activity service - scheduled and completed supports delivered to clients."""

import logging
from datetime import timedelta
from typing import Any, Mapping

from caretrack.core import rules
from caretrack.core.errors import ValidationError
from caretrack.core.structured_logging import build_log_context
from caretrack.core.validation import require_id, validate_input
from caretrack.db.enums import ActivityStatus, Collection
from caretrack.db.models import Activity, Client, Goal, Stakeholder
from caretrack.schemas.activity import (
    ActivityCreate,
    ActivityDateRange,
    ActivityDetail,
    ActivityListFilter,
    ActivityUpdate,
)
from caretrack.services.record_helpers import (
    check_goals_belong_to_client,
    get_or_404,
    id_str,
    merge_changes,
    new_record_fields,
    query_options,
    require_active_client,
    require_active_stakeholder,
)
from caretrack.storage.base import StorageProvider
from caretrack.storage.query import QueryOptions, matches_filter
from caretrack.utils.dates import is_date_in_range, today_utc

logger = logging.getLogger(__name__)

UPCOMING_DAYS = 7
MAX_UPCOMING_DAYS = 365


async def create_activity(
    storage: StorageProvider,
    data: ActivityCreate | Mapping[str, Any],
    *,
    max_backdate_days: int = rules.DEFAULT_MAX_BACKDATE_DAYS,
) -> Activity:
    """
    Create an activity for an active client and active stakeholder.

    Every linked goal must belong to the same client. When start and end
    times are given the duration is derived or cross-checked.

    Raises:
        ValidationError: Invalid fields, duration mismatch or date too old
        NotFoundError: Client, stakeholder or goal does not exist
        ConflictError: Inactive client/stakeholder or goal of another client
    """
    payload = validate_input(ActivityCreate, data)
    rules.check_not_too_old(payload.activity_date, max_backdate_days, "activity_date")
    duration = rules.resolve_activity_duration(
        payload.start_time, payload.end_time, payload.duration_minutes
    )

    client_id = str(payload.client_id)
    stakeholder_id = str(payload.stakeholder_id)
    goal_ids = _unique_ids(payload.goal_ids)
    await require_active_client(storage, client_id)
    await require_active_stakeholder(storage, stakeholder_id)
    await check_goals_belong_to_client(storage, goal_ids, client_id)

    activity = Activity(
        **new_record_fields(),
        client_id=client_id,
        stakeholder_id=stakeholder_id,
        title=payload.title,
        description=payload.description,
        activity_type=payload.activity_type,
        activity_date=payload.activity_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        duration_minutes=duration,
        status=payload.status,
        goal_ids=goal_ids,
        outcome_notes=payload.outcome_notes,
    )
    await storage.write(Collection.ACTIVITIES, activity)
    logger.info(
        "Activity created",
        extra=build_log_context(collection="activities", record_id=activity.id, operation="create"),
    )
    return activity


def _unique_ids(values: list[Any]) -> list[str]:
    """String ids in first-seen order without duplicates."""
    return list(dict.fromkeys(str(value) for value in values))


async def get_activity(storage: StorageProvider, activity_id: str) -> ActivityDetail:
    """Get an activity with client, stakeholder and goal names resolved."""
    activity_id = require_id(activity_id, "Activity")
    activity: Activity = await get_or_404(storage, Collection.ACTIVITIES, activity_id)

    client: Client | None = await storage.read(Collection.CLIENTS, activity.client_id)
    stakeholder: Stakeholder | None = await storage.read(Collection.STAKEHOLDERS, activity.stakeholder_id)
    goal_titles: list[str] = []
    for goal_id in activity.goal_ids:
        goal: Goal | None = await storage.read(Collection.GOALS, goal_id)
        if goal is not None:
            goal_titles.append(goal.title)

    return ActivityDetail(
        **activity.model_dump(),
        client_name=client.name if client else "Unknown",
        stakeholder_name=stakeholder.name if stakeholder else "Unknown",
        goal_titles=goal_titles,
    )


async def list_activities(
    storage: StorageProvider,
    filters: ActivityListFilter | Mapping[str, Any] | None = None,
) -> list[Activity]:
    """List activities, most recent activity date first."""
    params = validate_input(ActivityListFilter, filters)
    exact = {
        "client_id": id_str(params.client_id),
        "stakeholder_id": id_str(params.stakeholder_id),
        "activity_type": params.activity_type,
        "status": params.status,
    }
    goal_id = id_str(params.goal_id)

    def predicate(activity: Activity) -> bool:
        if not matches_filter(activity, exact):
            return False
        if goal_id is not None and goal_id not in activity.goal_ids:
            return False
        return is_date_in_range(activity.activity_date, params.date_from, params.date_to)

    return await storage.find(
        Collection.ACTIVITIES,
        predicate,
        query_options(params.limit, params.offset, "activity_date", "desc"),
    )


async def update_activity(
    storage: StorageProvider,
    activity_id: str,
    data: ActivityUpdate | Mapping[str, Any],
) -> Activity:
    """
    Update an activity.

    Changed goal links are re-checked against the activity's client. Changing
    the times without giving a duration re-derives the duration.
    """
    activity_id = require_id(activity_id, "Activity")
    current: Activity = await get_or_404(storage, Collection.ACTIVITIES, activity_id)
    changes = validate_input(ActivityUpdate, data).model_dump(exclude_unset=True, exclude_none=True)

    if "goal_ids" in changes:
        changes["goal_ids"] = _unique_ids(changes["goal_ids"])
        await check_goals_belong_to_client(storage, changes["goal_ids"], current.client_id)

    times_changed = "start_time" in changes or "end_time" in changes
    if times_changed or "duration_minutes" in changes:
        start_time = changes.get("start_time", current.start_time)
        end_time = changes.get("end_time", current.end_time)
        if "duration_minutes" in changes:
            duration = changes["duration_minutes"]
        elif start_time is not None and end_time is not None:
            duration = None
        else:
            duration = current.duration_minutes
        changes["duration_minutes"] = rules.resolve_activity_duration(start_time, end_time, duration)

    updated = merge_changes(current, changes)
    await storage.write(Collection.ACTIVITIES, updated)
    logger.info(
        "Activity updated",
        extra=build_log_context(collection="activities", record_id=activity_id, operation="update"),
    )
    return updated


async def get_activities_by_date_range(
    storage: StorageProvider,
    data: ActivityDateRange | Mapping[str, Any],
) -> list[Activity]:
    """Activities dated within an inclusive range, earliest first."""
    params = validate_input(ActivityDateRange, data)
    exact = {"client_id": id_str(params.client_id)}
    return await storage.find(
        Collection.ACTIVITIES,
        lambda a: matches_filter(a, exact)
        and is_date_in_range(a.activity_date, params.start_date, params.end_date),
        QueryOptions(sort_by="activity_date"),
    )


async def get_upcoming_activities(
    storage: StorageProvider,
    days: int = UPCOMING_DAYS,
    client_id: str | None = None,
) -> list[Activity]:
    """Scheduled activities from today through ``days`` days ahead, soonest first."""
    if client_id is not None:
        client_id = require_id(client_id, "Client")
    if isinstance(days, bool) or not isinstance(days, int) or not 0 <= days <= MAX_UPCOMING_DAYS:
        raise ValidationError(f"days must be an integer between 0 and {MAX_UPCOMING_DAYS}", field="days")
    start = today_utc()
    end = start + timedelta(days=days)
    exact = {"client_id": client_id, "status": ActivityStatus.SCHEDULED}
    return await storage.find(
        Collection.ACTIVITIES,
        lambda a: matches_filter(a, exact) and is_date_in_range(a.activity_date, start, end),
        QueryOptions(sort_by="activity_date"),
    )
