"""Lookups and reference checks shared by the entity services."""

from typing import Any, Iterable

from caretrack.core.errors import ConflictError, NotFoundError, ValidationError
from caretrack.core.validation import new_id
from caretrack.db.enums import Collection
from caretrack.db.models import RESOURCE_NAMES, Activity, BaseRecord, Client, Goal, Stakeholder
from caretrack.storage.base import StorageProvider
from caretrack.storage.query import QueryOptions, SortOrder
from caretrack.utils.dates import next_timestamp, utcnow
from caretrack.utils.normalization import normalize_name


async def get_or_404(storage: StorageProvider, collection: Collection, record_id: str) -> Any:
    """Fetch a record or raise NotFoundError naming the resource type."""
    record = await storage.read(collection, record_id)
    if record is None:
        raise NotFoundError(RESOURCE_NAMES[collection], record_id)
    return record


async def require_active_client(storage: StorageProvider, client_id: str) -> Client:
    client = await get_or_404(storage, Collection.CLIENTS, client_id)
    if not client.active:
        raise ConflictError(
            "Cannot link records to an inactive client",
            "CLIENT_INACTIVE",
            context={"client_id": client_id},
        )
    return client


async def require_active_stakeholder(storage: StorageProvider, stakeholder_id: str) -> Stakeholder:
    stakeholder = await get_or_404(storage, Collection.STAKEHOLDERS, stakeholder_id)
    if not stakeholder.active:
        raise ConflictError(
            "Cannot link records to an inactive stakeholder",
            "STAKEHOLDER_INACTIVE",
            context={"stakeholder_id": stakeholder_id},
        )
    return stakeholder


async def check_goals_belong_to_client(
    storage: StorageProvider,
    goal_ids: Iterable[str],
    client_id: str,
) -> list[Goal]:
    """
    Load every goal and confirm it belongs to ``client_id``.

    Raises:
        NotFoundError: A goal id does not exist.
        ConflictError: ``GOAL_CLIENT_MISMATCH`` for a goal of another client.
    """
    goals: list[Goal] = []
    for goal_id in goal_ids:
        goal = await get_or_404(storage, Collection.GOALS, goal_id)
        if goal.client_id != client_id:
            raise ConflictError(
                f"Goal {goal_id} does not belong to client {client_id}",
                "GOAL_CLIENT_MISMATCH",
                context={"goal_id": goal_id, "client_id": client_id},
            )
        goals.append(goal)
    return goals


async def check_activities_belong_to_client(
    storage: StorageProvider,
    activity_ids: Iterable[str],
    client_id: str,
) -> list[Activity]:
    activities: list[Activity] = []
    for activity_id in activity_ids:
        activity = await get_or_404(storage, Collection.ACTIVITIES, activity_id)
        if activity.client_id != client_id:
            raise ConflictError(
                f"Activity {activity_id} does not belong to client {client_id}",
                "ACTIVITY_CLIENT_MISMATCH",
                context={"activity_id": activity_id, "client_id": client_id},
            )
        activities.append(activity)
    return activities


def require_name(value: str) -> str:
    """Normalized name, rejecting values that are only whitespace."""
    name = normalize_name(value)
    if name is None:
        raise ValidationError("Name cannot be blank", field="name")
    return name


def new_record_fields() -> dict[str, Any]:
    """Fresh id plus matching created/updated timestamps."""
    now = utcnow()
    return {"id": new_id(), "created_at": now, "updated_at": now}


def merge_changes(record: BaseRecord, changes: dict[str, Any]) -> Any:
    """
    Apply ``changes`` over ``record`` and bump ``updated_at``.

    The merged record is re-validated against its model; id and created_at
    are never taken from ``changes``.
    """
    changes = {k: v for k, v in changes.items() if k not in ("id", "created_at", "updated_at")}
    merged = {**record.model_dump(), **changes, "updated_at": next_timestamp(record.updated_at)}
    return type(record).model_validate(merged)


def query_options(
    limit: int | None,
    offset: int,
    sort_by: str,
    sort_order: SortOrder = "asc",
) -> QueryOptions:
    return QueryOptions(limit=limit, offset=offset, sort_by=sort_by, sort_order=sort_order)


def latest(values: Iterable[Any]) -> Any:
    """Largest non-None value, or None."""
    present = [value for value in values if value is not None]
    return max(present) if present else None


def id_str(value: Any) -> str | None:
    return str(value) if value is not None else None
