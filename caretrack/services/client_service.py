"""Client service - participant records and their lifecycle."""

import logging
from typing import Any, Mapping

from caretrack.core import rules
from caretrack.core.errors import ConflictError, ValidationError
from caretrack.core.structured_logging import build_log_context
from caretrack.core.validation import require_id, validate_input
from caretrack.db.enums import Collection
from caretrack.db.models import Activity, Client, Goal, ShiftNote
from caretrack.schemas.client import ClientCreate, ClientDetail, ClientListFilter, ClientUpdate
from caretrack.schemas.common import SearchParams
from caretrack.services.record_helpers import (
    get_or_404,
    latest,
    merge_changes,
    new_record_fields,
    query_options,
    require_name,
)
from caretrack.storage.base import StorageProvider
from caretrack.storage.query import matches_filter
from caretrack.utils.normalization import matches_search, normalize_identifier

logger = logging.getLogger(__name__)


async def _check_ndis_unique(
    storage: StorageProvider,
    ndis_number: str | None,
    exclude_id: str | None = None,
) -> None:
    """NDIS numbers must be unique among active clients."""
    if not ndis_number:
        return
    wanted = normalize_identifier(ndis_number)
    duplicates = await storage.find(
        Collection.CLIENTS,
        lambda c: c.active and c.id != exclude_id and normalize_identifier(c.ndis_number) == wanted,
    )
    if duplicates:
        raise ConflictError(
            "An active client with this NDIS number already exists",
            "DUPLICATE_NDIS_NUMBER",
            field="ndis_number",
            context={"existing_client_id": duplicates[0].id},
        )


async def _active_goal_count(storage: StorageProvider, client_id: str) -> int:
    return await storage.count(Collection.GOALS, {"client_id": client_id, "archived": False})


async def create_client(storage: StorageProvider, data: ClientCreate | Mapping[str, Any]) -> Client:
    """
    Create a client.

    Args:
        storage: Storage provider
        data: Client fields (validated against ClientCreate)

    Returns:
        The stored client

    Raises:
        ValidationError: Invalid fields or date of birth not in the past
        ConflictError: NDIS number already used by an active client
    """
    payload = validate_input(ClientCreate, data)
    rules.check_date_in_past(payload.date_of_birth, "date_of_birth")
    await _check_ndis_unique(storage, payload.ndis_number)

    client = Client(
        **new_record_fields(),
        name=require_name(payload.name),
        date_of_birth=payload.date_of_birth,
        ndis_number=payload.ndis_number,
        primary_contact=payload.primary_contact,
        support_notes=payload.support_notes,
        active=True,
    )
    await storage.write(Collection.CLIENTS, client)
    logger.info("Client created", extra=build_log_context(collection="clients", record_id=client.id, operation="create"))
    return client


async def get_client(storage: StorageProvider, client_id: str) -> ClientDetail:
    """Get a client with goal/activity counts and last-contact dates."""
    client_id = require_id(client_id, "Client")
    client: Client = await get_or_404(storage, Collection.CLIENTS, client_id)

    goals: list[Goal] = await storage.list(Collection.GOALS, {"client_id": client_id})
    activities: list[Activity] = await storage.list(Collection.ACTIVITIES, {"client_id": client_id})
    shift_notes: list[ShiftNote] = await storage.list(Collection.SHIFT_NOTES, {"client_id": client_id})

    return ClientDetail(
        **client.model_dump(),
        total_goals=len(goals),
        active_goals=sum(1 for g in goals if not g.archived),
        total_activities=len(activities),
        last_activity_date=latest(a.activity_date for a in activities),
        last_shift_note_date=latest(n.shift_date for n in shift_notes),
    )


async def list_clients(
    storage: StorageProvider,
    filters: ClientListFilter | Mapping[str, Any] | None = None,
) -> list[Client]:
    """List clients sorted by name, optionally filtered by active flag and name search."""
    params = validate_input(ClientListFilter, filters)
    exact = {"active": params.active}
    return await storage.find(
        Collection.CLIENTS,
        lambda c: matches_filter(c, exact) and matches_search(params.search, c.name),
        query_options(params.limit, params.offset, "name"),
    )


async def search_clients(
    storage: StorageProvider,
    data: SearchParams | Mapping[str, Any],
) -> list[Client]:
    """Case- and accent-insensitive substring search on client names."""
    params = validate_input(SearchParams, data)
    if not params.search_term.strip():
        raise ValidationError("Search term is required", "INVALID_SEARCH_TERM", field="search_term")
    return await storage.find(
        Collection.CLIENTS,
        lambda c: matches_search(params.search_term, c.name),
        query_options(params.limit, 0, "name"),
    )


async def update_client(
    storage: StorageProvider,
    client_id: str,
    data: ClientUpdate | Mapping[str, Any],
) -> Client:
    """
    Update a client.

    Deactivating through an update is subject to the same active-goal guard
    as ``deactivate_client``; reactivating re-checks NDIS uniqueness.
    """
    client_id = require_id(client_id, "Client")
    current: Client = await get_or_404(storage, Collection.CLIENTS, client_id)
    changes = validate_input(ClientUpdate, data).model_dump(exclude_unset=True, exclude_none=True)

    if "date_of_birth" in changes:
        rules.check_date_in_past(changes["date_of_birth"], "date_of_birth")
    if "name" in changes:
        changes["name"] = require_name(changes["name"])

    becomes_active = changes.get("active", current.active)
    if current.active and not becomes_active:
        await _ensure_no_active_goals(storage, client_id)
    if becomes_active and ("ndis_number" in changes or not current.active):
        await _check_ndis_unique(storage, changes.get("ndis_number", current.ndis_number), exclude_id=client_id)

    updated = merge_changes(current, changes)
    await storage.write(Collection.CLIENTS, updated)
    logger.info("Client updated", extra=build_log_context(collection="clients", record_id=client_id, operation="update"))
    return updated


async def _ensure_no_active_goals(storage: StorageProvider, client_id: str) -> None:
    active_goals = await _active_goal_count(storage, client_id)
    if active_goals:
        logger.info(
            "Client deactivation blocked",
            extra=build_log_context(collection="clients", record_id=client_id, code="CLIENT_HAS_ACTIVE_GOALS"),
        )
        raise ConflictError(
            f"Cannot deactivate client with {active_goals} active goal(s). Archive goals first.",
            "CLIENT_HAS_ACTIVE_GOALS",
            context={"client_id": client_id, "active_goals_count": active_goals},
        )


async def deactivate_client(storage: StorageProvider, client_id: str) -> Client:
    """
    Soft-delete a client.

    Blocked while the client has any non-archived goal. The goal check and the
    client write are not atomic across collections.
    """
    client_id = require_id(client_id, "Client")
    current: Client = await get_or_404(storage, Collection.CLIENTS, client_id)
    await _ensure_no_active_goals(storage, client_id)
    if not current.active:
        return current

    updated = merge_changes(current, {"active": False})
    await storage.write(Collection.CLIENTS, updated)
    logger.info("Client deactivated", extra=build_log_context(collection="clients", record_id=client_id, operation="deactivate"))
    return updated
