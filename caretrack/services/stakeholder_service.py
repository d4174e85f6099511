"""Stakeholder service - support workers, coordinators, family and providers."""

import logging
from typing import Any, Mapping

from caretrack.core.errors import ValidationError
from caretrack.core.structured_logging import build_log_context
from caretrack.core.validation import require_id, validate_input
from caretrack.db.enums import Collection
from caretrack.db.models import Activity, ShiftNote, Stakeholder
from caretrack.schemas.common import SearchParams
from caretrack.schemas.stakeholder import (
    StakeholderCreate,
    StakeholderDetail,
    StakeholderListFilter,
    StakeholderUpdate,
)
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
from caretrack.utils.normalization import matches_search, normalize_email

logger = logging.getLogger(__name__)


async def create_stakeholder(
    storage: StorageProvider,
    data: StakeholderCreate | Mapping[str, Any],
) -> Stakeholder:
    """Create an active stakeholder."""
    payload = validate_input(StakeholderCreate, data)
    stakeholder = Stakeholder(
        **new_record_fields(),
        name=require_name(payload.name),
        role=payload.role,
        email=normalize_email(payload.email),
        phone=payload.phone,
        organization=payload.organization,
        notes=payload.notes,
        active=True,
    )
    await storage.write(Collection.STAKEHOLDERS, stakeholder)
    logger.info(
        "Stakeholder created",
        extra=build_log_context(collection="stakeholders", record_id=stakeholder.id, operation="create"),
    )
    return stakeholder


async def get_stakeholder(storage: StorageProvider, stakeholder_id: str) -> StakeholderDetail:
    """Get a stakeholder with activity and shift-note counts."""
    stakeholder_id = require_id(stakeholder_id, "Stakeholder")
    stakeholder: Stakeholder = await get_or_404(storage, Collection.STAKEHOLDERS, stakeholder_id)

    activities: list[Activity] = await storage.list(Collection.ACTIVITIES, {"stakeholder_id": stakeholder_id})
    shift_notes: list[ShiftNote] = await storage.list(Collection.SHIFT_NOTES, {"stakeholder_id": stakeholder_id})

    return StakeholderDetail(
        **stakeholder.model_dump(),
        total_activities=len(activities),
        total_shift_notes=len(shift_notes),
        last_activity_date=latest(a.activity_date for a in activities),
    )


async def list_stakeholders(
    storage: StorageProvider,
    filters: StakeholderListFilter | Mapping[str, Any] | None = None,
) -> list[Stakeholder]:
    """List stakeholders by name, filtered by role, active flag and search text."""
    params = validate_input(StakeholderListFilter, filters)
    exact = {"role": params.role, "active": params.active}
    return await storage.find(
        Collection.STAKEHOLDERS,
        lambda s: matches_filter(s, exact) and matches_search(params.search, s.name, s.organization),
        query_options(params.limit, params.offset, "name"),
    )


async def search_stakeholders(
    storage: StorageProvider,
    data: SearchParams | Mapping[str, Any],
) -> list[Stakeholder]:
    params = validate_input(SearchParams, data)
    if not params.search_term.strip():
        raise ValidationError("Search term is required", "INVALID_SEARCH_TERM", field="search_term")
    return await storage.find(
        Collection.STAKEHOLDERS,
        lambda s: matches_search(params.search_term, s.name, s.organization),
        query_options(params.limit, 0, "name"),
    )


async def update_stakeholder(
    storage: StorageProvider,
    stakeholder_id: str,
    data: StakeholderUpdate | Mapping[str, Any],
) -> Stakeholder:
    stakeholder_id = require_id(stakeholder_id, "Stakeholder")
    current: Stakeholder = await get_or_404(storage, Collection.STAKEHOLDERS, stakeholder_id)
    changes = validate_input(StakeholderUpdate, data).model_dump(exclude_unset=True, exclude_none=True)
    if "name" in changes:
        changes["name"] = require_name(changes["name"])
    if "email" in changes:
        changes["email"] = normalize_email(changes["email"])

    updated = merge_changes(current, changes)
    await storage.write(Collection.STAKEHOLDERS, updated)
    logger.info(
        "Stakeholder updated",
        extra=build_log_context(collection="stakeholders", record_id=stakeholder_id, operation="update"),
    )
    return updated


async def deactivate_stakeholder(storage: StorageProvider, stakeholder_id: str) -> Stakeholder:
    """Soft-delete a stakeholder. Existing activities and notes keep their link."""
    stakeholder_id = require_id(stakeholder_id, "Stakeholder")
    current: Stakeholder = await get_or_404(storage, Collection.STAKEHOLDERS, stakeholder_id)
    if not current.active:
        return current

    updated = merge_changes(current, {"active": False})
    await storage.write(Collection.STAKEHOLDERS, updated)
    logger.info(
        "Stakeholder deactivated",
        extra=build_log_context(collection="stakeholders", record_id=stakeholder_id, operation="deactivate"),
    )
    return updated
