"""Shift note service - end-of-shift records with a 24-hour edit window."""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Mapping

from caretrack.core import rules
from caretrack.core.errors import ValidationError
from caretrack.core.structured_logging import build_log_context
from caretrack.core.validation import require_id, validate_input
from caretrack.db.enums import Collection
from caretrack.db.models import Client, GoalProgress, ShiftNote, Stakeholder
from caretrack.schemas.shift_note import (
    GoalProgressInput,
    ShiftNoteCreate,
    ShiftNoteDetail,
    ShiftNoteListFilter,
    ShiftNoteUpdate,
)
from caretrack.services.record_helpers import (
    check_activities_belong_to_client,
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
from caretrack.utils.dates import is_date_in_range, time_range_minutes
from caretrack.utils.pagination import MAX_LIMIT, RECENT_LIMIT

logger = logging.getLogger(__name__)


def _goal_progress(entries: list[GoalProgressInput]) -> list[GoalProgress]:
    return [
        GoalProgress(
            goal_id=str(entry.goal_id),
            progress_notes=entry.progress_notes,
            progress_observed=entry.progress_observed,
        )
        for entry in entries
    ]


async def _check_links(
    storage: StorageProvider,
    client_id: str,
    activity_ids: list[str],
    goals_progress: list[GoalProgress],
) -> None:
    """Linked activities and goals must all belong to the note's client."""
    await check_activities_belong_to_client(storage, activity_ids, client_id)
    await check_goals_belong_to_client(
        storage, dict.fromkeys(entry.goal_id for entry in goals_progress), client_id
    )


async def create_shift_note(
    storage: StorageProvider,
    data: ShiftNoteCreate | Mapping[str, Any],
    *,
    max_backdate_days: int = rules.DEFAULT_MAX_BACKDATE_DAYS,
) -> ShiftNote:
    """
    Record a shift note.

    Args:
        storage: Storage provider
        data: Shift note fields (validated against ShiftNoteCreate)
        max_backdate_days: Oldest shift date accepted, in days before today

    Returns:
        The stored shift note

    Raises:
        ValidationError: Invalid fields, shift times or shift date too old
        NotFoundError: Client, stakeholder, activity or goal does not exist
        ConflictError: Inactive client/stakeholder or links to another client
    """
    payload = validate_input(ShiftNoteCreate, data)
    rules.check_shift_times(payload.start_time, payload.end_time)
    rules.check_not_too_old(payload.shift_date, max_backdate_days, "shift_date")

    client_id = str(payload.client_id)
    stakeholder_id = str(payload.stakeholder_id)
    activity_ids = list(dict.fromkeys(str(a) for a in payload.activity_ids))
    goals_progress = _goal_progress(payload.goals_progress)

    await require_active_client(storage, client_id)
    await require_active_stakeholder(storage, stakeholder_id)
    await _check_links(storage, client_id, activity_ids, goals_progress)

    note = ShiftNote(
        **new_record_fields(),
        client_id=client_id,
        stakeholder_id=stakeholder_id,
        shift_date=payload.shift_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        general_observations=payload.general_observations,
        activity_ids=activity_ids,
        goals_progress=goals_progress,
        mood_wellbeing=payload.mood_wellbeing,
        communication_notes=payload.communication_notes,
        health_safety_notes=payload.health_safety_notes,
        handover_notes=payload.handover_notes,
        incidents=payload.incidents,
    )
    await storage.write(Collection.SHIFT_NOTES, note)
    logger.info(
        "Shift note created",
        extra=build_log_context(collection="shift_notes", record_id=note.id, operation="create"),
    )
    return note


async def get_shift_note(storage: StorageProvider, shift_note_id: str) -> ShiftNoteDetail:
    """Get a shift note with client/stakeholder names and the shift length."""
    shift_note_id = require_id(shift_note_id, "Shift note")
    note: ShiftNote = await get_or_404(storage, Collection.SHIFT_NOTES, shift_note_id)
    client: Client | None = await storage.read(Collection.CLIENTS, note.client_id)
    stakeholder: Stakeholder | None = await storage.read(Collection.STAKEHOLDERS, note.stakeholder_id)
    return ShiftNoteDetail(
        **note.model_dump(),
        client_name=client.name if client else "Unknown",
        stakeholder_name=stakeholder.name if stakeholder else "Unknown",
        duration_minutes=time_range_minutes(note.start_time, note.end_time),
    )


async def list_shift_notes(
    storage: StorageProvider,
    filters: ShiftNoteListFilter | Mapping[str, Any] | None = None,
) -> list[ShiftNote]:
    """List shift notes, latest shift first."""
    params = validate_input(ShiftNoteListFilter, filters)
    exact = {
        "client_id": id_str(params.client_id),
        "stakeholder_id": id_str(params.stakeholder_id),
    }
    return await storage.find(
        Collection.SHIFT_NOTES,
        lambda n: matches_filter(n, exact)
        and is_date_in_range(n.shift_date, params.date_from, params.date_to),
        query_options(params.limit, params.offset, "shift_date", "desc"),
    )


async def update_shift_note(
    storage: StorageProvider,
    shift_note_id: str,
    data: ShiftNoteUpdate | Mapping[str, Any],
    *,
    now: datetime | None = None,
) -> ShiftNote:
    """
    Amend a shift note while its edit window is open.

    Raises:
        AuthorizationError: ``EDIT_WINDOW_EXPIRED`` once 24 hours have passed
            since the start of the shift date
        ConflictError: New links point at another client's records
    """
    shift_note_id = require_id(shift_note_id, "Shift note")
    current: ShiftNote = await get_or_404(storage, Collection.SHIFT_NOTES, shift_note_id)
    rules.ensure_shift_note_editable(current, now)

    payload = validate_input(ShiftNoteUpdate, data)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)

    if "activity_ids" in changes:
        changes["activity_ids"] = list(dict.fromkeys(str(a) for a in changes["activity_ids"]))
    if "goals_progress" in changes:
        changes["goals_progress"] = _goal_progress(payload.goals_progress or [])
    await _check_links(
        storage,
        current.client_id,
        changes.get("activity_ids", []),
        changes.get("goals_progress", []),
    )

    updated = merge_changes(current, changes)
    await storage.write(Collection.SHIFT_NOTES, updated)
    logger.info(
        "Shift note updated",
        extra=build_log_context(collection="shift_notes", record_id=shift_note_id, operation="update"),
    )
    return updated


async def get_recent_shift_notes(
    storage: StorageProvider,
    limit: int = RECENT_LIMIT,
    client_id: str | None = None,
) -> list[ShiftNote]:
    """Most recent shift notes, newest shift date first (ties by creation time)."""
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_LIMIT:
        raise ValidationError(f"limit must be an integer between 1 and {MAX_LIMIT}", field="limit")
    if client_id is not None:
        client_id = require_id(client_id, "Client")
    notes = await storage.list(
        Collection.SHIFT_NOTES,
        {"client_id": client_id},
        QueryOptions(sort_by="created_at", sort_order="desc"),
    )
    notes.sort(key=lambda n: n.shift_date, reverse=True)
    return notes[:limit]


async def get_shift_notes_for_week(
    storage: StorageProvider,
    week_start: date | str,
    client_id: str | None = None,
) -> list[ShiftNote]:
    """Shift notes dated within the seven days starting at ``week_start``."""
    if isinstance(week_start, str):
        try:
            week_start = date.fromisoformat(week_start)
        except ValueError:
            raise ValidationError("week_start must be a YYYY-MM-DD date", field="week_start") from None
    if client_id is not None:
        client_id = require_id(client_id, "Client")
    week_end = week_start + timedelta(days=6)
    return await storage.find(
        Collection.SHIFT_NOTES,
        lambda n: matches_filter(n, {"client_id": client_id})
        and is_date_in_range(n.shift_date, week_start, week_end),
        QueryOptions(sort_by="shift_date"),
    )
