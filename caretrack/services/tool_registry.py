"""Named operations exposed to tool-calling clients.

Each tool takes a plain JSON object of arguments and maps it onto one
service function. Results are returned as JSON-compatible data.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping

from fastapi.encoders import jsonable_encoder

from caretrack.core.errors import AppError, NotFoundError, ValidationError
from caretrack.core.rules import DEFAULT_MAX_BACKDATE_DAYS
from caretrack.core.structured_logging import build_log_context
from caretrack.services import (
    activity_service,
    client_service,
    dashboard_service,
    goal_service,
    shift_note_service,
    stakeholder_service,
)
from caretrack.storage.base import StorageProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolContext:
    """Per-call dependencies handed to every tool handler."""
    storage: StorageProvider
    max_backdate_days: int = DEFAULT_MAX_BACKDATE_DAYS


Handler = Callable[[ToolContext, dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    handler: Handler


def _split(args: dict[str, Any], key: str) -> tuple[Any, dict[str, Any]]:
    """Pull the target id out of the arguments, leaving the update fields."""
    rest = {k: v for k, v in args.items() if k != key}
    return args.get(key), rest


# =============================================================================
# Handlers
# =============================================================================

async def _update_client(ctx: ToolContext, args: dict[str, Any]) -> Any:
    client_id, rest = _split(args, "client_id")
    return await client_service.update_client(ctx.storage, client_id, rest)


async def _update_goal(ctx: ToolContext, args: dict[str, Any]) -> Any:
    goal_id, rest = _split(args, "goal_id")
    return await goal_service.update_goal(ctx.storage, goal_id, rest)


async def _update_goal_progress(ctx: ToolContext, args: dict[str, Any]) -> Any:
    goal_id, rest = _split(args, "goal_id")
    return await goal_service.update_goal_progress(ctx.storage, goal_id, rest)


async def _update_activity(ctx: ToolContext, args: dict[str, Any]) -> Any:
    activity_id, rest = _split(args, "activity_id")
    return await activity_service.update_activity(ctx.storage, activity_id, rest)


async def _update_stakeholder(ctx: ToolContext, args: dict[str, Any]) -> Any:
    stakeholder_id, rest = _split(args, "stakeholder_id")
    return await stakeholder_service.update_stakeholder(ctx.storage, stakeholder_id, rest)


async def _update_shift_note(ctx: ToolContext, args: dict[str, Any]) -> Any:
    shift_note_id, rest = _split(args, "shift_note_id")
    return await shift_note_service.update_shift_note(ctx.storage, shift_note_id, rest)


async def _get_upcoming_activities(ctx: ToolContext, args: dict[str, Any]) -> Any:
    return await activity_service.get_upcoming_activities(
        ctx.storage,
        days=args.get("days", activity_service.UPCOMING_DAYS),
        client_id=args.get("client_id"),
    )


async def _get_recent_shift_notes(ctx: ToolContext, args: dict[str, Any]) -> Any:
    kwargs = {"client_id": args.get("client_id")}
    if "limit" in args:
        kwargs["limit"] = args["limit"]
    return await shift_note_service.get_recent_shift_notes(ctx.storage, **kwargs)


async def _get_shift_notes_for_week(ctx: ToolContext, args: dict[str, Any]) -> Any:
    week_start = args.get("week_start")
    if not week_start:
        raise ValidationError("week_start is required", field="week_start")
    return await shift_note_service.get_shift_notes_for_week(
        ctx.storage, week_start, client_id=args.get("client_id")
    )


TOOLS: dict[str, Tool] = {
    tool.name: tool
    for tool in [
        # Clients
        Tool("create_client", "Create a new client",
             lambda ctx, a: client_service.create_client(ctx.storage, a)),
        Tool("get_client", "Get a client with goal and activity rollups",
             lambda ctx, a: client_service.get_client(ctx.storage, a.get("client_id"))),
        Tool("list_clients", "List clients with optional filters",
             lambda ctx, a: client_service.list_clients(ctx.storage, a)),
        Tool("update_client", "Update client fields", _update_client),
        Tool("deactivate_client", "Deactivate a client with no active goals",
             lambda ctx, a: client_service.deactivate_client(ctx.storage, a.get("client_id"))),
        Tool("search_clients", "Search clients by name",
             lambda ctx, a: client_service.search_clients(ctx.storage, a)),
        # Goals
        Tool("create_goal", "Create a goal for an active client",
             lambda ctx, a: goal_service.create_goal(ctx.storage, a)),
        Tool("get_goal", "Get a goal with activity rollups",
             lambda ctx, a: goal_service.get_goal(ctx.storage, a.get("goal_id"))),
        Tool("list_goals", "List goals with optional filters",
             lambda ctx, a: goal_service.list_goals(ctx.storage, a)),
        Tool("update_goal", "Update goal fields", _update_goal),
        Tool("update_goal_progress", "Record progress on a goal", _update_goal_progress),
        Tool("archive_goal", "Archive a goal",
             lambda ctx, a: goal_service.archive_goal(ctx.storage, a.get("goal_id"))),
        Tool("get_goals_at_risk", "Goals under 50% due within 14 days",
             lambda ctx, a: goal_service.get_goals_at_risk(ctx.storage, a.get("client_id"))),
        # Activities
        Tool("create_activity", "Log or schedule an activity",
             lambda ctx, a: activity_service.create_activity(
                 ctx.storage, a, max_backdate_days=ctx.max_backdate_days)),
        Tool("get_activity", "Get an activity with names resolved",
             lambda ctx, a: activity_service.get_activity(ctx.storage, a.get("activity_id"))),
        Tool("list_activities", "List activities with optional filters",
             lambda ctx, a: activity_service.list_activities(ctx.storage, a)),
        Tool("update_activity", "Update activity fields", _update_activity),
        Tool("get_activities_by_date_range", "Activities within a date range",
             lambda ctx, a: activity_service.get_activities_by_date_range(ctx.storage, a)),
        Tool("get_upcoming_activities", "Scheduled activities in the coming days", _get_upcoming_activities),
        # Stakeholders
        Tool("create_stakeholder", "Create a stakeholder",
             lambda ctx, a: stakeholder_service.create_stakeholder(ctx.storage, a)),
        Tool("get_stakeholder", "Get a stakeholder with activity counts",
             lambda ctx, a: stakeholder_service.get_stakeholder(ctx.storage, a.get("stakeholder_id"))),
        Tool("list_stakeholders", "List stakeholders with optional filters",
             lambda ctx, a: stakeholder_service.list_stakeholders(ctx.storage, a)),
        Tool("update_stakeholder", "Update stakeholder fields", _update_stakeholder),
        Tool("deactivate_stakeholder", "Deactivate a stakeholder",
             lambda ctx, a: stakeholder_service.deactivate_stakeholder(ctx.storage, a.get("stakeholder_id"))),
        Tool("search_stakeholders", "Search stakeholders by name or organization",
             lambda ctx, a: stakeholder_service.search_stakeholders(ctx.storage, a)),
        # Shift notes
        Tool("create_shift_note", "Record a shift note",
             lambda ctx, a: shift_note_service.create_shift_note(
                 ctx.storage, a, max_backdate_days=ctx.max_backdate_days)),
        Tool("get_shift_note", "Get a shift note with names and duration",
             lambda ctx, a: shift_note_service.get_shift_note(ctx.storage, a.get("shift_note_id"))),
        Tool("list_shift_notes", "List shift notes with optional filters",
             lambda ctx, a: shift_note_service.list_shift_notes(ctx.storage, a)),
        Tool("update_shift_note", "Amend a shift note within 24 hours", _update_shift_note),
        Tool("get_recent_shift_notes", "Most recent shift notes", _get_recent_shift_notes),
        Tool("get_shift_notes_for_week", "Shift notes for a week", _get_shift_notes_for_week),
        # Dashboard
        Tool("get_dashboard", "Summary counts and recent/upcoming lists",
             lambda ctx, a: dashboard_service.get_dashboard(ctx.storage)),
        Tool("get_client_summary", "Goal progress overview for one client",
             lambda ctx, a: dashboard_service.get_client_summary(ctx.storage, a.get("client_id"))),
        Tool("get_statistics", "Headline record counts",
             lambda ctx, a: dashboard_service.get_statistics(ctx.storage)),
    ]
}


def list_tools() -> list[dict[str, str]]:
    return [{"name": tool.name, "description": tool.description} for tool in TOOLS.values()]


async def call_tool(ctx: ToolContext, name: str, arguments: Mapping[str, Any] | None = None) -> Any:
    """
    Dispatch ``name`` with ``arguments`` and return a JSON-compatible result.

    Raises:
        NotFoundError: Unknown tool name
        ValidationError: Arguments are not an object
        AppError: Whatever the service raises, unchanged
    """
    tool = TOOLS.get(name)
    if tool is None:
        raise NotFoundError("Tool", name)
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise ValidationError("Tool arguments must be an object", field="arguments")

    try:
        result = await tool.handler(ctx, dict(arguments))
    except AppError as exc:
        logger.info("Tool call rejected", extra=build_log_context(tool=name, code=exc.code))
        raise
    return jsonable_encoder(result)
