"""Tools router - named-operation dispatch over HTTP."""

from typing import Any

from fastapi import APIRouter, Body, Depends

from caretrack.core.deps import get_tool_context
from caretrack.services import tool_registry
from caretrack.services.tool_registry import ToolContext

router = APIRouter()


@router.get("")
def list_tools():
    """List available tools with one-line descriptions."""
    return {"tools": tool_registry.list_tools()}


@router.post("/{tool_name}")
async def call_tool(
    tool_name: str,
    arguments: Any = Body(default=None),
    ctx: ToolContext = Depends(get_tool_context),
):
    """
    Call a tool with a JSON object of arguments.

    Errors are rendered by the application's AppError handler.
    """
    result = await tool_registry.call_tool(ctx, tool_name, arguments)
    return {"result": result}
