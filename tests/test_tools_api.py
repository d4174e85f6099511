"""Tests for the tools HTTP API: dispatch, status mapping and error envelopes."""
import uuid
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from caretrack.db.enums import Collection
from caretrack.main import create_app
from caretrack.services import tool_registry
from caretrack.utils.dates import today_utc


async def _call(api_client: AsyncClient, name: str, arguments=None):
    return await api_client.post(f"/tools/{name}", json=arguments if arguments is not None else {})


@pytest.mark.asyncio
async def test_health(api_client):
    res = await api_client.get("/health")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_list_tools(api_client):
    res = await api_client.get("/tools")
    assert res.status_code == 200
    names = {tool["name"] for tool in res.json()["tools"]}
    assert {"create_client", "get_dashboard", "update_shift_note", "get_goals_at_risk"} <= names
    assert len(names) == len(tool_registry.TOOLS)


@pytest.mark.asyncio
async def test_create_and_get_client(api_client):
    res = await _call(api_client, "create_client", {"name": "Jordan Lee", "date_of_birth": "1990-01-01"})
    assert res.status_code == 200, res.text
    client_id = res.json()["result"]["id"]

    res = await _call(api_client, "get_client", {"client_id": client_id})
    assert res.status_code == 200
    result = res.json()["result"]
    assert result["name"] == "Jordan Lee"
    assert result["date_of_birth"] == "1990-01-01"
    assert result["total_goals"] == 0


@pytest.mark.asyncio
async def test_validation_error_is_400_without_personal_data(api_client):
    res = await _call(
        api_client,
        "create_client",
        {"name": "Jordan Lee", "date_of_birth": "2999-01-01", "ndis_number": "43000000001"},
    )
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "INVALID_DATE"
    assert error["field"] == "date_of_birth"
    assert "Jordan" not in res.text
    assert "2999-01-01" not in res.text
    assert "43000000001" not in res.text


@pytest.mark.asyncio
async def test_not_found_is_404(api_client):
    missing = str(uuid.uuid4())
    res = await _call(api_client, "get_goal", {"goal_id": missing})
    assert res.status_code == 404
    assert res.json() == {"error": {"code": "NOT_FOUND", "message": f"Goal not found: {missing}"}}


@pytest.mark.asyncio
async def test_unknown_tool_is_404(api_client):
    res = await _call(api_client, "drop_everything")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_non_object_arguments_rejected(api_client):
    res = await api_client.post("/tools/list_clients", json=["not", "an", "object"])
    assert res.status_code == 400
    assert res.json()["error"]["field"] == "arguments"


@pytest.mark.asyncio
async def test_missing_body_treated_as_no_arguments(api_client):
    res = await api_client.post("/tools/list_clients")
    assert res.status_code == 200
    assert res.json() == {"result": []}


@pytest.mark.asyncio
async def test_conflict_is_409(api_client, client, goal):
    res = await _call(api_client, "deactivate_client", {"client_id": client.id})
    assert res.status_code == 409
    error = res.json()["error"]
    assert error["code"] == "CLIENT_HAS_ACTIVE_GOALS"
    assert "active_goals_count" not in error


@pytest.mark.asyncio
async def test_update_tool_splits_id_from_fields(api_client, goal):
    res = await _call(api_client, "update_goal_progress", {"goal_id": goal.id, "progress_percentage": 100})
    assert res.status_code == 200, res.text
    result = res.json()["result"]
    assert result["status"] == "achieved"
    assert result["achieved_at"] is not None


@pytest.mark.asyncio
async def test_expired_edit_window_is_403(api_client, client, stakeholder):
    res = await _call(
        api_client,
        "create_shift_note",
        {
            "client_id": client.id,
            "stakeholder_id": stakeholder.id,
            "shift_date": (today_utc() - timedelta(days=3)).isoformat(),
            "start_time": "09:00",
            "end_time": "17:00",
            "general_observations": "Calm shift",
        },
    )
    assert res.status_code == 200, res.text
    note_id = res.json()["result"]["id"]

    res = await _call(api_client, "update_shift_note", {"shift_note_id": note_id, "incidents": "None"})
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "EDIT_WINDOW_EXPIRED"


@pytest.mark.asyncio
async def test_week_start_required(api_client):
    res = await _call(api_client, "get_shift_notes_for_week", {})
    assert res.status_code == 400
    assert res.json()["error"]["field"] == "week_start"


@pytest.mark.asyncio
async def test_dashboard_tool(api_client, client, goal):
    res = await _call(api_client, "get_dashboard")
    assert res.status_code == 200
    summary = res.json()["result"]["summary"]
    assert summary["total_clients"] == 1
    assert summary["total_active_goals"] == 1


@pytest.mark.asyncio
async def test_storage_error_is_503(api_client, json_storage):
    json_storage.collection_path(Collection.CLIENTS).write_text("{", encoding="utf-8")
    res = await _call(api_client, "list_clients")
    assert res.status_code == 503
    assert res.json()["error"]["code"] == "CORRUPT_COLLECTION"


@pytest.mark.asyncio
async def test_unexpected_error_is_500(test_settings, memory_storage, monkeypatch):
    async def explode(ctx, args):
        raise RuntimeError("secret detail")

    monkeypatch.setitem(
        tool_registry.TOOLS, "get_statistics", tool_registry.Tool("get_statistics", "boom", explode)
    )
    app = create_app(test_settings, storage=memory_storage)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        res = await c.post("/tools/get_statistics", json={})
    assert res.status_code == 500
    assert res.json() == {"error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}}
    assert "secret" not in res.text
