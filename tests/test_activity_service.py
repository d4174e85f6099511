"""Tests for the activity service."""
from datetime import timedelta

import pytest

from caretrack.core.errors import ConflictError, NotFoundError, ValidationError
from caretrack.db.enums import ActivityStatus
from caretrack.services import activity_service, client_service, goal_service
from caretrack.utils.dates import today_utc


def _activity_payload(client_id: str, stakeholder_id: str, days: int = 0, **overrides) -> dict:
    payload = {
        "client_id": client_id,
        "stakeholder_id": stakeholder_id,
        "title": "Grocery shopping",
        "activity_type": "community_access",
        "activity_date": (today_utc() + timedelta(days=days)).isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_activity_derives_duration(json_storage, client, stakeholder, goal):
    activity = await activity_service.create_activity(
        json_storage,
        _activity_payload(
            client.id,
            stakeholder.id,
            start_time="10:00",
            end_time="11:30",
            goal_ids=[goal.id, goal.id],
        ),
    )
    assert activity.duration_minutes == 90
    assert activity.status == ActivityStatus.SCHEDULED
    assert activity.goal_ids == [goal.id]


@pytest.mark.asyncio
async def test_create_activity_duration_mismatch(json_storage, client, stakeholder):
    with pytest.raises(ValidationError) as exc_info:
        await activity_service.create_activity(
            json_storage,
            _activity_payload(
                client.id, stakeholder.id, start_time="10:00", end_time="11:00", duration_minutes=90
            ),
        )
    assert exc_info.value.code == "INVALID_DURATION"


@pytest.mark.asyncio
async def test_create_activity_rejects_bad_time_format(json_storage, client, stakeholder):
    with pytest.raises(ValidationError) as exc_info:
        await activity_service.create_activity(
            json_storage, _activity_payload(client.id, stakeholder.id, start_time="9am")
        )
    assert exc_info.value.field == "start_time"


@pytest.mark.asyncio
async def test_create_activity_backdate_limit(json_storage, client, stakeholder):
    await activity_service.create_activity(
        json_storage, _activity_payload(client.id, stakeholder.id, days=-90, status="completed")
    )
    with pytest.raises(ValidationError) as exc_info:
        await activity_service.create_activity(
            json_storage, _activity_payload(client.id, stakeholder.id, days=-91, status="completed")
        )
    assert exc_info.value.code == "DATE_TOO_OLD"

    await activity_service.create_activity(
        json_storage,
        _activity_payload(client.id, stakeholder.id, days=-91, status="completed"),
        max_backdate_days=365,
    )


@pytest.mark.asyncio
async def test_create_activity_rejects_other_clients_goal(json_storage, client, stakeholder, goal):
    other = await client_service.create_client(
        json_storage, {"name": "Other Person", "date_of_birth": "1988-08-08"}
    )
    with pytest.raises(ConflictError) as exc_info:
        await activity_service.create_activity(
            json_storage, _activity_payload(other.id, stakeholder.id, goal_ids=[goal.id])
        )
    assert exc_info.value.code == "GOAL_CLIENT_MISMATCH"


@pytest.mark.asyncio
async def test_create_activity_unknown_goal(json_storage, client, stakeholder):
    with pytest.raises(NotFoundError):
        await activity_service.create_activity(
            json_storage,
            _activity_payload(client.id, stakeholder.id, goal_ids=["1b4e28ba-2fa1-41d2-883f-0016d3cca427"]),
        )


@pytest.mark.asyncio
async def test_get_activity_resolves_names(json_storage, client, stakeholder, goal):
    activity = await activity_service.create_activity(
        json_storage, _activity_payload(client.id, stakeholder.id, goal_ids=[goal.id])
    )
    detail = await activity_service.get_activity(json_storage, activity.id)
    assert detail.client_name == "Jordan Lee"
    assert detail.stakeholder_name == "Sam Carter"
    assert detail.goal_titles == [goal.title]


@pytest.mark.asyncio
async def test_list_activities_filters_and_order(json_storage, client, stakeholder, goal):
    old = await activity_service.create_activity(
        json_storage, _activity_payload(client.id, stakeholder.id, days=-3, status="completed")
    )
    linked = await activity_service.create_activity(
        json_storage, _activity_payload(client.id, stakeholder.id, days=-1, goal_ids=[goal.id])
    )
    future = await activity_service.create_activity(
        json_storage, _activity_payload(client.id, stakeholder.id, days=2)
    )

    everything = await activity_service.list_activities(json_storage, {"client_id": client.id})
    assert [a.id for a in everything] == [future.id, linked.id, old.id]

    by_goal = await activity_service.list_activities(json_storage, {"goal_id": goal.id})
    assert [a.id for a in by_goal] == [linked.id]

    completed = await activity_service.list_activities(json_storage, {"status": "completed"})
    assert [a.id for a in completed] == [old.id]

    window = await activity_service.list_activities(
        json_storage,
        {
            "date_from": (today_utc() - timedelta(days=1)).isoformat(),
            "date_to": today_utc().isoformat(),
        },
    )
    assert [a.id for a in window] == [linked.id]


@pytest.mark.asyncio
async def test_list_activities_rejects_inverted_range(json_storage):
    with pytest.raises(ValidationError):
        await activity_service.list_activities(
            json_storage, {"date_from": "2026-02-01", "date_to": "2026-01-01"}
        )


@pytest.mark.asyncio
async def test_update_activity_recomputes_duration(json_storage, client, stakeholder):
    activity = await activity_service.create_activity(
        json_storage,
        _activity_payload(client.id, stakeholder.id, start_time="09:00", end_time="10:00"),
    )
    updated = await activity_service.update_activity(
        json_storage, activity.id, {"end_time": "11:00", "status": "completed", "outcome_notes": "Went well"}
    )
    assert updated.duration_minutes == 120
    assert updated.status == ActivityStatus.COMPLETED
    assert updated.outcome_notes == "Went well"


@pytest.mark.asyncio
async def test_update_activity_checks_goal_links(json_storage, client, stakeholder, goal):
    other = await client_service.create_client(
        json_storage, {"name": "Second Client", "date_of_birth": "1992-02-02"}
    )
    activity = await activity_service.create_activity(
        json_storage, _activity_payload(other.id, stakeholder.id)
    )
    with pytest.raises(ConflictError):
        await activity_service.update_activity(json_storage, activity.id, {"goal_ids": [goal.id]})


@pytest.mark.asyncio
async def test_activities_by_date_range_ascending(json_storage, client, stakeholder):
    later = await activity_service.create_activity(json_storage, _activity_payload(client.id, stakeholder.id, days=5))
    earlier = await activity_service.create_activity(json_storage, _activity_payload(client.id, stakeholder.id, days=1))
    await activity_service.create_activity(json_storage, _activity_payload(client.id, stakeholder.id, days=30))

    results = await activity_service.get_activities_by_date_range(
        json_storage,
        {
            "start_date": today_utc().isoformat(),
            "end_date": (today_utc() + timedelta(days=7)).isoformat(),
        },
    )
    assert [a.id for a in results] == [earlier.id, later.id]


@pytest.mark.asyncio
async def test_upcoming_activities_only_scheduled(json_storage, client, stakeholder):
    soon = await activity_service.create_activity(json_storage, _activity_payload(client.id, stakeholder.id, days=3))
    today = await activity_service.create_activity(json_storage, _activity_payload(client.id, stakeholder.id))
    await activity_service.create_activity(
        json_storage, _activity_payload(client.id, stakeholder.id, days=1, status="cancelled")
    )
    await activity_service.create_activity(json_storage, _activity_payload(client.id, stakeholder.id, days=8))
    await activity_service.create_activity(json_storage, _activity_payload(client.id, stakeholder.id, days=-1))

    upcoming = await activity_service.get_upcoming_activities(json_storage)
    assert [a.id for a in upcoming] == [today.id, soon.id]

    assert len(await activity_service.get_upcoming_activities(json_storage, days=8)) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("days", [-1, 366, "7", True])
async def test_upcoming_activities_rejects_bad_days(json_storage, days):
    with pytest.raises(ValidationError) as exc_info:
        await activity_service.get_upcoming_activities(json_storage, days=days)
    assert exc_info.value.field == "days"


@pytest.mark.asyncio
async def test_goal_archive_keeps_activity_links(json_storage, client, stakeholder, goal):
    activity = await activity_service.create_activity(
        json_storage, _activity_payload(client.id, stakeholder.id, goal_ids=[goal.id])
    )
    await goal_service.archive_goal(json_storage, goal.id)
    stored = await activity_service.get_activity(json_storage, activity.id)
    assert stored.goal_ids == [goal.id]
