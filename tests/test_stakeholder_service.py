"""Tests for the stakeholder service."""
import pytest

from caretrack.core.errors import ConflictError, ValidationError
from caretrack.db.enums import StakeholderRole
from caretrack.services import activity_service, stakeholder_service
from caretrack.utils.dates import today_utc


@pytest.mark.asyncio
async def test_create_stakeholder_normalizes_email(json_storage):
    stakeholder = await stakeholder_service.create_stakeholder(
        json_storage,
        {"name": "Dr  Priya Nair", "role": "healthcare_provider", "email": "Priya.Nair@Clinic.ORG"},
    )
    assert stakeholder.name == "Dr Priya Nair"
    assert stakeholder.email == "priya.nair@clinic.org"
    assert stakeholder.active is True


@pytest.mark.asyncio
async def test_blank_stakeholder_name_is_rejected_on_create_and_update(json_storage, stakeholder):
    with pytest.raises(ValidationError) as exc_info:
        await stakeholder_service.create_stakeholder(json_storage, {"name": "   ", "role": "family"})
    assert exc_info.value.field == "name"

    with pytest.raises(ValidationError) as exc_info:
        await stakeholder_service.update_stakeholder(json_storage, stakeholder.id, {"name": "  "})
    assert exc_info.value.field == "name"
    assert (await stakeholder_service.get_stakeholder(json_storage, stakeholder.id)).name == "Sam Carter"


@pytest.mark.asyncio
async def test_create_stakeholder_rejects_invalid_email(json_storage):
    with pytest.raises(ValidationError) as exc_info:
        await stakeholder_service.create_stakeholder(
            json_storage, {"name": "No Mail", "role": "family", "email": "not-an-email"}
        )
    assert exc_info.value.field == "email"
    assert "not-an-email" not in exc_info.value.message


@pytest.mark.asyncio
async def test_create_stakeholder_rejects_unknown_role(json_storage):
    with pytest.raises(ValidationError) as exc_info:
        await stakeholder_service.create_stakeholder(json_storage, {"name": "Chris", "role": "chef"})
    assert exc_info.value.field == "role"


@pytest.mark.asyncio
async def test_list_and_search_stakeholders(json_storage, stakeholder):
    await stakeholder_service.create_stakeholder(
        json_storage, {"name": "Alex Moss", "role": "support_coordinator", "organization": "Bright Futures"}
    )
    coordinators = await stakeholder_service.list_stakeholders(json_storage, {"role": "support_coordinator"})
    assert [s.name for s in coordinators] == ["Alex Moss"]

    by_org = await stakeholder_service.search_stakeholders(json_storage, {"search_term": "bright"})
    assert [s.name for s in by_org] == ["Alex Moss"]

    everyone = await stakeholder_service.list_stakeholders(json_storage)
    assert [s.name for s in everyone] == ["Alex Moss", "Sam Carter"]


@pytest.mark.asyncio
async def test_update_stakeholder(json_storage, stakeholder):
    updated = await stakeholder_service.update_stakeholder(
        json_storage, stakeholder.id, {"role": "team_leader", "email": "SAM@Example.org"}
    )
    assert updated.role == StakeholderRole.TEAM_LEADER
    assert updated.email == "sam@example.org"


@pytest.mark.asyncio
async def test_get_stakeholder_totals(json_storage, client, stakeholder):
    await activity_service.create_activity(
        json_storage,
        {
            "client_id": client.id,
            "stakeholder_id": stakeholder.id,
            "title": "Shopping trip",
            "activity_type": "community_access",
            "activity_date": today_utc().isoformat(),
        },
    )
    detail = await stakeholder_service.get_stakeholder(json_storage, stakeholder.id)
    assert detail.total_activities == 1
    assert detail.total_shift_notes == 0
    assert detail.last_activity_date == today_utc()


@pytest.mark.asyncio
async def test_deactivated_stakeholder_cannot_take_new_activities(json_storage, client, stakeholder):
    deactivated = await stakeholder_service.deactivate_stakeholder(json_storage, stakeholder.id)
    assert deactivated.active is False
    again = await stakeholder_service.deactivate_stakeholder(json_storage, stakeholder.id)
    assert again.updated_at == deactivated.updated_at

    with pytest.raises(ConflictError) as exc_info:
        await activity_service.create_activity(
            json_storage,
            {
                "client_id": client.id,
                "stakeholder_id": stakeholder.id,
                "title": "Bowling",
                "activity_type": "social_recreation",
                "activity_date": today_utc().isoformat(),
            },
        )
    assert exc_info.value.code == "STAKEHOLDER_INACTIVE"
