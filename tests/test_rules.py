"""Tests for business rules (pure functions, no storage)."""
import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from caretrack.core import rules
from caretrack.core.errors import AuthorizationError, ValidationError
from caretrack.db.enums import GoalCategory, GoalStatus
from caretrack.db.models import Goal, ShiftNote

TODAY = date(2026, 3, 10)


def _goal(**overrides) -> Goal:
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    fields = {
        "id": str(uuid.uuid4()),
        "client_id": str(uuid.uuid4()),
        "title": "Catch the bus",
        "description": "Travel independently to day program",
        "category": GoalCategory.SOCIAL_COMMUNITY,
        "target_date": TODAY + timedelta(days=7),
        "status": GoalStatus.IN_PROGRESS,
        "progress_percentage": 30,
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return Goal(**fields)


# =============================================================================
# At-risk detection
# =============================================================================

def test_goal_under_threshold_due_soon_is_at_risk():
    assert rules.is_goal_at_risk(_goal(progress_percentage=49), TODAY) is True


def test_goal_at_threshold_is_not_at_risk():
    assert rules.is_goal_at_risk(_goal(progress_percentage=50), TODAY) is False


def test_overdue_goal_is_not_at_risk():
    goal = _goal(target_date=TODAY - timedelta(days=1))
    assert rules.is_goal_at_risk(goal, TODAY) is False


@pytest.mark.parametrize("days,expected", [(0, True), (14, True), (15, False)])
def test_at_risk_window_bounds(days, expected):
    goal = _goal(target_date=TODAY + timedelta(days=days))
    assert rules.is_goal_at_risk(goal, TODAY) is expected


@pytest.mark.parametrize(
    "status,progress",
    [
        (GoalStatus.ACHIEVED, 100),
        (GoalStatus.DISCONTINUED, 10),
    ],
)
def test_closed_goals_are_never_at_risk(status, progress):
    goal = _goal(status=status, progress_percentage=progress)
    assert rules.is_goal_at_risk(goal, TODAY) is False


def test_on_hold_goal_can_be_at_risk():
    goal = _goal(status=GoalStatus.ON_HOLD, progress_percentage=20)
    assert rules.is_goal_at_risk(goal, TODAY) is True


# =============================================================================
# Status / progress
# =============================================================================

@pytest.mark.parametrize(
    "progress,expected",
    [(0, GoalStatus.NOT_STARTED), (1, GoalStatus.IN_PROGRESS), (99, GoalStatus.IN_PROGRESS), (100, GoalStatus.ACHIEVED)],
)
def test_suggest_goal_status(progress, expected):
    assert rules.suggest_goal_status(progress) == expected


@pytest.mark.parametrize(
    "status,progress,field",
    [
        (GoalStatus.ACHIEVED, 90, "progress_percentage"),
        (GoalStatus.IN_PROGRESS, 100, "status"),
        (GoalStatus.NOT_STARTED, 10, "progress_percentage"),
    ],
)
def test_misaligned_status_and_progress_rejected(status, progress, field):
    with pytest.raises(ValidationError) as exc_info:
        rules.check_progress_alignment(status, progress)
    assert exc_info.value.code == "INVALID_PROGRESS_STATUS_ALIGNMENT"
    assert exc_info.value.field == field


@pytest.mark.parametrize(
    "status,progress",
    [
        (GoalStatus.ACHIEVED, 100),
        (GoalStatus.NOT_STARTED, 0),
        (GoalStatus.ON_HOLD, 40),
        (GoalStatus.IN_PROGRESS, 0),
    ],
)
def test_aligned_status_and_progress_accepted(status, progress):
    rules.check_progress_alignment(status, progress)


# =============================================================================
# Shift times and activity duration
# =============================================================================

def test_shift_times_return_minutes():
    assert rules.check_shift_times("09:00", "17:30") == 510


def test_twelve_hour_shift_allowed():
    assert rules.check_shift_times("06:00", "18:00") == 720


@pytest.mark.parametrize("start,end", [("17:00", "09:00"), ("09:00", "09:00"), ("06:00", "18:01")])
def test_invalid_shift_times_rejected(start, end):
    with pytest.raises(ValidationError) as exc_info:
        rules.check_shift_times(start, end)
    assert exc_info.value.code == "INVALID_SHIFT_TIMES"
    assert exc_info.value.field == "times"


def test_duration_derived_from_times():
    assert rules.resolve_activity_duration("10:00", "11:30", None) == 90


def test_duration_within_tolerance_kept():
    assert rules.resolve_activity_duration("10:00", "11:00", 65) == 65


def test_duration_outside_tolerance_rejected():
    with pytest.raises(ValidationError) as exc_info:
        rules.resolve_activity_duration("10:00", "11:00", 66)
    assert exc_info.value.code == "INVALID_DURATION"
    assert exc_info.value.field == "duration_minutes"


def test_duration_without_times_passes_through():
    assert rules.resolve_activity_duration("10:00", None, 45) == 45
    assert rules.resolve_activity_duration(None, None, None) is None


def test_activity_end_before_start_rejected():
    with pytest.raises(ValidationError) as exc_info:
        rules.resolve_activity_duration("11:00", "10:00", None)
    assert exc_info.value.code == "INVALID_DURATION"


# =============================================================================
# Edit window
# =============================================================================

def _note(shift_date: date) -> ShiftNote:
    now = datetime(2026, 3, 10, tzinfo=timezone.utc)
    return ShiftNote(
        id=str(uuid.uuid4()),
        client_id=str(uuid.uuid4()),
        stakeholder_id=str(uuid.uuid4()),
        shift_date=shift_date,
        start_time="09:00",
        end_time="17:00",
        general_observations="Settled day",
        created_at=now,
        updated_at=now,
    )


def test_shift_note_editable_just_inside_window():
    start = datetime(2026, 3, 10, tzinfo=timezone.utc)
    assert rules.can_edit_shift_note(TODAY, start + timedelta(hours=23, minutes=59)) is True


def test_shift_note_locked_just_outside_window():
    start = datetime(2026, 3, 10, tzinfo=timezone.utc)
    assert rules.can_edit_shift_note(TODAY, start + timedelta(hours=24, minutes=1)) is False


def test_shift_note_locked_exactly_at_deadline():
    assert rules.can_edit_shift_note(TODAY, rules.shift_note_edit_deadline(TODAY)) is False


def test_ensure_editable_raises_authorization_error():
    note = _note(TODAY)
    later = datetime(2026, 3, 12, tzinfo=timezone.utc)
    with pytest.raises(AuthorizationError) as exc_info:
        rules.ensure_shift_note_editable(note, later)
    assert exc_info.value.code == "EDIT_WINDOW_EXPIRED"
    assert exc_info.value.context == {"shift_note_id": note.id}


# =============================================================================
# Calendar windows
# =============================================================================

def test_date_of_birth_must_be_in_past():
    rules.check_date_in_past(TODAY - timedelta(days=1), "date_of_birth", TODAY)
    with pytest.raises(ValidationError) as exc_info:
        rules.check_date_in_past(TODAY, "date_of_birth", TODAY)
    assert exc_info.value.code == "INVALID_DATE"
    assert exc_info.value.field == "date_of_birth"


def test_target_date_may_be_today():
    rules.check_not_before_today(TODAY, "target_date", TODAY)
    with pytest.raises(ValidationError):
        rules.check_not_before_today(TODAY - timedelta(days=1), "target_date", TODAY)


def test_backdate_limit():
    rules.check_not_too_old(TODAY - timedelta(days=90), 90, "activity_date", TODAY)
    with pytest.raises(ValidationError) as exc_info:
        rules.check_not_too_old(TODAY - timedelta(days=91), 90, "activity_date", TODAY)
    assert exc_info.value.code == "DATE_TOO_OLD"
