"""
Business rules over already-loaded records.

Pure and synchronous: no storage access, and "now"/"today" can be passed in
explicitly. Predicates return booleans; ``check_*`` / ``ensure_*`` helpers
raise a typed error when the rule is violated.
"""

from datetime import date, datetime, timedelta

from caretrack.core.errors import AuthorizationError, ValidationError
from caretrack.db.enums import CLOSED_GOAL_STATUSES, GoalStatus
from caretrack.db.models import Goal, ShiftNote
from caretrack.utils.dates import day_start, days_until, time_range_minutes, today_utc, utcnow

AT_RISK_PROGRESS_THRESHOLD = 50
AT_RISK_WINDOW_DAYS = 14
MAX_SHIFT_MINUTES = 12 * 60
SHIFT_NOTE_EDIT_WINDOW = timedelta(hours=24)
DURATION_TOLERANCE_MINUTES = 5
DEFAULT_MAX_BACKDATE_DAYS = 90


# =============================================================================
# Goals
# =============================================================================

def is_goal_at_risk(goal: Goal, today: date | None = None) -> bool:
    """
    A goal is at risk when it is still open, under 50% and due within 14 days.

    Goals already past their target date are overdue, not at risk.
    """
    if goal.status in CLOSED_GOAL_STATUSES:
        return False
    if goal.progress_percentage >= AT_RISK_PROGRESS_THRESHOLD:
        return False
    remaining = days_until(goal.target_date, today)
    return 0 <= remaining <= AT_RISK_WINDOW_DAYS


def suggest_goal_status(progress_percentage: int) -> GoalStatus:
    """Status implied by a progress value when the caller gives none."""
    if progress_percentage <= 0:
        return GoalStatus.NOT_STARTED
    if progress_percentage >= 100:
        return GoalStatus.ACHIEVED
    return GoalStatus.IN_PROGRESS


def check_progress_alignment(status: GoalStatus, progress_percentage: int) -> None:
    """
    Reject status/progress combinations that contradict each other.

    Raises:
        ValidationError: achieved without 100%, 100% without achieved,
            or not_started with any progress.
    """
    if status == GoalStatus.ACHIEVED and progress_percentage != 100:
        raise ValidationError(
            "Achieved goals must have 100% progress",
            "INVALID_PROGRESS_STATUS_ALIGNMENT",
            field="progress_percentage",
        )
    if progress_percentage == 100 and status != GoalStatus.ACHIEVED:
        raise ValidationError(
            "Goals with 100% progress must be marked achieved",
            "INVALID_PROGRESS_STATUS_ALIGNMENT",
            field="status",
        )
    if status == GoalStatus.NOT_STARTED and progress_percentage > 0:
        raise ValidationError(
            "Not started goals cannot have progress > 0%",
            "INVALID_PROGRESS_STATUS_ALIGNMENT",
            field="progress_percentage",
        )


# =============================================================================
# Times and durations
# =============================================================================

def check_shift_times(start_time: str, end_time: str) -> int:
    """
    Validate a same-day shift and return its length in minutes.

    Raises:
        ValidationError: End not after start, or longer than 12 hours.
    """
    minutes = time_range_minutes(start_time, end_time)
    if minutes <= 0:
        raise ValidationError("End time must be after start time", "INVALID_SHIFT_TIMES", field="times")
    if minutes > MAX_SHIFT_MINUTES:
        raise ValidationError("Shift duration cannot exceed 12 hours", "INVALID_SHIFT_TIMES", field="times")
    return minutes


def resolve_activity_duration(
    start_time: str | None,
    end_time: str | None,
    duration_minutes: int | None,
) -> int | None:
    """
    Cross-check an activity's duration against its time range.

    With both times present the duration is derived when omitted, or must lie
    within 5 minutes of the range when given. Without both times the supplied
    duration (possibly None) is returned unchanged.
    """
    if start_time is None or end_time is None:
        return duration_minutes
    span = time_range_minutes(start_time, end_time)
    if span <= 0:
        raise ValidationError("End time must be after start time", "INVALID_DURATION", field="end_time")
    if duration_minutes is None:
        return span
    if abs(span - duration_minutes) > DURATION_TOLERANCE_MINUTES:
        raise ValidationError(
            f"Duration ({duration_minutes} minutes) does not match time range ({span} minutes)",
            "INVALID_DURATION",
            field="duration_minutes",
        )
    return duration_minutes


# =============================================================================
# Edit window
# =============================================================================

def shift_note_edit_deadline(shift_date: date) -> datetime:
    return day_start(shift_date) + SHIFT_NOTE_EDIT_WINDOW


def can_edit_shift_note(shift_date: date, now: datetime | None = None) -> bool:
    now = now or utcnow()
    return now < shift_note_edit_deadline(shift_date)


def ensure_shift_note_editable(note: ShiftNote, now: datetime | None = None) -> None:
    if not can_edit_shift_note(note.shift_date, now):
        raise AuthorizationError(
            "Shift notes can only be edited within 24 hours of the shift date",
            "EDIT_WINDOW_EXPIRED",
            context={"shift_note_id": note.id},
        )


# =============================================================================
# Calendar windows
# =============================================================================

def check_date_in_past(value: date, field: str, today: date | None = None) -> None:
    """Strictly before today (dates of birth)."""
    today = today or today_utc()
    if value >= today:
        raise ValidationError("Date must be in the past", "INVALID_DATE", field=field)


def check_not_before_today(value: date, field: str, today: date | None = None) -> None:
    """Today or later (goal target dates at creation)."""
    today = today or today_utc()
    if value < today:
        raise ValidationError("Date cannot be in the past", "INVALID_DATE", field=field)


def check_not_too_old(value: date, max_days_in_past: int, field: str, today: date | None = None) -> None:
    """No more than ``max_days_in_past`` days before today."""
    today = today or today_utc()
    if (today - value).days > max_days_in_past:
        raise ValidationError(
            f"Date cannot be more than {max_days_in_past} days in the past",
            "DATE_TOO_OLD",
            field=field,
        )
