"""
Report aggregate: builds daily and weekly reports from validated input,
merges the end-of-day extension, and computes the derived metrics.

Derived metrics are recomputed on read and never stored.
"""
from datetime import datetime
from typing import AbstractSet, Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from questlog.core.errors import (
    DependencyError,
    InconsistentRecordError,
    InputValidationError,
    AlreadyCompletedError,
)
from questlog.models.report import DailyReport, WeeklyReport
from questlog.schemas.report import (
    DailyReportCreate,
    EndOfDayUpdate,
    WeeklyReportCreate,
    WeeklyReportUpdate,
)
from questlog.services.eligibility import (
    DEFAULT_WEEKLY_WINDOW,
    can_create_daily,
    can_create_weekly,
    iso_week,
)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def validate_payload(schema: Type[SchemaT], data: Union[SchemaT, Mapping[str, Any]]) -> SchemaT:
    """Parse ``data`` with ``schema``; field errors become an InputValidationError."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        errors: Dict[str, str] = {}
        for err in exc.errors():
            path = ".".join(str(p) for p in err["loc"]) or "general"
            errors.setdefault(path, err["msg"])
        raise InputValidationError("Validation failed", errors=errors) from exc


def _activities(items) -> List[Dict[str, Any]]:
    return [{"category": a.category, "duration": a.duration} for a in items]


# ---------- Daily report ----------

def create_daily(data, owner_id: int, now: datetime,
                 existing: Optional[DailyReport] = None) -> DailyReport:
    decision = can_create_daily(now, existing)
    if not decision.allowed:
        raise decision.error()

    payload = validate_payload(DailyReportCreate, data)

    return DailyReport(
        user_id=owner_id,
        day=now.date(),
        wakeup_time=payload.wakeup_time,
        mood_start=payload.mood_start,
        morning_routine=payload.morning_routine,
        daily_goals=[
            {"id": f"g{i}", "description": goal.description}
            for i, goal in enumerate(payload.daily_goals, start=1)
        ],
        expected_activity=_activities(payload.expected_activity),
        created_at=now,
    )


def end_of_day_state(report: DailyReport) -> bool:
    """
    True when the end-of-day fields are filled, False when none are.
    Anything in between is a corrupt record.
    """
    goals = report.daily_goals or []
    present = [
        report.mood_end is not None,
        report.actual_activity is not None,
        bool(goals) and all("completed" in g for g in goals),
    ]
    if all(present):
        return True
    if not any(present):
        return False
    raise InconsistentRecordError(f"Daily report {report.id} has a partial end-of-day state")


def _match_goals(original: List[Dict[str, Any]], submitted) -> List[Any]:
    """Pair each original goal with its end-of-day entry, by id or by position."""
    with_id = [g for g in submitted if g.id is not None]
    if with_id and len(with_id) != len(submitted):
        raise InputValidationError(
            "Goals must either all carry an id or none of them",
            errors={"daily_goals": "Mixed goal identifiers"},
        )

    if not with_id:
        if len(submitted) != len(original):
            raise InputValidationError(
                "End-of-day goals must match the morning goals",
                errors={"daily_goals": f"Expected {len(original)} goals, got {len(submitted)}"},
            )
        return list(submitted)

    by_id = {}
    for entry in submitted:
        if entry.id in by_id:
            raise InputValidationError(
                "Duplicate goal id", errors={"daily_goals": f"Goal {entry.id} sent twice"}
            )
        by_id[entry.id] = entry
    known = {g["id"] for g in original}
    unknown = sorted(set(by_id) - known)
    missing = sorted(known - set(by_id))
    if unknown or missing:
        errors = {}
        if unknown:
            errors["daily_goals"] = f"Unknown goal ids: {', '.join(unknown)}"
        else:
            errors["daily_goals"] = f"Missing goal ids: {', '.join(missing)}"
        raise InputValidationError("End-of-day goals must match the morning goals", errors=errors)
    return [by_id[g["id"]] for g in original]


def apply_end_of_day(existing: Optional[DailyReport], data, now: datetime) -> DailyReport:
    if existing is None:
        raise DependencyError("Submit today's daily report before the end-of-day report.")
    if end_of_day_state(existing):
        raise AlreadyCompletedError("Today's end-of-day report is already completed.")

    payload = validate_payload(EndOfDayUpdate, data)
    original = existing.daily_goals or []
    matched = _match_goals(original, payload.daily_goals)

    # New list objects so the JSON columns are flagged dirty.
    existing.daily_goals = [
        {
            "id": goal["id"],
            "description": goal["description"],
            "completed": entry.completed,
            "completion_time": entry.completion_time if entry.completed else None,
        }
        for goal, entry in zip(original, matched)
    ]
    existing.mood_end = payload.mood_end
    existing.actual_activity = _activities(payload.actual_activity)
    existing.insights = payload.insights
    existing.morning_routine_completed = payload.morning_routine_completed
    existing.end_of_day_at = now
    existing.updated_at = now
    return existing


# ---------- Weekly report ----------

_STATUS_FIELDS = {
    "maintain_weekly_routine": ("routine_maintained", "routine_details"),
    "free_time": ("free_time", "free_time_details"),
    "learning_goal_achievement": ("learning_goal_achieved", "learning_goal_details"),
    "mentor_interaction": ("mentor_interaction", "mentor_interaction_details"),
    "support_interaction": ("support_interaction", "support_interaction_details"),
}

_TEXT_FIELDS = (
    "mood_rating",
    "mood_explanation",
    "significant_event",
    "new_interesting_learning",
    "product_progress",
    "course_chapter",
    "additional_support",
    "open_questions",
)


def _weekly_columns(payload: BaseModel, fields_set=None) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for name in _TEXT_FIELDS:
        if fields_set is None or name in fields_set:
            values[name] = getattr(payload, name)
    for name, (flag, details) in _STATUS_FIELDS.items():
        item = getattr(payload, name)
        if item is not None:
            values[flag] = item.status
            values[details] = item.details
    if payload.achieved_goals is not None:
        values["achieved_goals"] = list(payload.achieved_goals.goals)
        values["goals_shared"] = payload.achieved_goals.shared
    return values


def create_weekly(data, owner_id: int, now: datetime,
                  existing: Optional[WeeklyReport] = None,
                  window: AbstractSet[int] = DEFAULT_WEEKLY_WINDOW) -> WeeklyReport:
    decision = can_create_weekly(now, existing, window=window)
    if not decision.allowed:
        raise decision.error()

    payload = validate_payload(WeeklyReportCreate, data)

    year, week = iso_week(now.date())
    return WeeklyReport(
        user_id=owner_id,
        iso_year=year,
        iso_week=week,
        created_at=now,
        **_weekly_columns(payload),
    )


def update_weekly(existing: WeeklyReport, data, now: datetime) -> WeeklyReport:
    payload = validate_payload(WeeklyReportUpdate, data)
    changes = _weekly_columns(payload, fields_set=payload.model_fields_set)
    for required in ("mood_rating", "mood_explanation"):
        if required in changes and changes[required] is None:
            raise InputValidationError(
                "Validation failed", errors={required: "Field cannot be cleared"}
            )
    for column, value in changes.items():
        setattr(existing, column, value)
    existing.updated_at = now
    return existing


# ---------- Derived metrics ----------

def completion_rate(report: DailyReport) -> float:
    goals = report.daily_goals or []
    if not goals:
        return 0.0
    completed = sum(1 for g in goals if g.get("completed"))
    return round(completed / len(goals) * 100, 2)


def mood_delta(report: DailyReport) -> Optional[int]:
    if report.mood_end is None or report.mood_start is None:
        return None
    return report.mood_end - report.mood_start


def mood_trend(delta: Optional[int]) -> Optional[str]:
    if delta is None:
        return None
    if delta > 0:
        return "Improved"
    if delta < 0:
        return "Declined"
    return "Stable"


def time_variance(report: DailyReport) -> Optional[int]:
    """Actual minus expected minutes; positive means over-spent."""
    if report.actual_activity is None:
        return None
    actual = sum(a["duration"] for a in report.actual_activity)
    expected = sum(a["duration"] for a in report.expected_activity or [])
    return actual - expected


def report_metrics(report: DailyReport) -> Dict[str, Any]:
    delta = mood_delta(report)
    return {
        "completion_rate": completion_rate(report),
        "mood_delta": delta,
        "mood_trend": mood_trend(delta),
        "time_variance": time_variance(report),
    }
