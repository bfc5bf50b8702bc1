"""
Dashboard statistics over report and quest records.

Each figure is computed on its own; efficiency, streak and completion are
independent estimates and are never reconciled against each other.
"""
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from questlog.models.report import DailyReport
from questlog.models.task import QuestTask
from questlog.services.eligibility import iso_week
from questlog.services.quests import TaskStatus
from questlog.services.reports import completion_rate, mood_delta

DEFAULT_STRUGGLING_THRESHOLD = 0.5
DEFAULT_PLANNED_HOURS = 25.0


@dataclass
class TaskBreakdown:
    todo: int = 0
    in_progress: int = 0
    completed: int = 0
    total: int = 0
    progress_percentage: float = 0.0
    stars_earned: int = 0


@dataclass
class WeeklyRollup:
    iso_year: int
    iso_week: int
    study_minutes: int
    actual_hours: float
    planned_hours: float
    efficiency: float
    current_streak: int
    tasks_completed: int
    completion_rate: float
    stars_earned: int


@dataclass
class MonthlyRollup:
    month: int
    year: int
    study_minutes: int
    tasks_completed: int
    report_consistency: float
    completion_rate: float
    average_mood_delta: Optional[float]
    mood_distribution: Dict[int, int] = field(default_factory=dict)
    weekly_progress: List[float] = field(default_factory=list)
    stars_earned: int = 0


def _active(tasks: Iterable[QuestTask]) -> List[QuestTask]:
    return [t for t in tasks if t.revoked_at is None]


def _stars(task: QuestTask) -> int:
    return task.task.stars_earned if task.task is not None and task.task.stars_earned else 0


def task_breakdown(tasks: Iterable[QuestTask]) -> TaskBreakdown:
    breakdown = TaskBreakdown()
    for task in _active(tasks):
        status = TaskStatus(task.status)
        if status is TaskStatus.COMPLETED:
            breakdown.completed += 1
            breakdown.stars_earned += _stars(task)
        elif status is TaskStatus.IN_PROGRESS:
            breakdown.in_progress += 1
        else:
            breakdown.todo += 1
        breakdown.total += 1
    if breakdown.total:
        breakdown.progress_percentage = round(breakdown.completed / breakdown.total * 100, 2)
    return breakdown


def is_struggling(tasks: Iterable[QuestTask],
                  threshold: float = DEFAULT_STRUGGLING_THRESHOLD) -> bool:
    """An empty quest is not failure."""
    breakdown = task_breakdown(tasks)
    if breakdown.total == 0:
        return False
    return breakdown.completed / breakdown.total < threshold


def matches_oversight_filter(tasks: Sequence[QuestTask], status_filter: str,
                             threshold: float = DEFAULT_STRUGGLING_THRESHOLD) -> bool:
    breakdown = task_breakdown(tasks)
    if status_filter == "completed":
        return breakdown.total > 0 and breakdown.completed == breakdown.total
    if status_filter == "active":
        return breakdown.in_progress > 0
    if status_filter == "struggling":
        return is_struggling(tasks, threshold)
    return True


def _study_minutes(report: DailyReport) -> int:
    return sum(a["duration"] for a in report.actual_activity or [])


def current_streak(reports: Iterable[DailyReport], today: date) -> int:
    """
    Consecutive days with a daily report, walking back from today.
    Today without a report is still pending and does not break the streak.
    """
    days = {r.day for r in reports}
    cursor = today if today in days else today - timedelta(days=1)
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def _completed_between(tasks: Iterable[QuestTask], start: date, end: date) -> List[QuestTask]:
    done = []
    for task in _active(tasks):
        if task.status != TaskStatus.COMPLETED.value or task.completed_at is None:
            continue
        if start <= task.completed_at.date() <= end:
            done.append(task)
    return done


def _average(values: Sequence[float]) -> float:
    return round(sum(values) / len(values), 2) if values else 0.0


def weekly_dashboard_rollup(daily_reports: Iterable[DailyReport], tasks: Iterable[QuestTask],
                            today: date, planned_hours: float = DEFAULT_PLANNED_HOURS) -> WeeklyRollup:
    reports = list(daily_reports)
    tasks = list(tasks)
    week = iso_week(today)
    week_start = today - timedelta(days=today.weekday())
    this_week = [r for r in reports if iso_week(r.day) == week]

    minutes = sum(_study_minutes(r) for r in this_week)
    actual_hours = round(minutes / 60, 2)
    efficiency = round(actual_hours / planned_hours * 100, 2) if planned_hours > 0 else 0.0
    completed = _completed_between(tasks, week_start, week_start + timedelta(days=6))

    return WeeklyRollup(
        iso_year=week[0],
        iso_week=week[1],
        study_minutes=minutes,
        actual_hours=actual_hours,
        planned_hours=planned_hours,
        efficiency=efficiency,
        current_streak=current_streak(reports, today),
        tasks_completed=len(completed),
        completion_rate=_average([completion_rate(r) for r in this_week]),
        stars_earned=sum(_stars(t) for t in completed),
    )


def report_consistency(reports: Iterable[DailyReport], month: int, year: int) -> float:
    """% of days in the month with a daily report (max 100%)."""
    total_days = monthrange(year, month)[1]
    submitted = {r.day for r in reports if r.day.month == month and r.day.year == year}
    return round(min(len(submitted) / total_days * 100, 100.0), 2)


def monthly_dashboard_rollup(daily_reports: Iterable[DailyReport], tasks: Iterable[QuestTask],
                             month: int, year: int) -> MonthlyRollup:
    reports = [r for r in daily_reports if r.day.month == month and r.day.year == year]
    start = date(year, month, 1)
    end = date(year, month, monthrange(year, month)[1])
    completed = _completed_between(tasks, start, end)

    # Study hours per ISO week touching the month, in calendar order
    weeks: Dict[tuple, int] = {}
    cursor = start
    while cursor <= end:
        weeks.setdefault(iso_week(cursor), 0)
        cursor += timedelta(days=1)
    for r in reports:
        weeks[iso_week(r.day)] += _study_minutes(r)

    deltas = [d for d in (mood_delta(r) for r in reports) if d is not None]
    distribution: Dict[int, int] = {}
    for r in reports:
        distribution[r.mood_start] = distribution.get(r.mood_start, 0) + 1

    return MonthlyRollup(
        month=month,
        year=year,
        study_minutes=sum(weeks.values()),
        tasks_completed=len(completed),
        report_consistency=report_consistency(reports, month, year),
        completion_rate=_average([completion_rate(r) for r in reports]),
        average_mood_delta=_average(deltas) if deltas else None,
        mood_distribution=dict(sorted(distribution.items())),
        weekly_progress=[round(m / 60, 2) for m in weeks.values()],
        stars_earned=sum(_stars(t) for t in completed),
    )


def report_history(daily_reports: Iterable[DailyReport], month: int, year: int,
                   today: date) -> List[dict]:
    """
    Day-by-day timeline from the first ever report (or the month start) up to
    min(month end, today): submitted, missed (past) or pending (today).
    """
    reports = list(daily_reports)
    if not reports:
        return []
    first_date = min(r.day for r in reports)
    start_of_month = date(year, month, 1)
    end_of_month = date(year, month, monthrange(year, month)[1])
    report_start = max(first_date, start_of_month)
    report_end = min(end_of_month, today)
    if report_start > report_end:
        return []

    report_map = {r.day: r for r in reports}
    timeline = []
    current = report_start
    while current <= report_end:
        rep = report_map.get(current)
        if rep is not None:
            timeline.append({
                "date": current,
                "status": "submitted",
                "report_id": rep.id,
                "end_of_day": rep.mood_end is not None,
                "completion_rate": completion_rate(rep),
            })
        else:
            timeline.append({
                "date": current,
                "status": "missed" if current < today else "pending",
            })
        current += timedelta(days=1)
    return timeline
