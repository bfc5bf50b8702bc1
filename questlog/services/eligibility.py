"""
When may a report be created?

Pure decisions over ``(now, existing record)``. Nothing here reads the
system clock; ``now`` is always supplied by the caller.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import AbstractSet, Optional, Tuple

from questlog.core.errors import (
    AlreadyCompletedError,
    AlreadySubmittedError,
    DependencyError,
    LifecycleError,
    OutsideWindowError,
)
from questlog.models.report import DailyReport, WeeklyReport

WEDNESDAY = 2
THURSDAY = 3
DEFAULT_WEEKLY_WINDOW = frozenset({WEDNESDAY, THURSDAY})

_DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class BlockReason(str, Enum):
    ALREADY_SUBMITTED_TODAY = "already-submitted-today"
    DAILY_REPORT_REQUIRED = "daily-report-required"
    ALREADY_COMPLETED = "already-completed"
    ALREADY_SUBMITTED_THIS_WEEK = "already-submitted-this-week"
    OUTSIDE_WINDOW = "outside-window"


_MESSAGES = {
    BlockReason.ALREADY_SUBMITTED_TODAY: "You have already submitted a daily report today.",
    BlockReason.DAILY_REPORT_REQUIRED: "Submit today's daily report before the end-of-day report.",
    BlockReason.ALREADY_COMPLETED: "Today's end-of-day report is already completed.",
    BlockReason.ALREADY_SUBMITTED_THIS_WEEK: "Weekly report already submitted for this week.",
}


@dataclass(frozen=True)
class Eligibility:
    allowed: bool
    reason: Optional[BlockReason] = None
    # Weekly only: the first day a weekly report can be created.
    next_eligible: Optional[date] = None
    window: AbstractSet[int] = DEFAULT_WEEKLY_WINDOW

    @property
    def message(self) -> str:
        if self.allowed:
            return "You can submit your report."
        if self.reason is BlockReason.OUTSIDE_WINDOW:
            days = " or ".join(_DAY_NAMES[d] for d in sorted(self.window))
            return f"Weekly reports can only be submitted on {days}."
        return _MESSAGES[self.reason]

    def error(self) -> LifecycleError:
        """The typed error equivalent of a blocked decision."""
        if self.allowed:
            raise ValueError("An allowed decision has no error")
        return blocked_error(self.reason, self.message, self.next_eligible)


def blocked_error(reason: BlockReason, message: str,
                  next_eligible: Optional[date] = None) -> LifecycleError:
    if reason is BlockReason.DAILY_REPORT_REQUIRED:
        return DependencyError(message)
    if reason is BlockReason.ALREADY_COMPLETED:
        return AlreadyCompletedError(message)
    if reason is BlockReason.OUTSIDE_WINDOW:
        return OutsideWindowError(message, next_eligible=next_eligible)
    return AlreadySubmittedError(message)


ALLOWED = Eligibility(allowed=True)


def iso_week(day: date) -> Tuple[int, int]:
    """(ISO year, ISO week number); Dec 31 may belong to week 1 of the next year."""
    year, week, _ = day.isocalendar()
    return year, week


def has_end_of_day(report: DailyReport) -> bool:
    return report.mood_end is not None


def _is_for_day(report: Optional[DailyReport], day: date) -> bool:
    return report is not None and report.day == day


def _is_for_week(report: Optional[WeeklyReport], week: Tuple[int, int]) -> bool:
    return report is not None and (report.iso_year, report.iso_week) == week


def can_create_daily(now: datetime, todays_report: Optional[DailyReport]) -> Eligibility:
    if _is_for_day(todays_report, now.date()):
        return Eligibility(allowed=False, reason=BlockReason.ALREADY_SUBMITTED_TODAY)
    return ALLOWED


def can_create_end_of_day(now: datetime, todays_report: Optional[DailyReport]) -> Eligibility:
    if not _is_for_day(todays_report, now.date()):
        return Eligibility(allowed=False, reason=BlockReason.DAILY_REPORT_REQUIRED)
    if has_end_of_day(todays_report):
        return Eligibility(allowed=False, reason=BlockReason.ALREADY_COMPLETED)
    return ALLOWED


def next_weekly_window(today: date, submitted_this_week: bool = False,
                       window: AbstractSet[int] = DEFAULT_WEEKLY_WINDOW) -> date:
    """
    First day on or after ``today`` inside the window, skipping the current
    ISO week when its report already exists.
    """
    first, last = min(window), max(window)
    weekday = today.weekday()
    if not submitted_this_week:
        if weekday < first:
            return today + timedelta(days=first - weekday)
        if weekday in window:
            return today
        if weekday < last:
            return today + timedelta(days=min(d for d in window if d > weekday) - weekday)
    return today + timedelta(days=7 - weekday + first)


def can_create_weekly(now: datetime, this_weeks_report: Optional[WeeklyReport],
                      window: AbstractSet[int] = DEFAULT_WEEKLY_WINDOW) -> Eligibility:
    today = now.date()
    if _is_for_week(this_weeks_report, iso_week(today)):
        return Eligibility(
            allowed=False,
            reason=BlockReason.ALREADY_SUBMITTED_THIS_WEEK,
            next_eligible=next_weekly_window(today, submitted_this_week=True, window=window),
            window=window,
        )
    if today.weekday() not in window:
        return Eligibility(
            allowed=False,
            reason=BlockReason.OUTSIDE_WINDOW,
            next_eligible=next_weekly_window(today, window=window),
            window=window,
        )
    return Eligibility(allowed=True, next_eligible=today, window=window)
