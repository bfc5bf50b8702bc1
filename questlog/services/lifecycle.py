"""
Lifecycle orchestrator: the single entry point forms, dashboards and
admin tools call.

For reports it answers "may I submit, and if I sent a payload, what is the
record to persist?" as one of ``Blocked``, ``ReadyToSubmit`` or
``Submitted``. Blocked is status messaging, not an error. For quests it
wraps the state machine and hands back either the updated task or a
``Rejected`` outcome carrying the typed error.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import AbstractSet, Optional, Union

from questlog.core.actors import Actor
from questlog.core.errors import LifecycleError
from questlog.models.report import DailyReport, WeeklyReport
from questlog.models.task import QuestTask
from questlog.services import quests, reports
from questlog.services.eligibility import (
    DEFAULT_WEEKLY_WINDOW,
    BlockReason,
    Eligibility,
    blocked_error,
    can_create_daily,
    can_create_end_of_day,
    can_create_weekly,
)

logger = logging.getLogger(__name__)


class ReportKind(str, Enum):
    DAILY = "daily"
    END_OF_DAY = "end-of-day"
    WEEKLY = "weekly"


@dataclass(frozen=True)
class Blocked:
    kind: ReportKind
    reason: BlockReason
    message: str
    next_eligible: Optional[date] = None

    outcome = "blocked"

    def error(self) -> LifecycleError:
        return blocked_error(self.reason, self.message, self.next_eligible)


@dataclass(frozen=True)
class ReadyToSubmit:
    kind: ReportKind
    # End of day: the morning report the form extends.
    report: Optional[DailyReport] = None

    outcome = "ready"


@dataclass(frozen=True)
class Submitted:
    kind: ReportKind
    report: Union[DailyReport, WeeklyReport]

    outcome = "submitted"


ReportOutcome = Union[Blocked, ReadyToSubmit, Submitted]


@dataclass(frozen=True)
class Rejected:
    error: LifecycleError

    outcome = "rejected"


def _blocked(kind: ReportKind, decision: Eligibility, payload) -> Blocked:
    # Payload-less eligibility checks log at INFO, rejected submissions at WARNING.
    level = logging.INFO if payload is None else logging.WARNING
    logger.log(level, "%s report blocked: %s", kind.value, decision.reason.value)
    return Blocked(kind=kind, reason=decision.reason, message=decision.message,
                   next_eligible=decision.next_eligible)


def resolve_daily(now: datetime, owner_id: int, todays_report: Optional[DailyReport],
                  payload=None) -> ReportOutcome:
    decision = can_create_daily(now, todays_report)
    if not decision.allowed:
        return _blocked(ReportKind.DAILY, decision, payload)
    if payload is None:
        return ReadyToSubmit(kind=ReportKind.DAILY)
    report = reports.create_daily(payload, owner_id, now, existing=todays_report)
    logger.info("Daily report accepted for user %s on %s", owner_id, report.day)
    return Submitted(kind=ReportKind.DAILY, report=report)


def resolve_end_of_day(now: datetime, todays_report: Optional[DailyReport],
                       payload=None) -> ReportOutcome:
    decision = can_create_end_of_day(now, todays_report)
    if not decision.allowed:
        return _blocked(ReportKind.END_OF_DAY, decision, payload)
    if payload is None:
        return ReadyToSubmit(kind=ReportKind.END_OF_DAY, report=todays_report)
    report = reports.apply_end_of_day(todays_report, payload, now)
    logger.info("End-of-day report accepted for user %s on %s", report.user_id, report.day)
    return Submitted(kind=ReportKind.END_OF_DAY, report=report)


def resolve_weekly(now: datetime, owner_id: int, this_weeks_report: Optional[WeeklyReport],
                   payload=None, window: AbstractSet[int] = DEFAULT_WEEKLY_WINDOW) -> ReportOutcome:
    decision = can_create_weekly(now, this_weeks_report, window=window)
    if not decision.allowed:
        return _blocked(ReportKind.WEEKLY, decision, payload)
    if payload is None:
        return ReadyToSubmit(kind=ReportKind.WEEKLY)
    report = reports.create_weekly(payload, owner_id, now, existing=this_weeks_report, window=window)
    logger.info("Weekly report accepted for user %s (week %s-%s)", owner_id, report.iso_year, report.iso_week)
    return Submitted(kind=ReportKind.WEEKLY, report=report)


def attempt_status_change(actor: Actor, task: QuestTask, new_status, now: datetime,
                          comment: Optional[str] = None) -> Union[QuestTask, Rejected]:
    try:
        return quests.change_status(actor, task, new_status, now, comment=comment)
    except LifecycleError as exc:
        return Rejected(error=exc)


def attempt_comment(actor: Actor, task: QuestTask, text: str, now: datetime) -> Union[QuestTask, Rejected]:
    try:
        quests.add_comment(actor, task, text, now)
    except LifecycleError as exc:
        return Rejected(error=exc)
    return task
