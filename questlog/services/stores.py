"""
Persistence collaborators for reports and quests.

The lifecycle functions never talk to the database; routers fetch a
snapshot through these stores, run the rules, and save the result.
Uniqueness of (user, day) and (user, ISO week) is enforced here by the
database constraints.
"""
import logging
from datetime import date
from typing import List, Optional, Protocol, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.core.errors import AlreadyAssignedError, AlreadySubmittedError, NotFoundError
from questlog.models.report import DailyReport, WeeklyReport
from questlog.models.task import QuestTask, Task
from questlog.models.workspace import Invitation, WorkspaceMember
from questlog.models.user import User

logger = logging.getLogger(__name__)


class ReportStore(Protocol):
    async def find_daily_report(self, user_id: int, day: date) -> Optional[DailyReport]: ...

    async def find_weekly_report(self, user_id: int, week: Tuple[int, int]) -> Optional[WeeklyReport]: ...

    async def save(self, report): ...


class QuestStore(Protocol):
    async def find_task(self, workspace_id: int, user_id: int, task_id: int) -> Optional[QuestTask]: ...

    async def save(self, task: QuestTask) -> QuestTask: ...


class SqlReportStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_daily_report(self, user_id: int, day: date) -> Optional[DailyReport]:
        result = await self.db.execute(
            select(DailyReport)
            .where(DailyReport.user_id == user_id)
            .where(DailyReport.day == day)
        )
        return result.scalar_one_or_none()

    async def get_daily_report(self, user_id: int, report_id: int) -> DailyReport:
        result = await self.db.execute(
            select(DailyReport)
            .where(DailyReport.id == report_id)
            .where(DailyReport.user_id == user_id)
        )
        report = result.scalar_one_or_none()
        if report is None:
            raise NotFoundError("Report not found or access denied.")
        return report

    async def list_daily_reports(self, user_id: int, start: Optional[date] = None,
                                 end: Optional[date] = None) -> List[DailyReport]:
        query = select(DailyReport).where(DailyReport.user_id == user_id)
        if start is not None:
            query = query.where(DailyReport.day >= start)
        if end is not None:
            query = query.where(DailyReport.day <= end)
        result = await self.db.execute(query.order_by(DailyReport.day.desc()))
        return list(result.scalars().all())

    async def find_weekly_report(self, user_id: int, week: Tuple[int, int]) -> Optional[WeeklyReport]:
        year, number = week
        result = await self.db.execute(
            select(WeeklyReport)
            .where(WeeklyReport.user_id == user_id)
            .where(WeeklyReport.iso_year == year)
            .where(WeeklyReport.iso_week == number)
        )
        return result.scalar_one_or_none()

    async def get_weekly_report(self, user_id: int, report_id: int) -> WeeklyReport:
        result = await self.db.execute(
            select(WeeklyReport)
            .where(WeeklyReport.id == report_id)
            .where(WeeklyReport.user_id == user_id)
        )
        report = result.scalar_one_or_none()
        if report is None:
            raise NotFoundError("Report not found or access denied.")
        return report

    async def list_weekly_reports(self, user_id: int) -> List[WeeklyReport]:
        result = await self.db.execute(
            select(WeeklyReport)
            .where(WeeklyReport.user_id == user_id)
            .order_by(WeeklyReport.created_at.desc())
        )
        return list(result.scalars().all())

    async def save(self, report):
        self.db.add(report)
        try:
            await self.db.commit()
        except IntegrityError as e:
            # Another request stored the same day/week first.
            await self.db.rollback()
            logger.warning("Uniqueness conflict while saving %s: %s", type(report).__name__, e.orig)
            raise AlreadySubmittedError("A report for this period was already submitted.") from e
        await self.db.refresh(report)
        return report


class SqlQuestStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_task(self, workspace_id: int, user_id: int, task_id: int) -> Optional[QuestTask]:
        result = await self.db.execute(
            select(QuestTask)
            .where(QuestTask.workspace_id == workspace_id)
            .where(QuestTask.user_id == user_id)
            .where(QuestTask.task_id == task_id)
        )
        return result.scalar_one_or_none()

    async def get_active_task(self, workspace_id: int, user_id: int, task_id: int) -> QuestTask:
        quest_task = await self.find_task(workspace_id, user_id, task_id)
        if quest_task is None or quest_task.revoked_at is not None:
            raise NotFoundError("Task not found in this quest")
        return quest_task

    async def list_tasks(self, workspace_id: int, user_id: Optional[int] = None,
                         include_revoked: bool = False) -> List[QuestTask]:
        query = select(QuestTask).where(QuestTask.workspace_id == workspace_id)
        if user_id is not None:
            query = query.where(QuestTask.user_id == user_id)
        if not include_revoked:
            query = query.where(QuestTask.revoked_at.is_(None))
        result = await self.db.execute(query.order_by(QuestTask.id))
        return list(result.scalars().all())

    async def list_user_tasks(self, user_id: int) -> List[QuestTask]:
        result = await self.db.execute(
            select(QuestTask)
            .where(QuestTask.user_id == user_id)
            .where(QuestTask.revoked_at.is_(None))
        )
        return list(result.scalars().all())

    async def get_definition(self, task_id: int) -> Task:
        result = await self.db.execute(select(Task).where(Task.id == task_id))
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundError("Task not found")
        return task

    async def list_global_definitions(self) -> List[Task]:
        result = await self.db.execute(select(Task).where(Task.is_global.is_(True)).order_by(Task.id))
        return list(result.scalars().all())

    async def find_member(self, workspace_id: int, user_id: int) -> Optional[WorkspaceMember]:
        result = await self.db.execute(
            select(WorkspaceMember)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .where(WorkspaceMember.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_members(self, workspace_id: int) -> List[WorkspaceMember]:
        result = await self.db.execute(
            select(WorkspaceMember)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .order_by(WorkspaceMember.user_id)
        )
        return list(result.scalars().all())

    async def find_invitation(self, workspace_id: int, user_id: int) -> Optional[Invitation]:
        """Most recent invitation sent to the user's email for this workspace."""
        result = await self.db.execute(
            select(Invitation)
            .join(User, User.email == Invitation.email)
            .where(Invitation.workspace_id == workspace_id)
            .where(User.id == user_id)
            .order_by(Invitation.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def save(self, task: QuestTask) -> QuestTask:
        self.db.add(task)
        await self._commit()
        return task

    async def save_all(self, tasks: Sequence[QuestTask]) -> Sequence[QuestTask]:
        self.db.add_all(tasks)
        await self._commit()
        return tasks

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("Uniqueness conflict while saving quest tasks: %s", e.orig)
            raise AlreadyAssignedError("Task already assigned to this user.") from e
