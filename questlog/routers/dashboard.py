from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.config import settings
from questlog.core.auth import get_current_user
from questlog.core.clock import Clock, get_clock
from questlog.database import get_db
from questlog.schemas.stats import MonthlyDashboardResponse, WeeklyDashboardResponse
from questlog.services.statistics import monthly_dashboard_rollup, weekly_dashboard_rollup
from questlog.services.stores import SqlQuestStore, SqlReportStore

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/weekly", response_model=WeeklyDashboardResponse)
async def get_weekly_stats(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user = Depends(get_current_user)
):
    today = clock.now().date()
    reports = await SqlReportStore(db).list_daily_reports(current_user.id, end=today)
    tasks = await SqlQuestStore(db).list_user_tasks(current_user.id)
    rollup = weekly_dashboard_rollup(reports, tasks, today, planned_hours=settings.WEEKLY_PLANNED_HOURS)
    return WeeklyDashboardResponse.model_validate(rollup)


@router.get("/monthly", response_model=MonthlyDashboardResponse)
async def get_monthly_stats(
    month: Optional[int] = None,
    year: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user = Depends(get_current_user)
):
    today = clock.now().date()
    if month is None:
        month = today.month
    if year is None:
        year = today.year

    if not (1 <= month <= 12):
        raise HTTPException(400, "Invalid month")
    if year < 1900 or year > 2100:
        raise HTTPException(400, "Invalid year")

    reports = await SqlReportStore(db).list_daily_reports(current_user.id)
    tasks = await SqlQuestStore(db).list_user_tasks(current_user.id)
    return MonthlyDashboardResponse.model_validate(monthly_dashboard_rollup(reports, tasks, month, year))
