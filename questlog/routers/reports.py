from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.config import settings
from questlog.core.auth import get_current_user
from questlog.core.clock import Clock, get_clock
from questlog.database import get_db
from questlog.schemas.report import (
    DailyReportDetail,
    DailyReportResponse,
    ReportHistoryItem,
    ReportHistoryResponse,
    ReportOutcomeResponse,
    WeeklyReportResponse,
)
from questlog.services import lifecycle
from questlog.services.eligibility import iso_week
from questlog.services.reports import report_metrics, update_weekly
from questlog.services.statistics import report_history
from questlog.services.stores import SqlReportStore

router = APIRouter(prefix="/reports", tags=["reports"])


def _outcome_body(outcome: lifecycle.ReportOutcome) -> ReportOutcomeResponse:
    body = ReportOutcomeResponse(outcome=outcome.outcome, report_kind=outcome.kind.value)
    if isinstance(outcome, lifecycle.Blocked):
        body.reason = outcome.reason.value
        body.message = outcome.message
        body.next_eligible = outcome.next_eligible
        return body
    report = outcome.report
    if report is None:
        return body
    if outcome.kind is lifecycle.ReportKind.WEEKLY:
        body.weekly_report = WeeklyReportResponse.model_validate(report)
    else:
        body.daily_report = DailyReportResponse.model_validate(report)
    return body


def _blocked_response(outcome: lifecycle.Blocked) -> JSONResponse:
    # Blocked is an expected state; the body tells the form what to show.
    return JSONResponse(status_code=409, content=jsonable_encoder(_outcome_body(outcome)))


# ---------- Daily ----------

@router.get("/daily/eligibility", response_model=ReportOutcomeResponse)
async def daily_eligibility(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user = Depends(get_current_user)
):
    now = clock.now()
    todays = await SqlReportStore(db).find_daily_report(current_user.id, now.date())
    return _outcome_body(lifecycle.resolve_daily(now, current_user.id, todays))


@router.post("/daily", response_model=ReportOutcomeResponse, status_code=201)
async def submit_daily_report(
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user = Depends(get_current_user)
):
    now = clock.now()
    store = SqlReportStore(db)
    todays = await store.find_daily_report(current_user.id, now.date())
    outcome = lifecycle.resolve_daily(now, current_user.id, todays, payload)
    if isinstance(outcome, lifecycle.Blocked):
        return _blocked_response(outcome)
    await store.save(outcome.report)
    return _outcome_body(outcome)


@router.get("/end-of-day/eligibility", response_model=ReportOutcomeResponse)
async def end_of_day_eligibility(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user = Depends(get_current_user)
):
    now = clock.now()
    todays = await SqlReportStore(db).find_daily_report(current_user.id, now.date())
    return _outcome_body(lifecycle.resolve_end_of_day(now, todays))


@router.post("/end-of-day", response_model=ReportOutcomeResponse)
async def submit_end_of_day_report(
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user = Depends(get_current_user)
):
    now = clock.now()
    store = SqlReportStore(db)
    todays = await store.find_daily_report(current_user.id, now.date())
    outcome = lifecycle.resolve_end_of_day(now, todays, payload)
    if isinstance(outcome, lifecycle.Blocked):
        return _blocked_response(outcome)
    await store.save(outcome.report)
    return _outcome_body(outcome)


@router.get("/daily", response_model=List[DailyReportResponse])
async def get_my_daily_reports(
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await SqlReportStore(db).list_daily_reports(current_user.id)


@router.get("/daily/{report_id}", response_model=DailyReportDetail)
async def get_daily_report(
    report_id: int,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    report = await SqlReportStore(db).get_daily_report(current_user.id, report_id)
    base = DailyReportResponse.model_validate(report).model_dump()
    return DailyReportDetail(**base, **report_metrics(report))


# ---------- Weekly ----------

@router.get("/weekly/eligibility", response_model=ReportOutcomeResponse)
async def weekly_eligibility(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user = Depends(get_current_user)
):
    now = clock.now()
    this_week = await SqlReportStore(db).find_weekly_report(current_user.id, iso_week(now.date()))
    outcome = lifecycle.resolve_weekly(now, current_user.id, this_week, window=settings.weekly_window)
    return _outcome_body(outcome)


@router.post("/weekly", response_model=ReportOutcomeResponse, status_code=201)
async def submit_weekly_report(
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user = Depends(get_current_user)
):
    now = clock.now()
    store = SqlReportStore(db)
    this_week = await store.find_weekly_report(current_user.id, iso_week(now.date()))
    outcome = lifecycle.resolve_weekly(
        now, current_user.id, this_week, payload, window=settings.weekly_window
    )
    if isinstance(outcome, lifecycle.Blocked):
        return _blocked_response(outcome)
    await store.save(outcome.report)
    return _outcome_body(outcome)


@router.patch("/weekly/{report_id}", response_model=WeeklyReportResponse)
async def update_weekly_report(
    report_id: int,
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user = Depends(get_current_user)
):
    store = SqlReportStore(db)
    report = await store.get_weekly_report(current_user.id, report_id)
    update_weekly(report, payload, clock.now())
    return await store.save(report)


@router.get("/weekly", response_model=List[WeeklyReportResponse])
async def get_my_weekly_reports(
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await SqlReportStore(db).list_weekly_reports(current_user.id)


# ---------- History ----------

@router.get("/history", response_model=ReportHistoryResponse)
async def get_report_history(
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
    timeline = report_history(reports, month, year, today)
    return ReportHistoryResponse(
        month=month,
        year=year,
        reports=[ReportHistoryItem(**item) for item in timeline]
    )
