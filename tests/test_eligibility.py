"""
Unit tests for report eligibility.

Every decision takes ``now`` explicitly, so the scenarios below pin the
calendar instead of waiting for a Wednesday.
"""
from datetime import date, datetime, timezone

import pytest

from questlog.core.errors import AlreadySubmittedError, DependencyError, OutsideWindowError
from questlog.models.report import DailyReport, WeeklyReport
from questlog.services.eligibility import (
    BlockReason,
    can_create_daily,
    can_create_end_of_day,
    can_create_weekly,
    iso_week,
    next_weekly_window,
)


def at(year, month, day, hour=9):
    return datetime(year, month, day, hour, 0, tzinfo=timezone.utc)


MONDAY = at(2026, 10, 12)
TUESDAY = at(2026, 10, 13)
WEDNESDAY = at(2026, 10, 14)
THURSDAY = at(2026, 10, 15)
FRIDAY = at(2026, 10, 16)
SATURDAY = at(2026, 10, 17)
SUNDAY = at(2026, 10, 18)
NEXT_WEDNESDAY = date(2026, 10, 21)


def daily(day, **fields):
    return DailyReport(day=day, mood_start=3, daily_goals=[], expected_activity=[], **fields)


def weekly_for(day):
    year, week = iso_week(day)
    return WeeklyReport(iso_year=year, iso_week=week)


class TestDailyEligibility:
    """A daily report is allowed once per calendar day."""

    def test_allowed_without_report(self):
        decision = can_create_daily(WEDNESDAY, None)
        assert decision.allowed
        assert decision.reason is None

    def test_blocked_when_today_exists(self):
        decision = can_create_daily(WEDNESDAY, daily(WEDNESDAY.date()))
        assert not decision.allowed
        assert decision.reason is BlockReason.ALREADY_SUBMITTED_TODAY
        assert isinstance(decision.error(), AlreadySubmittedError)

    def test_yesterdays_report_does_not_block(self):
        assert can_create_daily(WEDNESDAY, daily(TUESDAY.date())).allowed

    def test_late_evening_is_still_the_same_day(self):
        report = daily(WEDNESDAY.date())
        assert not can_create_daily(at(2026, 10, 14, hour=23), report).allowed


class TestEndOfDayEligibility:
    def test_requires_todays_daily_report(self):
        decision = can_create_end_of_day(WEDNESDAY, None)
        assert decision.reason is BlockReason.DAILY_REPORT_REQUIRED
        assert isinstance(decision.error(), DependencyError)

    def test_yesterdays_report_does_not_count(self):
        decision = can_create_end_of_day(WEDNESDAY, daily(TUESDAY.date()))
        assert decision.reason is BlockReason.DAILY_REPORT_REQUIRED

    def test_allowed_after_morning_report(self):
        assert can_create_end_of_day(WEDNESDAY, daily(WEDNESDAY.date())).allowed

    def test_blocked_once_completed(self):
        report = daily(WEDNESDAY.date(), mood_end=4)
        decision = can_create_end_of_day(WEDNESDAY, report)
        assert decision.reason is BlockReason.ALREADY_COMPLETED


class TestWeeklyEligibility:
    """Weekly reports open on Wednesday and Thursday, once per ISO week."""

    @pytest.mark.parametrize("now", [WEDNESDAY, THURSDAY])
    def test_allowed_inside_window(self, now):
        decision = can_create_weekly(now, None)
        assert decision.allowed
        assert decision.next_eligible == now.date()

    def test_monday_points_to_wednesday(self):
        decision = can_create_weekly(MONDAY, None)
        assert decision.reason is BlockReason.OUTSIDE_WINDOW
        assert decision.next_eligible == date(2026, 10, 14)
        assert decision.message == "Weekly reports can only be submitted on Wednesday or Thursday."

    def test_tuesday_points_to_wednesday(self):
        assert can_create_weekly(TUESDAY, None).next_eligible == date(2026, 10, 14)

    @pytest.mark.parametrize("now", [FRIDAY, SATURDAY, SUNDAY])
    def test_after_window_points_to_next_week(self, now):
        decision = can_create_weekly(now, None)
        assert decision.reason is BlockReason.OUTSIDE_WINDOW
        assert decision.next_eligible == NEXT_WEDNESDAY

    def test_blocked_after_submission_this_week(self):
        decision = can_create_weekly(THURSDAY, weekly_for(WEDNESDAY.date()))
        assert decision.reason is BlockReason.ALREADY_SUBMITTED_THIS_WEEK
        assert decision.next_eligible == NEXT_WEDNESDAY
        assert isinstance(decision.error(), AlreadySubmittedError)

    def test_last_weeks_report_does_not_block(self):
        assert can_create_weekly(WEDNESDAY, weekly_for(date(2026, 10, 8))).allowed

    def test_outside_window_error_carries_next_eligible(self):
        error = can_create_weekly(SATURDAY, None).error()
        assert isinstance(error, OutsideWindowError)
        assert error.to_dict()["next_eligible"] == "2026-10-21"

    def test_custom_window(self):
        friday_only = frozenset({4})
        assert can_create_weekly(FRIDAY, None, window=friday_only).allowed
        decision = can_create_weekly(MONDAY, None, window=friday_only)
        assert decision.next_eligible == date(2026, 10, 16)
        assert "Friday" in decision.message

    def test_allowed_decision_has_no_error(self):
        with pytest.raises(ValueError):
            can_create_weekly(WEDNESDAY, None).error()


class TestIsoWeekBoundary:
    """Dec 31 2025 is a Wednesday in ISO week 1 of 2026."""

    def test_iso_week_of_new_years_eve(self):
        assert iso_week(date(2025, 12, 31)) == (2026, 1)
        assert iso_week(date(2026, 1, 1)) == (2026, 1)

    def test_week_of_interest(self):
        assert iso_week(WEDNESDAY.date()) == (2026, 42)

    def test_submission_on_dec_31_blocks_jan_1(self):
        submitted = weekly_for(date(2025, 12, 31))
        decision = can_create_weekly(at(2026, 1, 1), submitted)
        assert decision.reason is BlockReason.ALREADY_SUBMITTED_THIS_WEEK
        assert decision.next_eligible == date(2026, 1, 7)


def test_next_weekly_window_skips_current_week_when_submitted():
    assert next_weekly_window(date(2026, 10, 12), submitted_this_week=True) == NEXT_WEDNESDAY
    assert next_weekly_window(date(2026, 10, 12)) == date(2026, 10, 14)
