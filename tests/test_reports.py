"""
Unit tests for the report aggregate: validation, end-of-day merge and metrics.
"""
from datetime import datetime, timezone

import pytest

from questlog.core.errors import (
    AlreadyCompletedError,
    AlreadySubmittedError,
    DependencyError,
    InconsistentRecordError,
    InputValidationError,
    OutsideWindowError,
)
from questlog.models.report import DailyReport
from questlog.services.reports import (
    apply_end_of_day,
    completion_rate,
    create_daily,
    create_weekly,
    end_of_day_state,
    mood_delta,
    mood_trend,
    report_metrics,
    time_variance,
    update_weekly,
)

MORNING = datetime(2026, 10, 14, 8, 0, tzinfo=timezone.utc)
EVENING = datetime(2026, 10, 14, 21, 0, tzinfo=timezone.utc)
MONDAY = datetime(2026, 10, 12, 9, 0, tzinfo=timezone.utc)


def daily_payload(goals=3, **overrides):
    payload = {
        "wakeup_time": "07:15",
        "mood_start": 3,
        "morning_routine": "Stretching and journaling",
        "daily_goals": [{"description": f"Goal {i}"} for i in range(1, goals + 1)],
        "expected_activity": [
            {"category": "learning", "duration": 120},
            {"category": "project", "duration": 60},
        ],
    }
    payload.update(overrides)
    return payload


def end_of_day_payload(completed=(True, True, False), **overrides):
    payload = {
        "mood_end": 4,
        "daily_goals": [
            {"completed": done, "completion_time": 45} for done in completed
        ],
        "actual_activity": [
            {"category": "learning", "duration": 150},
            {"category": "project", "duration": 60},
        ],
        "insights": "Pairing helped a lot",
        "morning_routine_completed": True,
    }
    payload.update(overrides)
    return payload


def weekly_payload(**overrides):
    status = {"status": True, "details": "Kept it up"}
    payload = {
        "mood_rating": 4,
        "mood_explanation": "Productive week",
        "maintain_weekly_routine": status,
        "achieved_goals": {"goals": ["Finish chapter 3", " Ship login page "], "shared": True},
        "free_time": {"status": False, "details": "Deadline crunch"},
        "learning_goal_achievement": status,
        "mentor_interaction": status,
        "support_interaction": {"status": False, "details": "Not needed"},
        "course_chapter": "Chapter 3",
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def morning_report():
    return create_daily(daily_payload(), owner_id=7, now=MORNING)


class TestCreateDaily:
    def test_builds_report_for_today(self, morning_report):
        assert morning_report.user_id == 7
        assert morning_report.day == MORNING.date()
        assert morning_report.created_at == MORNING
        assert morning_report.mood_end is None
        assert [g["id"] for g in morning_report.daily_goals] == ["g1", "g2", "g3"]
        assert morning_report.daily_goals[0]["description"] == "Goal 1"

    @pytest.mark.parametrize("count", [3, 4, 5])
    def test_accepts_three_to_five_goals(self, count):
        report = create_daily(daily_payload(goals=count), owner_id=7, now=MORNING)
        assert len(report.daily_goals) == count

    @pytest.mark.parametrize("count", [0, 2, 6])
    def test_rejects_goal_count_outside_range(self, count):
        with pytest.raises(InputValidationError) as exc:
            create_daily(daily_payload(goals=count), owner_id=7, now=MORNING)
        assert "daily_goals" in exc.value.errors

    def test_rejects_blank_goal(self):
        payload = daily_payload()
        payload["daily_goals"][1]["description"] = "   "
        with pytest.raises(InputValidationError) as exc:
            create_daily(payload, owner_id=7, now=MORNING)
        assert "daily_goals.1.description" in exc.value.errors

    @pytest.mark.parametrize("wakeup", ["25:00", "7h15", "07:60", ""])
    def test_rejects_bad_wakeup_time(self, wakeup):
        with pytest.raises(InputValidationError) as exc:
            create_daily(daily_payload(wakeup_time=wakeup), owner_id=7, now=MORNING)
        assert "wakeup_time" in exc.value.errors

    def test_rejects_mood_out_of_range(self):
        with pytest.raises(InputValidationError) as exc:
            create_daily(daily_payload(mood_start=6), owner_id=7, now=MORNING)
        assert "mood_start" in exc.value.errors

    def test_rejects_bad_activity(self):
        activity = [{"category": "gaming", "duration": 0}]
        with pytest.raises(InputValidationError) as exc:
            create_daily(daily_payload(expected_activity=activity), owner_id=7, now=MORNING)
        assert "expected_activity.0.category" in exc.value.errors
        assert "expected_activity.0.duration" in exc.value.errors

    def test_rejects_empty_activity_list(self):
        with pytest.raises(InputValidationError):
            create_daily(daily_payload(expected_activity=[]), owner_id=7, now=MORNING)

    def test_second_report_same_day(self, morning_report):
        with pytest.raises(AlreadySubmittedError):
            create_daily(daily_payload(), owner_id=7, now=EVENING, existing=morning_report)

    def test_second_report_same_day_wins_over_bad_payload(self, morning_report):
        with pytest.raises(AlreadySubmittedError):
            create_daily(daily_payload(goals=2), owner_id=7, now=EVENING, existing=morning_report)


class TestEndOfDay:
    def test_merges_into_morning_report(self, morning_report):
        report = apply_end_of_day(morning_report, end_of_day_payload(), EVENING)

        assert report is morning_report
        assert report.mood_end == 4
        assert report.end_of_day_at == EVENING
        assert report.insights == "Pairing helped a lot"
        assert [g["completed"] for g in report.daily_goals] == [True, True, False]
        assert [g["description"] for g in report.daily_goals] == ["Goal 1", "Goal 2", "Goal 3"]
        assert end_of_day_state(report) is True

    def test_completion_time_kept_only_for_completed_goals(self, morning_report):
        report = apply_end_of_day(morning_report, end_of_day_payload(), EVENING)
        assert [g["completion_time"] for g in report.daily_goals] == [45, 45, None]

    def test_requires_morning_report(self):
        with pytest.raises(DependencyError):
            apply_end_of_day(None, end_of_day_payload(), EVENING)

    def test_cannot_complete_twice(self, morning_report):
        apply_end_of_day(morning_report, end_of_day_payload(), EVENING)
        with pytest.raises(AlreadyCompletedError):
            apply_end_of_day(morning_report, end_of_day_payload(), EVENING)

    def test_matches_goals_by_id_in_any_order(self, morning_report):
        goals = [
            {"id": "g3", "completed": False},
            {"id": "g1", "completed": True, "completion_time": 30},
            {"id": "g2", "completed": True, "completion_time": 20},
        ]
        report = apply_end_of_day(morning_report, end_of_day_payload(daily_goals=goals), EVENING)
        assert [(g["id"], g["completed"]) for g in report.daily_goals] == [
            ("g1", True), ("g2", True), ("g3", False),
        ]
        assert report.daily_goals[0]["completion_time"] == 30

    def test_positional_goals_must_match_length(self, morning_report):
        payload = end_of_day_payload(completed=(True, False))
        with pytest.raises(InputValidationError) as exc:
            apply_end_of_day(morning_report, payload, EVENING)
        assert "daily_goals" in exc.value.errors
        assert morning_report.mood_end is None

    def test_mixed_ids_rejected(self, morning_report):
        goals = [{"id": "g1", "completed": True}, {"completed": True}, {"completed": False}]
        with pytest.raises(InputValidationError):
            apply_end_of_day(morning_report, end_of_day_payload(daily_goals=goals), EVENING)

    def test_unknown_id_rejected(self, morning_report):
        goals = [{"id": "g1", "completed": True}, {"id": "g2", "completed": True},
                 {"id": "g9", "completed": True}]
        with pytest.raises(InputValidationError) as exc:
            apply_end_of_day(morning_report, end_of_day_payload(daily_goals=goals), EVENING)
        assert "g9" in exc.value.errors["daily_goals"]

    def test_duplicate_id_rejected(self, morning_report):
        goals = [{"id": "g1", "completed": True}, {"id": "g1", "completed": True},
                 {"id": "g2", "completed": True}]
        with pytest.raises(InputValidationError):
            apply_end_of_day(morning_report, end_of_day_payload(daily_goals=goals), EVENING)

    def test_partial_end_of_day_is_inconsistent(self, morning_report):
        morning_report.mood_end = 2
        with pytest.raises(InconsistentRecordError):
            end_of_day_state(morning_report)
        with pytest.raises(InconsistentRecordError):
            apply_end_of_day(morning_report, end_of_day_payload(), EVENING)

    def test_fresh_report_has_no_end_of_day(self, morning_report):
        assert end_of_day_state(morning_report) is False


class TestMetrics:
    def test_two_of_three_goals(self, morning_report):
        report = apply_end_of_day(morning_report, end_of_day_payload(), EVENING)
        assert completion_rate(report) == 66.67

    def test_full_metrics(self, morning_report):
        report = apply_end_of_day(morning_report, end_of_day_payload(), EVENING)
        assert report_metrics(report) == {
            "completion_rate": 66.67,
            "mood_delta": 1,
            "mood_trend": "Improved",
            "time_variance": 30,
        }

    def test_metrics_before_end_of_day(self, morning_report):
        assert report_metrics(morning_report) == {
            "completion_rate": 0.0,
            "mood_delta": None,
            "mood_trend": None,
            "time_variance": None,
        }

    @pytest.mark.parametrize("total", [3, 4, 5])
    def test_rate_grows_with_each_completed_goal(self, total):
        rates = []
        for done in range(total + 1):
            goals = [{"id": f"g{i}", "description": "x", "completed": i <= done}
                     for i in range(1, total + 1)]
            rates.append(completion_rate(DailyReport(daily_goals=goals)))
        assert rates[0] == 0.0
        assert rates == sorted(rates)
        assert len(set(rates)) == total + 1
        assert rates[-1] == 100

    def test_all_goals_completed_through_end_of_day(self, morning_report):
        payload = end_of_day_payload(completed=(True, True, True))
        report = apply_end_of_day(morning_report, payload, EVENING)
        assert completion_rate(report) == 100

    def test_no_goals_means_zero(self):
        assert completion_rate(DailyReport(daily_goals=[])) == 0.0

    @pytest.mark.parametrize("delta, trend", [(2, "Improved"), (0, "Stable"), (-3, "Declined")])
    def test_mood_trend(self, delta, trend):
        assert mood_trend(delta) == trend

    def test_mood_delta(self):
        assert mood_delta(DailyReport(mood_start=4, mood_end=2)) == -2

    def test_under_spent_time_is_negative(self):
        report = DailyReport(
            expected_activity=[{"category": "learning", "duration": 240}],
            actual_activity=[{"category": "learning", "duration": 90}],
        )
        assert time_variance(report) == -150


class TestWeekly:
    def test_create_on_wednesday(self):
        report = create_weekly(weekly_payload(), owner_id=7, now=MORNING)
        assert (report.iso_year, report.iso_week) == (2026, 42)
        assert report.routine_maintained is True
        assert report.routine_details == "Kept it up"
        assert report.free_time is False
        assert report.achieved_goals == ["Finish chapter 3", "Ship login page"]
        assert report.goals_shared is True
        assert report.support_interaction_details == "Not needed"
        assert report.created_at == MORNING

    def test_outside_window(self):
        with pytest.raises(OutsideWindowError) as exc:
            create_weekly(weekly_payload(), owner_id=7, now=MONDAY)
        assert exc.value.next_eligible.isoformat() == "2026-10-14"

    def test_once_per_week(self):
        first = create_weekly(weekly_payload(), owner_id=7, now=MORNING)
        with pytest.raises(AlreadySubmittedError):
            create_weekly(weekly_payload(), owner_id=7, now=MORNING, existing=first)

    def test_once_per_week_wins_over_bad_payload(self):
        first = create_weekly(weekly_payload(), owner_id=7, now=MORNING)
        with pytest.raises(AlreadySubmittedError):
            create_weekly(weekly_payload(mood_rating=9), owner_id=7, now=MORNING, existing=first)

    def test_outside_window_wins_over_bad_payload(self):
        with pytest.raises(OutsideWindowError):
            create_weekly(weekly_payload(mood_rating=9), owner_id=7, now=MONDAY)

    def test_requires_mood_explanation(self):
        payload = weekly_payload()
        del payload["mood_explanation"]
        with pytest.raises(InputValidationError) as exc:
            create_weekly(payload, owner_id=7, now=MORNING)
        assert "mood_explanation" in exc.value.errors

    def test_blank_achieved_goal(self):
        payload = weekly_payload(achieved_goals={"goals": ["  "]})
        with pytest.raises(InputValidationError) as exc:
            create_weekly(payload, owner_id=7, now=MORNING)
        assert "achieved_goals.goals" in exc.value.errors

    def test_status_needs_details(self):
        payload = weekly_payload(free_time={"status": True, "details": ""})
        with pytest.raises(InputValidationError) as exc:
            create_weekly(payload, owner_id=7, now=MORNING)
        assert "free_time.details" in exc.value.errors

    def test_update_changes_only_sent_fields(self):
        report = create_weekly(weekly_payload(), owner_id=7, now=MORNING)
        update_weekly(report, {"mood_rating": 2, "free_time": {"status": True, "details": "Hiking"}}, EVENING)
        assert report.mood_rating == 2
        assert report.free_time is True
        assert report.free_time_details == "Hiking"
        assert report.mood_explanation == "Productive week"
        assert report.course_chapter == "Chapter 3"
        assert report.updated_at == EVENING

    def test_update_cannot_clear_required_fields(self):
        report = create_weekly(weekly_payload(), owner_id=7, now=MORNING)
        with pytest.raises(InputValidationError) as exc:
            update_weekly(report, {"mood_rating": None}, EVENING)
        assert "mood_rating" in exc.value.errors
        assert report.mood_rating == 4
