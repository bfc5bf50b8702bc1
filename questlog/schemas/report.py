from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import List, Literal, Optional

ActivityCategory = Literal[
    "learning",
    "better me",
    "project",
    "product refinement",
    "technical sessions",
    "networking",
]

MIN_DAILY_GOALS = 3
MAX_DAILY_GOALS = 5
MAX_ACTIVITY_MINUTES = 720


class Activity(BaseModel):
    model_config = {"from_attributes": True}

    category: ActivityCategory
    duration: int = Field(..., ge=1, le=MAX_ACTIVITY_MINUTES, description="Minutes")


class DailyGoalCreate(BaseModel):
    model_config = {"str_strip_whitespace": True}

    description: str = Field(..., min_length=1)


class DailyReportCreate(BaseModel):
    model_config = {"str_strip_whitespace": True}

    wakeup_time: str = Field(..., pattern=r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$", description="HH:MM")
    mood_start: int = Field(..., ge=1, le=5)
    morning_routine: str = Field(..., min_length=1)
    daily_goals: List[DailyGoalCreate] = Field(..., min_length=MIN_DAILY_GOALS, max_length=MAX_DAILY_GOALS)
    expected_activity: List[Activity] = Field(..., min_length=1)


class EndOfDayGoal(BaseModel):
    model_config = {"str_strip_whitespace": True}

    # Matches a goal of the morning report. Without ids goals are matched by position.
    id: Optional[str] = None
    description: Optional[str] = None
    completed: bool
    completion_time: Optional[int] = Field(None, ge=0, description="Minutes spent")


class EndOfDayUpdate(BaseModel):
    model_config = {"str_strip_whitespace": True}

    mood_end: int = Field(..., ge=1, le=5)
    daily_goals: List[EndOfDayGoal] = Field(..., min_length=1)
    actual_activity: List[Activity] = Field(..., min_length=1)
    insights: Optional[str] = None
    morning_routine_completed: Optional[bool] = None


class StatusDetails(BaseModel):
    model_config = {"str_strip_whitespace": True}

    status: bool
    details: str = Field(..., min_length=1)


class AchievedGoals(BaseModel):
    goals: List[str] = Field(..., min_length=1)
    shared: bool = False

    @field_validator("goals")
    @classmethod
    def goals_not_blank(cls, goals: List[str]) -> List[str]:
        cleaned = [g.strip() for g in goals]
        if any(not g for g in cleaned):
            raise ValueError("Goal cannot be empty")
        return cleaned


class WeeklyReportCreate(BaseModel):
    model_config = {"str_strip_whitespace": True}

    mood_rating: int = Field(..., ge=1, le=5)
    mood_explanation: str = Field(..., min_length=1)
    significant_event: Optional[str] = None
    new_interesting_learning: Optional[str] = None
    maintain_weekly_routine: StatusDetails
    achieved_goals: AchievedGoals
    free_time: StatusDetails
    product_progress: Optional[str] = None
    course_chapter: Optional[str] = None
    learning_goal_achievement: StatusDetails
    mentor_interaction: StatusDetails
    support_interaction: StatusDetails
    additional_support: Optional[str] = None
    open_questions: Optional[str] = None


class WeeklyReportUpdate(BaseModel):
    model_config = {"str_strip_whitespace": True}

    mood_rating: Optional[int] = Field(None, ge=1, le=5)
    mood_explanation: Optional[str] = Field(None, min_length=1)
    significant_event: Optional[str] = None
    new_interesting_learning: Optional[str] = None
    maintain_weekly_routine: Optional[StatusDetails] = None
    achieved_goals: Optional[AchievedGoals] = None
    free_time: Optional[StatusDetails] = None
    product_progress: Optional[str] = None
    course_chapter: Optional[str] = None
    learning_goal_achievement: Optional[StatusDetails] = None
    mentor_interaction: Optional[StatusDetails] = None
    support_interaction: Optional[StatusDetails] = None
    additional_support: Optional[str] = None
    open_questions: Optional[str] = None


class DailyGoalResponse(BaseModel):
    id: str
    description: str
    completed: Optional[bool] = None
    completion_time: Optional[int] = None


class DailyReportResponse(BaseModel):
    id: int
    user_id: int
    day: date
    wakeup_time: str
    mood_start: int
    morning_routine: str
    daily_goals: List[DailyGoalResponse]
    expected_activity: List[Activity]
    mood_end: Optional[int]
    actual_activity: Optional[List[Activity]]
    insights: Optional[str]
    morning_routine_completed: Optional[bool]
    end_of_day_at: Optional[datetime]
    created_at: datetime
    updated_at: Optional[datetime]

    model_config = {"from_attributes": True}


class DailyReportDetail(DailyReportResponse):
    completion_rate: float
    mood_delta: Optional[int] = None
    mood_trend: Optional[str] = None  # "Improved", "Declined", "Stable"
    time_variance: Optional[int] = None


class WeeklyReportResponse(BaseModel):
    id: int
    user_id: int
    iso_year: int
    iso_week: int
    mood_rating: int
    mood_explanation: str
    significant_event: Optional[str]
    new_interesting_learning: Optional[str]
    routine_maintained: bool
    routine_details: str
    achieved_goals: List[str]
    goals_shared: bool
    free_time: bool
    free_time_details: str
    product_progress: Optional[str]
    course_chapter: Optional[str]
    learning_goal_achieved: bool
    learning_goal_details: str
    mentor_interaction: bool
    mentor_interaction_details: str
    support_interaction: bool
    support_interaction_details: str
    additional_support: Optional[str]
    open_questions: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]

    model_config = {"from_attributes": True}


class ReportOutcomeResponse(BaseModel):
    outcome: str  # "blocked", "ready", "submitted"
    report_kind: str  # "daily", "end-of-day", "weekly"
    reason: Optional[str] = None
    message: Optional[str] = None
    next_eligible: Optional[date] = None
    daily_report: Optional[DailyReportResponse] = None
    weekly_report: Optional[WeeklyReportResponse] = None


class ReportHistoryItem(BaseModel):
    date: date
    status: str  # "submitted", "missed" or "pending"
    report_id: Optional[int] = None
    end_of_day: bool = False
    completion_rate: Optional[float] = None


class ReportHistoryResponse(BaseModel):
    month: int
    year: int
    reports: List[ReportHistoryItem]
