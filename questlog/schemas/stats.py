from pydantic import BaseModel
from typing import Dict, List, Optional

class TaskBreakdownResponse(BaseModel):
    todo: int
    in_progress: int
    completed: int
    total: int
    progress_percentage: float
    stars_earned: int

    model_config = {"from_attributes": True}

class WeeklyDashboardResponse(BaseModel):
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

    model_config = {"from_attributes": True}

class MonthlyDashboardResponse(BaseModel):
    month: int
    year: int
    study_minutes: int
    tasks_completed: int
    report_consistency: float
    completion_rate: float
    average_mood_delta: Optional[float]
    mood_distribution: Dict[int, int]
    weekly_progress: List[float]
    stars_earned: int

    model_config = {"from_attributes": True}
