from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Boolean, ForeignKey, JSON, UniqueConstraint
from questlog.database import Base

class DailyReport(Base):
    __tablename__ = "daily_reports"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    day = Column(Date, nullable=False)

    # Morning part
    wakeup_time = Column(String(5), nullable=False)  # HH:MM
    mood_start = Column(Integer, nullable=False)     # 1-5
    morning_routine = Column(Text, nullable=False)
    # [{"id", "description"}] in the morning, plus "completed"/"completion_time" after end of day
    daily_goals = Column(JSON, nullable=False)
    expected_activity = Column(JSON, nullable=False)  # [{"category", "duration"}]

    # End-of-day part: all NULL or all set
    mood_end = Column(Integer, nullable=True)
    actual_activity = Column(JSON, nullable=True)
    end_of_day_at = Column(DateTime(timezone=True), nullable=True)
    insights = Column(Text, nullable=True)
    morning_routine_completed = Column(Boolean, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (UniqueConstraint("user_id", "day", name="uq_daily_report_user_day"),)

class WeeklyReport(Base):
    __tablename__ = "weekly_reports"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    iso_year = Column(Integer, nullable=False)
    iso_week = Column(Integer, nullable=False)

    mood_rating = Column(Integer, nullable=False)
    mood_explanation = Column(Text, nullable=False)
    significant_event = Column(Text, nullable=True)
    new_interesting_learning = Column(Text, nullable=True)

    routine_maintained = Column(Boolean, nullable=False)
    routine_details = Column(Text, nullable=False)
    achieved_goals = Column(JSON, nullable=False)  # list[str]
    goals_shared = Column(Boolean, nullable=False, default=False)
    free_time = Column(Boolean, nullable=False)
    free_time_details = Column(Text, nullable=False)
    product_progress = Column(Text, nullable=True)
    course_chapter = Column(Text, nullable=True)
    learning_goal_achieved = Column(Boolean, nullable=False)
    learning_goal_details = Column(Text, nullable=False)
    mentor_interaction = Column(Boolean, nullable=False)
    mentor_interaction_details = Column(Text, nullable=False)
    support_interaction = Column(Boolean, nullable=False)
    support_interaction_details = Column(Text, nullable=False)
    additional_support = Column(Text, nullable=True)
    open_questions = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "iso_year", "iso_week", name="uq_weekly_report_user_week"),
    )
