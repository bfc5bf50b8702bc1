from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Boolean, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from questlog.database import Base

class Task(Base):
    """A task definition. Users receive it through a QuestTask assignment."""

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False)  # Learning courses, Product refinement, Mandatory sessions
    planets = Column(JSON, nullable=False, default=list)    # empty = every planet
    positions = Column(JSON, nullable=False, default=list)  # empty = every position
    is_global = Column(Boolean, nullable=False, default=False)
    assignee_id = Column(Integer, ForeignKey("users.id"), nullable=True)  # personal tasks only
    stars_earned = Column(Integer, nullable=False, default=0)
    link = Column(String, nullable=True)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=True)

class QuestTask(Base):
    __tablename__ = "quest_tasks"

    id = Column(Integer, primary_key=True, index=True)
    workspace_id = Column(Integer, ForeignKey("workspaces.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False)
    status = Column(String, nullable=False, default="todo")  # todo, in-progress, completed
    assigned_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    task = relationship("Task", lazy="selectin")
    comments = relationship(
        "TaskComment",
        lazy="selectin",
        order_by="TaskComment.id",
        cascade="save-update, merge",
    )

    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", "task_id", name="uq_quest_task_assignment"),
    )

class TaskComment(Base):
    __tablename__ = "task_comments"

    id = Column(Integer, primary_key=True, index=True)
    quest_task_id = Column(Integer, ForeignKey("quest_tasks.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
