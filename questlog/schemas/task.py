from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List

from questlog.schemas.stats import TaskBreakdownResponse

class StatusChangeRequest(BaseModel):
    status: str  # todo, in-progress, completed (or Backlog, To Do, In Progress, Done)
    comment: Optional[str] = None

class CommentCreate(BaseModel):
    model_config = {"str_strip_whitespace": True}

    content: str

class TaskAssign(BaseModel):
    task_id: int

class CommentResponse(BaseModel):
    id: Optional[int]
    author_id: int
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}

class QuestTaskResponse(BaseModel):
    id: int
    workspace_id: int
    user_id: int
    task_id: int
    title: str
    description: Optional[str]
    category: str
    link: Optional[str]
    stars_earned: int
    status: str
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    created_at: datetime
    comments: List[CommentResponse]

class QuestResponse(BaseModel):
    workspace_id: int
    user_id: int
    tasks: List[QuestTaskResponse]
    breakdown: TaskBreakdownResponse

class OversightItem(BaseModel):
    user_id: int
    role: str
    planet: Optional[str]
    position: Optional[str]
    breakdown: TaskBreakdownResponse
    struggling: bool

class OversightResponse(BaseModel):
    workspace_id: int
    status_filter: str
    members: List[OversightItem]
