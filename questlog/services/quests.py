"""
Quest task state machine.

Owners move their own tasks forward; mentors and admins may force any
transition. Comments are append-only. Assignments are revoked, never
deleted, so status history and comments survive.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional

from questlog.core.actors import Actor, ActorRole
from questlog.core.errors import (
    DependencyError,
    IllegalTransitionError,
    InputValidationError,
    NotFoundError,
    PermissionDeniedError,
)
from questlog.models.task import QuestTask, Task, TaskComment
from questlog.models.workspace import Invitation, WorkspaceMember

logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        key = value.strip().lower()
        for member in cls:
            if member.value == key:
                return member
        return _ALIASES.get(key)


_ALIASES = {
    "backlog": TaskStatus.TODO,
    "to do": TaskStatus.TODO,
    "in progress": TaskStatus.IN_PROGRESS,
    "in_progress": TaskStatus.IN_PROGRESS,
    "done": TaskStatus.COMPLETED,
}

OWNER_TRANSITIONS: Dict[TaskStatus, FrozenSet[TaskStatus]] = {
    TaskStatus.TODO: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.COMPLETED}),
    TaskStatus.COMPLETED: frozenset(),
}


def parse_status(value) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in TaskStatus)
        raise InputValidationError(
            f"Unknown task status {value!r}", errors={"status": f"Must be one of: {allowed}"}
        )


def is_transition_allowed(actor: Actor, current: TaskStatus, target: TaskStatus) -> bool:
    """The whole permission matrix: owners follow the table, mentors/admins anything."""
    if actor.is_privileged:
        return True
    return target in OWNER_TRANSITIONS[current]


def _ensure_active(task: QuestTask) -> None:
    if task.revoked_at is not None:
        raise NotFoundError(f"Quest task {task.id} has been revoked")


def _ensure_can_act(actor: Actor, task: QuestTask) -> None:
    if actor.role is ActorRole.OWNER and actor.user_id != task.user_id:
        raise PermissionDeniedError("You can only act on your own quest tasks")


def add_comment(actor: Actor, task: QuestTask, text: Optional[str], now: datetime) -> TaskComment:
    _ensure_active(task)
    _ensure_can_act(actor, task)
    content = (text or "").strip()
    if not content:
        raise InputValidationError(
            "Comment content cannot be empty", errors={"content": "Comment content cannot be empty"}
        )
    comment = TaskComment(author_id=actor.user_id, content=content, created_at=now)
    task.comments.append(comment)
    task.updated_at = now
    logger.info("Comment added to quest task %s by user %s", task.id, actor.user_id)
    return comment


def change_status(actor: Actor, task: QuestTask, new_status, now: datetime,
                  comment: Optional[str] = None) -> QuestTask:
    _ensure_active(task)
    _ensure_can_act(actor, task)
    target = parse_status(new_status)
    current = TaskStatus(task.status)

    if not is_transition_allowed(actor, current, target):
        logger.warning(
            "Illegal transition %s -> %s on quest task %s by %s %s",
            current.value, target.value, task.id, actor.role.value, actor.user_id,
        )
        raise IllegalTransitionError(current.value, target.value)
    # Validate the comment before touching the task so a failure leaves it unchanged.
    if comment is not None and not comment.strip():
        raise InputValidationError(
            "Comment content cannot be empty", errors={"comment": "Comment content cannot be empty"}
        )

    task.status = target.value
    if target is TaskStatus.TODO:
        task.started_at = None
        task.completed_at = None
    elif target is TaskStatus.IN_PROGRESS:
        task.started_at = task.started_at or now
        task.completed_at = None
    else:
        task.started_at = task.started_at or now
        task.completed_at = task.completed_at or now
    task.updated_at = now
    logger.info(
        "Quest task %s moved %s -> %s by %s %s",
        task.id, current.value, target.value, actor.role.value, actor.user_id,
    )

    if comment is not None:
        add_comment(actor, task, comment, now)
    return task


# ---------- Assignment ----------

def ensure_assignable(member: Optional[WorkspaceMember], invitation: Optional[Invitation] = None,
                      now: Optional[datetime] = None) -> WorkspaceMember:
    """A quest can only be handed to a workspace member whose invitation (if any) was accepted."""
    if member is None:
        raise DependencyError("User is not a member of this workspace")
    if invitation is not None:
        status = invitation.effective_status(now)
        if status != "accepted":
            raise DependencyError(f"Workspace invitation is {status}, not accepted")
    return member


def task_matches_member(task: Task, member: WorkspaceMember) -> bool:
    if task.planets and member.planet not in task.planets:
        return False
    if task.positions and member.position not in task.positions:
        return False
    return True


def assign_task(actor: Actor, task: Task, member: Optional[WorkspaceMember], now: datetime,
                invitation: Optional[Invitation] = None) -> QuestTask:
    if not actor.is_privileged:
        raise PermissionDeniedError("Only mentors and admins can assign tasks")
    member = ensure_assignable(member, invitation, now)
    if task.assignee_id is not None and task.assignee_id != member.user_id:
        raise InputValidationError(
            "Personal task belongs to another user", errors={"task_id": "Task is personal to another user"}
        )
    quest_task = QuestTask(
        workspace_id=member.workspace_id,
        user_id=member.user_id,
        task_id=task.id,
        task=task,
        comments=[],
        status=TaskStatus.TODO.value,
        assigned_by_id=actor.user_id,
        created_at=now,
    )
    logger.info("Task %s assigned to user %s in workspace %s", task.id, member.user_id, member.workspace_id)
    return quest_task


def assign_global_tasks(tasks: Iterable[Task], member: Optional[WorkspaceMember],
                        existing: Iterable[QuestTask], now: datetime,
                        invitation: Optional[Invitation] = None) -> List[QuestTask]:
    """Create assignments for global tasks the member qualifies for and does not hold yet."""
    member = ensure_assignable(member, invitation, now)
    held = {qt.task_id for qt in existing}
    created = []
    for task in tasks:
        if not task.is_global or task.id in held:
            continue
        if not task_matches_member(task, member):
            continue
        created.append(QuestTask(
            workspace_id=member.workspace_id,
            user_id=member.user_id,
            task_id=task.id,
            task=task,
            comments=[],
            status=TaskStatus.TODO.value,
            created_at=now,
        ))
    if created:
        logger.info("Auto-assigned %d global tasks to user %s", len(created), member.user_id)
    return created


def revoke_assignment(actor: Actor, task: QuestTask, now: datetime) -> QuestTask:
    if not actor.is_privileged:
        raise PermissionDeniedError("Only mentors and admins can revoke assignments")
    _ensure_active(task)
    task.revoked_at = now
    task.updated_at = now
    logger.info("Quest task %s revoked by user %s", task.id, actor.user_id)
    return task
