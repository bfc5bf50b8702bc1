# questlog/core/actors.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from questlog.core.errors import PermissionDeniedError
from questlog.models.task import QuestTask
from questlog.models.user import User
from questlog.models.workspace import WorkspaceMember


class ActorRole(str, Enum):
    OWNER = "owner"
    MENTOR = "mentor"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: ActorRole

    @property
    def is_privileged(self) -> bool:
        return self.role in (ActorRole.MENTOR, ActorRole.ADMIN)


def workspace_role(user: User, membership: Optional[WorkspaceMember]) -> Optional[ActorRole]:
    """Privileged role of ``user`` in a workspace, or None for plain members."""
    if user.role == "admin":
        return ActorRole.ADMIN
    if membership is not None and membership.role in ("mentor", "admin"):
        return ActorRole(membership.role)
    return None


def resolve_actor(user: User, quest_task: QuestTask,
                  membership: Optional[WorkspaceMember] = None) -> Actor:
    """
    Decide how ``user`` acts on ``quest_task``.

    Mentor/admin wins over ownership, so a mentor working on their own quest
    still gets the override table.
    """
    if membership is not None and membership.workspace_id != quest_task.workspace_id:
        membership = None
    role = workspace_role(user, membership)
    if role is not None:
        return Actor(user_id=user.id, role=role)
    if user.id == quest_task.user_id:
        return Actor(user_id=user.id, role=ActorRole.OWNER)
    raise PermissionDeniedError("You can only act on your own quest tasks")
