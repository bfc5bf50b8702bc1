from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from questlog.config import settings
from questlog.core.actors import Actor, resolve_actor, workspace_role
from questlog.core.auth import get_current_user
from questlog.core.clock import Clock, get_clock
from questlog.core.errors import PermissionDeniedError
from questlog.database import get_db
from questlog.models.task import QuestTask
from questlog.schemas.stats import TaskBreakdownResponse
from questlog.schemas.task import (
    CommentCreate,
    CommentResponse,
    OversightItem,
    OversightResponse,
    QuestResponse,
    QuestTaskResponse,
    StatusChangeRequest,
    TaskAssign,
)
from questlog.services import lifecycle, quests
from questlog.services.statistics import is_struggling, matches_oversight_filter, task_breakdown
from questlog.services.stores import SqlQuestStore

router = APIRouter(prefix="/quests", tags=["quests"])

OVERSIGHT_FILTERS = ("all", "active", "completed", "struggling")


def _task_response(quest_task: QuestTask) -> QuestTaskResponse:
    task = quest_task.task
    return QuestTaskResponse(
        id=quest_task.id,
        workspace_id=quest_task.workspace_id,
        user_id=quest_task.user_id,
        task_id=quest_task.task_id,
        title=task.title,
        description=task.description,
        category=task.category,
        link=task.link,
        stars_earned=task.stars_earned or 0,
        status=quest_task.status,
        started_at=quest_task.started_at,
        completed_at=quest_task.completed_at,
        created_at=quest_task.created_at,
        comments=[CommentResponse.model_validate(c) for c in quest_task.comments],
    )


async def _privileged_actor(store: SqlQuestStore, workspace_id: int, user) -> Actor:
    membership = await store.find_member(workspace_id, user.id)
    role = workspace_role(user, membership)
    if role is None:
        raise PermissionDeniedError("Mentor or admin access required")
    return Actor(user_id=user.id, role=role)


async def _acting_on(store: SqlQuestStore, workspace_id: int, user_id: int, task_id: int, user):
    quest_task = await store.get_active_task(workspace_id, user_id, task_id)
    membership = await store.find_member(workspace_id, user.id)
    return quest_task, resolve_actor(user, quest_task, membership)


@router.get("/{workspace_id}", response_model=QuestResponse)
async def get_my_quest(
    workspace_id: int,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    store = SqlQuestStore(db)
    if await store.find_member(workspace_id, current_user.id) is None:
        raise HTTPException(404, "Workspace not found or access denied")
    tasks = await store.list_tasks(workspace_id, current_user.id)
    return QuestResponse(
        workspace_id=workspace_id,
        user_id=current_user.id,
        tasks=[_task_response(t) for t in tasks],
        breakdown=TaskBreakdownResponse.model_validate(task_breakdown(tasks)),
    )


@router.get("/{workspace_id}/users/{user_id}", response_model=QuestResponse)
async def get_member_quest(
    workspace_id: int,
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    store = SqlQuestStore(db)
    if user_id != current_user.id:
        await _privileged_actor(store, workspace_id, current_user)
    tasks = await store.list_tasks(workspace_id, user_id)
    return QuestResponse(
        workspace_id=workspace_id,
        user_id=user_id,
        tasks=[_task_response(t) for t in tasks],
        breakdown=TaskBreakdownResponse.model_validate(task_breakdown(tasks)),
    )


@router.post("/{workspace_id}/users/{user_id}/tasks/{task_id}/status", response_model=QuestTaskResponse)
async def change_task_status(
    workspace_id: int,
    user_id: int,
    task_id: int,
    change_in: StatusChangeRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user = Depends(get_current_user)
):
    store = SqlQuestStore(db)
    quest_task, actor = await _acting_on(store, workspace_id, user_id, task_id, current_user)
    result = lifecycle.attempt_status_change(
        actor, quest_task, change_in.status, clock.now(), comment=change_in.comment
    )
    if isinstance(result, lifecycle.Rejected):
        raise result.error
    return _task_response(await store.save(result))


@router.post("/{workspace_id}/users/{user_id}/tasks/{task_id}/comments",
             response_model=QuestTaskResponse, status_code=201)
async def add_task_comment(
    workspace_id: int,
    user_id: int,
    task_id: int,
    comment_in: CommentCreate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user = Depends(get_current_user)
):
    store = SqlQuestStore(db)
    quest_task, actor = await _acting_on(store, workspace_id, user_id, task_id, current_user)
    result = lifecycle.attempt_comment(actor, quest_task, comment_in.content, clock.now())
    if isinstance(result, lifecycle.Rejected):
        raise result.error
    return _task_response(await store.save(result))


@router.post("/{workspace_id}/users/{user_id}/assign", response_model=QuestTaskResponse, status_code=201)
async def assign_task(
    workspace_id: int,
    user_id: int,
    assign_in: TaskAssign,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user = Depends(get_current_user)
):
    store = SqlQuestStore(db)
    actor = await _privileged_actor(store, workspace_id, current_user)
    if await store.find_task(workspace_id, user_id, assign_in.task_id) is not None:
        raise HTTPException(400, "Task already assigned to this user")

    task = await store.get_definition(assign_in.task_id)
    member = await store.find_member(workspace_id, user_id)
    invitation = await store.find_invitation(workspace_id, user_id)
    quest_task = quests.assign_task(actor, task, member, clock.now(), invitation=invitation)
    return _task_response(await store.save(quest_task))


@router.post("/{workspace_id}/users/{user_id}/sync", response_model=List[QuestTaskResponse])
async def sync_global_tasks(
    workspace_id: int,
    user_id: int,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user = Depends(get_current_user)
):
    store = SqlQuestStore(db)
    await _privileged_actor(store, workspace_id, current_user)
    member = await store.find_member(workspace_id, user_id)
    invitation = await store.find_invitation(workspace_id, user_id)
    existing = await store.list_tasks(workspace_id, user_id, include_revoked=True)
    created = quests.assign_global_tasks(
        await store.list_global_definitions(), member, existing, clock.now(), invitation=invitation
    )
    await store.save_all(created)
    return [_task_response(t) for t in created]


@router.delete("/{workspace_id}/users/{user_id}/tasks/{task_id}", response_model=QuestTaskResponse)
async def revoke_task(
    workspace_id: int,
    user_id: int,
    task_id: int,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user = Depends(get_current_user)
):
    store = SqlQuestStore(db)
    actor = await _privileged_actor(store, workspace_id, current_user)
    quest_task = await store.get_active_task(workspace_id, user_id, task_id)
    quests.revoke_assignment(actor, quest_task, clock.now())
    return _task_response(await store.save(quest_task))


@router.get("/{workspace_id}/oversight", response_model=OversightResponse)
async def quest_oversight(
    workspace_id: int,
    status_filter: str = "all",
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    if status_filter not in OVERSIGHT_FILTERS:
        raise HTTPException(400, f"status_filter must be one of: {', '.join(OVERSIGHT_FILTERS)}")
    store = SqlQuestStore(db)
    await _privileged_actor(store, workspace_id, current_user)

    tasks = await store.list_tasks(workspace_id)
    by_user = {}
    for task in tasks:
        by_user.setdefault(task.user_id, []).append(task)

    threshold = settings.STRUGGLING_THRESHOLD
    members = []
    for member in await store.list_members(workspace_id):
        if member.role != "mentee":
            continue
        member_tasks = by_user.get(member.user_id, [])
        if not matches_oversight_filter(member_tasks, status_filter, threshold):
            continue
        members.append(OversightItem(
            user_id=member.user_id,
            role=member.role,
            planet=member.planet,
            position=member.position,
            breakdown=TaskBreakdownResponse.model_validate(task_breakdown(member_tasks)),
            struggling=is_struggling(member_tasks, threshold),
        ))
    return OversightResponse(workspace_id=workspace_id, status_filter=status_filter, members=members)
