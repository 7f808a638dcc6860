from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from questlog_api.core.config import Settings
from questlog_api.deps import AppSettings, CurrentUserId, DBSession
from questlog_api.locks import user_progress_lock
from questlog_api.models import Subtask, Task, User
from questlog_api.progression import (
    award_subtask_completion,
    award_task_completion,
    load_task_rpg,
    public_events,
    public_state,
    task_reward_input,
)
from questlog_api.routers.rpg import PlayerRpgOut, PublicXpEventOut
from questlog_rpg import clamp_task_level, compute_task_xp


Priority = Literal["low", "medium", "high"]
Status = Literal["todo", "in_progress", "blocked", "done"]

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class TaskCreateIn(BaseModel):
    description: str = Field(min_length=1, max_length=500)
    priority: Priority = "medium"
    task_level: int = Field(default=1, ge=1, le=100)


class SubtaskCreateIn(BaseModel):
    description: str = Field(min_length=1, max_length=500)
    priority: Priority | None = None
    weight: float | None = Field(default=None, ge=0, le=10)


class StatusUpdateIn(BaseModel):
    status: Status
    note: str | None = Field(default=None, max_length=500)


class SubtaskOut(BaseModel):
    id: int
    description: str
    priority: str | None = None
    weight: float | None = None
    status: str
    xp_awarded: bool
    last_reward_at: str | None = None


class TaskOut(BaseModel):
    id: int
    description: str
    priority: str
    task_level: int
    status: str
    xp_reward: int
    rpg: dict[str, Any] = Field(default_factory=dict)
    sub_tasks: list[SubtaskOut] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class TaskResponse(TaskOut):
    xp_events: list[PublicXpEventOut] | None = None
    player_rpg: PlayerRpgOut | None = None


class TaskListOut(BaseModel):
    tasks: list[TaskOut]


def _subtasks(db: Session, task_id: int) -> list[Subtask]:
    return list(
        db.scalars(select(Subtask).where(Subtask.task_id == task_id).order_by(Subtask.id))
    )


def _task_out(db: Session, task: Task, *, settings: Settings) -> dict[str, Any]:
    return dict(
        id=int(task.id),
        description=str(task.description),
        priority=str(task.priority),
        task_level=int(task.task_level),
        status=str(task.status),
        xp_reward=compute_task_xp(task_reward_input(task), config=settings.xp_config()).amount,
        rpg=load_task_rpg(task),
        sub_tasks=[
            SubtaskOut(
                id=int(s.id),
                description=str(s.description),
                priority=s.priority,
                weight=s.weight,
                status=str(s.status),
                xp_awarded=bool(s.xp_awarded),
                last_reward_at=s.last_reward_at,
            )
            for s in _subtasks(db, int(task.id))
        ],
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


def _owned_task(db: Session, *, task_id: int, user_id: str) -> Task:
    task = db.get(Task, int(task_id))
    if task is None or str(task.owner_id) != str(user_id):
        raise HTTPException(status_code=404, detail="task_not_found")
    return task


def _load_user(db: Session, user_id: str) -> User:
    user = db.get(User, str(user_id))
    if user is None:
        raise HTTPException(status_code=404, detail="user_not_found")
    return user


@router.post("", response_model=TaskResponse, status_code=201)
def create_task(
    payload: TaskCreateIn,
    user_id: str = CurrentUserId,
    db: Session = DBSession,
    settings: Settings = AppSettings,
) -> TaskResponse:
    _load_user(db, user_id)
    now = datetime.now(UTC)
    task = Task(
        owner_id=str(user_id),
        description=payload.description.strip(),
        priority=payload.priority,
        task_level=clamp_task_level(payload.task_level, config=settings.xp_config()),
        status="todo",
        rpg_json="{}",
        created_at=now,
        updated_at=now,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    return TaskResponse(**_task_out(db, task, settings=settings))


@router.get("", response_model=TaskListOut)
def list_tasks(
    user_id: str = CurrentUserId,
    db: Session = DBSession,
    settings: Settings = AppSettings,
) -> TaskListOut:
    rows = db.scalars(
        select(Task).where(Task.owner_id == str(user_id)).order_by(Task.id)
    ).all()
    return TaskListOut(tasks=[TaskOut(**_task_out(db, t, settings=settings)) for t in rows])


@router.patch("/{task_id}/status", response_model=TaskResponse)
def update_task_status(
    task_id: int,
    payload: StatusUpdateIn,
    request: Request,
    user_id: str = CurrentUserId,
    db: Session = DBSession,
    settings: Settings = AppSettings,
) -> TaskResponse:
    task = _owned_task(db, task_id=task_id, user_id=user_id)

    now = datetime.now(UTC)
    events: list[dict[str, Any]] = []
    snapshot: dict[str, Any] | None = None
    with user_progress_lock(db, user_id=user_id):
        # Re-read under the lock; a concurrent request may have completed it.
        db.refresh(task)
        will_complete = (
            payload.status == "done"
            and task.status != "done"
            and not load_task_rpg(task)["xp_awarded"]
        )
        task.status = payload.status
        task.updated_at = now
        db.add(task)
        if will_complete:
            user = _load_user(db, user_id)
            event, rpg = award_task_completion(
                db, user=user, task=task, settings=settings, now=now, request=request
            )
            events = public_events(event)
            if events:
                snapshot = public_state(rpg, settings=settings)
        db.commit()

    db.refresh(task)
    out = _task_out(db, task, settings=settings)
    if events:
        out.update(xp_events=events, player_rpg=snapshot)
    return TaskResponse(**out)


@router.post("/{task_id}/subtasks", response_model=TaskResponse, status_code=201)
def create_subtask(
    task_id: int,
    payload: SubtaskCreateIn,
    user_id: str = CurrentUserId,
    db: Session = DBSession,
    settings: Settings = AppSettings,
) -> TaskResponse:
    task = _owned_task(db, task_id=task_id, user_id=user_id)
    now = datetime.now(UTC)
    db.add(
        Subtask(
            task_id=int(task.id),
            description=payload.description.strip(),
            priority=payload.priority,
            weight=payload.weight,
            status="todo",
            xp_awarded=False,
            last_reward_at=None,
            created_at=now,
            updated_at=now,
        )
    )
    task.updated_at = now
    db.add(task)
    db.commit()
    db.refresh(task)
    return TaskResponse(**_task_out(db, task, settings=settings))


@router.patch("/{task_id}/subtasks/{subtask_id}/status", response_model=TaskResponse)
def update_subtask_status(
    task_id: int,
    subtask_id: int,
    payload: StatusUpdateIn,
    request: Request,
    user_id: str = CurrentUserId,
    db: Session = DBSession,
    settings: Settings = AppSettings,
) -> TaskResponse:
    task = _owned_task(db, task_id=task_id, user_id=user_id)
    subtask = db.get(Subtask, int(subtask_id))
    if subtask is None or int(subtask.task_id) != int(task.id):
        raise HTTPException(status_code=404, detail="subtask_not_found")

    now = datetime.now(UTC)
    events: list[dict[str, Any]] = []
    snapshot: dict[str, Any] | None = None
    with user_progress_lock(db, user_id=user_id):
        db.refresh(task)
        db.refresh(subtask)
        will_complete = (
            payload.status == "done"
            and subtask.status != "done"
            and not subtask.xp_awarded
        )
        subtask.status = payload.status
        subtask.updated_at = now
        task.updated_at = now
        db.add(subtask)
        db.add(task)
        if will_complete:
            user = _load_user(db, user_id)
            event, rpg = award_subtask_completion(
                db,
                user=user,
                task=task,
                subtask=subtask,
                settings=settings,
                now=now,
                request=request,
            )
            events = public_events(event)
            if events:
                snapshot = public_state(rpg, settings=settings)
        db.commit()

    db.refresh(task)
    out = _task_out(db, task, settings=settings)
    if events:
        out.update(xp_events=events, player_rpg=snapshot)
    return TaskResponse(**out)
