from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from questlog_api.core.config import Settings
from questlog_api.deps import AppSettings, CurrentUserId, DBSession, DebugOnly
from questlog_api.locks import user_progress_lock
from questlog_api.models import User
from questlog_api.progression import (
    claim_daily,
    grant_xp,
    load_user_rpg,
    public_events,
    public_state,
    reset_progress,
)
from questlog_rpg import summarize_task_reward
from questlog_rpg.curve import is_number


router = APIRouter(prefix="/api/rpg", tags=["rpg"])


class PublicXpEventOut(BaseModel):
    amount: int
    reason: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    at: str
    level_before: int
    level_after: int
    xp_after: int
    xp_into_level: int
    xp_for_level: int
    xp_to_next: int
    leveled_up: bool


class RpgStatsOut(BaseModel):
    hp: int
    mp: int
    coins: int


class RpgInventoryOut(BaseModel):
    items: list[Any] = Field(default_factory=list)


class PlayerRpgOut(BaseModel):
    level: int
    xp: int
    xp_into_level: int
    xp_for_level: int
    xp_to_next: int
    xp_progress: float
    streak: int
    last_daily_reward_at: str | None = None
    last_xp_award_at: str | None = None
    counters: dict[str, int] = Field(default_factory=dict)
    stats: RpgStatsOut
    achievements: list[Any] = Field(default_factory=list)
    inventory: RpgInventoryOut
    recent_events: list[PublicXpEventOut] = Field(default_factory=list)


class PlayerRpgResponse(BaseModel):
    player_rpg: PlayerRpgOut


class XpAwardResponse(BaseModel):
    xp_event: PublicXpEventOut
    player_rpg: PlayerRpgOut


class GrantXpIn(BaseModel):
    amount: float


class RewardPreviewOut(BaseModel):
    amount: int
    level: int
    multiplier: float
    base: int
    status: str


def _load_user(db: Session, user_id: str) -> User:
    user = db.get(User, str(user_id))
    if user is None:
        raise HTTPException(status_code=404, detail="user_not_found")
    return user


@router.get("", response_model=PlayerRpgResponse)
def get_state(
    user_id: str = CurrentUserId,
    db: Session = DBSession,
    settings: Settings = AppSettings,
) -> PlayerRpgResponse:
    user = _load_user(db, user_id)
    rpg = load_user_rpg(user, settings=settings)
    return PlayerRpgResponse(player_rpg=public_state(rpg, settings=settings))


@router.post("/daily-reward", response_model=XpAwardResponse)
def daily_reward(
    request: Request,
    user_id: str = CurrentUserId,
    db: Session = DBSession,
    settings: Settings = AppSettings,
) -> XpAwardResponse:
    with user_progress_lock(db, user_id=user_id):
        user = _load_user(db, user_id)
        event, rpg = claim_daily(db, user=user, settings=settings, request=request)
        if event is None:
            db.rollback()
            raise HTTPException(status_code=400, detail="already_claimed")
        db.commit()

    return XpAwardResponse(
        xp_event=public_events(event)[0],
        player_rpg=public_state(rpg, settings=settings),
    )


@router.post("/grant-xp", response_model=XpAwardResponse, dependencies=[DebugOnly])
def grant(
    payload: GrantXpIn,
    request: Request,
    user_id: str = CurrentUserId,
    db: Session = DBSession,
    settings: Settings = AppSettings,
) -> XpAwardResponse:
    if not is_number(payload.amount):
        raise HTTPException(status_code=400, detail="amount_invalid")
    if payload.amount == 0:
        raise HTTPException(status_code=400, detail="amount_zero")

    with user_progress_lock(db, user_id=user_id):
        user = _load_user(db, user_id)
        event, rpg = grant_xp(
            db,
            user=user,
            amount=payload.amount,
            reason="debug_adjustment",
            metadata={"amount": payload.amount},
            settings=settings,
            request=request,
        )
        if event is None:
            db.rollback()
            raise HTTPException(status_code=400, detail="no_xp_applied")
        db.commit()

    return XpAwardResponse(
        xp_event=public_events(event)[0],
        player_rpg=public_state(rpg, settings=settings),
    )


@router.post("/reset", response_model=PlayerRpgResponse)
def reset(
    request: Request,
    user_id: str = CurrentUserId,
    db: Session = DBSession,
    settings: Settings = AppSettings,
) -> PlayerRpgResponse:
    with user_progress_lock(db, user_id=user_id):
        user = _load_user(db, user_id)
        rpg = reset_progress(db, user=user, settings=settings, request=request)
        db.commit()
    return PlayerRpgResponse(player_rpg=public_state(rpg, settings=settings))


@router.get("/reward-preview", response_model=RewardPreviewOut)
def reward_preview(
    task_level: float | None = Query(default=None),
    priority: str | None = Query(default=None, max_length=16),
    _user_id: str = CurrentUserId,
    settings: Settings = AppSettings,
) -> RewardPreviewOut:
    task = {"task_level": task_level, "priority": priority}
    return RewardPreviewOut(**summarize_task_reward(task, config=settings.xp_config()))
