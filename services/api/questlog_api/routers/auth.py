from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from fastapi import APIRouter, Body, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from questlog_api.core.config import Settings
from questlog_api.core.security import create_access_token
from questlog_api.deps import AppSettings, CurrentUserId, DBSession
from questlog_api.eventlog import log_event
from questlog_api.models import User
from questlog_api.progression import save_user_rpg
from questlog_rpg import create_initial_rpg_state

router = APIRouter(prefix="/api/auth", tags=["auth"])


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)


class GuestStartRequest(BaseModel):
    display_name: str | None = Field(default=None, max_length=80)


class MeResponse(BaseModel):
    user_id: str
    username: str | None = None
    display_name: str
    is_guest: bool


@router.post("/guest", response_model=AuthResponse)
def auth_guest(
    request: Request,
    req: GuestStartRequest | None = Body(default=None),
    db: Session = DBSession,
    settings: Settings = AppSettings,
) -> AuthResponse:
    now = datetime.now(UTC)
    display_name = str(getattr(req, "display_name", None) or "").strip() or "Wandering Adventurer"
    user = User(
        id=f"guest_{uuid4().hex}",
        username=None,
        display_name=display_name,
        is_guest=True,
        created_at=now,
        updated_at=now,
    )
    save_user_rpg(user, create_initial_rpg_state(config=settings.xp_config()), now=now)
    db.add(user)
    log_event(db, type="guest_start", user_id=user.id, request=request, now=now)
    db.commit()
    return AuthResponse(
        access_token=create_access_token(subject=user.id, is_guest=True)
    )


@router.post("/login", response_model=AuthResponse)
def auth_login(req: LoginRequest, db: Session = DBSession) -> AuthResponse:
    user = db.scalar(select(User).where(User.username == req.username))
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user (try username: demo)")
    return AuthResponse(
        access_token=create_access_token(subject=user.id, is_guest=user.is_guest)
    )


@router.get("/me", response_model=MeResponse)
def auth_me(user_id: str = CurrentUserId, db: Session = DBSession) -> MeResponse:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="user_not_found")
    return MeResponse(
        user_id=user.id,
        username=user.username,
        display_name=user.display_name,
        is_guest=user.is_guest,
    )
