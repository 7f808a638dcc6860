from __future__ import annotations

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from questlog_api.core.config import Settings
from questlog_api.core.security import decode_token
from questlog_api.db import SessionLocal


def get_db() -> Session:
    with SessionLocal() as session:
        yield session


def get_settings() -> Settings:
    return Settings()


def get_current_user_id(authorization: str | None = Header(default=None)) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    if not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = decode_token(token)
    except Exception as e:  # noqa: BLE001
        raise HTTPException(status_code=401, detail="Invalid token") from e
    subject = str(payload.get("sub") or "")
    if not subject:
        raise HTTPException(status_code=401, detail="Invalid token")
    return subject


def require_debug_routes(settings: Settings = Depends(get_settings)) -> None:
    if not settings.debug_routes_enabled:
        raise HTTPException(status_code=403, detail="debug_disabled")


CurrentUserId = Depends(get_current_user_id)
DBSession = Depends(get_db)
AppSettings = Depends(get_settings)
DebugOnly = Depends(require_debug_routes)
