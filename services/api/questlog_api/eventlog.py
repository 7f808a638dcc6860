from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import orjson
from fastapi import Request
from sqlalchemy.orm import Session

from questlog_api.models import Event


def request_id_from_request(request: Request | None) -> str | None:
    if request is None:
        return None
    value = getattr(getattr(request, "state", None), "request_id", None)
    return str(value)[:80] if value else None


def log_event(
    session: Session,
    *,
    type: str,
    user_id: str | None,
    request: Request | None = None,
    payload: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> Event:
    now_dt = now or datetime.now(UTC)
    p: dict[str, Any] = dict(payload or {})

    p.setdefault("v", 1)
    p.setdefault("user_id", user_id)
    if user_id and str(user_id).startswith("guest_"):
        p.setdefault("guest_id", user_id)

    request_id = request_id_from_request(request)
    if request_id:
        p.setdefault("request_id", request_id)
    if request is not None:
        try:
            p.setdefault("path", str(request.url.path))
        except Exception:  # noqa: BLE001
            pass

    ev = Event(
        id=f"ev_{uuid4().hex}",
        user_id=user_id,
        type=str(type),
        payload_json=orjson.dumps(p).decode("utf-8"),
        created_at=now_dt,
    )
    session.add(ev)
    return ev


def log_xp_event(
    session: Session,
    *,
    user_id: str,
    xp_event: dict[str, Any],
    request: Request | None = None,
    now: datetime | None = None,
) -> None:
    """Mirror one applied XP transaction (and a level-up, if any) into the event log."""
    log_event(
        session,
        type="xp_applied",
        user_id=user_id,
        request=request,
        payload={
            "amount": int(xp_event.get("amount") or 0),
            "reason": str(xp_event.get("reason") or ""),
            "xp_before": int(xp_event.get("xp_before") or 0),
            "xp_after": int(xp_event.get("xp_after") or 0),
            "metadata": dict(xp_event.get("metadata") or {}),
        },
        now=now,
    )
    if xp_event.get("leveled_up"):
        log_event(
            session,
            type="level_up",
            user_id=user_id,
            request=request,
            payload={
                "level_before": int(xp_event.get("level_before") or 1),
                "level": int(xp_event.get("level_after") or 1),
                "xp_total": int(xp_event.get("xp_after") or 0),
                "reason": str(xp_event.get("reason") or ""),
            },
            now=now,
        )
