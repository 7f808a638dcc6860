from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import Request
from sqlalchemy.orm import Session

from questlog_api.core.config import Settings
from questlog_api.eventlog import log_event, log_xp_event
from questlog_api.models import Subtask, Task, User
from questlog_rpg import (
    apply_xp,
    build_public_rpg_state,
    claim_daily_reward,
    compute_subtask_xp,
    compute_task_xp,
    create_initial_rpg_state,
    decode_rpg,
    encode_rpg,
    ensure_user_rpg,
    increment_counter,
    to_public_xp_event,
)
from questlog_rpg.curve import is_number


def load_user_rpg(user: User, *, settings: Settings) -> dict[str, Any]:
    holder: dict[str, Any] = {"rpg": decode_rpg(user.rpg_json)}
    return ensure_user_rpg(holder, config=settings.xp_config()) or create_initial_rpg_state(
        config=settings.xp_config()
    )


def save_user_rpg(user: User, rpg: dict[str, Any], *, now: datetime) -> None:
    user.rpg_json = encode_rpg(rpg)
    user.updated_at = now


def public_state(rpg: dict[str, Any], *, settings: Settings) -> dict[str, Any]:
    return build_public_rpg_state(
        rpg,
        recent_limit=settings.rpg_recent_events_limit,
        config=settings.xp_config(),
    )


def public_events(*events: dict[str, Any] | None) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for ev in events:
        projected = to_public_xp_event(ev)
        if projected is not None:
            out.append(projected)
    return out


def grant_xp(
    session: Session,
    *,
    user: User,
    amount: float,
    reason: str,
    metadata: dict[str, Any] | None = None,
    settings: Settings,
    now: datetime | None = None,
    request: Request | None = None,
) -> tuple[dict[str, Any] | None, dict[str, Any]]:
    now_dt = now or datetime.now(UTC)
    holder: dict[str, Any] = {"rpg": load_user_rpg(user, settings=settings)}
    event = apply_xp(
        holder, amount, reason, metadata, now=now_dt, config=settings.xp_config()
    )
    if event is not None:
        save_user_rpg(user, holder["rpg"], now=now_dt)
        session.add(user)
        log_xp_event(session, user_id=user.id, xp_event=event, request=request, now=now_dt)
    return event, holder["rpg"]


def claim_daily(
    session: Session,
    *,
    user: User,
    settings: Settings,
    now: datetime | None = None,
    request: Request | None = None,
) -> tuple[dict[str, Any] | None, dict[str, Any]]:
    now_dt = now or datetime.now(UTC)
    holder: dict[str, Any] = {"rpg": load_user_rpg(user, settings=settings)}
    event = claim_daily_reward(holder, now=now_dt, config=settings.xp_config())
    if event is None:
        return None, holder["rpg"]

    save_user_rpg(user, holder["rpg"], now=now_dt)
    session.add(user)
    log_xp_event(session, user_id=user.id, xp_event=event, request=request, now=now_dt)
    log_event(
        session,
        type="daily_reward_claimed",
        user_id=user.id,
        request=request,
        payload={
            "date": str(holder["rpg"].get("last_daily_reward_at") or ""),
            "amount": int(event["amount"]),
            "claims_total": int(holder["rpg"]["counters"].get("daily_rewards_claimed", 0)),
        },
        now=now_dt,
    )
    return event, holder["rpg"]


def reset_progress(
    session: Session,
    *,
    user: User,
    settings: Settings,
    now: datetime | None = None,
    request: Request | None = None,
) -> dict[str, Any]:
    now_dt = now or datetime.now(UTC)
    before = load_user_rpg(user, settings=settings)
    rpg = create_initial_rpg_state(config=settings.xp_config())
    save_user_rpg(user, rpg, now=now_dt)
    session.add(user)
    log_event(
        session,
        type="rpg_reset",
        user_id=user.id,
        request=request,
        payload={"level_before": int(before["level"]), "xp_before": int(before["xp"])},
        now=now_dt,
    )
    return rpg


def load_task_rpg(task: Task) -> dict[str, Any]:
    data = decode_rpg(task.rpg_json)
    if not isinstance(data.get("xp_awarded"), bool):
        data["xp_awarded"] = False
    if not isinstance(data.get("last_reward_at"), str):
        data["last_reward_at"] = None
    if not isinstance(data.get("history"), list):
        data["history"] = []
    return data


def task_reward_input(task: Task) -> dict[str, Any]:
    return {
        "task_level": task.task_level,
        "priority": task.priority,
        "status": task.status,
    }


def subtask_reward_input(subtask: Subtask) -> dict[str, Any]:
    out: dict[str, Any] = {"priority": subtask.priority}
    if subtask.weight is not None:
        out["weight"] = subtask.weight
    return out


def _push_task_history(
    task_rpg: dict[str, Any], entry: dict[str, Any], *, limit: int
) -> None:
    history: list[Any] = task_rpg["history"]
    history.insert(0, entry)
    del history[max(0, int(limit)) :]


def award_task_completion(
    session: Session,
    *,
    user: User,
    task: Task,
    settings: Settings,
    now: datetime | None = None,
    request: Request | None = None,
) -> tuple[dict[str, Any] | None, dict[str, Any]]:
    """Grant the completion reward for ``task`` once. Returns (event, rpg)."""
    now_dt = now or datetime.now(UTC)
    config = settings.xp_config()
    task_rpg = load_task_rpg(task)
    if task_rpg["xp_awarded"]:
        return None, load_user_rpg(user, settings=settings)

    reward = compute_task_xp(task_reward_input(task), config=config)
    if reward.amount <= 0:
        return None, load_user_rpg(user, settings=settings)

    metadata = {
        "task_id": int(task.id),
        "task_level": int(task.task_level),
        "priority": str(task.priority),
    }
    event, rpg = grant_xp(
        session,
        user=user,
        amount=reward.amount,
        reason="task_complete",
        metadata=metadata,
        settings=settings,
        now=now_dt,
        request=request,
    )
    if event is None:
        return None, rpg

    increment_counter(rpg, "tasks_completed")
    save_user_rpg(user, rpg, now=now_dt)

    task_rpg["xp_awarded"] = True
    task_rpg["last_reward_at"] = event["at"]
    _push_task_history(
        task_rpg,
        {"at": event["at"], "amount": event["amount"], "reason": event["reason"]},
        limit=settings.task_reward_history_limit,
    )
    task.rpg_json = encode_rpg(task_rpg)
    session.add(task)
    return event, rpg


def award_subtask_completion(
    session: Session,
    *,
    user: User,
    task: Task,
    subtask: Subtask,
    settings: Settings,
    now: datetime | None = None,
    request: Request | None = None,
) -> tuple[dict[str, Any] | None, dict[str, Any]]:
    now_dt = now or datetime.now(UTC)
    config = settings.xp_config()
    if subtask.xp_awarded:
        return None, load_user_rpg(user, settings=settings)

    reward = compute_subtask_xp(
        task_reward_input(task), subtask_reward_input(subtask), config=config
    )
    if reward.amount <= 0:
        return None, load_user_rpg(user, settings=settings)

    metadata: dict[str, Any] = {
        "task_id": int(task.id),
        "task_level": int(task.task_level),
        "subtask_id": int(subtask.id),
        "priority": str(subtask.priority or task.priority),
    }
    if is_number(subtask.weight):
        metadata["weight"] = float(subtask.weight)

    event, rpg = grant_xp(
        session,
        user=user,
        amount=reward.amount,
        reason="subtask_complete",
        metadata=metadata,
        settings=settings,
        now=now_dt,
        request=request,
    )
    if event is None:
        return None, rpg

    increment_counter(rpg, "subtasks_completed")
    save_user_rpg(user, rpg, now=now_dt)

    subtask.xp_awarded = True
    subtask.last_reward_at = event["at"]
    session.add(subtask)

    task_rpg = load_task_rpg(task)
    _push_task_history(
        task_rpg,
        {
            "at": event["at"],
            "amount": event["amount"],
            "reason": event["reason"],
            "subtask_id": int(subtask.id),
        },
        limit=settings.task_reward_history_limit,
    )
    task.rpg_json = encode_rpg(task_rpg)
    session.add(task)
    return event, rpg
