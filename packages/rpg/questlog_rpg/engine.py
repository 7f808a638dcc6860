from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Mapping, MutableMapping

from questlog_rpg.curve import is_number, level_from_xp, level_progress
from questlog_rpg.dates import utc_timestamp
from questlog_rpg.state import ensure_user_rpg
from questlog_rpg.tables import XP_CONFIG, XpConfig


_MESSAGE_TEMPLATES: dict[str, str] = {
    "task_complete": "Quest complete +{amount} XP",
    "subtask_complete": "Side-quest complete +{amount} XP",
    "daily_focus": "Daily focus bonus +{amount} XP",
}

_PRIMITIVES = (str, int, float, bool, type(None))


def describe_xp_event(reason: str, amount: int) -> str:
    template = _MESSAGE_TEMPLATES.get(str(reason or ""))
    if template is not None:
        return template.format(amount=amount)
    if amount >= 0:
        return f"Gained +{amount} XP"
    return f"Lost {abs(amount)} XP"


def _clean_metadata(metadata: Any) -> dict[str, Any]:
    if not isinstance(metadata, Mapping):
        return {}
    out: dict[str, Any] = {}
    for key, value in metadata.items():
        if isinstance(value, float) and not math.isfinite(value):
            continue
        if isinstance(value, _PRIMITIVES):
            out[str(key)] = value
    return out


def apply_xp(
    user: Any,
    amount: Any,
    reason: str = "xp_gain",
    metadata: Mapping[str, Any] | None = None,
    *,
    now: datetime | None = None,
    config: XpConfig = XP_CONFIG,
) -> dict[str, Any] | None:
    """Apply a signed XP delta to ``user["rpg"]`` and return the audit event.

    Returns None, leaving the record untouched, when there is no user or the
    amount floors to zero (or is not a finite number). XP never drops below 0.
    The event is prepended to ``xp_log``, which is cut back to
    ``config.xp_log_limit`` entries.
    """
    if not isinstance(user, MutableMapping) or not is_number(amount):
        return None
    delta = int(math.floor(amount))
    if delta == 0:
        return None

    rpg = ensure_user_rpg(user, config=config)
    if rpg is None:
        return None

    at = utc_timestamp(now)
    reason = str(reason or "xp_gain")
    xp_before = int(rpg["xp"])
    level_before = int(rpg["level"])

    rpg["xp"] = max(0, xp_before + delta)
    rpg["level"] = level_from_xp(rpg["xp"], config=config)
    rpg["last_xp_award_at"] = at

    progress = level_progress(rpg["level"], rpg["xp"], config=config)
    event: dict[str, Any] = {
        "amount": delta,
        "reason": reason,
        "message": describe_xp_event(reason, delta),
        "metadata": _clean_metadata(metadata),
        "at": at,
        "level_before": level_before,
        "level_after": rpg["level"],
        "xp_before": xp_before,
        "xp_after": rpg["xp"],
        "xp_into_level": progress.xp_into_level,
        "xp_for_level": progress.xp_for_level,
        "xp_to_next": progress.xp_to_next,
        "leveled_up": rpg["level"] > level_before,
    }

    log: list[Any] = rpg["xp_log"]
    log.insert(0, event)
    del log[max(0, int(config.xp_log_limit)) :]
    return event
