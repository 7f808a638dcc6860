"""Client-facing projections of progression state.

These are the only shapes that leave the service. ``xp_before`` stays internal.
"""

from __future__ import annotations

import copy
from typing import Any, Mapping

from questlog_rpg.curve import level_progress
from questlog_rpg.state import create_initial_rpg_state, ensure_user_rpg
from questlog_rpg.tables import XP_CONFIG, XpConfig


PUBLIC_EVENT_FIELDS: tuple[str, ...] = (
    "amount",
    "reason",
    "message",
    "metadata",
    "at",
    "level_before",
    "level_after",
    "xp_after",
    "xp_into_level",
    "xp_for_level",
    "xp_to_next",
    "leveled_up",
)

RECENT_EVENTS_LIMIT = 5


def to_public_xp_event(event: Any) -> dict[str, Any] | None:
    if not isinstance(event, Mapping):
        return None
    out = {key: event.get(key) for key in PUBLIC_EVENT_FIELDS}
    metadata = event.get("metadata")
    out["metadata"] = dict(metadata) if isinstance(metadata, Mapping) else {}
    out["leveled_up"] = bool(event.get("leveled_up"))
    return out


def build_public_rpg_state(
    rpg: Any,
    *,
    recent_limit: int = RECENT_EVENTS_LIMIT,
    config: XpConfig = XP_CONFIG,
) -> dict[str, Any]:
    holder: dict[str, Any] = {"rpg": copy.deepcopy(rpg) if isinstance(rpg, Mapping) else None}
    safe = ensure_user_rpg(holder, config=config) or create_initial_rpg_state(config=config)
    progress = level_progress(safe["level"], safe["xp"], config=config)

    recent: list[dict[str, Any]] = []
    for entry in safe["xp_log"][: max(0, int(recent_limit))]:
        projected = to_public_xp_event(entry)
        if projected is not None:
            recent.append(projected)

    return {
        "level": safe["level"],
        "xp": safe["xp"],
        "xp_into_level": progress.xp_into_level,
        "xp_for_level": progress.xp_for_level,
        "xp_to_next": progress.xp_to_next,
        "xp_progress": progress.progress,
        "streak": safe["streak"],
        "last_daily_reward_at": safe["last_daily_reward_at"],
        "last_xp_award_at": safe["last_xp_award_at"],
        "counters": dict(safe["counters"]),
        "stats": {"hp": safe["hp"], "mp": safe["mp"], "coins": safe["coins"]},
        "achievements": list(safe["achievements"]),
        "inventory": {"items": list(safe["inventory"]["items"])},
        "recent_events": recent,
    }
