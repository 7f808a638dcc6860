"""Repair of persisted progression records.

Records come back from storage as loosely typed JSON and may predate the current
schema or carry half-written fields. ``ensure_user_rpg`` is the single place that
turns such a record into one every other function can trust. It is idempotent
and mutates the record in place.
"""

from __future__ import annotations

import math
from typing import Any, Mapping, MutableMapping

from questlog_rpg.curve import is_number, level_from_xp
from questlog_rpg.tables import DEFAULT_STATS, STANDARD_COUNTERS, XP_CONFIG, XpConfig


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return []


def _ensure_counters(counters: Any) -> dict[str, int]:
    safe: dict[str, int] = counters if isinstance(counters, dict) else {}
    for key in list(safe.keys()):
        value = safe[key]
        safe[key] = int(math.floor(value)) if is_number(value) and value >= 0 else 0
    for key in STANDARD_COUNTERS:
        safe.setdefault(key, 0)
    return safe


def ensure_user_rpg(
    user: Any, *, config: XpConfig = XP_CONFIG
) -> dict[str, Any] | None:
    if not isinstance(user, MutableMapping):
        return None
    if not isinstance(user.get("rpg"), dict):
        user["rpg"] = {}
    rpg: dict[str, Any] = user["rpg"]

    level = rpg.get("level")
    rpg["level"] = int(math.floor(level)) if is_number(level) and level >= 1 else 1
    xp = rpg.get("xp")
    rpg["xp"] = int(math.floor(xp)) if is_number(xp) and xp >= 0 else 0

    rpg["xp_log"] = _as_list(rpg.get("xp_log"))
    rpg["achievements"] = _as_list(rpg.get("achievements"))
    if not isinstance(rpg.get("inventory"), dict):
        rpg["inventory"] = {"items": []}
    rpg["inventory"]["items"] = _as_list(rpg["inventory"].get("items"))

    for stat, default in DEFAULT_STATS.items():
        value = rpg.get(stat)
        rpg[stat] = int(math.floor(value)) if is_number(value) else default

    rpg["counters"] = _ensure_counters(rpg.get("counters"))

    if not isinstance(rpg.get("flags"), dict):
        rpg["flags"] = {}
    if not isinstance(rpg.get("metrics"), dict):
        rpg["metrics"] = {}

    for key in ("last_daily_reward_at", "last_xp_award_at"):
        if not isinstance(rpg.get(key), str):
            rpg[key] = None

    rpg["level"] = level_from_xp(rpg["xp"], config=config)
    return rpg


def create_initial_rpg_state(
    overrides: Mapping[str, Any] | None = None, *, config: XpConfig = XP_CONFIG
) -> dict[str, Any]:
    base: dict[str, Any] = {
        "level": 1,
        "xp": 0,
        **DEFAULT_STATS,
        "achievements": [],
        "inventory": {"items": []},
        "xp_log": [],
        "last_daily_reward_at": None,
        "last_xp_award_at": None,
        "counters": {key: 0 for key in STANDARD_COUNTERS},
        "flags": {},
        "metrics": {},
    }
    if isinstance(overrides, Mapping):
        base.update(overrides)
    holder: dict[str, Any] = {"rpg": base}
    return ensure_user_rpg(holder, config=config) or base


def increment_counter(rpg: Any, counter: str) -> None:
    if not isinstance(rpg, MutableMapping):
        return
    if not isinstance(rpg.get("counters"), dict):
        rpg["counters"] = {key: 0 for key in STANDARD_COUNTERS}
    counters = rpg["counters"]
    current = counters.get(counter)
    if not is_number(current) or current < 0:
        current = 0
    counters[counter] = int(math.floor(current)) + 1
