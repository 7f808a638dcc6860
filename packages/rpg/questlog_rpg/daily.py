from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, MutableMapping

from questlog_rpg.dates import day_key
from questlog_rpg.engine import apply_xp
from questlog_rpg.rewards import compute_daily_base_xp
from questlog_rpg.state import increment_counter
from questlog_rpg.tables import XP_CONFIG, XpConfig


def daily_reward_available(rpg: Any, *, now: datetime | None = None) -> bool:
    if not isinstance(rpg, Mapping):
        return True
    return rpg.get("last_daily_reward_at") != day_key(now)


def claim_daily_reward(
    user: Any,
    *,
    now: datetime | None = None,
    config: XpConfig = XP_CONFIG,
) -> dict[str, Any] | None:
    """Grant the once-per-UTC-day focus bonus.

    Returns the XP event, or None when there is no user or today's reward was
    already claimed. A refused claim leaves the record exactly as it was.
    """
    if not isinstance(user, MutableMapping):
        return None
    if not daily_reward_available(user.get("rpg"), now=now):
        return None

    today = day_key(now)
    reward = compute_daily_base_xp(config=config)
    event = apply_xp(user, reward.amount, reward.reason, {"date": today}, now=now, config=config)
    if event is None:
        return None

    # apply_xp has repaired user["rpg"] by now.
    rpg = user["rpg"]
    increment_counter(rpg, "daily_rewards_claimed")
    rpg["last_daily_reward_at"] = today
    return event
