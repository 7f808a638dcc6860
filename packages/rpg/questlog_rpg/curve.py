from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any

from questlog_rpg.tables import XP_CONFIG, XpConfig


@dataclass(frozen=True)
class LevelProgress:
    xp_into_level: int
    xp_for_level: int
    xp_to_next: int
    progress: float

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def is_number(value: Any) -> bool:
    """True for finite ints/floats. Booleans are not XP."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def xp_required_for_level(level: int | float, *, config: XpConfig = XP_CONFIG) -> int:
    """Cumulative XP needed to reach ``level``.

    Each level costs ``base + (n - 1) * step`` more than the one before it, so the
    total is an arithmetic series: 0, 100, 240, 420, ... with the default table.
    """
    if not is_number(level) or level <= 1:
        return 0
    steps = math.ceil(level) - 1
    base = int(config.level_base_requirement)
    step = int(config.level_step_requirement)
    return steps * base + step * steps * (steps - 1) // 2


def level_from_xp(xp: Any, *, config: XpConfig = XP_CONFIG) -> int:
    if not is_number(xp) or xp <= 0:
        return 1
    lo, hi = 1, max(1, int(config.level_cap))
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if xp >= xp_required_for_level(mid, config=config):
            lo = mid
        else:
            hi = mid - 1
    return lo


def level_progress(level: Any, xp: Any, *, config: XpConfig = XP_CONFIG) -> LevelProgress:
    safe_xp = max(0, math.floor(xp)) if is_number(xp) else 0
    safe_level = math.floor(level) if is_number(level) and level >= 1 else 1

    floor_xp = xp_required_for_level(safe_level, config=config)
    ceil_xp = xp_required_for_level(safe_level + 1, config=config)
    xp_for_level = max(1, ceil_xp - floor_xp)
    xp_into_level = max(0, safe_xp - floor_xp)
    xp_to_next = max(0, ceil_xp - safe_xp)
    progress = min(1.0, max(0.0, xp_into_level / xp_for_level))
    return LevelProgress(
        xp_into_level=int(xp_into_level),
        xp_for_level=int(xp_for_level),
        xp_to_next=int(xp_to_next),
        progress=float(progress),
    )
