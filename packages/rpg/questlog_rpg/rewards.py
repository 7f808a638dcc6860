from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Mapping

from questlog_rpg.curve import is_number
from questlog_rpg.tables import TASK_STATUSES, XP_CONFIG, XpConfig


@dataclass(frozen=True)
class TaskReward:
    amount: int
    level: int
    multiplier: float
    base: int

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SubtaskReward(TaskReward):
    weight: float = 1.0
    source_priority: str | None = None


@dataclass(frozen=True)
class DailyReward:
    amount: int
    reason: str = "daily_focus"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_task_level(level: Any, *, config: XpConfig = XP_CONFIG) -> int:
    if not is_number(level):
        return 1
    rounded = _round_half_up(level)
    if rounded < 1:
        return 1
    return min(rounded, int(config.max_task_level))


def priority_multiplier(priority: Any, *, config: XpConfig = XP_CONFIG) -> float:
    if not priority or not isinstance(priority, str):
        return 1.0
    return float(config.priority_multipliers.get(priority.lower(), 1.0))


def _task_level_of(task: Mapping[str, Any]) -> Any:
    if "task_level" in task:
        return task.get("task_level")
    return task.get("level", 1)


def compute_task_xp(task: Any, *, config: XpConfig = XP_CONFIG) -> TaskReward:
    if not isinstance(task, Mapping):
        return TaskReward(amount=0, level=1, multiplier=1.0, base=int(config.base_task_xp))
    level = clamp_task_level(_task_level_of(task), config=config)
    base = int(config.base_task_xp) + (level - 1) * int(config.task_level_bonus)
    multiplier = priority_multiplier(task.get("priority"), config=config)
    amount = max(1, _round_half_up(base * multiplier))
    return TaskReward(amount=amount, level=level, multiplier=multiplier, base=base)


def compute_subtask_xp(task: Any, subtask: Any, *, config: XpConfig = XP_CONFIG) -> SubtaskReward:
    """XP for finishing one subtask of ``task``.

    The subtask's own priority wins over the parent's. A finite ``weight`` scales
    the reward but never drops below ``subtask_weight_floor``.
    """
    task_reward = compute_task_xp(task, config=config)
    if not isinstance(task, Mapping):
        return SubtaskReward(**task_reward.as_dict(), weight=1.0, source_priority=None)

    sub: Mapping[str, Any] = subtask if isinstance(subtask, Mapping) else {}
    base = int(config.base_subtask_xp) + (task_reward.level - 1) * int(config.subtask_level_bonus)
    source_priority = sub.get("priority")
    if source_priority is None:
        source_priority = task.get("priority")
    multiplier = priority_multiplier(source_priority, config=config)

    weight = 1.0
    raw_weight = sub.get("weight")
    if is_number(raw_weight):
        weight = max(float(config.subtask_weight_floor), float(raw_weight))

    amount = max(1, _round_half_up(base * multiplier * weight))
    return SubtaskReward(
        amount=amount,
        level=task_reward.level,
        multiplier=multiplier,
        base=base,
        weight=weight,
        source_priority=source_priority if isinstance(source_priority, str) else None,
    )


def compute_daily_base_xp(*, config: XpConfig = XP_CONFIG) -> DailyReward:
    return DailyReward(amount=int(config.daily_base_xp), reason="daily_focus")


def resolve_task_status(task: Any) -> str:
    status = task.get("status") if isinstance(task, Mapping) else None
    return status if status in TASK_STATUSES else "todo"


def summarize_task_reward(task: Any, *, config: XpConfig = XP_CONFIG) -> dict[str, Any]:
    out = compute_task_xp(task, config=config).as_dict()
    out["status"] = resolve_task_status(task)
    return out
