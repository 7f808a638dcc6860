from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Mapping


TaskPriority = Literal["low", "medium", "high"]
TaskStatus = Literal["todo", "in_progress", "blocked", "done"]
XpEventReason = Literal[
    "task_complete",
    "subtask_complete",
    "daily_focus",
    "debug_adjustment",
    "xp_gain",
    "legacy",
]

TASK_STATUSES: tuple[str, ...] = ("todo", "in_progress", "blocked", "done")

DEFAULT_PRIORITY_MULTIPLIERS: dict[str, float] = {
    "low": 0.9,
    "medium": 1.0,
    "high": 1.15,
}

# Counters every progression record carries; callers may add more.
STANDARD_COUNTERS: tuple[str, ...] = (
    "tasks_completed",
    "subtasks_completed",
    "daily_rewards_claimed",
)

DEFAULT_STATS: dict[str, int] = {
    "hp": 20,
    "mp": 5,
    "coins": 0,
    "streak": 0,
}


@dataclass(frozen=True)
class XpConfig:
    base_task_xp: int = 50
    task_level_bonus: int = 12
    base_subtask_xp: int = 18
    subtask_level_bonus: int = 6
    subtask_weight_floor: float = 0.35
    priority_multipliers: Mapping[str, float] = field(
        default_factory=lambda: dict(DEFAULT_PRIORITY_MULTIPLIERS)
    )
    daily_base_xp: int = 30
    max_task_level: int = 10
    level_base_requirement: int = 100
    level_step_requirement: int = 40
    xp_log_limit: int = 30
    level_cap: int = 99


XP_CONFIG = XpConfig()
