__all__ = [
    "XP_CONFIG",
    "DailyReward",
    "LevelProgress",
    "SubtaskReward",
    "TaskReward",
    "XpConfig",
    "apply_xp",
    "build_public_rpg_state",
    "clamp_task_level",
    "claim_daily_reward",
    "compute_daily_base_xp",
    "compute_subtask_xp",
    "compute_task_xp",
    "create_initial_rpg_state",
    "daily_reward_available",
    "day_key",
    "decode_rpg",
    "describe_xp_event",
    "encode_rpg",
    "ensure_user_rpg",
    "increment_counter",
    "level_from_xp",
    "level_progress",
    "priority_multiplier",
    "summarize_task_reward",
    "to_public_xp_event",
    "xp_required_for_level",
]

from questlog_rpg.codec import decode_rpg, encode_rpg
from questlog_rpg.curve import LevelProgress, level_from_xp, level_progress, xp_required_for_level
from questlog_rpg.daily import claim_daily_reward, daily_reward_available
from questlog_rpg.dates import day_key
from questlog_rpg.engine import apply_xp, describe_xp_event
from questlog_rpg.public import build_public_rpg_state, to_public_xp_event
from questlog_rpg.rewards import (
    DailyReward,
    SubtaskReward,
    TaskReward,
    clamp_task_level,
    compute_daily_base_xp,
    compute_subtask_xp,
    compute_task_xp,
    priority_multiplier,
    summarize_task_reward,
)
from questlog_rpg.state import create_initial_rpg_state, ensure_user_rpg, increment_counter
from questlog_rpg.tables import XP_CONFIG, XpConfig
