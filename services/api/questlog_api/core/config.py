from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from questlog_rpg.tables import DEFAULT_PRIORITY_MULTIPLIERS, XpConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="QUESTLOG_", extra="ignore")

    public_base_url: str | None = None
    trust_proxy_headers: bool = False
    allowed_hosts: str = "localhost,127.0.0.1,testserver"
    cors_allowed_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    log_json: bool = False

    db_url: str = "sqlite:///./artifacts/questlog.db"

    auth_jwt_secret: str = "dev-secret-change-me"
    # Comma-separated; accepted for verification only.
    auth_jwt_previous_secrets: str = ""
    auth_jwt_issuer: str = "questlog-local"
    auth_jwt_exp_minutes: int = 60 * 24 * 7

    # Debug surface (manual XP grants). Keep off outside local dev.
    debug_routes_enabled: bool = False

    rpg_recent_events_limit: int = 5
    task_reward_history_limit: int = 10

    # Progression tuning; see questlog_rpg.tables.XpConfig.
    xp_base_task: int = 50
    xp_task_level_bonus: int = 12
    xp_base_subtask: int = 18
    xp_subtask_level_bonus: int = 6
    xp_subtask_weight_floor: float = 0.35
    xp_priority_multipliers: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_PRIORITY_MULTIPLIERS)
    )
    xp_daily_base: int = 30
    xp_max_task_level: int = 10
    xp_level_base_requirement: int = 100
    xp_level_step_requirement: int = 40
    xp_log_limit: int = 30
    xp_level_cap: int = 99

    @field_validator("xp_log_limit", "xp_level_cap", "xp_max_task_level")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if int(v) < 1:
            raise ValueError("must be >= 1")
        return int(v)

    @field_validator("xp_subtask_weight_floor")
    @classmethod
    def _validate_weight_floor(cls, v: float) -> float:
        if not (0.0 < float(v) <= 1.0):
            raise ValueError("QUESTLOG_XP_SUBTASK_WEIGHT_FLOOR must be in (0, 1]")
        return float(v)

    @field_validator("xp_priority_multipliers")
    @classmethod
    def _normalize_priority_keys(cls, v: dict[str, float]) -> dict[str, float]:
        return {str(k).strip().lower(): float(m) for k, m in (v or {}).items() if str(k).strip()}

    def xp_config(self) -> XpConfig:
        return XpConfig(
            base_task_xp=self.xp_base_task,
            task_level_bonus=self.xp_task_level_bonus,
            base_subtask_xp=self.xp_base_subtask,
            subtask_level_bonus=self.xp_subtask_level_bonus,
            subtask_weight_floor=self.xp_subtask_weight_floor,
            priority_multipliers=dict(self.xp_priority_multipliers),
            daily_base_xp=self.xp_daily_base,
            max_task_level=self.xp_max_task_level,
            level_base_requirement=self.xp_level_base_requirement,
            level_step_requirement=self.xp_level_step_requirement,
            xp_log_limit=self.xp_log_limit,
            level_cap=self.xp_level_cap,
        )
