"""配置模块 -- 可通过环境变量覆盖

包含数据库路径、分页常量，以及规则引擎的优先级范围配置。
"""

import os
from pathlib import Path
from typing import Literal

import structlog
from pydantic import BaseModel, Field, model_validator

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("RULEQUEUE_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "RULEQUEUE_DB_PATH",
        str(_get_base_dir() / "sqlite" / "rulequeue.db"),
    )


# 分页默认值
DEFAULT_PAGE_SIZE: int = 10
MAX_PAGE_SIZE: int = 100


class EngineConfig(BaseModel):
    """规则引擎配置 -- 从环境变量加载

    环境变量:
        RULEQUEUE_PRIORITY_MIN: 优先级下界（默认 0）
        RULEQUEUE_PRIORITY_MAX: 优先级上界（默认 100）
        RULEQUEUE_DEFAULT_PRIORITY: 新任务默认优先级（默认 1，即 NORMAL）
        RULEQUEUE_BOUNDS_MODE: 越界处理方式 clamp / strict（默认 clamp）
        RULEQUEUE_STATS_CACHE: 是否缓存全局统计（默认 true）
    """

    priority_min: int = Field(default=0, description="优先级下界（含）")
    priority_max: int = Field(default=100, description="优先级上界（含）")
    default_priority: int = Field(default=1, description="新任务默认优先级")
    bounds_mode: Literal["clamp", "strict"] = Field(
        default="clamp",
        description="clamp: 静默截断到范围内；strict: 越界报 InvalidRuleError",
    )
    stats_cache: bool = Field(default=True, description="是否缓存全局统计快照")

    @model_validator(mode="after")
    def _check_bounds(self) -> "EngineConfig":
        if self.priority_min > self.priority_max:
            raise ValueError("priority_min must not exceed priority_max")
        if not self.priority_min <= self.default_priority <= self.priority_max:
            raise ValueError("default_priority must lie within priority bounds")
        return self


_INT_ENV_VARS = {
    "RULEQUEUE_PRIORITY_MIN": "priority_min",
    "RULEQUEUE_PRIORITY_MAX": "priority_max",
    "RULEQUEUE_DEFAULT_PRIORITY": "default_priority",
}


def load_engine_config() -> EngineConfig:
    """从环境变量加载规则引擎配置

    非法整数值记录 warning 并回退到默认值，不阻塞启动。

    Returns:
        EngineConfig 实例
    """
    kwargs: dict = {}

    for env_var, key in _INT_ENV_VARS.items():
        if val := os.environ.get(env_var):
            try:
                kwargs[key] = int(val)
            except ValueError:
                log.warning(
                    "invalid_engine_config",
                    env_var=env_var,
                    value=val,
                    fallback=EngineConfig.model_fields[key].default,
                )

    if val := os.environ.get("RULEQUEUE_BOUNDS_MODE"):
        kwargs["bounds_mode"] = val.lower()

    if val := os.environ.get("RULEQUEUE_STATS_CACHE"):
        kwargs["stats_cache"] = val.lower() in ("1", "true", "yes")

    return EngineConfig(**kwargs)
