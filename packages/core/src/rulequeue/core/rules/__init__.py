"""RuleQueue 规则引擎 -- 条件评估、动作应用、注册表与引擎"""

from .actions import PriorityBounds, apply, apply_all
from .conditions import evaluate, matches_all, resolve_field
from .engine import REASON_BATCH, REASON_CONDITION, REASON_MANUAL, PriorityEngine, fold_rules
from .locks import ReadWriteLock, TaskLocks
from .registry import RuleRegistry, warnings_for

__all__ = [
    "PriorityBounds",
    "apply",
    "apply_all",
    "evaluate",
    "matches_all",
    "resolve_field",
    "PriorityEngine",
    "fold_rules",
    "REASON_BATCH",
    "REASON_CONDITION",
    "REASON_MANUAL",
    "ReadWriteLock",
    "TaskLocks",
    "RuleRegistry",
    "warnings_for",
]
