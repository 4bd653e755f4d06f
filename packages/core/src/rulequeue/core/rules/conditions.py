"""条件评估器 -- (task, condition) -> bool 的纯函数

评估永不抛异常：无法解析的字段或类型不匹配一律视为 False（fail-closed），
一条写错的规则不会阻断其他规则的评估。
"""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

import structlog

from ..models.rule import RuleCondition
from ..models.task import Task

log = structlog.get_logger()

_MISSING = object()


def resolve_field(task: Task | Mapping[str, Any], field: str) -> Any:
    """按属性名取值，枚举统一还原为原始值；未知字段返回 _MISSING"""
    if isinstance(task, Mapping):
        value = task.get(field, _MISSING)
    elif field in type(task).model_fields:
        value = getattr(task, field)
    else:
        value = _MISSING
    if isinstance(value, Enum):
        value = value.value
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _equals(left: Any, right: Any) -> bool:
    # bool 与数字不互相相等（True != 1）
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if _is_number(left) != _is_number(right):
        return False
    return left == right


def evaluate(task: Task | Mapping[str, Any], condition: RuleCondition) -> bool:
    """评估单个条件

    Args:
        task: Task 模型或属性字典
        condition: 条件变体

    Returns:
        条件是否成立
    """
    try:
        value = resolve_field(task, condition.field)
        if value is _MISSING or value is None:
            return False

        operator = condition.operator
        if operator == "eq":
            return _equals(value, condition.value)
        elif operator == "ne":
            return not _equals(value, condition.value)
        elif operator in ("gt", "gte", "lt", "lte"):
            if not _is_number(value):
                return False
            if operator == "gt":
                return value > condition.value
            if operator == "gte":
                return value >= condition.value
            if operator == "lt":
                return value < condition.value
            return value <= condition.value
        elif operator == "contains":
            if isinstance(value, str):
                return condition.value in value
            if isinstance(value, list | tuple | set | frozenset):
                return condition.value in value
            return False
        elif operator == "in":
            if isinstance(value, bool):
                return False
            return value in condition.value
        else:
            log.warning("unknown_condition_operator", operator=operator)
            return False
    except Exception as e:
        log.warning(
            "condition_evaluation_error",
            field=condition.field,
            operator=condition.operator,
            error_type=type(e).__name__,
        )
        return False


def matches_all(
    task: Task | Mapping[str, Any],
    conditions: Iterable[RuleCondition],
) -> bool:
    """AND 语义；空条件列表恒为真"""
    return all(evaluate(task, c) for c in conditions)
