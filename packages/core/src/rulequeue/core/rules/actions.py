"""动作应用器 -- (current priority, action) -> new priority 的纯函数

每个动作的结果都会落到配置的优先级范围内：
clamp 模式静默截断，strict 模式越界抛 InvalidRuleError。
"""

from collections.abc import Iterable
from dataclasses import dataclass

from ..config import EngineConfig
from ..exceptions import InvalidRuleError
from ..models.rule import RuleAction


@dataclass(frozen=True)
class PriorityBounds:
    """合法优先级范围（闭区间）"""

    minimum: int = 0
    maximum: int = 100
    strict: bool = False

    @classmethod
    def from_config(cls, config: EngineConfig) -> "PriorityBounds":
        return cls(
            minimum=config.priority_min,
            maximum=config.priority_max,
            strict=config.bounds_mode == "strict",
        )

    def fit(self, value: int) -> int:
        """将原始值落入范围：clamp 模式截断，strict 模式越界报错"""
        if self.minimum <= value <= self.maximum:
            return value
        if self.strict:
            raise InvalidRuleError(
                f"priority {value} is outside [{self.minimum}, {self.maximum}]"
            )
        return max(self.minimum, min(self.maximum, value))


def apply(current: int, action: RuleAction, bounds: PriorityBounds) -> int:
    """应用单个动作"""
    if action.type == "set_priority":
        raw = action.value
    elif action.type == "increment_priority":
        raw = current + action.value
    elif action.type == "decrement_priority":
        raw = current - action.value
    else:
        raise InvalidRuleError(f"unknown action type: {action.type}")
    return bounds.fit(raw)


def apply_all(current: int, actions: Iterable[RuleAction], bounds: PriorityBounds) -> int:
    """按顺序链式应用动作，前一个动作的输出是后一个动作的输入"""
    priority = current
    for action in actions:
        priority = apply(priority, action, bounds)
    return priority
