"""规则领域模型 -- PriorityRule / RuleTemplate / RuleGroup / PriorityLog

条件按运算符拆分为封闭的 tagged union，每个变体携带静态类型的操作数，
非法的运算符/取值组合在构造时即被拒绝，而不是留到评估阶段。
动作同理，按 type 字段区分。
"""

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ..exceptions import InvalidRuleError


class _Condition(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str = Field(min_length=1, description="Task 属性名")


class EqCondition(_Condition):
    operator: Literal["eq"] = "eq"
    value: bool | int | float | str = Field(strict=True)


class NeCondition(_Condition):
    operator: Literal["ne"] = "ne"
    value: bool | int | float | str = Field(strict=True)


class GtCondition(_Condition):
    operator: Literal["gt"] = "gt"
    value: int | float = Field(strict=True)


class GteCondition(_Condition):
    operator: Literal["gte"] = "gte"
    value: int | float = Field(strict=True)


class LtCondition(_Condition):
    operator: Literal["lt"] = "lt"
    value: int | float = Field(strict=True)


class LteCondition(_Condition):
    operator: Literal["lte"] = "lte"
    value: int | float = Field(strict=True)


class ContainsCondition(_Condition):
    operator: Literal["contains"] = "contains"
    value: str = Field(strict=True)


class InCondition(_Condition):
    operator: Literal["in"] = "in"
    value: frozenset[int | str] = Field(description="候选值集合")


RuleCondition = Annotated[
    EqCondition
    | NeCondition
    | GtCondition
    | GteCondition
    | LtCondition
    | LteCondition
    | ContainsCondition
    | InCondition,
    Field(discriminator="operator"),
]


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class SetPriorityAction(_Action):
    type: Literal["set_priority"] = "set_priority"
    value: int = Field(strict=True, description="目标优先级（绝对值）")


class IncrementPriorityAction(_Action):
    type: Literal["increment_priority"] = "increment_priority"
    value: int = Field(strict=True, ge=0, description="增加量")


class DecrementPriorityAction(_Action):
    type: Literal["decrement_priority"] = "decrement_priority"
    value: int = Field(strict=True, ge=0, description="减少量")


RuleAction = Annotated[
    SetPriorityAction | IncrementPriorityAction | DecrementPriorityAction,
    Field(discriminator="type"),
]

_conditions_adapter = TypeAdapter(list[RuleCondition])
_condition_adapter = TypeAdapter(RuleCondition)
_actions_adapter = TypeAdapter(list[RuleAction])

CATCH_ALL_WARNING = "rule has no conditions and matches every task"


def parse_conditions(raw: list[dict[str, Any]]) -> list[RuleCondition]:
    """将原始字典列表解析为条件变体，失败时抛出 InvalidRuleError"""
    try:
        return _conditions_adapter.validate_python(raw)
    except ValidationError as e:
        raise InvalidRuleError(f"invalid condition: {_first_error(e)}") from e


def parse_condition(raw: dict[str, Any]) -> RuleCondition:
    """解析单个条件（用于按条件批量更新）"""
    try:
        return _condition_adapter.validate_python(raw)
    except ValidationError as e:
        raise InvalidRuleError(f"invalid condition: {_first_error(e)}") from e


def parse_actions(raw: list[dict[str, Any]]) -> list[RuleAction]:
    """将原始字典列表解析为动作变体，空列表同样视为非法"""
    if not raw:
        raise InvalidRuleError("rule must have at least one action")
    try:
        return _actions_adapter.validate_python(raw)
    except ValidationError as e:
        raise InvalidRuleError(f"invalid action: {_first_error(e)}") from e


def dump_conditions(conditions: list[RuleCondition]) -> list[dict[str, Any]]:
    return _conditions_adapter.dump_python(conditions, mode="json")


def dump_actions(actions: list[RuleAction]) -> list[dict[str, Any]]:
    return _actions_adapter.dump_python(actions, mode="json")


def _first_error(error: ValidationError) -> str:
    detail = error.errors()[0]
    loc = ".".join(str(p) for p in detail.get("loc", ()))
    return f"{loc}: {detail.get('msg', '')}" if loc else detail.get("msg", "")


class PriorityRule(BaseModel):
    """优先级规则

    conditions 为 AND 语义；空列表恒为真，规则成为匹配所有任务的兜底规则。
    actions 按顺序链式作用于优先级。
    """

    id: str = Field(description="唯一标识，ULID 格式")
    name: str = Field(min_length=1, description="规则名称")
    description: str = Field(default="", description="规则描述")
    conditions: list[RuleCondition] = Field(default_factory=list, description="条件列表")
    actions: list[RuleAction] = Field(min_length=1, description="动作列表")
    enabled: bool = Field(default=True, description="是否启用")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")

    @property
    def is_catch_all(self) -> bool:
        return not self.conditions


class RuleTemplate(BaseModel):
    """规则模板 -- 创建规则时的预填充模板，不参与评估"""

    id: str = Field(description="唯一标识，ULID 格式")
    name: str = Field(min_length=1, description="模板名称")
    description: str = Field(default="", description="模板描述")
    conditions: list[RuleCondition] = Field(default_factory=list, description="条件列表")
    actions: list[RuleAction] = Field(min_length=1, description="动作列表")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")


class RuleGroup(BaseModel):
    """规则组 -- 带总开关的有序规则集合

    禁用的组不贡献任何规则，即使成员规则各自处于启用状态。
    """

    id: str = Field(description="唯一标识，ULID 格式")
    name: str = Field(min_length=1, description="规则组名称")
    description: str = Field(default="", description="规则组描述")
    rule_ids: list[str] = Field(default_factory=list, description="成员规则 ID（有序）")
    enabled: bool = Field(default=True, description="是否启用")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")


class PriorityLog(BaseModel):
    """优先级变更日志（append-only，写入后不可修改或删除）"""

    id: str = Field(description="唯一标识，ULID 格式")
    task_id: str = Field(description="关联的 Task ID")
    old_priority: int = Field(description="变更前优先级")
    new_priority: int = Field(description="变更后优先级")
    reason: str = Field(description="变更来源：规则 ID / batch / condition / manual")
    created_at: datetime = Field(description="写入时间")
