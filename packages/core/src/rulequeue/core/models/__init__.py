"""RuleQueue Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .drafts import (
    GroupDraft,
    GroupPatch,
    RuleDraft,
    RulePatch,
    TaskDraft,
    TemplateDraft,
    TemplatePatch,
)
from .enums import (
    ACTIVE_STATES,
    VALID_TRANSITIONS,
    PriorityLevel,
    TaskStatus,
    TaskType,
    validate_transition,
)
from .query import (
    GroupFilter,
    Page,
    Pagination,
    RuleFilter,
    TaskFilter,
    TemplateFilter,
)
from .results import BatchUpdateResult, EvaluationResult, PriorityUpdateOutcome
from .rule import (
    CATCH_ALL_WARNING,
    ContainsCondition,
    DecrementPriorityAction,
    EqCondition,
    GtCondition,
    GteCondition,
    IncrementPriorityAction,
    InCondition,
    LtCondition,
    LteCondition,
    NeCondition,
    PriorityLog,
    PriorityRule,
    RuleAction,
    RuleCondition,
    RuleGroup,
    RuleTemplate,
    SetPriorityAction,
    dump_actions,
    dump_conditions,
    parse_actions,
    parse_condition,
    parse_conditions,
)
from .task import Task, TaskStats

__all__ = [
    # 枚举
    "TaskType",
    "TaskStatus",
    "PriorityLevel",
    # 状态机
    "VALID_TRANSITIONS",
    "ACTIVE_STATES",
    "validate_transition",
    # Task
    "Task",
    "TaskStats",
    # 规则
    "PriorityRule",
    "RuleTemplate",
    "RuleGroup",
    "PriorityLog",
    "RuleCondition",
    "RuleAction",
    "EqCondition",
    "NeCondition",
    "GtCondition",
    "GteCondition",
    "LtCondition",
    "LteCondition",
    "ContainsCondition",
    "InCondition",
    "SetPriorityAction",
    "IncrementPriorityAction",
    "DecrementPriorityAction",
    "CATCH_ALL_WARNING",
    "parse_condition",
    "parse_conditions",
    "parse_actions",
    "dump_conditions",
    "dump_actions",
    # 写入模型
    "RuleDraft",
    "RulePatch",
    "TemplateDraft",
    "TemplatePatch",
    "TaskDraft",
    "GroupDraft",
    "GroupPatch",
    # 查询
    "Pagination",
    "Page",
    "TaskFilter",
    "RuleFilter",
    "TemplateFilter",
    "GroupFilter",
    # 结果
    "EvaluationResult",
    "PriorityUpdateOutcome",
    "BatchUpdateResult",
]
