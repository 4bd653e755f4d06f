"""写入模型（规则注册表与任务创建）

Draft 用于创建，Patch 用于部分更新（None 表示不修改该字段）。
"""

from pydantic import BaseModel, Field

from .enums import TaskType
from .rule import RuleAction, RuleCondition


class RuleDraft(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    conditions: list[RuleCondition] = Field(default_factory=list)
    actions: list[RuleAction] = Field(default_factory=list)
    enabled: bool = True


class RulePatch(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    conditions: list[RuleCondition] | None = None
    actions: list[RuleAction] | None = None
    enabled: bool | None = None


class TemplateDraft(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    conditions: list[RuleCondition] = Field(default_factory=list)
    actions: list[RuleAction] = Field(default_factory=list)


class TemplatePatch(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    conditions: list[RuleCondition] | None = None
    actions: list[RuleAction] | None = None


class GroupDraft(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    rule_ids: list[str] = Field(default_factory=list)
    enabled: bool = True


class GroupPatch(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    enabled: bool | None = None


class TaskDraft(BaseModel):
    """新建任务；priority 为空时使用配置的默认优先级"""

    type: TaskType
    work_id: str = ""
    batch_id: str = ""
    content: str = ""
    priority: int | None = None
    max_retries: int = Field(default=3, ge=0)
