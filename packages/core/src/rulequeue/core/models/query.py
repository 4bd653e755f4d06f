"""查询过滤与分页结构

列表接口只接受此处显式列出的过滤条件，不接受任意查询对象。
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field, model_validator

from ..config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from .enums import TaskStatus, TaskType

T = TypeVar("T")


class Pagination(BaseModel):
    """分页参数，page 从 1 开始"""

    page: int = Field(default=1, ge=1)
    size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size


class TaskFilter(BaseModel):
    """任务列表过滤条件"""

    work_id: str | None = None
    batch_id: str | None = None
    type: TaskType | None = None
    status: TaskStatus | None = None
    priority_min: int | None = None
    priority_max: int | None = None

    @model_validator(mode="after")
    def _check_priority_range(self) -> "TaskFilter":
        if (
            self.priority_min is not None
            and self.priority_max is not None
            and self.priority_min > self.priority_max
        ):
            raise ValueError("priority_min must not exceed priority_max")
        return self


class RuleFilter(BaseModel):
    """规则列表过滤条件"""

    enabled: bool | None = None
    name: str | None = Field(default=None, description="名称子串匹配")


class TemplateFilter(BaseModel):
    """模板列表过滤条件"""

    name: str | None = Field(default=None, description="名称子串匹配")


class GroupFilter(BaseModel):
    """规则组列表过滤条件"""

    enabled: bool | None = None
    name: str | None = Field(default=None, description="名称子串匹配")


class Page(BaseModel, Generic[T]):
    """分页结果"""

    items: list[T]
    total: int
    page: int = 1
    size: int = DEFAULT_PAGE_SIZE
