"""Store Protocol 接口定义

定义 TaskStore、RuleStore、PriorityLogStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
任何持久化实现只要满足这些接口并保持数据不变量即可替换 SQLite 实现。
"""

from typing import Protocol

from ..models.query import GroupFilter, Pagination, RuleFilter, TaskFilter, TemplateFilter
from ..models.rule import PriorityLog, PriorityRule, RuleGroup, RuleTemplate
from ..models.task import Task


class TaskStore(Protocol):
    """Task 存储接口"""

    version: int

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        ...

    async def list_tasks(
        self,
        task_filter: TaskFilter | None = None,
        pagination: Pagination | None = None,
    ) -> tuple[list[Task], int]:
        """分页查询任务"""
        ...

    async def list_all(self) -> list[Task]:
        """全量扫描"""
        ...

    async def list_active(self) -> list[Task]:
        """pending/processing 任务"""
        ...

    async def update_task_priority(
        self,
        task_id: str,
        priority: int,
        updated_at: str,
        expected_priority: int,
    ) -> bool:
        """带乐观校验写入优先级"""
        ...


class RuleStore(Protocol):
    """规则注册表存储接口"""

    async def get_rule(self, rule_id: str) -> PriorityRule | None: ...

    async def list_rules(
        self, rule_filter: RuleFilter, pagination: Pagination
    ) -> tuple[list[PriorityRule], int]: ...

    async def list_rules_in_order(self) -> list[PriorityRule]: ...

    async def get_template(self, template_id: str) -> RuleTemplate | None: ...

    async def list_templates(
        self, template_filter: TemplateFilter, pagination: Pagination
    ) -> tuple[list[RuleTemplate], int]: ...

    async def get_group(self, group_id: str) -> RuleGroup | None: ...

    async def list_groups(
        self, group_filter: GroupFilter, pagination: Pagination
    ) -> tuple[list[RuleGroup], int]: ...

    async def add_member(self, group_id: str, rule_id: str) -> bool: ...

    async def remove_member(self, group_id: str, rule_id: str) -> bool: ...

    async def list_memberships(self) -> list[tuple[str, str, bool]]: ...


class PriorityLogStore(Protocol):
    """优先级日志存储接口

    append-only：只允许插入，不允许更新或删除。
    """

    async def append_log(self, entry: PriorityLog) -> None:
        """追加日志"""
        ...

    async def list_by_task(
        self,
        task_id: str,
        pagination: Pagination | None = None,
    ) -> list[PriorityLog]:
        """按写入顺序返回指定任务的日志"""
        ...
