"""TaskService -- 任务生命周期业务逻辑

任务的创建、状态流转、重试与删除。
优先级不在这里修改：创建后及仍处于活跃状态的任务属性变化后，
交给规则引擎重新评估。
"""

from datetime import UTC, datetime

import structlog
from rulequeue.core.exceptions import (
    ConcurrentModificationError,
    InvalidTransitionError,
    NotFoundError,
    RuleQueueError,
)
from rulequeue.core.models import (
    ACTIVE_STATES,
    Page,
    Pagination,
    Task,
    TaskDraft,
    TaskFilter,
    TaskStatus,
    validate_transition,
)
from rulequeue.core.rules import PriorityEngine
from rulequeue.core.store import StoreGroup
from ulid import ULID

log = structlog.get_logger()


class TaskService:
    """任务业务服务"""

    def __init__(self, store_group: StoreGroup, engine: PriorityEngine) -> None:
        self._stores = store_group
        self._engine = engine

    async def create_task(self, draft: TaskDraft) -> Task:
        """创建任务并立即按当前规则集评估一次

        初始优先级不是一次"变更"，不写优先级日志；规则评估产生的变化照常记录。
        """
        now = datetime.now(UTC)
        initial = (
            draft.priority
            if draft.priority is not None
            else self._engine.config.default_priority
        )
        task = Task(
            id=str(ULID()),
            work_id=draft.work_id,
            batch_id=draft.batch_id,
            type=draft.type,
            priority=self._engine.bounds.fit(initial),
            content=draft.content,
            max_retries=draft.max_retries,
            created_at=now,
            updated_at=now,
        )
        async with self._stores.transaction():
            await self._stores.task_store.create_task(task)

        log.info(
            "task_created",
            task_id=task.id,
            type=task.type,
            work_id=task.work_id,
            priority=task.priority,
        )
        await self._reevaluate(task.id)
        return await self.get_task(task.id)

    async def get_task(self, task_id: str) -> Task:
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise NotFoundError("task", task_id)
        return task

    async def list_tasks(
        self,
        task_filter: TaskFilter | None = None,
        pagination: Pagination | None = None,
    ) -> Page[Task]:
        """按优先级降序、创建时间降序分页查询"""
        pagination = pagination or Pagination()
        items, total = await self._stores.task_store.list_tasks(
            task_filter or TaskFilter(), pagination
        )
        return Page(items=items, total=total, page=pagination.page, size=pagination.size)

    async def next_pending(self, limit: int) -> list[Task]:
        """待处理队列：优先级高者在前，同优先级先到先得"""
        return await self._stores.task_store.next_pending(limit)

    async def update_status(
        self,
        task_id: str,
        status: TaskStatus,
        result: str | None = None,
        error: str | None = None,
    ) -> Task:
        """推进任务状态

        Raises:
            NotFoundError: 任务不存在
            InvalidTransitionError: 非法状态流转（如终态任务）
        """
        async with self._engine.task_locks.hold(task_id):
            task = await self.get_task(task_id)
            if not validate_transition(task.status, status):
                raise InvalidTransitionError(
                    f"Task {task_id} cannot move from {task.status} to {status}"
                )
            async with self._stores.transaction():
                updated = await self._stores.task_store.update_task_status(
                    task_id=task_id,
                    status=status.value,
                    updated_at=datetime.now(UTC).isoformat(),
                    expected_status=task.status.value,
                    result=result,
                    error=error,
                )
                if not updated:
                    raise ConcurrentModificationError(
                        f"Task {task_id} status changed concurrently"
                    )

        log.info(
            "task_status_changed",
            task_id=task_id,
            from_status=task.status,
            to_status=status,
        )
        if status in ACTIVE_STATES:
            await self._reevaluate(task_id)
        return await self.get_task(task_id)

    async def retry_task(self, task_id: str) -> Task:
        """失败任务重新入队（failed -> pending），受 max_retries 限制"""
        async with self._engine.task_locks.hold(task_id):
            task = await self.get_task(task_id)
            if task.status != TaskStatus.FAILED:
                raise InvalidTransitionError(
                    f"Task {task_id} is {task.status}, only failed tasks can be retried"
                )
            if task.retry_count >= task.max_retries:
                raise InvalidTransitionError(
                    f"Task {task_id} reached max retries ({task.max_retries})"
                )
            now = datetime.now(UTC).isoformat()
            async with self._stores.transaction():
                updated = await self._stores.task_store.update_task_status(
                    task_id=task_id,
                    status=TaskStatus.PENDING.value,
                    updated_at=now,
                    expected_status=TaskStatus.FAILED.value,
                    error="",
                )
                if not updated:
                    raise ConcurrentModificationError(
                        f"Task {task_id} status changed concurrently"
                    )
                await self._stores.task_store.increment_retry_count(task_id, now)

        log.info("task_retried", task_id=task_id, retry_count=task.retry_count + 1)
        await self._reevaluate(task_id)
        return await self.get_task(task_id)

    async def delete_task(self, task_id: str) -> None:
        """删除任务；其优先级日志保留"""
        async with self._engine.task_locks.hold(task_id):
            async with self._stores.transaction():
                deleted = await self._stores.task_store.delete_task(task_id)
            if not deleted:
                raise NotFoundError("task", task_id)
        log.info("task_deleted", task_id=task_id)

    async def _reevaluate(self, task_id: str) -> None:
        try:
            await self._engine.evaluate_task(task_id)
        except RuleQueueError as e:
            # 评估失败不影响已提交的生命周期操作
            log.warning(
                "task_evaluation_failed",
                task_id=task_id,
                error_code=e.code,
                error=e.message,
            )
