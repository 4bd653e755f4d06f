"""任务统计聚合 -- 只读折叠

全局统计可缓存一份快照，以 TaskStore.version 作为失效依据：
任何写操作都会递增 version，下一次查询即重新计算。
按 work_id 过滤的统计不缓存。
"""

import structlog

from .models.enums import TaskStatus, TaskType
from .models.task import Task, TaskStats
from .store.protocols import TaskStore

log = structlog.get_logger()


def compute_stats(tasks: list[Task]) -> TaskStats:
    """对任务列表做一次折叠，得到统计结果"""
    by_status = {status: 0 for status in TaskStatus}
    by_type = {task_type: 0 for task_type in TaskType}
    by_priority: dict[int, int] = {}

    for task in tasks:
        by_status[task.status] += 1
        by_type[task.type] += 1
        by_priority[task.priority] = by_priority.get(task.priority, 0) + 1

    total = sum(by_status.values())
    completed = by_status[TaskStatus.COMPLETED]
    success_rate = round(completed / total * 100, 2) if total else 0.0

    return TaskStats(
        total=total,
        pending=by_status[TaskStatus.PENDING],
        processing=by_status[TaskStatus.PROCESSING],
        completed=completed,
        failed=by_status[TaskStatus.FAILED],
        by_type=by_type,
        by_priority=dict(sorted(by_priority.items())),
        success_rate=success_rate,
    )


class StatsAggregator:
    """TaskStats 查询入口"""

    def __init__(self, task_store: TaskStore, cache_enabled: bool = True) -> None:
        self._task_store = task_store
        self._cache_enabled = cache_enabled
        self._cached: TaskStats | None = None
        self._cached_version = -1

    async def get_stats(self, work_id: str | None = None) -> TaskStats:
        if work_id:
            tasks = [t for t in await self._task_store.list_all() if t.work_id == work_id]
            return compute_stats(tasks)

        version = self._task_store.version
        if self._cache_enabled and self._cached is not None and self._cached_version == version:
            return self._cached

        stats = compute_stats(await self._task_store.list_all())
        if self._cache_enabled:
            self._cached = stats
            self._cached_version = version
            log.debug("stats_cache_refreshed", version=version, total=stats.total)
        return stats
