"""事务封装 + 优先级唯一写入路径

所有 Store 共享同一个 SQLite 连接，写事务由 StoreGroup 的事务锁串行化，
避免并发协程的提交/回滚互相波及。

record_priority_change 是修改 Task.priority 的唯一入口：
在同一事务内原子提交 priority 更新与 priority_logs 追加。
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import aiosqlite
import structlog
from ulid import ULID

from ..exceptions import ConcurrentModificationError
from ..models.rule import PriorityLog

if TYPE_CHECKING:
    from . import StoreGroup

log = structlog.get_logger()


@asynccontextmanager
async def transaction(
    conn: aiosqlite.Connection,
    lock: asyncio.Lock,
) -> AsyncIterator[aiosqlite.Connection]:
    """持有事务锁执行写操作，正常退出提交，异常（含取消）回滚

    Raises:
        Exception: 原样抛出事务内的异常
    """
    async with lock:
        try:
            yield conn
            await conn.commit()
        except BaseException:
            await conn.rollback()
            raise


async def record_priority_change(
    stores: "StoreGroup",
    task_id: str,
    old_priority: int,
    new_priority: int,
    reason: str,
) -> PriorityLog:
    """写入新优先级并追加一条日志（同一事务）

    Args:
        stores: StoreGroup 实例
        task_id: 任务 ID
        old_priority: 调用方读到的当前优先级，作为乐观校验值
        new_priority: 新优先级（已截断到合法范围）
        reason: 变更来源

    Returns:
        写入的 PriorityLog

    Raises:
        ConcurrentModificationError: 库中优先级已不等于 old_priority（或任务已删除）
    """
    now = datetime.now(UTC)
    entry = PriorityLog(
        id=str(ULID()),
        task_id=task_id,
        old_priority=old_priority,
        new_priority=new_priority,
        reason=reason,
        created_at=now,
    )
    async with stores.transaction():
        updated = await stores.task_store.update_task_priority(
            task_id=task_id,
            priority=new_priority,
            updated_at=now.isoformat(),
            expected_priority=old_priority,
        )
        if not updated:
            raise ConcurrentModificationError(
                f"Task {task_id} priority changed concurrently "
                f"(expected {old_priority})"
            )
        await stores.priority_log_store.append_log(entry)

    log.info(
        "priority_changed",
        task_id=task_id,
        old_priority=old_priority,
        new_priority=new_priority,
        reason=reason,
    )
    return entry
