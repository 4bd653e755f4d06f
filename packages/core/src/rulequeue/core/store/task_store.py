"""TaskStore SQLite 实现

只提供数据库操作，不自动提交事务，由调用方管理。
priority 列只能经由 transaction.record_priority_change 修改。
每次写操作递增 version，用于统计缓存失效。
"""

from datetime import datetime

import aiosqlite

from ..models.enums import ACTIVE_STATES
from ..models.query import Pagination, TaskFilter
from ..models.task import Task

_COLUMNS = (
    "id, work_id, batch_id, type, status, priority, content, result, error, "
    "retry_count, max_retries, created_at, updated_at"
)


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn
        self.version = 0

    def _touch(self) -> None:
        self.version += 1

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        await self._conn.execute(
            f"""
            INSERT INTO tasks ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.id,
                task.work_id,
                task.batch_id,
                task.type.value,
                task.status.value,
                task.priority,
                task.content,
                task.result,
                task.error,
                task.retry_count,
                task.max_retries,
                task.created_at.isoformat(),
                task.updated_at.isoformat(),
            ),
        )
        self._touch()

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(
        self,
        task_filter: TaskFilter | None = None,
        pagination: Pagination | None = None,
    ) -> tuple[list[Task], int]:
        """分页查询任务，按 priority 倒序、created_at 倒序

        Returns:
            (当前页任务, 满足过滤条件的总数)
        """
        where, params = self._build_where(task_filter or TaskFilter())
        cursor = await self._conn.execute(
            f"SELECT COUNT(*) FROM tasks{where}",
            params,
        )
        row = await cursor.fetchone()
        total = row[0] if row else 0

        pagination = pagination or Pagination()
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM tasks{where}
            ORDER BY priority DESC, created_at DESC, id DESC
            LIMIT ? OFFSET ?
            """,
            (*params, pagination.size, pagination.offset),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(r) for r in rows], total

    async def list_all(self) -> list[Task]:
        """全量扫描，按创建顺序（用于统计与按条件更新）"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks ORDER BY created_at ASC, id ASC"
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(r) for r in rows]

    async def list_active(self) -> list[Task]:
        """查询仍会使用优先级的任务（pending/processing）"""
        placeholders = ", ".join("?" for _ in ACTIVE_STATES)
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM tasks
            WHERE status IN ({placeholders})
            ORDER BY created_at ASC, id ASC
            """,
            tuple(sorted(s.value for s in ACTIVE_STATES)),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(r) for r in rows]

    async def next_pending(self, limit: int) -> list[Task]:
        """待处理队列视图：优先级高者在前，同优先级先到先得"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM tasks
            WHERE status = 'pending'
            ORDER BY priority DESC, created_at ASC, id ASC
            LIMIT ?
            """,
            (limit,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(r) for r in rows]

    async def update_task_status(
        self,
        task_id: str,
        status: str,
        updated_at: str,
        expected_status: str | None = None,
        result: str | None = None,
        error: str | None = None,
    ) -> bool:
        """更新任务状态（可选带 expected_status 的乐观校验）

        Returns:
            True 如果有记录被更新
        """
        sql = """
            UPDATE tasks
            SET status = ?, updated_at = ?,
                result = COALESCE(?, result),
                error = COALESCE(?, error)
            WHERE id = ?
        """
        params: tuple = (status, updated_at, result, error, task_id)
        if expected_status is not None:
            sql += " AND status = ?"
            params = (*params, expected_status)
        cursor = await self._conn.execute(sql, params)
        self._touch()
        return cursor.rowcount > 0

    async def increment_retry_count(self, task_id: str, updated_at: str) -> None:
        """重试次数 +1"""
        await self._conn.execute(
            """
            UPDATE tasks
            SET retry_count = retry_count + 1, updated_at = ?
            WHERE id = ?
            """,
            (updated_at, task_id),
        )
        self._touch()

    async def update_task_priority(
        self,
        task_id: str,
        priority: int,
        updated_at: str,
        expected_priority: int,
    ) -> bool:
        """写入新优先级（仅供 record_priority_change 调用）

        带 expected_priority 乐观校验，保证日志中的 old_priority 与库中一致。

        Returns:
            True 如果校验通过并已更新
        """
        cursor = await self._conn.execute(
            """
            UPDATE tasks
            SET priority = ?, updated_at = ?
            WHERE id = ? AND priority = ?
            """,
            (priority, updated_at, task_id, expected_priority),
        )
        self._touch()
        return cursor.rowcount > 0

    async def delete_task(self, task_id: str) -> bool:
        """删除任务（优先级日志保留）"""
        cursor = await self._conn.execute(
            "DELETE FROM tasks WHERE id = ?",
            (task_id,),
        )
        self._touch()
        return cursor.rowcount > 0

    @staticmethod
    def _build_where(task_filter: TaskFilter) -> tuple[str, tuple]:
        clauses: list[str] = []
        params: list = []
        if task_filter.work_id:
            clauses.append("work_id = ?")
            params.append(task_filter.work_id)
        if task_filter.batch_id:
            clauses.append("batch_id = ?")
            params.append(task_filter.batch_id)
        if task_filter.type is not None:
            clauses.append("type = ?")
            params.append(task_filter.type.value)
        if task_filter.status is not None:
            clauses.append("status = ?")
            params.append(task_filter.status.value)
        if task_filter.priority_min is not None:
            clauses.append("priority >= ?")
            params.append(task_filter.priority_min)
        if task_filter.priority_max is not None:
            clauses.append("priority <= ?")
            params.append(task_filter.priority_max)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, tuple(params)

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            id=row[0],
            work_id=row[1],
            batch_id=row[2],
            type=row[3],
            status=row[4],
            priority=row[5],
            content=row[6],
            result=row[7],
            error=row[8],
            retry_count=row[9],
            max_retries=row[10],
            created_at=datetime.fromisoformat(row[11]),
            updated_at=datetime.fromisoformat(row[12]),
        )
