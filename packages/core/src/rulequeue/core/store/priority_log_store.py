"""PriorityLogStore SQLite 实现

priority_logs 表 append-only：只允许插入，UPDATE/DELETE 被触发器拒绝。
按 seq（写入顺序）返回。
"""

from datetime import datetime

import aiosqlite

from ..models.query import Pagination
from ..models.rule import PriorityLog

_COLUMNS = "id, task_id, old_priority, new_priority, reason, created_at"


class SqlitePriorityLogStore:
    """PriorityLogStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_log(self, entry: PriorityLog) -> None:
        """追加日志（append-only）

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.execute(
            f"INSERT INTO priority_logs ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
            (
                entry.id,
                entry.task_id,
                entry.old_priority,
                entry.new_priority,
                entry.reason,
                entry.created_at.isoformat(),
            ),
        )

    async def list_by_task(
        self,
        task_id: str,
        pagination: Pagination | None = None,
    ) -> list[PriorityLog]:
        """查询指定任务的日志，按写入顺序正序；不传分页时返回完整历史"""
        if pagination is None:
            cursor = await self._conn.execute(
                f"SELECT {_COLUMNS} FROM priority_logs WHERE task_id = ? ORDER BY seq ASC",
                (task_id,),
            )
        else:
            cursor = await self._conn.execute(
                f"""
                SELECT {_COLUMNS} FROM priority_logs
                WHERE task_id = ? ORDER BY seq ASC
                LIMIT ? OFFSET ?
                """,
                (task_id, pagination.size, pagination.offset),
            )
        rows = await cursor.fetchall()
        return [self._row_to_log(r) for r in rows]

    async def count_by_task(self, task_id: str) -> int:
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM priority_logs WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    @staticmethod
    def _row_to_log(row: aiosqlite.Row) -> PriorityLog:
        return PriorityLog(
            id=row[0],
            task_id=row[1],
            old_priority=row[2],
            new_priority=row[3],
            reason=row[4],
            created_at=datetime.fromisoformat(row[5]),
        )
