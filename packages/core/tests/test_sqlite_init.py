"""SQLite 初始化测试

测试内容：
1. 表结构与 WAL 模式
2. init_db 可重复执行
3. 删除规则组时成员关系级联删除，规则本身保留
"""

import aiosqlite
from rulequeue.core.store.sqlite_init import init_db, verify_wal_mode


async def _tables(conn: aiosqlite.Connection) -> set[str]:
    cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    return {row[0] for row in await cursor.fetchall()}


class TestInitDb:
    async def test_schema_created(self, db_conn: aiosqlite.Connection):
        assert {
            "tasks",
            "priority_rules",
            "rule_templates",
            "rule_groups",
            "rule_group_members",
            "priority_logs",
        } <= await _tables(db_conn)

    async def test_wal_mode(self, db_conn: aiosqlite.Connection):
        assert await verify_wal_mode(db_conn) is True

    async def test_idempotent(self, db_conn: aiosqlite.Connection):
        before = await _tables(db_conn)
        await init_db(db_conn)
        assert await _tables(db_conn) == before

    async def test_group_delete_cascades_membership(self, db_conn: aiosqlite.Connection):
        now = "2026-01-01T00:00:00+00:00"
        await db_conn.execute(
            "INSERT INTO priority_rules (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
            ("rule-1", "r", now, now),
        )
        await db_conn.execute(
            "INSERT INTO rule_groups (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
            ("group-1", "g", now, now),
        )
        await db_conn.execute(
            "INSERT INTO rule_group_members (group_id, rule_id, position) VALUES (?, ?, ?)",
            ("group-1", "rule-1", 0),
        )
        await db_conn.execute("DELETE FROM rule_groups WHERE id = ?", ("group-1",))
        await db_conn.commit()

        cursor = await db_conn.execute("SELECT COUNT(*) FROM rule_group_members")
        assert (await cursor.fetchone())[0] == 0
        cursor = await db_conn.execute("SELECT COUNT(*) FROM priority_rules")
        assert (await cursor.fetchone())[0] == 1
