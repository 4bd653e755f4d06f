"""SQLite 数据库初始化

PRAGMA 配置 + 表 DDL + 索引 + priority_logs 的 append-only 触发器。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# tasks 表 DDL
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    id           TEXT PRIMARY KEY,
    work_id      TEXT NOT NULL DEFAULT '',
    batch_id     TEXT NOT NULL DEFAULT '',
    type         TEXT NOT NULL,
    status       TEXT NOT NULL DEFAULT 'pending',
    priority     INTEGER NOT NULL,
    content      TEXT NOT NULL DEFAULT '',
    result       TEXT NOT NULL DEFAULT '',
    error        TEXT NOT NULL DEFAULT '',
    retry_count  INTEGER NOT NULL DEFAULT 0,
    max_retries  INTEGER NOT NULL DEFAULT 3,
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_work_id ON tasks(work_id);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_batch_id ON tasks(batch_id);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_priority ON tasks(priority DESC, created_at);",
]

# priority_rules 表 DDL（conditions/actions 以 JSON 存储）
_RULES_DDL = """
CREATE TABLE IF NOT EXISTS priority_rules (
    id           TEXT PRIMARY KEY,
    name         TEXT NOT NULL,
    description  TEXT NOT NULL DEFAULT '',
    conditions   TEXT NOT NULL DEFAULT '[]',
    actions      TEXT NOT NULL DEFAULT '[]',
    enabled      INTEGER NOT NULL DEFAULT 1,
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);
"""

_TEMPLATES_DDL = """
CREATE TABLE IF NOT EXISTS rule_templates (
    id           TEXT PRIMARY KEY,
    name         TEXT NOT NULL,
    description  TEXT NOT NULL DEFAULT '',
    conditions   TEXT NOT NULL DEFAULT '[]',
    actions      TEXT NOT NULL DEFAULT '[]',
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);
"""

_GROUPS_DDL = """
CREATE TABLE IF NOT EXISTS rule_groups (
    id           TEXT PRIMARY KEY,
    name         TEXT NOT NULL,
    description  TEXT NOT NULL DEFAULT '',
    enabled      INTEGER NOT NULL DEFAULT 1,
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);
"""

# 规则组成员（多对多，position 保持组内顺序）
_GROUP_MEMBERS_DDL = """
CREATE TABLE IF NOT EXISTS rule_group_members (
    group_id  TEXT NOT NULL,
    rule_id   TEXT NOT NULL,
    position  INTEGER NOT NULL,

    PRIMARY KEY (group_id, rule_id),
    FOREIGN KEY (group_id) REFERENCES rule_groups(id) ON DELETE CASCADE,
    FOREIGN KEY (rule_id) REFERENCES priority_rules(id) ON DELETE CASCADE
);
"""

_RULE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_rules_order ON priority_rules(created_at, id);",
    "CREATE INDEX IF NOT EXISTS idx_group_members_rule ON rule_group_members(rule_id);",
]

# priority_logs 表 DDL：seq 保证写入顺序；不设 task 外键，任务删除后日志仍保留
_PRIORITY_LOGS_DDL = """
CREATE TABLE IF NOT EXISTS priority_logs (
    seq           INTEGER PRIMARY KEY AUTOINCREMENT,
    id            TEXT NOT NULL UNIQUE,
    task_id       TEXT NOT NULL,
    old_priority  INTEGER NOT NULL,
    new_priority  INTEGER NOT NULL,
    reason        TEXT NOT NULL,
    created_at    TEXT NOT NULL
);
"""

_PRIORITY_LOGS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_priority_logs_task ON priority_logs(task_id, seq);",
]

_PRIORITY_LOGS_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_priority_logs_no_update
    BEFORE UPDATE ON priority_logs
    BEGIN
        SELECT RAISE(ABORT, 'priority_logs is append-only');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_priority_logs_no_delete
    BEFORE DELETE ON priority_logs
    BEGIN
        SELECT RAISE(ABORT, 'priority_logs is append-only');
    END;
    """,
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引 + 触发器

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    for ddl in (
        _TASKS_DDL,
        _RULES_DDL,
        _TEMPLATES_DDL,
        _GROUPS_DDL,
        _GROUP_MEMBERS_DDL,
        _PRIORITY_LOGS_DDL,
    ):
        await conn.execute(ddl)

    for idx_sql in _TASKS_INDEXES + _RULE_INDEXES + _PRIORITY_LOGS_INDEXES:
        await conn.execute(idx_sql)

    for trigger_sql in _PRIORITY_LOGS_TRIGGERS:
        await conn.execute(trigger_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
