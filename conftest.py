"""全局 pytest 配置 -- 每个测试一份独立的 SQLite 数据库

async 测试由 pytest-asyncio 的 auto 模式驱动（见 pyproject.toml）。
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio
from rulequeue.core.store.sqlite_init import init_db


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """临时数据库文件路径；目录由 create_store_group 负责创建"""
    return str(tmp_path / "sqlite" / "rulequeue.db")


@pytest_asyncio.fixture
async def db_conn(tmp_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """已建表的裸连接，用于直接检查 schema 与触发器"""
    conn = await aiosqlite.connect(str(tmp_path / "schema.db"))
    await init_db(conn)
    try:
        yield conn
    finally:
        await conn.close()
