"""集成测试共享 fixture -- 默认引擎配置下的完整 app"""

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from rulequeue.core.config import EngineConfig
from rulequeue.core.store import create_store_group


@pytest_asyncio.fixture
async def integration_app(db_path: str, monkeypatch):
    """集成测试用 FastAPI app"""
    monkeypatch.setenv("RULEQUEUE_DB_PATH", db_path)

    from rulequeue.gateway.main import create_app, init_app_state

    app = create_app()
    store_group = await create_store_group(db_path)
    init_app_state(app, store_group, EngineConfig())

    yield app

    await store_group.conn.close()


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
