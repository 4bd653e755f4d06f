"""apps/gateway 测试配置 -- httpx AsyncClient + 手动装配的 app.state

ASGITransport 不触发 lifespan，Store 与引擎组件在 fixture 中手动创建。
需要其他引擎配置的测试模块可以覆盖 engine_config fixture。
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from rulequeue.core.config import EngineConfig
from rulequeue.core.store import create_store_group


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig()


@pytest_asyncio.fixture
async def app(db_path: str, engine_config: EngineConfig, monkeypatch):
    """创建测试用 FastAPI app 实例"""
    monkeypatch.setenv("RULEQUEUE_DB_PATH", db_path)

    from rulequeue.gateway.main import create_app, init_app_state

    application = create_app()
    store_group = await create_store_group(db_path)
    init_app_state(application, store_group, engine_config)
    yield application

    await store_group.conn.close()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
