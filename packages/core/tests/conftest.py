"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime, timedelta

import pytest_asyncio
from rulequeue.core.config import EngineConfig
from rulequeue.core.models import Task, TaskStatus, TaskType
from rulequeue.core.rules import PriorityEngine, RuleRegistry
from rulequeue.core.store import StoreGroup, create_store_group

_BASE_TIME = datetime(2026, 1, 1, tzinfo=UTC)


@pytest_asyncio.fixture
async def stores(db_path: str) -> AsyncGenerator[StoreGroup, None]:
    """核心层已初始化的 StoreGroup"""
    store_group = await create_store_group(db_path)
    yield store_group
    await store_group.conn.close()


@pytest_asyncio.fixture
async def registry(stores: StoreGroup) -> RuleRegistry:
    return RuleRegistry(stores)


@pytest_asyncio.fixture
async def engine(stores: StoreGroup, registry: RuleRegistry) -> PriorityEngine:
    return PriorityEngine(stores, registry, EngineConfig())


@pytest_asyncio.fixture
async def make_task(stores: StoreGroup) -> Callable[..., Awaitable[Task]]:
    """直接落库一个任务；created_at 按调用顺序递增，保证排序稳定"""
    counter = 0

    async def _make(
        priority: int = 1,
        type: TaskType = TaskType.TRANSLATION,
        status: TaskStatus = TaskStatus.PENDING,
        work_id: str = "work-1",
        batch_id: str = "batch-1",
        content: str = "",
    ) -> Task:
        nonlocal counter
        counter += 1
        ts = _BASE_TIME + timedelta(seconds=counter)
        task = Task(
            id=f"01JTASK{counter:019d}",
            work_id=work_id,
            batch_id=batch_id,
            type=type,
            status=status,
            priority=priority,
            content=content,
            created_at=ts,
            updated_at=ts,
        )
        async with stores.transaction():
            await stores.task_store.create_task(task)
        return task

    return _make
