"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + 规则引擎组件初始化 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from rulequeue.core.config import EngineConfig, get_db_path, load_engine_config
from rulequeue.core.rules import PriorityBounds, PriorityEngine, RuleRegistry
from rulequeue.core.stats import StatsAggregator
from rulequeue.core.store import StoreGroup, create_store_group

from .errors import register_exception_handlers
from .middleware.logging_config import setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import groups, health, priority, rules, tasks, templates

log = structlog.get_logger()


def init_app_state(app: FastAPI, store_group: StoreGroup, config: EngineConfig) -> None:
    """在 app.state 上装配共享组件

    注册表与引擎持有进程内锁，整个应用只能有一份。
    """
    registry = RuleRegistry(store_group, bounds=PriorityBounds.from_config(config))
    app.state.store_group = store_group
    app.state.registry = registry
    app.state.engine = PriorityEngine(store_group, registry, config)
    app.state.stats = StatsAggregator(store_group.task_store, cache_enabled=config.stats_cache)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB 与规则引擎，关闭时清理连接"""
    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    config = load_engine_config()
    init_app_state(app, store_group, config)
    log.info(
        "engine_initialized",
        db_path=db_path,
        priority_min=config.priority_min,
        priority_max=config.priority_max,
        bounds_mode=config.bounds_mode,
        stats_cache=config.stats_cache,
    )

    yield

    # 关闭：清理数据库连接
    if hasattr(app.state, "store_group") and app.state.store_group:
        await app.state.store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="RuleQueue Gateway",
        version="0.1.0",
        description="优先级规则引擎 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging()
    register_exception_handlers(app)

    # 注册路由
    app.include_router(priority.router, tags=["priority"])
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(rules.router, tags=["rules"])
    app.include_router(templates.router, tags=["templates"])
    app.include_router(groups.router, tags=["groups"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
