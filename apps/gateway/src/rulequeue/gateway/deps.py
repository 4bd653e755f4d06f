"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store 与引擎实例

实例通过 app.state 管理，在 lifespan 中初始化/清理。
注册表与引擎持有进程内的锁，必须在所有请求间共享。
"""

from fastapi import Query, Request
from rulequeue.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from rulequeue.core.models import Pagination
from rulequeue.core.rules import PriorityEngine, RuleRegistry
from rulequeue.core.stats import StatsAggregator
from rulequeue.core.store import StoreGroup


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_registry(request: Request) -> RuleRegistry:
    return request.app.state.registry


def get_engine(request: Request) -> PriorityEngine:
    return request.app.state.engine


def get_stats_aggregator(request: Request) -> StatsAggregator:
    return request.app.state.stats


def get_pagination(
    page: int = Query(default=1, ge=1, description="页码，从 1 开始"),
    size: int = Query(
        default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="每页条数"
    ),
) -> Pagination:
    """分页查询参数"""
    return Pagination(page=page, size=size)
