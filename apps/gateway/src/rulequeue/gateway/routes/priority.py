"""临时优先级更新 + 优先级日志路由

PUT  /api/tasks/{task_id}/priority: 单任务设定优先级（reason "manual"）
POST /api/tasks/priority/batch: 按 ID 列表设定优先级（reason "batch"）
POST /api/tasks/priority/condition: 按条件设定优先级（reason "condition"）
GET  /api/tasks/{task_id}/priority-logs: 任务的优先级变更历史

批量与条件更新是尽力而为的：逐任务提交，部分失败不回滚，
响应中给出成功/失败数量及失败的任务 ID 与原因。
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from rulequeue.core.config import MAX_PAGE_SIZE
from rulequeue.core.models import Pagination, parse_condition

from ..deps import get_engine, get_store_group
from ..serializers import batch_to_dict, dump

router = APIRouter()


class PriorityUpdateRequest(BaseModel):
    priority: int


class BatchPriorityRequest(BaseModel):
    task_ids: list[str] = Field(min_length=1, description="任务 ID 列表，重复 ID 只处理一次")
    priority: int


class ConditionPriorityRequest(BaseModel):
    condition: dict[str, Any] = Field(description="单个条件：field/operator/value")
    priority: int


@router.put("/api/tasks/{task_id}/priority")
async def set_task_priority(
    task_id: str,
    body: PriorityUpdateRequest,
    engine=Depends(get_engine),
):
    outcome = await engine.set_task_priority(task_id, body.priority)
    return {**dump(outcome), "changed": outcome.changed}


@router.post("/api/tasks/priority/batch")
async def batch_update_priority(
    body: BatchPriorityRequest,
    engine=Depends(get_engine),
):
    result = await engine.evaluate_batch(body.task_ids, body.priority)
    return batch_to_dict(result)


@router.post("/api/tasks/priority/condition")
async def condition_update_priority(
    body: ConditionPriorityRequest,
    engine=Depends(get_engine),
):
    condition = parse_condition(body.condition)
    result = await engine.evaluate_by_condition(condition, body.priority)
    return batch_to_dict(result)


@router.get("/api/tasks/{task_id}/priority-logs")
async def list_priority_logs(
    task_id: str,
    page: int | None = Query(default=None, ge=1, description="不传时返回完整历史"),
    size: int = Query(default=MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    store_group=Depends(get_store_group),
):
    """按写入顺序返回；任务删除后日志仍可查询"""
    log_store = store_group.priority_log_store
    pagination = Pagination(page=page, size=size) if page is not None else None
    items = await log_store.list_by_task(task_id, pagination)
    total = await log_store.count_by_task(task_id)
    return {"items": [dump(entry) for entry in items], "total": total}
