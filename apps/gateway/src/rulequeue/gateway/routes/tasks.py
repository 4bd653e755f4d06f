"""任务路由

POST   /api/tasks: 创建任务（创建后按当前规则集评估一次）
GET    /api/tasks: 任务列表，支持 work_id/batch_id/type/status/优先级范围筛选
GET    /api/tasks/stats: 任务统计，可按 work_id 筛选
GET    /api/tasks/queue: 待处理队列（优先级降序，同优先级先到先得）
GET    /api/tasks/{task_id}: 任务详情
DELETE /api/tasks/{task_id}: 删除任务
PUT    /api/tasks/{task_id}/status: 推进任务状态
POST   /api/tasks/{task_id}/retry: 失败任务重试
POST   /api/tasks/{task_id}/evaluate: 按当前规则集重新评估
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ValidationError
from rulequeue.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from rulequeue.core.models import TaskDraft, TaskFilter, TaskStatus, TaskType

from ..deps import get_engine, get_pagination, get_stats_aggregator, get_store_group
from ..errors import error_response
from ..serializers import dump, page_to_dict
from ..services.task_service import TaskService

router = APIRouter()


class StatusUpdateRequest(BaseModel):
    """状态推进请求"""

    status: TaskStatus
    result: str | None = None
    error: str | None = None


@router.post("/api/tasks", status_code=201)
async def create_task(
    draft: TaskDraft,
    store_group=Depends(get_store_group),
    engine=Depends(get_engine),
):
    task = await TaskService(store_group, engine).create_task(draft)
    return dump(task)


@router.get("/api/tasks")
async def list_tasks(
    work_id: str | None = Query(default=None, description="按作品筛选"),
    batch_id: str | None = Query(default=None, description="按批次筛选"),
    type: TaskType | None = Query(default=None, description="按任务类型筛选"),
    status: TaskStatus | None = Query(default=None, description="按状态筛选"),
    priority_min: int | None = Query(default=None, description="优先级下界（含）"),
    priority_max: int | None = Query(default=None, description="优先级上界（含）"),
    pagination=Depends(get_pagination),
    store_group=Depends(get_store_group),
    engine=Depends(get_engine),
):
    """按优先级降序、创建时间降序分页查询"""
    try:
        task_filter = TaskFilter(
            work_id=work_id,
            batch_id=batch_id,
            type=type,
            status=status,
            priority_min=priority_min,
            priority_max=priority_max,
        )
    except ValidationError as e:
        return error_response(422, "INVALID_FILTER", e.errors()[0]["msg"])

    page = await TaskService(store_group, engine).list_tasks(task_filter, pagination)
    return page_to_dict(page)


@router.get("/api/tasks/stats")
async def get_stats(
    work_id: str | None = Query(default=None, description="按作品筛选（不走缓存）"),
    stats=Depends(get_stats_aggregator),
):
    return dump(await stats.get_stats(work_id))


@router.get("/api/tasks/queue")
async def pending_queue(
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    store_group=Depends(get_store_group),
    engine=Depends(get_engine),
):
    tasks = await TaskService(store_group, engine).next_pending(limit)
    return {"items": [dump(t) for t in tasks]}


@router.get("/api/tasks/{task_id}")
async def get_task(
    task_id: str,
    store_group=Depends(get_store_group),
    engine=Depends(get_engine),
):
    task = await TaskService(store_group, engine).get_task(task_id)
    return dump(task)


@router.delete("/api/tasks/{task_id}")
async def delete_task(
    task_id: str,
    store_group=Depends(get_store_group),
    engine=Depends(get_engine),
):
    await TaskService(store_group, engine).delete_task(task_id)
    return {"task_id": task_id, "deleted": True}


@router.put("/api/tasks/{task_id}/status")
async def update_status(
    task_id: str,
    body: StatusUpdateRequest,
    store_group=Depends(get_store_group),
    engine=Depends(get_engine),
):
    """推进状态；流转非法返回 409"""
    task = await TaskService(store_group, engine).update_status(
        task_id, body.status, result=body.result, error=body.error
    )
    return dump(task)


@router.post("/api/tasks/{task_id}/retry")
async def retry_task(
    task_id: str,
    store_group=Depends(get_store_group),
    engine=Depends(get_engine),
):
    task = await TaskService(store_group, engine).retry_task(task_id)
    return dump(task)


@router.post("/api/tasks/{task_id}/evaluate")
async def evaluate_task(
    task_id: str,
    engine=Depends(get_engine),
):
    result = await engine.evaluate_task(task_id)
    return {**dump(result), "changed": result.changed}
