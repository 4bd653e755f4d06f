"""TraceMiddleware

为任务操作绑定 task_id，串联同一任务的优先级变更日志。
task_id 从 /api/tasks/{task_id}/... 路径中提取。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# /api/tasks 下不是 task_id 的固定路径段
_RESERVED_SEGMENTS = {"stats", "queue", "priority"}


def extract_task_id(path: str) -> str | None:
    parts = path.strip("/").split("/")
    for i, part in enumerate(parts):
        if part == "tasks" and i + 1 < len(parts):
            candidate = parts[i + 1]
            # ULID 长度 26
            if candidate not in _RESERVED_SEGMENTS and len(candidate) >= 20:
                return candidate
    return None


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if task_id := extract_task_id(request.url.path):
            structlog.contextvars.bind_contextvars(task_id=task_id)

        return await call_next(request)
