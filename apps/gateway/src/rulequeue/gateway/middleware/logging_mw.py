"""LoggingMiddleware

每个请求一个 request_id（ULID），连同 method / path / 调用方身份
绑定到 structlog contextvars，之后引擎与存储层的日志都带上这些字段。
调用方身份由上游认证层通过 X-Actor-Id 头传入，本服务不做校验。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

ACTOR_HEADER = "X-Actor-Id"
REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """请求级日志中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = str(ULID())
        context = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }
        if actor_id := request.headers.get(ACTOR_HEADER):
            context["actor_id"] = actor_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(**context)
        log = structlog.get_logger()

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log.exception(
                "request_failed",
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            raise

        log.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
