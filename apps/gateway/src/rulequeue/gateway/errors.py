"""领域异常 -> HTTP 响应映射

错误响应统一为 {"error": {"code", "message"}}。
持久化异常不在此处处理，按 500 返回。
"""

import structlog
from fastapi import FastAPI, Request
from rulequeue.core.exceptions import (
    ConcurrentModificationError,
    InvalidRuleError,
    InvalidTransitionError,
    NotFoundError,
    RuleQueueError,
)
from starlette.responses import JSONResponse

log = structlog.get_logger()

_STATUS_BY_ERROR: list[tuple[type[RuleQueueError], int]] = [
    (NotFoundError, 404),
    (InvalidRuleError, 422),
    (ConcurrentModificationError, 409),
    (InvalidTransitionError, 409),
]


def status_for(error: RuleQueueError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return 400


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


async def rulequeue_error_handler(request: Request, exc: RuleQueueError) -> JSONResponse:
    status_code = status_for(exc)
    log.info(
        "request_rejected",
        status_code=status_code,
        error_code=exc.code,
        error=exc.message,
    )
    return error_response(status_code, exc.code, exc.message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RuleQueueError, rulequeue_error_handler)
