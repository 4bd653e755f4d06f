"""健康检查路由

GET /health: 存活检查，进程能响应即返回 200
GET /ready: 就绪检查，任一项失败返回 503
  - sqlite: 连接可用
  - wal_mode: 数据库运行在 WAL 模式
  - priority_log_guard: 优先级日志的 append-only 触发器存在
"""

import structlog
from fastapi import APIRouter, Depends
from rulequeue.core.store import StoreGroup
from rulequeue.core.store.sqlite_init import verify_wal_mode
from starlette.responses import JSONResponse

from ..deps import get_store_group

log = structlog.get_logger()

router = APIRouter()

_APPEND_ONLY_TRIGGERS = {"trg_priority_logs_no_update", "trg_priority_logs_no_delete"}


async def _installed_triggers(store_group: StoreGroup) -> set[str]:
    cursor = await store_group.conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'trigger' AND tbl_name = 'priority_logs'"
    )
    return {row[0] for row in await cursor.fetchall()}


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/ready")
async def ready(store_group=Depends(get_store_group)):
    checks: dict[str, str] = {}

    try:
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
        checks["wal_mode"] = "ok" if await verify_wal_mode(store_group.conn) else "disabled"
        missing = _APPEND_ONLY_TRIGGERS - await _installed_triggers(store_group)
        checks["priority_log_guard"] = (
            "ok" if not missing else f"missing: {', '.join(sorted(missing))}"
        )
    except Exception as e:
        log.warning("readiness_check_failed", error=str(e))
        checks["sqlite"] = f"error: {e}"

    # wal_mode 为 disabled 时仍可服务，只作提示
    all_ok = checks.get("sqlite") == "ok" and checks.get("priority_log_guard") == "ok"
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={"status": "ready" if all_ok else "not_ready", "checks": checks},
    )
