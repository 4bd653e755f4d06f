"""健康检查与中间件测试"""

import logging

from httpx import AsyncClient
from rulequeue.gateway.middleware.logging_config import _resolve_level
from rulequeue.gateway.middleware.trace_mw import extract_task_id


class TestHealth:
    async def test_health(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_ready(self, client: AsyncClient):
        resp = await client.get("/ready")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ready"
        assert body["checks"]["sqlite"] == "ok"
        assert body["checks"]["priority_log_guard"] == "ok"

    async def test_request_id_header(self, client: AsyncClient):
        resp = await client.get("/health", headers={"X-Actor-Id": "ops-1"})
        assert len(resp.headers["X-Request-ID"]) == 26


class TestExtractTaskId:
    def test_task_path(self):
        task_id = "01JTASK0000000000000000001"
        assert extract_task_id(f"/api/tasks/{task_id}/priority") == task_id

    def test_reserved_segments(self):
        assert extract_task_id("/api/tasks/priority/batch") is None
        assert extract_task_id("/api/tasks/stats") is None
        assert extract_task_id("/api/tasks/queue") is None

    def test_other_paths(self):
        assert extract_task_id("/api/rules/01JRULE0000000000000000001") is None
        assert extract_task_id("/health") is None


def test_log_level_names():
    assert _resolve_level("debug") == logging.DEBUG
    assert _resolve_level("WARNING") == logging.WARNING
    assert _resolve_level("verbose") is None
