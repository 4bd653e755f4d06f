"""临时优先级更新 API 测试

测试内容：
1. 单任务手动更新
2. 批量更新：部分失败逐项报告，成功部分已提交
3. 按条件更新：只更新匹配任务，非法条件 422
4. 优先级日志分页
"""

from httpx import AsyncClient

MISSING_ID = "01JMISSING0000000000000000"


async def _create_task(client: AsyncClient, **body) -> dict:
    body.setdefault("type", "translation")
    resp = await client.post("/api/tasks", json=body)
    assert resp.status_code == 201
    return resp.json()


class TestManualUpdate:
    async def test_set_priority(self, client: AsyncClient):
        task = await _create_task(client, priority=1)

        resp = await client.put(f"/api/tasks/{task['id']}/priority", json={"priority": 3})

        assert resp.status_code == 200
        assert resp.json()["old_priority"] == 1
        assert resp.json()["new_priority"] == 3
        assert resp.json()["changed"] is True
        logs = (await client.get(f"/api/tasks/{task['id']}/priority-logs")).json()
        assert [e["reason"] for e in logs["items"]] == ["manual"]

    async def test_unknown_task(self, client: AsyncClient):
        resp = await client.put(f"/api/tasks/{MISSING_ID}/priority", json={"priority": 3})
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "TASK_NOT_FOUND"


class TestBatchUpdate:
    async def test_partial_failure(self, client: AsyncClient):
        x = await _create_task(client, priority=5)

        resp = await client.post(
            "/api/tasks/priority/batch",
            json={"task_ids": [x["id"], MISSING_ID], "priority": 2},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["summary"] == {"succeeded": 1, "failed": 1, "skipped": 0}
        assert body["succeeded"] == [x["id"]]
        assert body["failed"] == [
            {
                "task_id": MISSING_ID,
                "code": "TASK_NOT_FOUND",
                "message": f"Task with id {MISSING_ID} does not exist",
            }
        ]
        assert (await client.get(f"/api/tasks/{x['id']}")).json()["priority"] == 2

    async def test_empty_id_list_rejected(self, client: AsyncClient):
        resp = await client.post(
            "/api/tasks/priority/batch", json={"task_ids": [], "priority": 2}
        )
        assert resp.status_code == 422


class TestConditionUpdate:
    async def test_only_matching_tasks(self, client: AsyncClient):
        a = await _create_task(client, priority=1)
        b = await _create_task(client, priority=1)
        await client.put(f"/api/tasks/{b['id']}/status", json={"status": "processing"})

        resp = await client.post(
            "/api/tasks/priority/condition",
            json={
                "condition": {"field": "status", "operator": "eq", "value": "pending"},
                "priority": 10,
            },
        )

        assert resp.status_code == 200
        assert resp.json()["succeeded"] == [a["id"]]
        assert (await client.get(f"/api/tasks/{a['id']}")).json()["priority"] == 10
        assert (await client.get(f"/api/tasks/{b['id']}")).json()["priority"] == 1
        logs = (await client.get(f"/api/tasks/{a['id']}/priority-logs")).json()
        assert [e["reason"] for e in logs["items"]] == ["condition"]

    async def test_invalid_condition(self, client: AsyncClient):
        resp = await client.post(
            "/api/tasks/priority/condition",
            json={
                "condition": {"field": "status", "operator": "like", "value": "pend%"},
                "priority": 10,
            },
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "INVALID_RULE"


class TestPriorityLogs:
    async def test_paginated_history(self, client: AsyncClient):
        task = await _create_task(client, priority=0)
        for priority in (1, 2, 3):
            await client.put(f"/api/tasks/{task['id']}/priority", json={"priority": priority})

        url = f"/api/tasks/{task['id']}/priority-logs"
        full = (await client.get(url)).json()
        assert [e["new_priority"] for e in full["items"]] == [1, 2, 3]

        page = (await client.get(url, params={"page": 2, "size": 2})).json()
        assert page["total"] == 3
        assert [e["new_priority"] for e in page["items"]] == [3]

    async def test_unknown_task_has_empty_history(self, client: AsyncClient):
        body = (await client.get(f"/api/tasks/{MISSING_ID}/priority-logs")).json()
        assert body == {"items": [], "total": 0}
