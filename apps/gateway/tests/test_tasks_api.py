"""任务 API 测试

测试内容：
1. 创建任务：默认优先级、创建后按规则评估
2. 列表筛选、分页、排序
3. 状态流转：合法推进 / 非法 409 / 重试上限
4. 删除、待处理队列、统计
"""

from httpx import AsyncClient

MISSING_ID = "01JMISSING0000000000000000"


async def _create_task(client: AsyncClient, **body) -> dict:
    body.setdefault("type", "translation")
    resp = await client.post("/api/tasks", json=body)
    assert resp.status_code == 201
    return resp.json()


class TestCreateTask:
    async def test_default_priority_is_normal(self, client: AsyncClient):
        task = await _create_task(client, work_id="w1", content="hello")

        assert task["priority"] == 1
        assert task["status"] == "pending"
        assert task["retry_count"] == 0
        assert task["max_retries"] == 3
        assert len(task["id"]) == 26

    async def test_new_task_is_evaluated_against_rules(self, client: AsyncClient):
        resp = await client.post(
            "/api/rules",
            json={
                "name": "translations first",
                "conditions": [{"field": "type", "operator": "eq", "value": "translation"}],
                "actions": [{"type": "increment_priority", "value": 3}],
            },
        )
        assert resp.status_code == 201
        rule_id = resp.json()["id"]

        task = await _create_task(client, priority=5)
        assert task["priority"] == 8

        logs = (await client.get(f"/api/tasks/{task['id']}/priority-logs")).json()
        assert logs["total"] == 1
        entry = logs["items"][0]
        assert (entry["old_priority"], entry["new_priority"], entry["reason"]) == (
            5,
            8,
            rule_id,
        )

    async def test_invalid_type_rejected(self, client: AsyncClient):
        resp = await client.post("/api/tasks", json={"type": "summarization"})
        assert resp.status_code == 422


class TestQueryTasks:
    async def test_get_unknown_task(self, client: AsyncClient):
        resp = await client.get(f"/api/tasks/{MISSING_ID}")

        assert resp.status_code == 404
        assert resp.json() == {
            "error": {
                "code": "TASK_NOT_FOUND",
                "message": f"Task with id {MISSING_ID} does not exist",
            }
        }

    async def test_list_filters_and_order(self, client: AsyncClient):
        low = await _create_task(client, work_id="w1", priority=0)
        high = await _create_task(client, work_id="w1", priority=3)
        await _create_task(client, work_id="w2", priority=2, type="content_generation")

        resp = await client.get("/api/tasks", params={"work_id": "w1"})
        body = resp.json()
        assert body["total"] == 2
        assert [t["id"] for t in body["items"]] == [high["id"], low["id"]]

        resp = await client.get("/api/tasks", params={"type": "content_generation"})
        assert [t["work_id"] for t in resp.json()["items"]] == ["w2"]

        resp = await client.get("/api/tasks", params={"priority_min": 2})
        assert resp.json()["total"] == 2

    async def test_pagination(self, client: AsyncClient):
        for _ in range(3):
            await _create_task(client)

        body = (await client.get("/api/tasks", params={"page": 2, "size": 2})).json()
        assert body["total"] == 3
        assert body["page"] == 2
        assert len(body["items"]) == 1

    async def test_page_size_capped(self, client: AsyncClient):
        resp = await client.get("/api/tasks", params={"size": 101})
        assert resp.status_code == 422

    async def test_inverted_priority_range(self, client: AsyncClient):
        resp = await client.get("/api/tasks", params={"priority_min": 5, "priority_max": 1})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "INVALID_FILTER"

    async def test_pending_queue(self, client: AsyncClient):
        first = await _create_task(client, priority=1)
        urgent = await _create_task(client, priority=3)
        second = await _create_task(client, priority=1)

        body = (await client.get("/api/tasks/queue", params={"limit": 2})).json()
        assert [t["id"] for t in body["items"]] == [urgent["id"], first["id"]]
        assert second["id"] not in [t["id"] for t in body["items"]]


class TestLifecycle:
    async def test_status_flow(self, client: AsyncClient):
        task = await _create_task(client)

        resp = await client.put(f"/api/tasks/{task['id']}/status", json={"status": "processing"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "processing"

        resp = await client.put(
            f"/api/tasks/{task['id']}/status",
            json={"status": "completed", "result": "done"},
        )
        assert resp.json()["status"] == "completed"
        assert resp.json()["result"] == "done"

        resp = await client.put(f"/api/tasks/{task['id']}/status", json={"status": "pending"})
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"

    async def test_retry_until_limit(self, client: AsyncClient):
        task = await _create_task(client, max_retries=1)
        url = f"/api/tasks/{task['id']}"

        resp = await client.post(f"{url}/retry")
        assert resp.status_code == 409

        await client.put(f"{url}/status", json={"status": "failed", "error": "boom"})
        resp = await client.post(f"{url}/retry")
        assert resp.status_code == 200
        assert resp.json()["status"] == "pending"
        assert resp.json()["retry_count"] == 1
        assert resp.json()["error"] == ""

        await client.put(f"{url}/status", json={"status": "failed"})
        resp = await client.post(f"{url}/retry")
        assert resp.status_code == 409

    async def test_delete(self, client: AsyncClient):
        task = await _create_task(client)

        resp = await client.delete(f"/api/tasks/{task['id']}")
        assert resp.status_code == 200
        assert (await client.get(f"/api/tasks/{task['id']}")).status_code == 404
        assert (await client.delete(f"/api/tasks/{task['id']}")).status_code == 404

    async def test_evaluate_endpoint(self, client: AsyncClient):
        task = await _create_task(client, priority=4)

        resp = await client.post(f"/api/tasks/{task['id']}/evaluate")
        assert resp.status_code == 200
        assert resp.json() == {
            "task_id": task["id"],
            "old_priority": 4,
            "new_priority": 4,
            "applied_rule_ids": [],
            "changed": False,
        }


class TestStats:
    async def test_stats(self, client: AsyncClient):
        a = await _create_task(client, work_id="w1", priority=2)
        await _create_task(client, work_id="w2", type="content_generation")
        await client.put(f"/api/tasks/{a['id']}/status", json={"status": "processing"})
        await client.put(f"/api/tasks/{a['id']}/status", json={"status": "completed"})

        stats = (await client.get("/api/tasks/stats")).json()
        assert stats["total"] == 2
        assert stats["total"] == (
            stats["pending"] + stats["processing"] + stats["completed"] + stats["failed"]
        )
        assert stats["completed"] == 1
        assert stats["by_type"] == {"content_generation": 1, "translation": 1}
        assert stats["by_priority"] == {"1": 1, "2": 1}
        assert stats["success_rate"] == 50.0

        filtered = (await client.get("/api/tasks/stats", params={"work_id": "w2"})).json()
        assert filtered["total"] == 1
        assert filtered["success_rate"] == 0.0
