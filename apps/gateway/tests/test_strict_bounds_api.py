"""strict 越界模式 API 测试"""

import pytest
from httpx import AsyncClient
from rulequeue.core.config import EngineConfig


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig(priority_min=0, priority_max=3, bounds_mode="strict")


async def test_out_of_bounds_target_rejected(client: AsyncClient):
    task = (await client.post("/api/tasks", json={"type": "translation"})).json()

    resp = await client.post(
        "/api/tasks/priority/batch", json={"task_ids": [task["id"]], "priority": 9}
    )

    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "INVALID_RULE"
    logs = (await client.get(f"/api/tasks/{task['id']}/priority-logs")).json()
    assert logs["total"] == 0


async def test_out_of_bounds_initial_priority_rejected(client: AsyncClient):
    resp = await client.post("/api/tasks", json={"type": "translation", "priority": 4})
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "INVALID_RULE"


async def test_rule_pushing_out_of_bounds_reported(client: AsyncClient):
    task = (await client.post("/api/tasks", json={"type": "translation", "priority": 3})).json()

    resp = await client.post(
        "/api/rules",
        json={"name": "bump", "actions": [{"type": "increment_priority", "value": 1}]},
    )

    assert resp.status_code == 201
    assert resp.json()["reevaluation"] == {"succeeded": 0, "failed": 1, "skipped": 0}
    assert (await client.get(f"/api/tasks/{task['id']}")).json()["priority"] == 3


async def test_out_of_bounds_set_priority_rule_rejected(client: AsyncClient):
    await client.post("/api/tasks", json={"type": "translation"})

    resp = await client.post(
        "/api/rules",
        json={"name": "pin", "actions": [{"type": "set_priority", "value": 500}]},
    )

    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "INVALID_RULE"
    assert (await client.get("/api/rules")).json()["total"] == 0


async def test_out_of_bounds_set_priority_template_rejected(client: AsyncClient):
    resp = await client.post(
        "/api/templates",
        json={"name": "pin", "actions": [{"type": "set_priority", "value": 500}]},
    )

    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "INVALID_RULE"
    assert (await client.get("/api/templates")).json()["total"] == 0
