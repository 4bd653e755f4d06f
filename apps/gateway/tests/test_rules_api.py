"""规则 / 模板 / 规则组 API 测试

测试内容：
1. 规则 CRUD：非法规则 422、零条件规则提示、变更触发重新评估
2. 模板 CRUD 与实例化
3. 规则组：成员幂等、禁用组不贡献规则、删除组保留规则
"""

from httpx import AsyncClient

MISSING_ID = "01JMISSING0000000000000000"

BUMP = {"type": "increment_priority", "value": 2}
IS_TRANSLATION = {"field": "type", "operator": "eq", "value": "translation"}


async def _create_task(client: AsyncClient, **body) -> dict:
    body.setdefault("type", "translation")
    resp = await client.post("/api/tasks", json=body)
    assert resp.status_code == 201
    return resp.json()


async def _create_rule(client: AsyncClient, **body) -> dict:
    body.setdefault("name", "bump translations")
    body.setdefault("conditions", [IS_TRANSLATION])
    body.setdefault("actions", [BUMP])
    resp = await client.post("/api/rules", json=body)
    assert resp.status_code == 201
    return resp.json()


async def _priority(client: AsyncClient, task_id: str) -> int:
    return (await client.get(f"/api/tasks/{task_id}")).json()["priority"]


class TestRules:
    async def test_create_and_get(self, client: AsyncClient):
        rule = await _create_rule(client, description="translations jump the queue")

        assert rule["warnings"] == []
        assert rule["conditions"] == [IS_TRANSLATION]
        assert rule["actions"] == [BUMP]

        resp = await client.get(f"/api/rules/{rule['id']}")
        assert resp.status_code == 200
        assert resp.json()["description"] == "translations jump the queue"

    async def test_catch_all_rule_carries_warning(self, client: AsyncClient):
        rule = await _create_rule(client, conditions=[])

        assert rule["warnings"] == ["rule has no conditions and matches every task"]

    async def test_rule_without_actions_rejected(self, client: AsyncClient):
        resp = await client.post("/api/rules", json={"name": "noop", "actions": []})

        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "INVALID_RULE"

    async def test_unknown_operator_rejected(self, client: AsyncClient):
        resp = await client.post(
            "/api/rules",
            json={
                "name": "bad",
                "conditions": [{"field": "priority", "operator": "between", "value": 3}],
                "actions": [BUMP],
            },
        )

        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "INVALID_RULE"

    async def test_unknown_action_rejected(self, client: AsyncClient):
        resp = await client.post(
            "/api/rules",
            json={"name": "bad", "actions": [{"type": "multiply_priority", "value": 2}]},
        )

        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "INVALID_RULE"

    async def test_create_reevaluates_active_tasks(self, client: AsyncClient):
        pending = await _create_task(client, priority=1)
        done = await _create_task(client, priority=1)
        await client.put(f"/api/tasks/{done['id']}/status", json={"status": "processing"})
        await client.put(f"/api/tasks/{done['id']}/status", json={"status": "completed"})

        rule = await _create_rule(client)

        assert rule["reevaluation"] == {"succeeded": 1, "failed": 0, "skipped": 0}
        assert await _priority(client, pending["id"]) == 3
        assert await _priority(client, done["id"]) == 1

    async def test_disabled_rule_does_not_trigger(self, client: AsyncClient):
        task = await _create_task(client, priority=1)

        rule = await _create_rule(client, enabled=False)

        assert rule["reevaluation"] == {"succeeded": 0, "failed": 0, "skipped": 0}
        assert await _priority(client, task["id"]) == 1

    async def test_update_enables_rule(self, client: AsyncClient):
        task = await _create_task(client, priority=1)
        rule = await _create_rule(client, enabled=False)

        resp = await client.put(f"/api/rules/{rule['id']}", json={"enabled": True})

        assert resp.status_code == 200
        assert resp.json()["enabled"] is True
        assert resp.json()["name"] == "bump translations"
        assert await _priority(client, task["id"]) == 3

    async def test_update_unknown_rule(self, client: AsyncClient):
        resp = await client.put(f"/api/rules/{MISSING_ID}", json={"enabled": False})

        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "RULE_NOT_FOUND"

    async def test_delete_keeps_applied_priority(self, client: AsyncClient):
        task = await _create_task(client, priority=1)
        rule = await _create_rule(client)
        assert await _priority(client, task["id"]) == 3

        resp = await client.delete(f"/api/rules/{rule['id']}")

        assert resp.json() == {"rule_id": rule["id"], "deleted": True}
        assert (await client.get(f"/api/rules/{rule['id']}")).status_code == 404
        assert (await client.delete(f"/api/rules/{rule['id']}")).status_code == 404
        assert await _priority(client, task["id"]) == 3

    async def test_list_with_filters(self, client: AsyncClient):
        await _create_rule(client, name="urgent translations")
        await _create_rule(client, name="urgent reviews", enabled=False)
        await _create_rule(client, name="slow lane")

        body = (await client.get("/api/rules", params={"name": "urgent"})).json()
        assert body["total"] == 2

        body = (await client.get("/api/rules", params={"enabled": False})).json()
        assert [r["name"] for r in body["items"]] == ["urgent reviews"]

        body = (await client.get("/api/rules", params={"page": 2, "size": 2})).json()
        assert body["total"] == 3
        assert len(body["items"]) == 1


class TestTemplates:
    async def test_crud(self, client: AsyncClient):
        resp = await client.post(
            "/api/templates",
            json={"name": "vip", "conditions": [IS_TRANSLATION], "actions": [BUMP]},
        )
        assert resp.status_code == 201
        template = resp.json()

        resp = await client.put(
            f"/api/templates/{template['id']}", json={"description": "for vip works"}
        )
        assert resp.json()["description"] == "for vip works"
        assert resp.json()["actions"] == [BUMP]

        body = (await client.get("/api/templates")).json()
        assert body["total"] == 1

        resp = await client.delete(f"/api/templates/{template['id']}")
        assert resp.json() == {"template_id": template["id"], "deleted": True}
        resp = await client.get(f"/api/templates/{template['id']}")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "TEMPLATE_NOT_FOUND"

    async def test_instantiate(self, client: AsyncClient):
        task = await _create_task(client, priority=1)
        template = (
            await client.post(
                "/api/templates",
                json={"name": "vip", "conditions": [IS_TRANSLATION], "actions": [BUMP]},
            )
        ).json()

        # 模板本身不参与评估
        assert await _priority(client, task["id"]) == 1

        resp = await client.post(
            f"/api/templates/{template['id']}/instantiate", json={"name": "vip w1"}
        )

        assert resp.status_code == 201
        rule = resp.json()
        assert rule["name"] == "vip w1"
        assert rule["conditions"] == [IS_TRANSLATION]
        assert rule["id"] != template["id"]
        assert await _priority(client, task["id"]) == 3

    async def test_instantiate_unknown_template(self, client: AsyncClient):
        resp = await client.post(f"/api/templates/{MISSING_ID}/instantiate", json={})
        assert resp.status_code == 404


class TestGroups:
    async def test_membership_is_idempotent(self, client: AsyncClient):
        rule = await _create_rule(client)
        group = (await client.post("/api/groups", json={"name": "g"})).json()
        url = f"/api/groups/{group['id']}/rules"

        for _ in range(2):
            resp = await client.post(url, json={"rule_id": rule["id"]})
            assert resp.status_code == 200
            assert resp.json()["rule_ids"] == [rule["id"]]

        members = (await client.get(url)).json()
        assert [r["id"] for r in members["items"]] == [rule["id"]]

        for _ in range(2):
            resp = await client.delete(f"{url}/{rule['id']}")
            assert resp.status_code == 200
            assert resp.json()["rule_ids"] == []

    async def test_unknown_member_rejected(self, client: AsyncClient):
        group = (await client.post("/api/groups", json={"name": "g"})).json()

        resp = await client.post(
            f"/api/groups/{group['id']}/rules", json={"rule_id": MISSING_ID}
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "RULE_NOT_FOUND"

        resp = await client.post("/api/groups", json={"name": "g2", "rule_ids": [MISSING_ID]})
        assert resp.status_code == 404

    async def test_disabled_group_silences_its_rules(self, client: AsyncClient):
        rule = await _create_rule(client)
        group = (
            await client.post(
                "/api/groups",
                json={"name": "g", "rule_ids": [rule["id"]], "enabled": False},
            )
        ).json()

        task = await _create_task(client, priority=1)
        assert await _priority(client, task["id"]) == 1

        resp = await client.put(f"/api/groups/{group['id']}", json={"enabled": True})

        assert resp.json()["enabled"] is True
        assert resp.json()["reevaluation"] == {"succeeded": 1, "failed": 0, "skipped": 0}
        assert await _priority(client, task["id"]) == 3

    async def test_delete_group_keeps_rules(self, client: AsyncClient):
        rule = await _create_rule(client, enabled=False)
        group = (
            await client.post("/api/groups", json={"name": "g", "rule_ids": [rule["id"]]})
        ).json()

        resp = await client.delete(f"/api/groups/{group['id']}")
        assert resp.json() == {"group_id": group["id"], "deleted": True}

        assert (await client.get(f"/api/rules/{rule['id']}")).status_code == 200
        resp = await client.get(f"/api/groups/{group['id']}")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "GROUP_NOT_FOUND"

    async def test_list_groups(self, client: AsyncClient):
        await client.post("/api/groups", json={"name": "night shift"})
        await client.post("/api/groups", json={"name": "day shift", "enabled": False})

        body = (await client.get("/api/groups", params={"enabled": True})).json()
        assert [g["name"] for g in body["items"]] == ["night shift"]
