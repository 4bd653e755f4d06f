"""优先级规则路由

POST   /api/rules: 创建规则（生效时触发活跃任务重新评估）
GET    /api/rules: 规则列表，支持 enabled / name 子串筛选
GET    /api/rules/{rule_id}: 规则详情
PUT    /api/rules/{rule_id}: 部分更新规则（生效时触发重新评估）
DELETE /api/rules/{rule_id}: 删除规则（同时移出所有规则组）

条件与动作以原始字典提交，经 tagged union 解析，非法时返回 422 INVALID_RULE。
零条件规则匹配所有任务，响应的 warnings 中给出提示。
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from rulequeue.core.models import (
    RuleDraft,
    RuleFilter,
    RulePatch,
    parse_actions,
    parse_conditions,
)

from ..deps import get_engine, get_pagination, get_registry
from ..serializers import page_to_dict, rule_to_dict
from ..services.rule_service import RuleService

router = APIRouter()


class RuleCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    conditions: list[dict[str, Any]] = Field(default_factory=list)
    actions: list[dict[str, Any]] = Field(default_factory=list)
    enabled: bool = True

    def to_draft(self) -> RuleDraft:
        return RuleDraft(
            name=self.name,
            description=self.description,
            conditions=parse_conditions(self.conditions),
            actions=parse_actions(self.actions),
            enabled=self.enabled,
        )


class RuleUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    conditions: list[dict[str, Any]] | None = None
    actions: list[dict[str, Any]] | None = None
    enabled: bool | None = None

    def to_patch(self) -> RulePatch:
        return RulePatch(
            name=self.name,
            description=self.description,
            conditions=(
                parse_conditions(self.conditions) if self.conditions is not None else None
            ),
            actions=parse_actions(self.actions) if self.actions is not None else None,
            enabled=self.enabled,
        )


@router.post("/api/rules", status_code=201)
async def create_rule(
    body: RuleCreateRequest,
    registry=Depends(get_registry),
    engine=Depends(get_engine),
):
    rule, reevaluation = await RuleService(registry, engine).create_rule(body.to_draft())
    return {**rule_to_dict(rule), "reevaluation": reevaluation.summary()}


@router.get("/api/rules")
async def list_rules(
    enabled: bool | None = Query(default=None, description="按启用状态筛选"),
    name: str | None = Query(default=None, description="名称子串匹配"),
    pagination=Depends(get_pagination),
    registry=Depends(get_registry),
):
    page = await registry.list_rules(RuleFilter(enabled=enabled, name=name), pagination)
    return page_to_dict(page, rule_to_dict)


@router.get("/api/rules/{rule_id}")
async def get_rule(rule_id: str, registry=Depends(get_registry)):
    return rule_to_dict(await registry.get_rule(rule_id))


@router.put("/api/rules/{rule_id}")
async def update_rule(
    rule_id: str,
    body: RuleUpdateRequest,
    registry=Depends(get_registry),
    engine=Depends(get_engine),
):
    rule, reevaluation = await RuleService(registry, engine).update_rule(
        rule_id, body.to_patch()
    )
    return {**rule_to_dict(rule), "reevaluation": reevaluation.summary()}


@router.delete("/api/rules/{rule_id}")
async def delete_rule(
    rule_id: str,
    registry=Depends(get_registry),
    engine=Depends(get_engine),
):
    await RuleService(registry, engine).delete_rule(rule_id)
    return {"rule_id": rule_id, "deleted": True}
