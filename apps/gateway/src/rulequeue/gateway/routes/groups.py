"""规则组路由

POST   /api/groups: 创建规则组
GET    /api/groups: 规则组列表，支持 enabled / name 子串筛选
GET    /api/groups/{group_id}: 规则组详情（含有序成员 ID）
PUT    /api/groups/{group_id}: 更新名称/描述/启用状态
DELETE /api/groups/{group_id}: 删除规则组（成员规则保留）
GET    /api/groups/{group_id}/rules: 按组内顺序列出成员规则
POST   /api/groups/{group_id}/rules: 添加成员（幂等）
DELETE /api/groups/{group_id}/rules/{rule_id}: 移除成员（幂等）
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from rulequeue.core.models import GroupDraft, GroupFilter, GroupPatch

from ..deps import get_engine, get_pagination, get_registry
from ..serializers import dump, page_to_dict, rule_to_dict
from ..services.rule_service import RuleService

router = APIRouter()


class MemberRequest(BaseModel):
    rule_id: str


@router.post("/api/groups", status_code=201)
async def create_group(
    body: GroupDraft,
    registry=Depends(get_registry),
    engine=Depends(get_engine),
):
    group, reevaluation = await RuleService(registry, engine).create_group(body)
    return {**dump(group), "reevaluation": reevaluation.summary()}


@router.get("/api/groups")
async def list_groups(
    enabled: bool | None = Query(default=None, description="按启用状态筛选"),
    name: str | None = Query(default=None, description="名称子串匹配"),
    pagination=Depends(get_pagination),
    registry=Depends(get_registry),
):
    page = await registry.list_groups(GroupFilter(enabled=enabled, name=name), pagination)
    return page_to_dict(page)


@router.get("/api/groups/{group_id}")
async def get_group(group_id: str, registry=Depends(get_registry)):
    return dump(await registry.get_group(group_id))


@router.put("/api/groups/{group_id}")
async def update_group(
    group_id: str,
    body: GroupPatch,
    registry=Depends(get_registry),
    engine=Depends(get_engine),
):
    group, reevaluation = await RuleService(registry, engine).update_group(group_id, body)
    return {**dump(group), "reevaluation": reevaluation.summary()}


@router.delete("/api/groups/{group_id}")
async def delete_group(
    group_id: str,
    registry=Depends(get_registry),
    engine=Depends(get_engine),
):
    await RuleService(registry, engine).delete_group(group_id)
    return {"group_id": group_id, "deleted": True}


@router.get("/api/groups/{group_id}/rules")
async def list_group_rules(group_id: str, registry=Depends(get_registry)):
    rules = await registry.list_group_rules(group_id)
    return {"items": [rule_to_dict(r) for r in rules], "total": len(rules)}


@router.post("/api/groups/{group_id}/rules")
async def add_group_rule(
    group_id: str,
    body: MemberRequest,
    registry=Depends(get_registry),
    engine=Depends(get_engine),
):
    group, reevaluation = await RuleService(registry, engine).add_rule_to_group(
        group_id, body.rule_id
    )
    return {**dump(group), "reevaluation": reevaluation.summary()}


@router.delete("/api/groups/{group_id}/rules/{rule_id}")
async def remove_group_rule(
    group_id: str,
    rule_id: str,
    registry=Depends(get_registry),
    engine=Depends(get_engine),
):
    group, reevaluation = await RuleService(registry, engine).remove_rule_from_group(
        group_id, rule_id
    )
    return {**dump(group), "reevaluation": reevaluation.summary()}
