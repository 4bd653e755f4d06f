"""规则模板路由

模板只是创建规则时的预填充蓝本，不参与评估；
POST /api/templates/{template_id}/instantiate 以模板创建一条新规则。
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from rulequeue.core.models import (
    TemplateDraft,
    TemplateFilter,
    TemplatePatch,
    parse_actions,
    parse_conditions,
)

from ..deps import get_engine, get_pagination, get_registry
from ..serializers import page_to_dict, rule_to_dict
from ..services.rule_service import RuleService
from .rules import RuleCreateRequest, RuleUpdateRequest

router = APIRouter()


class TemplateCreateRequest(RuleCreateRequest):
    def to_template_draft(self) -> TemplateDraft:
        return TemplateDraft(
            name=self.name,
            description=self.description,
            conditions=parse_conditions(self.conditions),
            actions=parse_actions(self.actions),
        )


class TemplateUpdateRequest(RuleUpdateRequest):
    def to_template_patch(self) -> TemplatePatch:
        patch = self.to_patch()
        return TemplatePatch(
            name=patch.name,
            description=patch.description,
            conditions=patch.conditions,
            actions=patch.actions,
        )


class InstantiateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, description="不传时沿用模板名称")
    description: str | None = None
    enabled: bool = True


@router.post("/api/templates", status_code=201)
async def create_template(body: TemplateCreateRequest, registry=Depends(get_registry)):
    template = await registry.create_template(body.to_template_draft())
    return rule_to_dict(template)


@router.get("/api/templates")
async def list_templates(
    name: str | None = Query(default=None, description="名称子串匹配"),
    pagination=Depends(get_pagination),
    registry=Depends(get_registry),
):
    page = await registry.list_templates(TemplateFilter(name=name), pagination)
    return page_to_dict(page, rule_to_dict)


@router.get("/api/templates/{template_id}")
async def get_template(template_id: str, registry=Depends(get_registry)):
    return rule_to_dict(await registry.get_template(template_id))


@router.put("/api/templates/{template_id}")
async def update_template(
    template_id: str,
    body: TemplateUpdateRequest,
    registry=Depends(get_registry),
):
    template = await registry.update_template(template_id, body.to_template_patch())
    return rule_to_dict(template)


@router.delete("/api/templates/{template_id}")
async def delete_template(template_id: str, registry=Depends(get_registry)):
    await registry.delete_template(template_id)
    return {"template_id": template_id, "deleted": True}


@router.post("/api/templates/{template_id}/instantiate", status_code=201)
async def instantiate_template(
    template_id: str,
    body: InstantiateRequest,
    registry=Depends(get_registry),
    engine=Depends(get_engine),
):
    rule, reevaluation = await RuleService(registry, engine).instantiate_template(
        template_id,
        name=body.name,
        description=body.description,
        enabled=body.enabled,
    )
    return {**rule_to_dict(rule), "reevaluation": reevaluation.summary()}
