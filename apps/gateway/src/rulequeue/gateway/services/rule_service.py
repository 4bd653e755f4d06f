"""RuleService -- 注册表变更 + 重新评估触发

注册表负责持久化与一致性，规则引擎负责重新评估；
此服务把两者串起来：变更提交后再触发评估，评估不持有注册表写锁。
"""

from rulequeue.core.exceptions import NotFoundError
from rulequeue.core.models import (
    BatchUpdateResult,
    GroupDraft,
    GroupPatch,
    PriorityRule,
    RuleDraft,
    RuleGroup,
    RulePatch,
)
from rulequeue.core.rules import PriorityEngine, RuleRegistry


class RuleService:
    """规则 / 规则组变更的业务服务"""

    def __init__(self, registry: RuleRegistry, engine: PriorityEngine) -> None:
        self._registry = registry
        self._engine = engine

    async def create_rule(self, draft: RuleDraft) -> tuple[PriorityRule, BatchUpdateResult]:
        rule = await self._registry.create_rule(draft)
        return rule, await self._engine.on_rule_changed(rule)

    async def update_rule(
        self, rule_id: str, patch: RulePatch
    ) -> tuple[PriorityRule, BatchUpdateResult]:
        rule = await self._registry.update_rule(rule_id, patch)
        return rule, await self._engine.on_rule_changed(rule)

    async def delete_rule(self, rule_id: str) -> None:
        # 删除不回退已生效的优先级，不触发重新评估
        await self._registry.delete_rule(rule_id)

    async def instantiate_template(
        self,
        template_id: str,
        name: str | None = None,
        description: str | None = None,
        enabled: bool = True,
    ) -> tuple[PriorityRule, BatchUpdateResult]:
        rule = await self._registry.create_rule_from_template(
            template_id, name=name, description=description, enabled=enabled
        )
        return rule, await self._engine.on_rule_changed(rule)

    async def create_group(self, draft: GroupDraft) -> tuple[RuleGroup, BatchUpdateResult]:
        group = await self._registry.create_group(draft)
        return group, await self._engine.on_group_changed(group)

    async def update_group(
        self, group_id: str, patch: GroupPatch
    ) -> tuple[RuleGroup, BatchUpdateResult]:
        group = await self._registry.update_group(group_id, patch)
        return group, await self._engine.on_group_changed(group)

    async def delete_group(self, group_id: str) -> None:
        await self._registry.delete_group(group_id)

    async def add_rule_to_group(
        self, group_id: str, rule_id: str
    ) -> tuple[RuleGroup, BatchUpdateResult]:
        group = await self._registry.add_rule_to_group(group_id, rule_id)
        return group, await self._engine.on_group_changed(group)

    async def remove_rule_from_group(
        self, group_id: str, rule_id: str
    ) -> tuple[RuleGroup, BatchUpdateResult]:
        """移出成员后，规则可能因此变为生效（不再属于任何组），按规则触发"""
        group = await self._registry.remove_rule_from_group(group_id, rule_id)
        try:
            rule = await self._registry.get_rule(rule_id)
        except NotFoundError:
            return group, BatchUpdateResult()
        return group, await self._engine.on_rule_changed(rule)
