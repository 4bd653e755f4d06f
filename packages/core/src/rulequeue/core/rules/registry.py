"""RuleRegistry -- 规则 / 模板 / 规则组的增删改查

所有变更持注册表写锁并在单个事务内完成；
规则引擎读取生效规则集时持读锁，保证一次评估看到的是一致的规则快照。
"""

from datetime import UTC, datetime

import structlog
from ulid import ULID

from ..exceptions import InvalidRuleError, NotFoundError
from ..models.drafts import (
    GroupDraft,
    GroupPatch,
    RuleDraft,
    RulePatch,
    TemplateDraft,
    TemplatePatch,
)
from ..models.query import GroupFilter, Page, Pagination, RuleFilter, TemplateFilter
from ..models.rule import CATCH_ALL_WARNING, PriorityRule, RuleGroup, RuleTemplate
from ..store import StoreGroup
from .actions import PriorityBounds
from .locks import ReadWriteLock

log = structlog.get_logger()


def warnings_for(rule: PriorityRule | RuleTemplate) -> list[str]:
    """规则作者提示：零条件规则匹配所有任务"""
    return [CATCH_ALL_WARNING] if not rule.conditions else []


def _check_actions(actions: list, bounds: PriorityBounds) -> None:
    if not actions:
        raise InvalidRuleError("rule must have at least one action")
    if not bounds.strict:
        return
    # strict 模式下 set_priority 的绝对值必须落在范围内
    for action in actions:
        if action.type == "set_priority":
            bounds.fit(action.value)


class RuleRegistry:
    """规则注册表

    删除规则会将其移出所有规则组；删除规则组保留其成员规则。
    组成员的添加/移除是幂等的。
    """

    def __init__(
        self,
        stores: StoreGroup,
        lock: ReadWriteLock | None = None,
        bounds: PriorityBounds | None = None,
    ) -> None:
        self._stores = stores
        self._rules = stores.rule_store
        self._lock = lock or ReadWriteLock()
        self._bounds = bounds or PriorityBounds()

    @property
    def lock(self) -> ReadWriteLock:
        return self._lock

    # ---------- PriorityRule ----------

    async def create_rule(self, draft: RuleDraft) -> PriorityRule:
        _check_actions(draft.actions, self._bounds)
        now = datetime.now(UTC)
        rule = PriorityRule(
            id=str(ULID()),
            name=draft.name,
            description=draft.description,
            conditions=draft.conditions,
            actions=draft.actions,
            enabled=draft.enabled,
            created_at=now,
            updated_at=now,
        )
        async with self._lock.write(), self._stores.transaction():
            await self._rules.create_rule(rule)

        log.info("rule_created", rule_id=rule.id, name=rule.name, enabled=rule.enabled)
        self._warn_catch_all(rule)
        return rule

    async def get_rule(self, rule_id: str) -> PriorityRule:
        rule = await self._rules.get_rule(rule_id)
        if rule is None:
            raise NotFoundError("rule", rule_id)
        return rule

    async def update_rule(self, rule_id: str, patch: RulePatch) -> PriorityRule:
        """部分更新规则；None 字段保持原值"""
        if patch.actions is not None:
            _check_actions(patch.actions, self._bounds)
        async with self._lock.write(), self._stores.transaction():
            current = await self.get_rule(rule_id)
            changes = patch.model_dump(exclude_none=True)
            # conditions/actions 保留已校验的变体对象
            if patch.conditions is not None:
                changes["conditions"] = patch.conditions
            if patch.actions is not None:
                changes["actions"] = patch.actions
            rule = current.model_copy(
                update={**changes, "updated_at": datetime.now(UTC)}
            )
            await self._rules.update_rule(rule)

        log.info("rule_updated", rule_id=rule.id, fields=sorted(changes))
        self._warn_catch_all(rule)
        return rule

    async def delete_rule(self, rule_id: str) -> None:
        async with self._lock.write(), self._stores.transaction():
            if not await self._rules.delete_rule(rule_id):
                raise NotFoundError("rule", rule_id)
        log.info("rule_deleted", rule_id=rule_id)

    async def list_rules(
        self,
        rule_filter: RuleFilter | None = None,
        pagination: Pagination | None = None,
    ) -> Page[PriorityRule]:
        pagination = pagination or Pagination()
        items, total = await self._rules.list_rules(rule_filter or RuleFilter(), pagination)
        return Page(items=items, total=total, page=pagination.page, size=pagination.size)

    # ---------- RuleTemplate ----------

    async def create_template(self, draft: TemplateDraft) -> RuleTemplate:
        _check_actions(draft.actions, self._bounds)
        now = datetime.now(UTC)
        template = RuleTemplate(
            id=str(ULID()),
            name=draft.name,
            description=draft.description,
            conditions=draft.conditions,
            actions=draft.actions,
            created_at=now,
            updated_at=now,
        )
        async with self._lock.write(), self._stores.transaction():
            await self._rules.create_template(template)
        log.info("template_created", template_id=template.id, name=template.name)
        return template

    async def get_template(self, template_id: str) -> RuleTemplate:
        template = await self._rules.get_template(template_id)
        if template is None:
            raise NotFoundError("template", template_id)
        return template

    async def update_template(self, template_id: str, patch: TemplatePatch) -> RuleTemplate:
        if patch.actions is not None:
            _check_actions(patch.actions, self._bounds)
        async with self._lock.write(), self._stores.transaction():
            current = await self.get_template(template_id)
            changes = patch.model_dump(exclude_none=True)
            if patch.conditions is not None:
                changes["conditions"] = patch.conditions
            if patch.actions is not None:
                changes["actions"] = patch.actions
            template = current.model_copy(
                update={**changes, "updated_at": datetime.now(UTC)}
            )
            await self._rules.update_template(template)
        log.info("template_updated", template_id=template.id, fields=sorted(changes))
        return template

    async def delete_template(self, template_id: str) -> None:
        async with self._lock.write(), self._stores.transaction():
            if not await self._rules.delete_template(template_id):
                raise NotFoundError("template", template_id)
        log.info("template_deleted", template_id=template_id)

    async def list_templates(
        self,
        template_filter: TemplateFilter | None = None,
        pagination: Pagination | None = None,
    ) -> Page[RuleTemplate]:
        pagination = pagination or Pagination()
        items, total = await self._rules.list_templates(
            template_filter or TemplateFilter(), pagination
        )
        return Page(items=items, total=total, page=pagination.page, size=pagination.size)

    async def create_rule_from_template(
        self,
        template_id: str,
        name: str | None = None,
        description: str | None = None,
        enabled: bool = True,
    ) -> PriorityRule:
        """以模板为蓝本创建新规则；模板本身不受影响"""
        template = await self.get_template(template_id)
        rule = await self.create_rule(
            RuleDraft(
                name=name or template.name,
                description=template.description if description is None else description,
                conditions=template.conditions,
                actions=template.actions,
                enabled=enabled,
            )
        )
        log.info("rule_instantiated", rule_id=rule.id, template_id=template_id)
        return rule

    # ---------- RuleGroup ----------

    async def create_group(self, draft: GroupDraft) -> RuleGroup:
        now = datetime.now(UTC)
        # 去重并保持首次出现的顺序
        rule_ids = list(dict.fromkeys(draft.rule_ids))
        group = RuleGroup(
            id=str(ULID()),
            name=draft.name,
            description=draft.description,
            rule_ids=rule_ids,
            enabled=draft.enabled,
            created_at=now,
            updated_at=now,
        )
        async with self._lock.write(), self._stores.transaction():
            for rule_id in rule_ids:
                await self.get_rule(rule_id)
            await self._rules.create_group(group)
        log.info(
            "group_created",
            group_id=group.id,
            name=group.name,
            enabled=group.enabled,
            rule_count=len(rule_ids),
        )
        return group

    async def get_group(self, group_id: str) -> RuleGroup:
        group = await self._rules.get_group(group_id)
        if group is None:
            raise NotFoundError("group", group_id)
        return group

    async def update_group(self, group_id: str, patch: GroupPatch) -> RuleGroup:
        async with self._lock.write(), self._stores.transaction():
            current = await self.get_group(group_id)
            changes = patch.model_dump(exclude_none=True)
            group = current.model_copy(
                update={**changes, "updated_at": datetime.now(UTC)}
            )
            await self._rules.update_group(group)
        log.info("group_updated", group_id=group.id, fields=sorted(changes))
        return group

    async def delete_group(self, group_id: str) -> None:
        async with self._lock.write(), self._stores.transaction():
            if not await self._rules.delete_group(group_id):
                raise NotFoundError("group", group_id)
        log.info("group_deleted", group_id=group_id)

    async def list_groups(
        self,
        group_filter: GroupFilter | None = None,
        pagination: Pagination | None = None,
    ) -> Page[RuleGroup]:
        pagination = pagination or Pagination()
        items, total = await self._rules.list_groups(group_filter or GroupFilter(), pagination)
        return Page(items=items, total=total, page=pagination.page, size=pagination.size)

    async def add_rule_to_group(self, group_id: str, rule_id: str) -> RuleGroup:
        """将规则追加到组尾；已是成员时不做任何修改"""
        async with self._lock.write(), self._stores.transaction():
            await self.get_group(group_id)
            await self.get_rule(rule_id)
            added = await self._rules.add_member(group_id, rule_id)
            if added:
                await self._rules.touch_group(group_id, datetime.now(UTC).isoformat())
        log.info("group_member_added", group_id=group_id, rule_id=rule_id, added=added)
        return await self.get_group(group_id)

    async def remove_rule_from_group(self, group_id: str, rule_id: str) -> RuleGroup:
        """将规则移出组；不是成员时不做任何修改，也不报错"""
        async with self._lock.write(), self._stores.transaction():
            await self.get_group(group_id)
            removed = await self._rules.remove_member(group_id, rule_id)
            if removed:
                await self._rules.touch_group(group_id, datetime.now(UTC).isoformat())
        log.info(
            "group_member_removed", group_id=group_id, rule_id=rule_id, removed=removed
        )
        return await self.get_group(group_id)

    async def list_group_rules(self, group_id: str) -> list[PriorityRule]:
        """按组内顺序返回成员规则"""
        group = await self.get_group(group_id)
        rules: list[PriorityRule] = []
        for rule_id in group.rule_ids:
            rule = await self._rules.get_rule(rule_id)
            if rule is not None:
                rules.append(rule)
        return rules

    # ---------- 生效规则集 ----------

    async def active_rules(self) -> list[PriorityRule]:
        """当前生效的规则快照，按 (created_at, id) 排序，每条规则至多出现一次

        - 未入组的规则：enabled 即生效
        - 入组的规则：自身 enabled 且至少有一个所在组 enabled
        """
        async with self._lock.read():
            rules = await self._rules.list_rules_in_order()
            memberships = await self._rules.list_memberships()

        grouped: dict[str, bool] = {}
        for _group_id, rule_id, group_enabled in memberships:
            grouped[rule_id] = grouped.get(rule_id, False) or group_enabled

        return [
            rule
            for rule in rules
            if rule.enabled and grouped.get(rule.id, True)
        ]

    async def is_rule_active(self, rule_id: str) -> bool:
        return any(rule.id == rule_id for rule in await self.active_rules())

    def _warn_catch_all(self, rule: PriorityRule) -> None:
        if rule.is_catch_all:
            log.warning(
                "catch_all_rule_saved",
                rule_id=rule.id,
                name=rule.name,
                warning=CATCH_ALL_WARNING,
            )
