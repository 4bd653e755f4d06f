"""RuleStore SQLite 实现 -- 规则 / 模板 / 规则组 / 组成员

conditions 与 actions 以 JSON 存储，读取时经 tagged union 重新校验。
不自动提交事务，由调用方管理。
"""

import json
from datetime import datetime

import aiosqlite

from ..models.query import GroupFilter, Pagination, RuleFilter, TemplateFilter
from ..models.rule import (
    PriorityRule,
    RuleGroup,
    RuleTemplate,
    dump_actions,
    dump_conditions,
)

_RULE_COLUMNS = "id, name, description, conditions, actions, enabled, created_at, updated_at"
_TEMPLATE_COLUMNS = "id, name, description, conditions, actions, created_at, updated_at"
_GROUP_COLUMNS = "id, name, description, enabled, created_at, updated_at"


def _name_clause(name: str | None, clauses: list[str], params: list) -> None:
    if name:
        clauses.append("instr(lower(name), lower(?)) > 0")
        params.append(name)


def _where(clauses: list[str]) -> str:
    return f" WHERE {' AND '.join(clauses)}" if clauses else ""


class SqliteRuleStore:
    """规则注册表的 SQLite 持久化"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    # ---------- PriorityRule ----------

    async def create_rule(self, rule: PriorityRule) -> None:
        await self._conn.execute(
            f"INSERT INTO priority_rules ({_RULE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                rule.id,
                rule.name,
                rule.description,
                json.dumps(dump_conditions(rule.conditions), ensure_ascii=False),
                json.dumps(dump_actions(rule.actions), ensure_ascii=False),
                int(rule.enabled),
                rule.created_at.isoformat(),
                rule.updated_at.isoformat(),
            ),
        )

    async def get_rule(self, rule_id: str) -> PriorityRule | None:
        cursor = await self._conn.execute(
            f"SELECT {_RULE_COLUMNS} FROM priority_rules WHERE id = ?",
            (rule_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_rule(row) if row else None

    async def update_rule(self, rule: PriorityRule) -> None:
        await self._conn.execute(
            """
            UPDATE priority_rules
            SET name = ?, description = ?, conditions = ?, actions = ?,
                enabled = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                rule.name,
                rule.description,
                json.dumps(dump_conditions(rule.conditions), ensure_ascii=False),
                json.dumps(dump_actions(rule.actions), ensure_ascii=False),
                int(rule.enabled),
                rule.updated_at.isoformat(),
                rule.id,
            ),
        )

    async def delete_rule(self, rule_id: str) -> bool:
        """删除规则，同时移出所有引用它的规则组"""
        await self._conn.execute(
            "DELETE FROM rule_group_members WHERE rule_id = ?",
            (rule_id,),
        )
        cursor = await self._conn.execute(
            "DELETE FROM priority_rules WHERE id = ?",
            (rule_id,),
        )
        return cursor.rowcount > 0

    async def list_rules(
        self,
        rule_filter: RuleFilter,
        pagination: Pagination,
    ) -> tuple[list[PriorityRule], int]:
        """分页查询规则，按 created_at 倒序"""
        clauses: list[str] = []
        params: list = []
        if rule_filter.enabled is not None:
            clauses.append("enabled = ?")
            params.append(int(rule_filter.enabled))
        _name_clause(rule_filter.name, clauses, params)
        where = _where(clauses)

        cursor = await self._conn.execute(
            f"SELECT COUNT(*) FROM priority_rules{where}", tuple(params)
        )
        total = (await cursor.fetchone())[0]
        cursor = await self._conn.execute(
            f"""
            SELECT {_RULE_COLUMNS} FROM priority_rules{where}
            ORDER BY created_at DESC, id DESC
            LIMIT ? OFFSET ?
            """,
            (*params, pagination.size, pagination.offset),
        )
        rows = await cursor.fetchall()
        return [self._row_to_rule(r) for r in rows], total

    async def list_rules_in_order(self) -> list[PriorityRule]:
        """全部规则，按评估顺序（创建时间，ID 决胜）"""
        cursor = await self._conn.execute(
            f"SELECT {_RULE_COLUMNS} FROM priority_rules ORDER BY created_at ASC, id ASC"
        )
        rows = await cursor.fetchall()
        return [self._row_to_rule(r) for r in rows]

    # ---------- RuleTemplate ----------

    async def create_template(self, template: RuleTemplate) -> None:
        await self._conn.execute(
            f"INSERT INTO rule_templates ({_TEMPLATE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                template.id,
                template.name,
                template.description,
                json.dumps(dump_conditions(template.conditions), ensure_ascii=False),
                json.dumps(dump_actions(template.actions), ensure_ascii=False),
                template.created_at.isoformat(),
                template.updated_at.isoformat(),
            ),
        )

    async def get_template(self, template_id: str) -> RuleTemplate | None:
        cursor = await self._conn.execute(
            f"SELECT {_TEMPLATE_COLUMNS} FROM rule_templates WHERE id = ?",
            (template_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_template(row) if row else None

    async def update_template(self, template: RuleTemplate) -> None:
        await self._conn.execute(
            """
            UPDATE rule_templates
            SET name = ?, description = ?, conditions = ?, actions = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                template.name,
                template.description,
                json.dumps(dump_conditions(template.conditions), ensure_ascii=False),
                json.dumps(dump_actions(template.actions), ensure_ascii=False),
                template.updated_at.isoformat(),
                template.id,
            ),
        )

    async def delete_template(self, template_id: str) -> bool:
        cursor = await self._conn.execute(
            "DELETE FROM rule_templates WHERE id = ?",
            (template_id,),
        )
        return cursor.rowcount > 0

    async def list_templates(
        self,
        template_filter: TemplateFilter,
        pagination: Pagination,
    ) -> tuple[list[RuleTemplate], int]:
        clauses: list[str] = []
        params: list = []
        _name_clause(template_filter.name, clauses, params)
        where = _where(clauses)

        cursor = await self._conn.execute(
            f"SELECT COUNT(*) FROM rule_templates{where}", tuple(params)
        )
        total = (await cursor.fetchone())[0]
        cursor = await self._conn.execute(
            f"""
            SELECT {_TEMPLATE_COLUMNS} FROM rule_templates{where}
            ORDER BY created_at DESC, id DESC
            LIMIT ? OFFSET ?
            """,
            (*params, pagination.size, pagination.offset),
        )
        rows = await cursor.fetchall()
        return [self._row_to_template(r) for r in rows], total

    # ---------- RuleGroup ----------

    async def create_group(self, group: RuleGroup) -> None:
        await self._conn.execute(
            f"INSERT INTO rule_groups ({_GROUP_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
            (
                group.id,
                group.name,
                group.description,
                int(group.enabled),
                group.created_at.isoformat(),
                group.updated_at.isoformat(),
            ),
        )
        for rule_id in group.rule_ids:
            await self.add_member(group.id, rule_id)

    async def get_group(self, group_id: str) -> RuleGroup | None:
        cursor = await self._conn.execute(
            f"SELECT {_GROUP_COLUMNS} FROM rule_groups WHERE id = ?",
            (group_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_group(row, await self.list_member_ids(group_id))

    async def update_group(self, group: RuleGroup) -> None:
        """更新规则组属性（成员通过 add_member/remove_member 维护）"""
        await self._conn.execute(
            """
            UPDATE rule_groups
            SET name = ?, description = ?, enabled = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                group.name,
                group.description,
                int(group.enabled),
                group.updated_at.isoformat(),
                group.id,
            ),
        )

    async def touch_group(self, group_id: str, updated_at: str) -> None:
        await self._conn.execute(
            "UPDATE rule_groups SET updated_at = ? WHERE id = ?",
            (updated_at, group_id),
        )

    async def delete_group(self, group_id: str) -> bool:
        """删除规则组，成员规则本身保留"""
        await self._conn.execute(
            "DELETE FROM rule_group_members WHERE group_id = ?",
            (group_id,),
        )
        cursor = await self._conn.execute(
            "DELETE FROM rule_groups WHERE id = ?",
            (group_id,),
        )
        return cursor.rowcount > 0

    async def list_groups(
        self,
        group_filter: GroupFilter,
        pagination: Pagination,
    ) -> tuple[list[RuleGroup], int]:
        clauses: list[str] = []
        params: list = []
        if group_filter.enabled is not None:
            clauses.append("enabled = ?")
            params.append(int(group_filter.enabled))
        _name_clause(group_filter.name, clauses, params)
        where = _where(clauses)

        cursor = await self._conn.execute(
            f"SELECT COUNT(*) FROM rule_groups{where}", tuple(params)
        )
        total = (await cursor.fetchone())[0]
        cursor = await self._conn.execute(
            f"""
            SELECT {_GROUP_COLUMNS} FROM rule_groups{where}
            ORDER BY created_at DESC, id DESC
            LIMIT ? OFFSET ?
            """,
            (*params, pagination.size, pagination.offset),
        )
        rows = await cursor.fetchall()
        return [
            self._row_to_group(r, await self.list_member_ids(r[0])) for r in rows
        ], total

    # ---------- 组成员 ----------

    async def add_member(self, group_id: str, rule_id: str) -> bool:
        """追加成员到组尾；已存在时不做任何修改

        Returns:
            True 如果新增了成员
        """
        cursor = await self._conn.execute(
            """
            INSERT OR IGNORE INTO rule_group_members (group_id, rule_id, position)
            SELECT ?, ?, COALESCE(MAX(position), 0) + 1
            FROM rule_group_members WHERE group_id = ?
            """,
            (group_id, rule_id, group_id),
        )
        return cursor.rowcount > 0

    async def remove_member(self, group_id: str, rule_id: str) -> bool:
        """移除成员；不存在时不做任何修改

        Returns:
            True 如果确实移除了成员
        """
        cursor = await self._conn.execute(
            "DELETE FROM rule_group_members WHERE group_id = ? AND rule_id = ?",
            (group_id, rule_id),
        )
        return cursor.rowcount > 0

    async def list_member_ids(self, group_id: str) -> list[str]:
        cursor = await self._conn.execute(
            """
            SELECT rule_id FROM rule_group_members
            WHERE group_id = ? ORDER BY position ASC
            """,
            (group_id,),
        )
        rows = await cursor.fetchall()
        return [r[0] for r in rows]

    async def list_memberships(self) -> list[tuple[str, str, bool]]:
        """全部成员关系 (group_id, rule_id, group_enabled)，用于计算生效规则集"""
        cursor = await self._conn.execute(
            """
            SELECT m.group_id, m.rule_id, g.enabled
            FROM rule_group_members m
            JOIN rule_groups g ON g.id = m.group_id
            """
        )
        rows = await cursor.fetchall()
        return [(r[0], r[1], bool(r[2])) for r in rows]

    # ---------- 行映射 ----------

    @staticmethod
    def _row_to_rule(row: aiosqlite.Row) -> PriorityRule:
        return PriorityRule(
            id=row[0],
            name=row[1],
            description=row[2],
            conditions=json.loads(row[3]) if row[3] else [],
            actions=json.loads(row[4]) if row[4] else [],
            enabled=bool(row[5]),
            created_at=datetime.fromisoformat(row[6]),
            updated_at=datetime.fromisoformat(row[7]),
        )

    @staticmethod
    def _row_to_template(row: aiosqlite.Row) -> RuleTemplate:
        return RuleTemplate(
            id=row[0],
            name=row[1],
            description=row[2],
            conditions=json.loads(row[3]) if row[3] else [],
            actions=json.loads(row[4]) if row[4] else [],
            created_at=datetime.fromisoformat(row[5]),
            updated_at=datetime.fromisoformat(row[6]),
        )

    @staticmethod
    def _row_to_group(row: aiosqlite.Row, rule_ids: list[str]) -> RuleGroup:
        return RuleGroup(
            id=row[0],
            name=row[1],
            description=row[2],
            rule_ids=rule_ids,
            enabled=bool(row[3]),
            created_at=datetime.fromisoformat(row[4]),
            updated_at=datetime.fromisoformat(row[5]),
        )
