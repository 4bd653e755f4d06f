"""PriorityEngine -- 规则评估与优先级变更

对外操作:
- evaluate_task: 对单个任务按生效规则集折叠计算优先级
- evaluate_batch: 按 ID 列表无条件设定优先级（reason "batch"）
- evaluate_by_condition: 扫描全部任务，满足条件者设定优先级（reason "condition"）
- set_task_priority: 单任务手动设定（reason "manual"）
- on_rule_changed / on_group_changed: 规则或规则组变更后重新评估活跃任务

每个任务的 读取-计算-写入-记日志 序列在 task 级锁内完成；
批量操作逐任务加锁，非原子，已提交的部分不回滚。
"""

import asyncio
from collections.abc import Iterable

import structlog

from ..config import EngineConfig
from ..exceptions import NotFoundError, RuleQueueError
from ..models.results import BatchUpdateResult, EvaluationResult, PriorityUpdateOutcome
from ..models.rule import PriorityRule, RuleCondition, RuleGroup
from ..models.task import Task
from ..store import StoreGroup
from ..store.transaction import record_priority_change
from .actions import PriorityBounds, apply_all
from .conditions import evaluate, matches_all
from .locks import TaskLocks
from .registry import RuleRegistry

log = structlog.get_logger()

REASON_BATCH = "batch"
REASON_CONDITION = "condition"
REASON_MANUAL = "manual"


def fold_rules(
    task: Task,
    rules: Iterable[PriorityRule],
    bounds: PriorityBounds,
) -> tuple[int, list[str]]:
    """按顺序对匹配的规则做左折叠

    Returns:
        (新优先级, 命中的规则 ID 列表)
    """
    priority = task.priority
    applied: list[str] = []
    for rule in rules:
        if not matches_all(task, rule.conditions):
            continue
        priority = apply_all(priority, rule.actions, bounds)
        applied.append(rule.id)
    return priority, applied


class PriorityEngine:
    """优先级规则引擎"""

    def __init__(
        self,
        stores: StoreGroup,
        registry: RuleRegistry,
        config: EngineConfig | None = None,
        task_locks: TaskLocks | None = None,
    ) -> None:
        self._stores = stores
        self._registry = registry
        self._config = config or EngineConfig()
        self._bounds = PriorityBounds.from_config(self._config)
        self._task_locks = task_locks or TaskLocks()

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def bounds(self) -> PriorityBounds:
        return self._bounds

    @property
    def task_locks(self) -> TaskLocks:
        return self._task_locks

    # ---------- 规则评估 ----------

    async def evaluate_task(self, task_id: str) -> EvaluationResult:
        """对单个任务应用当前生效的规则集

        无规则命中或结果与原值相同时不写库、不记日志。
        日志 reason 为命中规则 ID 以逗号拼接。

        Raises:
            NotFoundError: 任务不存在
            InvalidRuleError: strict 模式下规则动作导致越界
        """
        rules = await self._registry.active_rules()
        async with self._task_locks.hold(task_id):
            task = await self._stores.task_store.get_task(task_id)
            if task is None:
                raise NotFoundError("task", task_id)

            new_priority, applied = fold_rules(task, rules, self._bounds)
            if new_priority != task.priority:
                await record_priority_change(
                    self._stores,
                    task_id=task.id,
                    old_priority=task.priority,
                    new_priority=new_priority,
                    reason=",".join(applied),
                )
            else:
                log.debug(
                    "rule_evaluation_unchanged",
                    task_id=task_id,
                    applied_rule_ids=applied,
                )

        return EvaluationResult(
            task_id=task_id,
            old_priority=task.priority,
            new_priority=new_priority,
            applied_rule_ids=applied,
        )

    async def reevaluate_active(
        self,
        cancel: asyncio.Event | None = None,
    ) -> BatchUpdateResult:
        """重新评估全部 pending/processing 任务"""
        tasks = await self._stores.task_store.list_active()
        result = BatchUpdateResult()
        for index, task in enumerate(tasks):
            if cancel is not None and cancel.is_set():
                result.skipped = [t.id for t in tasks[index:]]
                result.cancelled = True
                break
            try:
                evaluation = await self.evaluate_task(task.id)
            except RuleQueueError as e:
                result.results.append(_failure(task.id, e))
                log.warning(
                    "rule_evaluation_skipped",
                    task_id=task.id,
                    error_code=e.code,
                    error=e.message,
                )
                continue
            result.results.append(
                PriorityUpdateOutcome(
                    task_id=task.id,
                    ok=True,
                    old_priority=evaluation.old_priority,
                    new_priority=evaluation.new_priority,
                )
            )

        log.info("reevaluation_finished", **result.summary(), cancelled=result.cancelled)
        return result

    async def on_rule_changed(self, rule: PriorityRule) -> BatchUpdateResult:
        """规则新增/修改后的触发点；变更后不生效的规则不触发重新评估"""
        if not await self._registry.is_rule_active(rule.id):
            log.debug("rule_change_ignored", rule_id=rule.id)
            return BatchUpdateResult()
        log.info("rule_changed_reevaluating", rule_id=rule.id)
        return await self.reevaluate_active()

    async def on_group_changed(self, group: RuleGroup) -> BatchUpdateResult:
        """规则组新增/修改后的触发点；禁用的组不触发重新评估"""
        if not group.enabled:
            log.debug("group_change_ignored", group_id=group.id)
            return BatchUpdateResult()
        log.info("group_changed_reevaluating", group_id=group.id)
        return await self.reevaluate_active()

    # ---------- 临时优先级更新 ----------

    async def evaluate_batch(
        self,
        task_ids: Iterable[str],
        priority: int,
        cancel: asyncio.Event | None = None,
    ) -> BatchUpdateResult:
        """按 ID 列表无条件设定优先级

        尽力而为：单个任务失败（如不存在）记录在结果中，不影响其他任务。
        重复的 ID 只处理一次。

        Raises:
            InvalidRuleError: strict 模式下目标优先级越界（在处理任何任务之前）
        """
        target = self._bounds.fit(priority)
        ids = list(dict.fromkeys(task_ids))
        result = BatchUpdateResult()

        for index, task_id in enumerate(ids):
            if cancel is not None and cancel.is_set():
                result.skipped.extend(ids[index:])
                result.cancelled = True
                break
            try:
                outcome = await self._assign(task_id, target, REASON_BATCH)
            except RuleQueueError as e:
                outcome = _failure(task_id, e)
            result.results.append(outcome)

        log.info(
            "batch_priority_update_finished",
            priority=target,
            **result.summary(),
            cancelled=result.cancelled,
        )
        return result

    async def evaluate_by_condition(
        self,
        condition: RuleCondition,
        priority: int,
        cancel: asyncio.Event | None = None,
    ) -> BatchUpdateResult:
        """扫描全部任务，满足条件者设定优先级

        扫描结果只是候选集：加锁后重新读取任务并再次检查条件，
        扫描之后不再满足条件的任务不写入，记入 skipped。

        Raises:
            InvalidRuleError: strict 模式下目标优先级越界（在处理任何任务之前）
        """
        target = self._bounds.fit(priority)
        candidates = [
            t for t in await self._stores.task_store.list_all() if evaluate(t, condition)
        ]
        result = BatchUpdateResult()

        for index, task in enumerate(candidates):
            if cancel is not None and cancel.is_set():
                result.skipped.extend(t.id for t in candidates[index:])
                result.cancelled = True
                break
            try:
                outcome = await self._assign_if_matching(task.id, target, condition)
            except RuleQueueError as e:
                outcome = _failure(task.id, e)
            if outcome is None:
                result.skipped.append(task.id)
            else:
                result.results.append(outcome)

        log.info(
            "condition_priority_update_finished",
            field=condition.field,
            operator=condition.operator,
            priority=target,
            **result.summary(),
            cancelled=result.cancelled,
        )
        return result

    async def set_task_priority(
        self,
        task_id: str,
        priority: int,
        reason: str = REASON_MANUAL,
    ) -> PriorityUpdateOutcome:
        """单任务设定优先级

        Raises:
            NotFoundError: 任务不存在
            InvalidRuleError: strict 模式下目标优先级越界
        """
        target = self._bounds.fit(priority)
        return await self._assign(task_id, target, reason)

    async def _assign(self, task_id: str, target: int, reason: str) -> PriorityUpdateOutcome:
        async with self._task_locks.hold(task_id):
            task = await self._require_task(task_id)
            return await self._write_priority(task, target, reason)

    async def _assign_if_matching(
        self,
        task_id: str,
        target: int,
        condition: RuleCondition,
    ) -> PriorityUpdateOutcome | None:
        """加锁后任务已不满足条件时返回 None，不写入"""
        async with self._task_locks.hold(task_id):
            task = await self._require_task(task_id)
            if not evaluate(task, condition):
                log.debug("condition_no_longer_matches", task_id=task_id)
                return None
            return await self._write_priority(task, target, REASON_CONDITION)

    async def _require_task(self, task_id: str) -> Task:
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise NotFoundError("task", task_id)
        return task

    async def _write_priority(
        self, task: Task, target: int, reason: str
    ) -> PriorityUpdateOutcome:
        # 调用方须持有该任务的锁
        if task.priority != target:
            await record_priority_change(
                self._stores,
                task_id=task.id,
                old_priority=task.priority,
                new_priority=target,
                reason=reason,
            )
        return PriorityUpdateOutcome(
            task_id=task.id,
            ok=True,
            old_priority=task.priority,
            new_priority=target,
        )


def _failure(task_id: str, error: RuleQueueError) -> PriorityUpdateOutcome:
    return PriorityUpdateOutcome(
        task_id=task_id,
        ok=False,
        error_code=error.code,
        error_message=error.message,
    )
