"""规则引擎返回值模型"""

from pydantic import BaseModel, Field


class EvaluationResult(BaseModel):
    """单任务规则评估结果"""

    task_id: str
    old_priority: int
    new_priority: int
    applied_rule_ids: list[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.old_priority != self.new_priority


class PriorityUpdateOutcome(BaseModel):
    """批量/条件更新中单个任务的结果"""

    task_id: str
    ok: bool
    old_priority: int | None = None
    new_priority: int | None = None
    error_code: str | None = None
    error_message: str | None = None

    @property
    def changed(self) -> bool:
        return self.ok and self.old_priority != self.new_priority


class BatchUpdateResult(BaseModel):
    """批量/条件更新汇总

    非原子：已提交的任务不会因后续失败回滚。
    skipped 为取消后未访问的任务 ID，以及条件更新中加锁复查时已不匹配的任务 ID。
    """

    results: list[PriorityUpdateOutcome] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> list[str]:
        return [r.task_id for r in self.results if r.ok]

    @property
    def failed(self) -> list[PriorityUpdateOutcome]:
        return [r for r in self.results if not r.ok]

    def summary(self) -> dict[str, int]:
        return {
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "skipped": len(self.skipped),
        }
