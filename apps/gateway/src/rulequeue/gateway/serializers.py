"""响应序列化 -- 领域模型 -> JSON 兼容字典"""

from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel
from rulequeue.core.models import BatchUpdateResult, Page, PriorityRule, RuleTemplate
from rulequeue.core.rules import warnings_for

M = TypeVar("M", bound=BaseModel)


def dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json")


def rule_to_dict(rule: PriorityRule | RuleTemplate) -> dict[str, Any]:
    """规则/模板响应附带作者提示（如零条件兜底规则）"""
    return {**dump(rule), "warnings": warnings_for(rule)}


def page_to_dict(
    page: Page[M],
    item_to_dict: Callable[[M], dict[str, Any]] = dump,
) -> dict[str, Any]:
    return {
        "items": [item_to_dict(item) for item in page.items],
        "total": page.total,
        "page": page.page,
        "size": page.size,
    }


def batch_to_dict(result: BatchUpdateResult) -> dict[str, Any]:
    """批量结果："N 成功、M 失败"，失败项附带 ID 与原因"""
    return {
        "summary": result.summary(),
        "succeeded": result.succeeded,
        "failed": [
            {
                "task_id": outcome.task_id,
                "code": outcome.error_code,
                "message": outcome.error_message,
            }
            for outcome in result.failed
        ],
        "skipped": result.skipped,
        "cancelled": result.cancelled,
        "results": [dump(outcome) for outcome in result.results],
    }
