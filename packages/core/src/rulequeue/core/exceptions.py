"""RuleQueue 异常体系

所有领域异常携带稳定的 code，网关层据此映射 HTTP 状态码。
存储层连接/IO 异常不包装，原样抛给调用方。
"""


class RuleQueueError(Exception):
    """领域异常基类"""

    code = "RULEQUEUE_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class NotFoundError(RuleQueueError):
    """任务 / 规则 / 模板 / 规则组不存在"""

    def __init__(self, kind: str, entity_id: str) -> None:
        """
        Args:
            kind: 实体类型，如 "task"、"rule"、"group"、"template"
            entity_id: 未找到的 ID
        """
        super().__init__(
            f"{kind.capitalize()} with id {entity_id} does not exist",
            code=f"{kind.upper()}_NOT_FOUND",
        )
        self.kind = kind
        self.entity_id = entity_id


class InvalidRuleError(RuleQueueError):
    """规则非法：空动作列表、未知运算符/动作类型、严格模式下优先级越界"""

    code = "INVALID_RULE"


class ConcurrentModificationError(RuleQueueError):
    """乐观校验失败：写入时发现数据已被其他写者修改"""

    code = "CONCURRENT_MODIFICATION"


class InvalidTransitionError(RuleQueueError):
    """任务状态流转非法"""

    code = "INVALID_STATUS_TRANSITION"
