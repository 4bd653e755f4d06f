"""枚举定义

包含 TaskType、TaskStatus、PriorityLevel，
以及任务状态流转映射 VALID_TRANSITIONS 和活跃状态集合 ACTIVE_STATES。
"""

from enum import IntEnum, StrEnum


class TaskType(StrEnum):
    """任务类型"""

    CONTENT_GENERATION = "content_generation"
    TRANSLATION = "translation"


class TaskStatus(StrEnum):
    """任务状态"""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PriorityLevel(IntEnum):
    """具名优先级档位，数值越大越优先"""

    LOW = 0
    NORMAL = 1
    HIGH = 2
    URGENT = 3


# 合法状态流转；failed -> pending 为重试
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PENDING: {TaskStatus.PROCESSING, TaskStatus.FAILED},
    TaskStatus.PROCESSING: {TaskStatus.COMPLETED, TaskStatus.FAILED},
    TaskStatus.COMPLETED: set(),
    TaskStatus.FAILED: {TaskStatus.PENDING},
}

# 仍会被调度使用优先级的状态；规则变更时只重新评估这些任务
ACTIVE_STATES: set[TaskStatus] = {
    TaskStatus.PENDING,
    TaskStatus.PROCESSING,
}


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
