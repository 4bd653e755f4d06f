"""Task Domain Model

tasks 表由任务生命周期操作和规则引擎共同维护：
生命周期操作负责 status，规则引擎只写 priority/updated_at。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import PriorityLevel, TaskStatus, TaskType


class Task(BaseModel):
    """Task 数据模型

    priority 的每一次变化都必须经由优先级日志写入路径，
    以保证 priority_logs 是完整的审计记录。
    """

    id: str = Field(description="唯一标识，ULID 格式")
    work_id: str = Field(default="", description="所属作品 ID")
    batch_id: str = Field(default="", description="所属批次 ID")
    type: TaskType = Field(description="任务类型")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="当前状态")
    priority: int = Field(default=PriorityLevel.NORMAL, description="当前优先级")
    content: str = Field(default="", description="任务输入内容")
    result: str = Field(default="", description="任务结果")
    error: str = Field(default="", description="失败原因")
    retry_count: int = Field(default=0, ge=0, description="已重试次数")
    max_retries: int = Field(default=3, ge=0, description="最大重试次数")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")


class TaskStats(BaseModel):
    """任务统计（派生数据，不落盘）"""

    total: int = 0
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    by_type: dict[TaskType, int] = Field(default_factory=dict)
    by_priority: dict[int, int] = Field(default_factory=dict)
    success_rate: float = Field(default=0.0, description="完成率（百分比）")
