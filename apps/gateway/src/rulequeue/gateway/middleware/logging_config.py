"""structlog 配置模块

RULEQUEUE_LOG_FORMAT: dev（默认，控制台彩色输出）/ json（每行一个 JSON 对象）
RULEQUEUE_LOG_LEVEL: 标准库日志级别名，默认 INFO；无法识别时回退到 INFO

标准库 logging 与 structlog 共用同一条处理链，
uvicorn / aiosqlite 的日志与引擎日志格式一致。
"""

import logging
import os

import structlog

# aiosqlite 在 DEBUG 级别逐条打印 SQL 操作，uvicorn.access 与 request_completed 重复
_NOISY_LOGGERS = {"aiosqlite": logging.INFO, "uvicorn.access": logging.WARNING}


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer_processors(log_format: str) -> list[structlog.types.Processor]:
    if log_format == "json":
        return [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    return [structlog.dev.ConsoleRenderer()]


def _resolve_level(name: str) -> int | None:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else None


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog 与标准库 logging

    参数为空时从环境变量读取。
    """
    log_format = log_format or os.environ.get("RULEQUEUE_LOG_FORMAT", "dev")
    level_name = log_level or os.environ.get("RULEQUEUE_LOG_LEVEL", "INFO")
    level = _resolve_level(level_name)

    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderer_processors(log_format),
            ],
            foreign_pre_chain=shared,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level if level is not None else logging.INFO)
    for name, noisy_level in _NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(max(noisy_level, root_logger.level))

    if level is None:
        structlog.get_logger().warning("log_level_invalid", value=level_name, fallback="INFO")
