"""CLI 入口模块 -- python -m rulequeue.core <command>

支持的命令：
  reevaluate  按当前生效规则重新评估全部 pending/processing 任务
  stats       输出任务统计
"""

import asyncio
import sys

from .config import get_db_path, load_engine_config


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print("用法: python -m rulequeue.core <command>")
        print("命令:")
        print("  reevaluate  重新评估全部活跃任务的优先级")
        print("  stats       输出任务统计")
        sys.exit(1)

    command = sys.argv[1]

    if command == "reevaluate":
        asyncio.run(reevaluate())
    elif command == "stats":
        asyncio.run(show_stats())
    else:
        print(f"未知命令: {command}")
        print("可用命令: reevaluate, stats")
        sys.exit(1)


async def reevaluate() -> None:
    """执行全量重新评估"""
    from .rules import PriorityBounds, PriorityEngine, RuleRegistry
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    print("开始重新评估...")

    store_group = await create_store_group(db_path)
    try:
        config = load_engine_config()
        registry = RuleRegistry(store_group, bounds=PriorityBounds.from_config(config))
        engine = PriorityEngine(store_group, registry, config)
        result = await engine.reevaluate_active()
        changed = sum(1 for r in result.results if r.changed)
        summary = result.summary()
        print(
            f"评估完成：成功 {summary['succeeded']}，失败 {summary['failed']}，"
            f"优先级变化 {changed}"
        )
        for failure in result.failed:
            print(f"  {failure.task_id}: {failure.error_code} {failure.error_message}")
    finally:
        await store_group.conn.close()


async def show_stats() -> None:
    """输出任务统计（JSON）"""
    from .stats import StatsAggregator
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        stats = await StatsAggregator(store_group.task_store, cache_enabled=False).get_stats()
        print(stats.model_dump_json(indent=2))
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
