"""运维 CLI -- python -m fieldops.core <command>

rebuild-projections  清空 tasks 表并从 events 表重放
check-projections    只读比对：重放事件并列出与 tasks 表不一致的任务
"""

import asyncio
import sys

from .config import get_db_path

_USAGE = """用法: python -m fieldops.core <command>

命令:
  rebuild-projections  从 events 表重建 tasks 表
  check-projections    检查 tasks 表与事件重放结果是否一致（不写入）
"""


async def rebuild_projections(db_path: str) -> int:
    from .projection import rebuild_all
    from .store import create_store_group

    store_group = await create_store_group(db_path)
    try:
        return await rebuild_all(
            store_group.conn,
            store_group.event_store,
            store_group.task_store,
        )
    finally:
        await store_group.conn.close()


async def check_projections(db_path: str) -> list[str]:
    """返回 projection 与事件重放结果不一致的 task_id 列表"""
    from .projection import project_task
    from .store import create_store_group

    store_group = await create_store_group(db_path)
    try:
        stored = {t.task_id: t for t in await store_group.task_store.list_tasks()}
        drifted: list[str] = []
        task_ids = {e.task_id for e in await store_group.event_store.get_all_events()}
        for task_id in sorted(task_ids | stored.keys()):
            events = await store_group.event_store.get_events_for_task(task_id)
            if project_task(events) != stored.get(task_id):
                drifted.append(task_id)
        return drifted
    finally:
        await store_group.conn.close()


def main() -> None:
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    db_path = get_db_path()
    command = sys.argv[1]

    if command == "rebuild-projections":
        print(f"数据库: {db_path}")
        event_count = asyncio.run(rebuild_projections(db_path))
        print(f"重建完成，重放 {event_count} 条事件")
    elif command == "check-projections":
        drifted = asyncio.run(check_projections(db_path))
        if drifted:
            print(f"{len(drifted)} 个任务与事件不一致:")
            for task_id in drifted:
                print(f"  {task_id}")
            sys.exit(2)
        print("tasks 表与事件一致")
    else:
        print(f"未知命令: {command}\n")
        print(_USAGE)
        sys.exit(1)


if __name__ == "__main__":
    main()
