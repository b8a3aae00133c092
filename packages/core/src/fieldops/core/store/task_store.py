"""TaskStore SQLite 实现

tasks 表保存完整任务文档，写入为按 task_id 的整体替换。
save_task 以 version 做乐观并发校验。
"""

import json
from datetime import date, datetime

import aiosqlite

from ..models.task import Coordinate, MoveRequest, SubTask, Task, TaskLog

_COLUMNS = (
    "task_id, title, description, assigned_to, priority, status, due_date, site, "
    "location_name, related_to, sub_tasks, logs, exception_request, created_by, "
    "created_at, updated_at, version"
)


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """创建任务记录

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.execute(
            f"INSERT INTO tasks ({_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            self._task_to_row(task),
        )

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(
        self,
        status: str | None = None,
        assigned_to: str | None = None,
    ) -> list[Task]:
        """查询任务列表，支持按状态和负责人筛选，按截止日期正序"""
        clauses: list[str] = []
        params: list[str] = []
        if status:
            clauses.append("status = ?")
            params.append(status)
        if assigned_to:
            clauses.append("assigned_to = ?")
            params.append(assigned_to)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks{where} ORDER BY due_date ASC, created_at ASC",
            params,
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def save_task(self, task: Task, expected_version: int) -> bool:
        """整体替换任务文档（仅当库中 version == expected_version）

        Returns:
            True 如果写入成功；False 表示版本不匹配或任务不存在
        """
        row = self._task_to_row(task)
        cursor = await self._conn.execute(
            """
            UPDATE tasks
            SET title = ?, description = ?, assigned_to = ?, priority = ?, status = ?,
                due_date = ?, site = ?, location_name = ?, related_to = ?, sub_tasks = ?,
                logs = ?, exception_request = ?, created_by = ?, created_at = ?,
                updated_at = ?, version = ?
            WHERE task_id = ? AND version = ?
            """,
            (*row[1:], task.task_id, expected_version),
        )
        return cursor.rowcount == 1

    async def delete_task(self, task_id: str) -> bool:
        """硬删除任务（无墓碑）"""
        cursor = await self._conn.execute(
            "DELETE FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        return cursor.rowcount == 1

    @staticmethod
    def _task_to_row(task: Task) -> tuple:
        return (
            task.task_id,
            task.title,
            task.description,
            task.assigned_to,
            task.priority.value,
            task.status.value,
            task.due_date.isoformat(),
            task.site.model_dump_json() if task.site else None,
            task.location_name,
            task.related_to,
            json.dumps([s.model_dump() for s in task.sub_tasks], ensure_ascii=False),
            json.dumps([log.model_dump(mode="json") for log in task.logs], ensure_ascii=False),
            task.exception_request.model_dump_json() if task.exception_request else None,
            task.created_by,
            task.created_at.isoformat(),
            task.updated_at.isoformat(),
            task.version,
        )

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            task_id=row[0],
            title=row[1],
            description=row[2],
            assigned_to=row[3],
            priority=row[4],
            status=row[5],
            due_date=date.fromisoformat(row[6]),
            site=Coordinate.model_validate_json(row[7]) if row[7] else None,
            location_name=row[8],
            related_to=row[9],
            sub_tasks=[SubTask(**s) for s in json.loads(row[10])],
            logs=[TaskLog(**log) for log in json.loads(row[11])],
            exception_request=(
                MoveRequest.model_validate_json(row[12]) if row[12] else None
            ),
            created_by=row[13],
            created_at=datetime.fromisoformat(row[14]),
            updated_at=datetime.fromisoformat(row[15]),
            version=row[16],
        )
