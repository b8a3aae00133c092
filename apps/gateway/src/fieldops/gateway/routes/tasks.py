"""任务派单与查询路由

POST /api/tasks: 管理员派单，可选 idempotency_key 去重。
GET /api/tasks: 调用者可见的任务列表，支持 status 筛选。
GET /api/tasks/board: 看板统计。
GET /api/tasks/progress: 调用者当日进度。
GET /api/tasks/{task_id}: 任务详情，含事件列表。
DELETE /api/tasks/{task_id}: 管理员归档（硬删除）。
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from fieldops.core.models import Actor, Coordinate, Priority, Task, TaskStatus
from fieldops.core.workflow import DispatchTask, Rejected
from pydantic import BaseModel, Field
from starlette.responses import JSONResponse, Response

from ..deps import get_actor, get_task_service
from ..errors import rejection_response
from ..services.task_service import TaskService

router = APIRouter()


class DispatchRequest(BaseModel):
    """派单请求体"""

    title: str
    description: str = ""
    assigned_to: str
    priority: Priority = Priority.MEDIUM
    due_date: date
    site: Coordinate | None = None
    location_name: str = ""
    related_to: str = ""
    idempotency_key: str | None = Field(default=None, min_length=1)


class TaskListResponse(BaseModel):
    tasks: list[Task]


def task_body(task: Task) -> dict:
    return {"task": task.model_dump(mode="json")}


@router.post("/api/tasks")
async def dispatch_task(
    body: DispatchRequest,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """派单 -- 新建返回 201，幂等键命中返回 200"""
    request = DispatchTask(**body.model_dump(exclude={"idempotency_key"}))
    result, created = await service.dispatch(
        request, actor, idempotency_key=body.idempotency_key
    )
    if isinstance(result, Rejected):
        return rejection_response(result)
    return JSONResponse(
        status_code=201 if created else 200,
        content={**task_body(result), "created": created},
    )


@router.get("/api/tasks", response_model=TaskListResponse)
async def list_tasks(
    status: TaskStatus | None = Query(default=None, description="按状态筛选"),
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """调用者可见的任务列表，按截止日期正序"""
    tasks = await service.list_visible(actor, status=status.value if status else None)
    return TaskListResponse(tasks=tasks)


@router.get("/api/tasks/board")
async def board_summary(
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    summary = await service.board(actor)
    return summary.model_dump(mode="json")


@router.get("/api/tasks/progress")
async def daily_progress(
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """调用者今天到期任务的完成进度"""
    progress = await service.progress(actor)
    return {**progress.model_dump(mode="json"), "can_close_day": progress.can_close_day}


@router.get("/api/tasks/{task_id}")
async def get_task_detail(
    task_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """任务详情，包含事件列表（按 task_seq 正序）"""
    task = await service.get_task(task_id)
    events = await service.get_events(task_id)
    return {
        **task_body(task),
        "events": [
            {
                "event_id": e.event_id,
                "task_seq": e.task_seq,
                "ts": e.ts.isoformat(),
                "type": e.type.value,
                "actor_id": e.actor_id,
                "payload": e.payload,
            }
            for e in events
        ],
    }


@router.delete("/api/tasks/{task_id}")
async def archive_task(
    task_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    rejected = await service.archive(task_id, actor)
    if rejected is not None:
        return rejection_response(rejected)
    return Response(status_code=204)
