"""任务流转命令路由

POST /api/tasks/{task_id}/start            技术员开始执行
POST /api/tasks/{task_id}/submit           技术员提交审核（外勤受地理围栏约束）
POST /api/tasks/{task_id}/approve          管理员验收
POST /api/tasks/{task_id}/reject           管理员打回重做
POST /api/tasks/{task_id}/force-finish     管理员强制完成（需 confirmed=true）
POST /api/tasks/{task_id}/move-request     技术员申请改期
POST /api/tasks/{task_id}/move-request/approve
POST /api/tasks/{task_id}/move-request/reject

成功返回 200 + 新任务文档；被拒绝按原因映射为 403/404/409/422。
"""

from datetime import date

from fastapi import APIRouter, Depends
from fieldops.core.models import Actor
from fieldops.core.workflow import (
    ApproveDateMove,
    ApproveJob,
    Command,
    ForceFinish,
    Rejected,
    RejectDateMove,
    RejectJob,
    RequestDateMove,
    StartExecution,
    SubmitForReview,
)
from pydantic import BaseModel

from ..deps import get_actor, get_task_service
from ..errors import rejection_response
from ..services.task_service import TaskService
from .tasks import task_body

router = APIRouter()


class NoteBody(BaseModel):
    note: str = ""


class ForceFinishBody(BaseModel):
    confirmed: bool = False


class MoveRequestBody(BaseModel):
    reason: str = ""


class MoveApprovalBody(BaseModel):
    new_due_date: date


async def _run(service: TaskService, task_id: str, command: Command, actor: Actor):
    result = await service.execute(task_id, command, actor)
    if isinstance(result, Rejected):
        return rejection_response(result)
    return task_body(result.task)


@router.post("/api/tasks/{task_id}/start")
async def start_task(
    task_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    return await _run(service, task_id, StartExecution(), actor)


@router.post("/api/tasks/{task_id}/submit")
async def submit_task(
    task_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    return await _run(service, task_id, SubmitForReview(), actor)


@router.post("/api/tasks/{task_id}/approve")
async def approve_task(
    task_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    return await _run(service, task_id, ApproveJob(), actor)


@router.post("/api/tasks/{task_id}/reject")
async def reject_task(
    task_id: str,
    body: NoteBody | None = None,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    note = body.note if body else ""
    return await _run(service, task_id, RejectJob(note=note), actor)


@router.post("/api/tasks/{task_id}/force-finish")
async def force_finish_task(
    task_id: str,
    body: ForceFinishBody | None = None,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    confirmed = body.confirmed if body else False
    return await _run(service, task_id, ForceFinish(confirmed=confirmed), actor)


@router.post("/api/tasks/{task_id}/move-request")
async def request_date_move(
    task_id: str,
    body: MoveRequestBody,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    return await _run(service, task_id, RequestDateMove(reason=body.reason), actor)


@router.post("/api/tasks/{task_id}/move-request/approve")
async def approve_date_move(
    task_id: str,
    body: MoveApprovalBody,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    return await _run(
        service, task_id, ApproveDateMove(new_due_date=body.new_due_date), actor
    )


@router.post("/api/tasks/{task_id}/move-request/reject")
async def reject_date_move(
    task_id: str,
    body: NoteBody | None = None,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    note = body.note if body else ""
    return await _run(service, task_id, RejectDateMove(note=note), actor)
