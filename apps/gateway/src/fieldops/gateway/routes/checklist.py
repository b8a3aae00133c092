"""检查项路由 -- 负责技术员或管理员可编辑，不影响状态流转

POST /api/tasks/{task_id}/checklist: 追加检查项。
POST /api/tasks/{task_id}/checklist/{item_id}/toggle: 切换完成状态。
"""

from fastapi import APIRouter, Depends
from fieldops.core.models import Actor
from fieldops.core.workflow import AddChecklistItem, Rejected, ToggleChecklistItem
from pydantic import BaseModel

from ..deps import get_actor, get_task_service
from ..errors import rejection_response
from ..services.task_service import TaskService
from .tasks import task_body

router = APIRouter()


class ChecklistItemBody(BaseModel):
    text: str


@router.post("/api/tasks/{task_id}/checklist")
async def add_checklist_item(
    task_id: str,
    body: ChecklistItemBody,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    result = await service.execute(task_id, AddChecklistItem(text=body.text), actor)
    if isinstance(result, Rejected):
        return rejection_response(result)
    return task_body(result.task)


@router.post("/api/tasks/{task_id}/checklist/{item_id}/toggle")
async def toggle_checklist_item(
    task_id: str,
    item_id: str,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    result = await service.execute(task_id, ToggleChecklistItem(item_id=item_id), actor)
    if isinstance(result, Rejected):
        return rejection_response(result)
    return task_body(result.task)
