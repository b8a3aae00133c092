"""任务流转引擎 -- 纯函数 (task, command, context) -> Accepted | Rejected

校验顺序：终态 -> 角色 -> 当前状态 -> 命令自身前置条件（地理围栏、理由等）。
业务规则违反以 Rejected 返回，不抛异常；被拒绝的命令不产生任何修改。
引擎不负责持久化，也不递增 version。
"""

from collections.abc import Callable
from datetime import date, datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field
from ulid import ULID

from .config import DISPATCH_LOG_ACTION, get_geofence_radius_km
from .entity import add_checklist_item, append_log, toggle_checklist_item
from .geo import haversine_km
from .models.actor import Actor
from .models.enums import (
    Audience,
    EventType,
    Priority,
    Severity,
    TaskStatus,
    WorkMode,
    validate_transition,
)
from .models.notification import Notification
from .models.payloads import (
    ChecklistItemAddedPayload,
    ChecklistItemToggledPayload,
    ExceptionRequestedPayload,
    ExceptionResolvedPayload,
    StateTransitionPayload,
    TaskDispatchedPayload,
)
from .models.task import Coordinate, MoveRequest, Task


class RejectionCode(StrEnum):
    """命令拒绝原因"""

    NOT_ASSIGNEE = "NOT_ASSIGNEE"
    ADMIN_REQUIRED = "ADMIN_REQUIRED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    TASK_ALREADY_DONE = "TASK_ALREADY_DONE"
    OUTSIDE_GEOFENCE = "OUTSIDE_GEOFENCE"
    REASON_REQUIRED = "REASON_REQUIRED"
    EXCEPTION_PENDING = "EXCEPTION_PENDING"
    NO_PENDING_EXCEPTION = "NO_PENDING_EXCEPTION"
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"
    CHECKLIST_ITEM_NOT_FOUND = "CHECKLIST_ITEM_NOT_FOUND"
    TEXT_REQUIRED = "TEXT_REQUIRED"


# ============================================================
# 命令
# ============================================================


class StartExecution(BaseModel):
    kind: Literal["start"] = "start"


class SubmitForReview(BaseModel):
    kind: Literal["submit"] = "submit"


class ApproveJob(BaseModel):
    kind: Literal["approve"] = "approve"


class RejectJob(BaseModel):
    kind: Literal["reject"] = "reject"
    note: str = ""


class ForceFinish(BaseModel):
    """管理员强制完成，必须显式确认"""

    kind: Literal["force_finish"] = "force_finish"
    confirmed: bool = False


class RequestDateMove(BaseModel):
    kind: Literal["request_move"] = "request_move"
    reason: str = ""


class ApproveDateMove(BaseModel):
    kind: Literal["approve_move"] = "approve_move"
    new_due_date: date


class RejectDateMove(BaseModel):
    kind: Literal["reject_move"] = "reject_move"
    note: str = ""


class AddChecklistItem(BaseModel):
    kind: Literal["add_checklist_item"] = "add_checklist_item"
    text: str
    item_id: str | None = None


class ToggleChecklistItem(BaseModel):
    kind: Literal["toggle_checklist_item"] = "toggle_checklist_item"
    item_id: str


Command = Annotated[
    StartExecution
    | SubmitForReview
    | ApproveJob
    | RejectJob
    | ForceFinish
    | RequestDateMove
    | ApproveDateMove
    | RejectDateMove
    | AddChecklistItem
    | ToggleChecklistItem,
    Field(discriminator="kind"),
]


class DispatchTask(BaseModel):
    """管理员派单"""

    title: str
    description: str = ""
    assigned_to: str
    priority: Priority = Priority.MEDIUM
    due_date: date
    site: Coordinate | None = None
    location_name: str = ""
    related_to: str = ""


# ============================================================
# 上下文与结果
# ============================================================


class WorkflowContext(BaseModel):
    """命令执行上下文

    live_position 为调用者最近一次上报的位置，未知时为 None。
    """

    actor: Actor
    now: datetime
    live_position: Coordinate | None = None
    geofence_radius_km: float = Field(default_factory=get_geofence_radius_km)


class Accepted(BaseModel):
    """命令被接受：新的任务文档 + 待写入事件 + 待发送通知"""

    accepted: Literal[True] = True
    task: Task
    event_type: EventType
    payload: dict[str, Any]
    notification: Notification | None = None


class Rejected(BaseModel):
    """命令被拒绝，任务保持不变"""

    accepted: Literal[False] = False
    code: RejectionCode
    message: str


TransitionResult = Accepted | Rejected


def _reject(code: RejectionCode, message: str) -> Rejected:
    return Rejected(code=code, message=message)


def _require_assignee(task: Task, ctx: WorkflowContext) -> Rejected | None:
    if task.assigned_to != ctx.actor.actor_id:
        return _reject(
            RejectionCode.NOT_ASSIGNEE,
            f"Only the assigned technician ({task.assigned_to}) can do this",
        )
    return None


def _require_admin(ctx: WorkflowContext) -> Rejected | None:
    if not ctx.actor.is_admin:
        return _reject(RejectionCode.ADMIN_REQUIRED, "Only an admin can do this")
    return None


def _require_state(task: Task, to_status: TaskStatus) -> Rejected | None:
    if not validate_transition(task.status, to_status):
        return _reject(
            RejectionCode.INVALID_TRANSITION,
            f"Cannot move task from {task.status} to {to_status}",
        )
    return None


def _require_current(task: Task, expected: TaskStatus) -> Rejected | None:
    # Review -> InProgress 与 ToDo -> InProgress 同在流转表中，需限定来源状态
    if task.status != expected:
        return _reject(
            RejectionCode.INVALID_TRANSITION,
            f"Task must be in {expected} (current: {task.status})",
        )
    return None


def _not_done(task: Task) -> Rejected | None:
    if task.status == TaskStatus.DONE:
        return _reject(RejectionCode.TASK_ALREADY_DONE, "Task is already done")
    return None


def _first(*checks: Rejected | None) -> Rejected | None:
    for check in checks:
        if check is not None:
            return check
    return None


def check_geofence(task: Task, ctx: WorkflowContext) -> tuple[Rejected | None, float | None]:
    """地理围栏校验

    仅当调用者为外勤模式，且现场坐标和实时位置都已知时才校验；
    任一缺失时直接通过（由管理员强制完成兜底）。

    Returns:
        (拒绝结果或 None, 实测距离或 None)
    """
    if ctx.actor.work_mode != WorkMode.FIELD:
        return None, None
    if task.site is None or ctx.live_position is None:
        return None, None

    distance = haversine_km(ctx.live_position, task.site)
    if distance > ctx.geofence_radius_km:
        return (
            _reject(
                RejectionCode.OUTSIDE_GEOFENCE,
                f"You must be within {ctx.geofence_radius_km:g}km of the site to submit "
                f"(currently {distance:.2f}km away)",
            ),
            distance,
        )
    return None, distance


def _transition(
    task: Task,
    ctx: WorkflowContext,
    to_status: TaskStatus,
    action: str,
    notification: Notification | None,
    reason: str = "",
    forced: bool = False,
    distance_km: float | None = None,
) -> Accepted:
    """状态变更 + 一条审计日志 + STATE_TRANSITION 事件"""
    logged = append_log(task, ctx.actor.actor_id, action, ctx.now)
    new_task = logged.model_copy(update={"status": to_status})
    payload = StateTransitionPayload(
        from_status=task.status,
        to_status=to_status,
        reason=reason,
        forced=forced,
        distance_km=distance_km,
        log=logged.logs[-1],
    )
    return Accepted(
        task=new_task,
        event_type=EventType.STATE_TRANSITION,
        payload=payload.model_dump(mode="json"),
        notification=notification,
    )


def _notify_assignee(
    task: Task, title: str, message: str, severity: Severity = Severity.INFO
) -> Notification:
    return Notification(
        title=title,
        message=message,
        severity=severity,
        task_id=task.task_id,
        audience=Audience.ASSIGNEE,
        recipient_id=task.assigned_to,
    )


def _notify_admin(
    task: Task, title: str, message: str, severity: Severity = Severity.INFO
) -> Notification:
    return Notification(
        title=title,
        message=message,
        severity=severity,
        task_id=task.task_id,
        audience=Audience.ADMIN,
    )


# ============================================================
# 命令处理
# ============================================================


def _start(task: Task, command: StartExecution, ctx: WorkflowContext) -> TransitionResult:
    rejected = _first(
        _not_done(task),
        _require_assignee(task, ctx),
        _require_current(task, TaskStatus.TODO),
    )
    if rejected:
        return rejected
    return _transition(task, ctx, TaskStatus.IN_PROGRESS, "Started execution", None)


def _submit(task: Task, command: SubmitForReview, ctx: WorkflowContext) -> TransitionResult:
    rejected = _first(
        _not_done(task),
        _require_assignee(task, ctx),
        _require_state(task, TaskStatus.REVIEW),
    )
    if rejected:
        return rejected

    rejected, distance = check_geofence(task, ctx)
    if rejected:
        return rejected

    return _transition(
        task,
        ctx,
        TaskStatus.REVIEW,
        "Submitted for review",
        _notify_admin(
            task,
            "Task submitted for review",
            f"{ctx.actor.display_name or ctx.actor.actor_id} submitted '{task.title}'",
        ),
        distance_km=distance,
    )


def _approve(task: Task, command: ApproveJob, ctx: WorkflowContext) -> TransitionResult:
    rejected = _first(
        _not_done(task),
        _require_admin(ctx),
        _require_state(task, TaskStatus.DONE),
    )
    if rejected:
        return rejected
    return _transition(
        task,
        ctx,
        TaskStatus.DONE,
        "Approved",
        _notify_assignee(
            task, "Task approved", f"'{task.title}' was approved", Severity.SUCCESS
        ),
    )


def _reject_job(task: Task, command: RejectJob, ctx: WorkflowContext) -> TransitionResult:
    rejected = _first(
        _not_done(task),
        _require_admin(ctx),
        _require_current(task, TaskStatus.REVIEW),
    )
    if rejected:
        return rejected

    note = command.note.strip()
    action = f"Rejected for redo: {note}" if note else "Rejected for redo"
    return _transition(
        task,
        ctx,
        TaskStatus.IN_PROGRESS,
        action,
        _notify_assignee(
            task,
            "Task sent back",
            f"'{task.title}' needs rework" + (f": {note}" if note else ""),
            Severity.WARNING,
        ),
        reason=note,
    )


def _force_finish(task: Task, command: ForceFinish, ctx: WorkflowContext) -> TransitionResult:
    rejected = _first(_not_done(task), _require_admin(ctx))
    if rejected:
        return rejected
    if not command.confirmed:
        return _reject(
            RejectionCode.CONFIRMATION_REQUIRED,
            "Manual finish must be explicitly confirmed",
        )
    return _transition(
        task,
        ctx,
        TaskStatus.DONE,
        "Manually finished by admin",
        _notify_assignee(
            task, "Task closed by admin", f"'{task.title}' was marked done by an admin"
        ),
        reason="admin override",
        forced=True,
    )


def _request_move(task: Task, command: RequestDateMove, ctx: WorkflowContext) -> TransitionResult:
    rejected = _first(_not_done(task), _require_assignee(task, ctx))
    if rejected:
        return rejected

    reason = command.reason.strip()
    if not reason:
        return _reject(RejectionCode.REASON_REQUIRED, "A reason is required to request a date move")
    if task.has_pending_exception:
        return _reject(
            RejectionCode.EXCEPTION_PENDING,
            "A date move request is already pending for this task",
        )

    request = MoveRequest(reason=reason, ts=ctx.now)
    logged = append_log(task, ctx.actor.actor_id, f"Requested date move: {reason}", ctx.now)
    new_task = logged.model_copy(update={"exception_request": request})
    payload = ExceptionRequestedPayload(request=request, log=logged.logs[-1])
    return Accepted(
        task=new_task,
        event_type=EventType.EXCEPTION_REQUESTED,
        payload=payload.model_dump(mode="json"),
        notification=_notify_admin(
            task,
            "Date move requested",
            f"{ctx.actor.display_name or ctx.actor.actor_id} asked to move '{task.title}': {reason}",
            Severity.ALERT,
        ),
    )


def _resolve_move(
    task: Task,
    ctx: WorkflowContext,
    approved: bool,
    new_due_date: date | None,
    note: str = "",
) -> TransitionResult:
    rejected = _require_admin(ctx)
    if rejected:
        return rejected
    if not task.has_pending_exception:
        return _reject(
            RejectionCode.NO_PENDING_EXCEPTION,
            "There is no pending date move request for this task",
        )

    if approved and new_due_date is not None:
        action = f"Date move approved: due {new_due_date.isoformat()}"
        update: dict[str, Any] = {
            "exception_request": None,
            "status": TaskStatus.TODO,
            "due_date": new_due_date,
        }
        notification = _notify_assignee(
            task,
            "Date move approved",
            f"'{task.title}' is rescheduled to {new_due_date.isoformat()}",
            Severity.SUCCESS,
        )
    else:
        note = note.strip()
        action = f"Date move rejected: {note}" if note else "Date move rejected"
        update = {"exception_request": None}
        notification = _notify_assignee(
            task,
            "Date move rejected",
            f"The date move for '{task.title}' was rejected",
            Severity.WARNING,
        )

    logged = append_log(task, ctx.actor.actor_id, action, ctx.now)
    new_task = logged.model_copy(update=update)
    payload = ExceptionResolvedPayload(
        approved=approved,
        from_status=task.status,
        to_status=new_task.status,
        previous_due_date=task.due_date,
        new_due_date=new_task.due_date,
        log=logged.logs[-1],
    )
    return Accepted(
        task=new_task,
        event_type=EventType.EXCEPTION_RESOLVED,
        payload=payload.model_dump(mode="json"),
        notification=notification,
    )


def _approve_move(task: Task, command: ApproveDateMove, ctx: WorkflowContext) -> TransitionResult:
    return _resolve_move(task, ctx, approved=True, new_due_date=command.new_due_date)


def _reject_move(task: Task, command: RejectDateMove, ctx: WorkflowContext) -> TransitionResult:
    return _resolve_move(task, ctx, approved=False, new_due_date=None, note=command.note)


def _can_edit_checklist(task: Task, ctx: WorkflowContext) -> Rejected | None:
    if ctx.actor.is_admin:
        return None
    return _require_assignee(task, ctx)


def _add_item(task: Task, command: AddChecklistItem, ctx: WorkflowContext) -> TransitionResult:
    rejected = _can_edit_checklist(task, ctx)
    if rejected:
        return rejected
    try:
        new_task = add_checklist_item(task, command.text, item_id=command.item_id)
    except ValueError:
        return _reject(RejectionCode.TEXT_REQUIRED, "Checklist item text is required")
    new_task = new_task.model_copy(update={"updated_at": ctx.now})
    return Accepted(
        task=new_task,
        event_type=EventType.CHECKLIST_ITEM_ADDED,
        payload=ChecklistItemAddedPayload(item=new_task.sub_tasks[-1]).model_dump(mode="json"),
    )


def _toggle_item(task: Task, command: ToggleChecklistItem, ctx: WorkflowContext) -> TransitionResult:
    rejected = _can_edit_checklist(task, ctx)
    if rejected:
        return rejected
    try:
        new_task = toggle_checklist_item(task, command.item_id)
    except KeyError:
        return _reject(
            RejectionCode.CHECKLIST_ITEM_NOT_FOUND,
            f"Checklist item {command.item_id} does not exist",
        )
    new_task = new_task.model_copy(update={"updated_at": ctx.now})
    item = next(i for i in new_task.sub_tasks if i.item_id == command.item_id)
    return Accepted(
        task=new_task,
        event_type=EventType.CHECKLIST_ITEM_TOGGLED,
        payload=ChecklistItemToggledPayload(
            item_id=item.item_id, completed=item.completed
        ).model_dump(mode="json"),
    )


_HANDLERS: dict[type, Callable[[Task, Any, WorkflowContext], TransitionResult]] = {
    StartExecution: _start,
    SubmitForReview: _submit,
    ApproveJob: _approve,
    RejectJob: _reject_job,
    ForceFinish: _force_finish,
    RequestDateMove: _request_move,
    ApproveDateMove: _approve_move,
    RejectDateMove: _reject_move,
    AddChecklistItem: _add_item,
    ToggleChecklistItem: _toggle_item,
}


def apply_command(task: Task, command: Command, ctx: WorkflowContext) -> TransitionResult:
    """对任务执行一条命令

    Args:
        task: 当前任务（不会被修改）
        command: 命令实例
        ctx: 执行上下文（调用者、时间、实时位置）

    Returns:
        Accepted（新任务 + 事件 + 通知）或 Rejected（原因）
    """
    handler = _HANDLERS.get(type(command))
    if handler is None:
        raise TypeError(f"unsupported command: {type(command).__name__}")
    return handler(task, command, ctx)


def dispatch(request: DispatchTask, ctx: WorkflowContext, task_id: str | None = None) -> TransitionResult:
    """管理员派单：新任务状态为 ToDo，带一条 Dispatched 种子日志"""
    rejected = _require_admin(ctx)
    if rejected:
        return rejected
    if not request.title.strip():
        return _reject(RejectionCode.TEXT_REQUIRED, "Task title is required")
    if not request.assigned_to.strip():
        return _reject(RejectionCode.TEXT_REQUIRED, "Task must be assigned to a technician")

    draft = Task(
        task_id=task_id or str(ULID()),
        title=request.title.strip(),
        description=request.description,
        assigned_to=request.assigned_to.strip(),
        priority=request.priority,
        status=TaskStatus.TODO,
        due_date=request.due_date,
        site=request.site,
        location_name=request.location_name,
        related_to=request.related_to,
        created_by=ctx.actor.actor_id,
        created_at=ctx.now,
        updated_at=ctx.now,
    )
    task = append_log(draft, ctx.actor.actor_id, DISPATCH_LOG_ACTION, ctx.now)
    payload = TaskDispatchedPayload(
        title=task.title,
        description=task.description,
        assigned_to=task.assigned_to,
        priority=task.priority,
        due_date=task.due_date,
        site=task.site,
        location_name=task.location_name,
        related_to=task.related_to,
        created_by=task.created_by,
        log=task.logs[-1],
    )
    return Accepted(
        task=task,
        event_type=EventType.TASK_DISPATCHED,
        payload=payload.model_dump(mode="json"),
        notification=_notify_assignee(
            task,
            "New task assigned",
            f"'{task.title}' is due {task.due_date.isoformat()}",
        ),
    )
