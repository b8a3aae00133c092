"""错误响应 -- 统一 {"error": {"code", "message"}} 结构

流转引擎的拒绝结果与服务层异常在这里映射为 HTTP 状态码。
"""

from fastapi import FastAPI, Request
from fieldops.core.store import TaskVersionConflictError
from fieldops.core.workflow import Rejected, RejectionCode
from starlette.responses import JSONResponse

from .deps import UnauthenticatedError
from .services.task_service import TaskNotFoundError

REJECTION_STATUS: dict[RejectionCode, int] = {
    RejectionCode.NOT_ASSIGNEE: 403,
    RejectionCode.ADMIN_REQUIRED: 403,
    RejectionCode.REASON_REQUIRED: 422,
    RejectionCode.TEXT_REQUIRED: 422,
    RejectionCode.CONFIRMATION_REQUIRED: 422,
    RejectionCode.OUTSIDE_GEOFENCE: 422,
    RejectionCode.INVALID_TRANSITION: 409,
    RejectionCode.TASK_ALREADY_DONE: 409,
    RejectionCode.EXCEPTION_PENDING: 409,
    RejectionCode.NO_PENDING_EXCEPTION: 409,
    RejectionCode.CHECKLIST_ITEM_NOT_FOUND: 404,
}


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


def rejection_response(rejected: Rejected) -> JSONResponse:
    return error_response(
        REJECTION_STATUS.get(rejected.code, 409),
        rejected.code.value,
        rejected.message,
    )


async def _task_not_found(request: Request, exc: TaskNotFoundError) -> JSONResponse:
    return error_response(404, "TASK_NOT_FOUND", str(exc))


async def _version_conflict(request: Request, exc: TaskVersionConflictError) -> JSONResponse:
    return error_response(409, "TASK_VERSION_CONFLICT", str(exc))


async def _unauthenticated(request: Request, exc: UnauthenticatedError) -> JSONResponse:
    return error_response(401, "UNAUTHENTICATED", str(exc))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskNotFoundError, _task_not_found)
    app.add_exception_handler(TaskVersionConflictError, _version_conflict)
    app.add_exception_handler(UnauthenticatedError, _unauthenticated)
