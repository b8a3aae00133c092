"""TraceMiddleware -- 任务路由绑定 trace_id

/api/tasks/{task_id}/... 的请求绑定 trace_id=trace-<task_id>，
与该任务事件上的 trace_id 一致，便于按任务串联日志。
"""

import re

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ULID: 26 位 Crockford base32
_TASK_PATH = re.compile(r"^/api/tasks/(?P<task_id>[0-9A-HJKMNP-TV-Z]{26})(?:/|$)")


def trace_id_for_path(path: str) -> str | None:
    match = _TASK_PATH.match(path)
    if match is None:
        return None
    return f"trace-{match.group('task_id')}"


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        trace_id = trace_id_for_path(request.url.path)
        if trace_id:
            structlog.contextvars.bind_contextvars(trace_id=trace_id)
        return await call_next(request)
