"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、WAL 模式、磁盘空间。
"""

import shutil
from pathlib import Path

import aiosqlite
import structlog
from fastapi import APIRouter, Request
from fieldops.core.config import get_db_path
from fieldops.core.store.sqlite_init import verify_wal_mode
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查 -- 任一核心检查失败返回 503"""
    checks: dict[str, object] = {}
    all_ok = True

    store_group = getattr(request.app.state, "store_group", None)
    if store_group is None:
        checks["sqlite"] = "error: store not initialized"
        all_ok = False
    else:
        try:
            cursor = await store_group.conn.execute("SELECT 1")
            await cursor.fetchone()
            checks["sqlite"] = "ok"
            checks["wal_mode"] = "ok" if await verify_wal_mode(store_group.conn) else "off"
        except (aiosqlite.Error, ValueError) as e:
            log.warning("ready_check_sqlite_failed", error=str(e))
            checks["sqlite"] = "unavailable"
            all_ok = False

    try:
        db_dir = Path(get_db_path()).parent
        usage = shutil.disk_usage(db_dir if db_dir.exists() else Path.cwd())
        checks["disk_space_mb"] = usage.free // (1024 * 1024)
    except OSError:
        checks["disk_space_mb"] = 0
        all_ok = False

    tracker = getattr(request.app.state, "position_tracker", None)
    checks["position_watches"] = len(tracker) if tracker is not None else 0

    status = "ready" if all_ok else "not_ready"
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={"status": status, "checks": checks},
    )
