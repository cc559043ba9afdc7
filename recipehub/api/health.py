"""
Health endpoints.

Lightweight liveness and readiness probes; no secrets exposed.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from recipehub.core.config import settings
from recipehub.core.database import check_connection, get_engine, metadata

logger = logging.getLogger("recipehub")

root_router = APIRouter(tags=["health"])


@root_router.get("/health")
def health():
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.ENV,
    }


@root_router.get("/healthz")
def healthz():
    """Liveness check (no deps)."""
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz():
    """Readiness check: DB connectivity + required tables."""
    if not check_connection():
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})

    required_tables = sorted(metadata.tables.keys())
    try:
        inspector = inspect(get_engine())
        missing = [t for t in required_tables if not inspector.has_table(t)]
    except Exception as e:
        logger.error(f"[readyz] table inspection failed: {e}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})

    if missing:
        detail = f"missing tables: {', '.join(missing)}"
        logger.warning(f"[readyz] {detail}")
        return JSONResponse(status_code=503, content={"status": "error", "detail": detail})
    return {"status": "ok"}
