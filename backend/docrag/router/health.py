# backend/docrag/router/health.py
from __future__ import annotations
import logging
from fastapi import APIRouter, HTTPException, Request

from docrag.db.session import DatabasePool, ping_db

router = APIRouter(tags=["health"])
logger = logging.getLogger("docrag.router.health")


@router.get("/health")
async def health_check():
    """Basic health check - service is running"""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check - container built and index reachable"""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=503, detail="Service starting up")
    return {"status": "ready", "mode": container.mode}


@router.get("/db-ping")
def db_ping():
    """Simple DB connectivity test."""
    ok, message = ping_db()
    return {"ok": ok, "message": message, "pool_initialized": DatabasePool.pool is not None}
