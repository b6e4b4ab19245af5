# backend/docrag/router/deps.py
from __future__ import annotations
from fastapi import HTTPException, Request, status

from docrag.container import AppContainer


def get_container(request: Request) -> AppContainer:
    """FastAPI dependency returning the container built in the app lifespan."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="QA service not ready")
    return container
