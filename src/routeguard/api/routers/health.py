"""
routeguard.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`): ready once every auth provider is initialized.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from routeguard.api.deps import dispatcher_from_app
from routeguard.dispatch.dispatcher import Dispatcher

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(dispatcher: Dispatcher = Depends(dispatcher_from_app)) -> dict[str, str]:
    if not dispatcher.started:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail="Starting")
    return {"status": "ready"}


# --- Module Notes -----------------------------------------------------------
# Kubernetes typically uses /healthz for liveness and /readyz for readiness gating.
