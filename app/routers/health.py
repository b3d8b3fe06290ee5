from __future__ import annotations

import os
import time
from typing import Any, Dict

from fastapi import APIRouter, Request

from config.settings import settings

router = APIRouter()


@router.get("/health")
def health():
    # Liveness only: answers as soon as the process serves, whatever the watchers are doing.
    return {"status": "ok"}


@router.get("/health/watchers")
def watchers(request: Request):
    supervisor = getattr(request.app.state, "supervisor", None)
    payload: Dict[str, Any] = {
        "service": "listappi-push",
        "cloudrun_service": os.getenv("K_SERVICE") or "",
        "revision": os.getenv("K_REVISION") or "",
        "environment": settings.ENVIRONMENT,
        "watchers": supervisor.status() if supervisor else [],
        "time_unix": time.time(),
    }
    return payload
