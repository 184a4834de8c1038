from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockwatch.db.session import get_db

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz(request: Request, db: Annotated[Session, Depends(get_db)]):
    """Readiness: the database must answer; the summary cache is reported but optional."""
    checks: dict[str, str] = {}
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError:
        checks["database"] = "unavailable"

    cache = getattr(request.app.state, "summary_cache", None)
    if cache is None or not cache.enabled:
        checks["cache"] = "disabled"
    else:
        checks["cache"] = "ok" if cache.ping() else "unavailable"

    healthy = checks["database"] == "ok"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "ok" if healthy else "degraded", "checks": checks},
    )


@router.get("/live")
async def live() -> dict[str, str]:
    """Process liveness; touches nothing."""
    return {"status": "alive"}
